from __future__ import annotations

"""External reasoning for the guided planner.

The guided planner does not understand language itself. It asks a
``ReasoningProvider`` to turn the free-form goal into a ``GoalInterpretation``:
a structured, all-optional proposal of what to look up and what to create.

The default provider uses Pydantic AI with a structured ``output_type``, so
the model's answer is validated before the planner sees it. Interpretation is
best effort; the planner treats any provider error as "no interpretation".
"""

import json
import logging
from typing import Any, List, Literal, Optional, Protocol

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_ai import Agent

from ..schemas.context import InspectionSpec, LineSpec, PlanContext

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You turn requests from an auto-repair shop into structured instructions. "
    "Only fill a field when the request states or clearly implies it; otherwise leave it out. "
    "Each line needs a description and, when inferable, a job type "
    "(maintenance, repair, diagnosis or inspection) and labor hours. "
    "Set inspection when a custom inspection sheet is requested. "
    "Set auto_approve only when the request says the work is already approved, "
    "and approval_method to who approved it (fleet, advisor, customer or other)."
)


class GoalInterpretation(BaseModel):
    """Structured reading of a goal. Every field is optional."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    customer_query: Optional[str] = None
    plate_or_vin: Optional[str] = None
    order_type: Optional[Literal["inspection", "maintenance", "repair", "diagnosis"]] = None
    notes: Optional[str] = None
    lines: List[LineSpec] = []
    email_invoice_to: Optional[str] = None
    email_subject: Optional[str] = None
    photo_url: Optional[str] = None
    inspection: Optional[InspectionSpec] = None
    auto_approve: Optional[bool] = None
    approval_method: Optional[str] = None


class ReasoningProvider(Protocol):
    async def interpret(self, goal: str, context: PlanContext) -> GoalInterpretation:
        """Propose an interpretation of ``goal``; may raise on provider errors."""
        ...


class PydanticAIReasoningProvider:
    """``ReasoningProvider`` backed by a Pydantic AI agent.

    ``model`` is anything ``pydantic_ai.Agent`` accepts: a model name such as
    ``"openai:gpt-4o-mini"`` or a model instance (``TestModel`` in tests).
    The agent is created on first use so that building the provider never
    needs credentials.
    """

    def __init__(self, model: Any, *, system_prompt: str = SYSTEM_PROMPT) -> None:
        self._model = model
        self._system_prompt = system_prompt
        self._agent: Optional[Agent[None, GoalInterpretation]] = None

    def _get_agent(self) -> Agent[None, GoalInterpretation]:
        if self._agent is None:
            self._agent = Agent(
                self._model,
                output_type=GoalInterpretation,
                system_prompt=self._system_prompt,
            )
        return self._agent

    async def interpret(self, goal: str, context: PlanContext) -> GoalInterpretation:
        hints = {
            "customer_query": context.text("customer_query"),
            "plate_or_vin": context.text("plate_or_vin"),
            "email_invoice_to": context.text("email_invoice_to"),
            "photo_url": context.text("photo_url"),
        }
        prompt = f"Goal:\n{goal}\n\nHints:\n{json.dumps({k: v for k, v in hints.items() if v})}"
        result = await self._get_agent().run(prompt)
        logger.debug(f"Goal interpreted: {result.output.model_dump(exclude_none=True)}")
        return result.output
