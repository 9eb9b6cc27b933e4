from __future__ import annotations

"""Planner contract and the per-run planning session.

A planner turns ``(goal, context)`` into an ordered sequence of tool calls.
It never touches the tools directly: every call goes through a
``PlanSession``, which

1. emits ``tool_call`` with the exact input about to be sent,
2. dispatches through ``ToolRegistry.invoke`` (validation included),
3. emits ``tool_result`` with the validated output,
4. hands the output model back so later steps can use it.

Events are awaited one at a time, so by the time a planner asks for its next
tool the previous pair is already persisted.

Failure handling
----------------

``PlanSession.call`` does not catch anything. A failing tool leaves a
``tool_call`` without a matching ``tool_result`` and the exception reaches the
run manager, which writes the single terminal ``error`` event. A planner that
cannot continue for lack of data is not failing: it calls ``final`` with
guidance and returns.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, Dict, Iterable, Optional, Protocol

from pydantic import BaseModel

from ..schemas.context import PlanContext
from ..schemas.domain import PlannerKind, ToolName
from ..schemas.events import FinalEvent, PlanEvent, PlannerEvent, ToolCallEvent, ToolResultEvent
from ..tools.base import ToolContext
from ..tools.registry import ToolRegistry

EventCallback = Callable[[PlannerEvent], Awaitable[None]]

ORDER_TYPES = ("inspection", "maintenance", "repair", "diagnosis")
JOB_TYPES = ("maintenance", "repair", "diagnosis", "inspection")


class Planner(Protocol):
    """Protocol for planners selectable at run admission."""

    kind: ClassVar[PlannerKind]

    async def run(
        self,
        goal: str,
        context: PlanContext,
        tool_ctx: ToolContext,
        on_event: EventCallback,
    ) -> None:
        """
        Plan and execute ``goal``.

        Must emit exactly one ``plan`` event first and exactly one ``final``
        event last when it returns normally.
        """
        ...


@dataclass(frozen=True)
class PlanSession:
    """Binds a registry, a tool context and an event callback for one run."""

    registry: ToolRegistry
    tool_ctx: ToolContext
    on_event: EventCallback

    async def plan(self, text: str) -> None:
        await self.on_event(PlanEvent(text=text))

    async def final(self, text: str) -> None:
        await self.on_event(FinalEvent(text=text))

    async def result(self, name: ToolName, output: Dict[str, Any]) -> None:
        """Emit a ``tool_result`` that did not come from the registry (e.g. a skipped step)."""
        await self.on_event(ToolResultEvent(name=name.value, output=output))

    async def call(self, name: ToolName, payload: Dict[str, Any]) -> Any:
        """Invoke one tool, bracketed by its ``tool_call``/``tool_result`` events.

        ``None`` values are dropped from ``payload`` so the tool's own defaults
        apply and the recorded input shows only what was actually sent.
        """
        sent = compact(payload)
        await self.on_event(ToolCallEvent(name=name.value, input=sent))
        output: BaseModel = await self.registry.invoke(name, sent, self.tool_ctx)
        await self.on_event(ToolResultEvent(name=name.value, output=output.model_dump(mode="json")))
        return output


def compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


def coerce_choice(value: Optional[str], choices: Iterable[str], default: str) -> str:
    """Map free text onto a closed vocabulary, case-insensitively."""
    if value is None:
        return default
    v = value.strip().lower()
    return v if v in tuple(choices) else default


def first_text(*values: Optional[str]) -> Optional[str]:
    """Return the first non-blank value, stripped."""
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return None
