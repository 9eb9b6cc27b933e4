"""
API Schemas.

This module contains Pydantic models used for API request bodies and response validation.
These schemas define the interface contract between the client and the server.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from shopfloor_ai.agent_core.schemas.context import PlanContext
from shopfloor_ai.agent_core.schemas.domain import PlannerKind, RunStatus


class RunCreate(BaseModel):
    """
    Schema for starting a new planner run.

    The run executes before the response is returned; follow its events with
    the ``/events`` or ``/stream`` endpoints.
    """
    goal: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="Free-form goal for the planner.",
        examples=["Create an inspection work order for plate ABC123 and email the invoice."]
    )
    context: PlanContext = Field(
        default_factory=PlanContext,
        description="Optional typed hints (customerId, vehicleId, lineDescription, emailInvoiceTo, ...).",
    )
    idempotency_key: Optional[str] = Field(
        default=None,
        max_length=255,
        alias="idempotencyKey",
        description="Client key; repeating it returns the earlier run instead of starting a new one.",
        examples=["wo-2024-10-19-0001"]
    )
    planner: Optional[PlannerKind] = Field(
        default=None,
        description="Planner to use. Defaults to the server's configured planner.",
        examples=[PlannerKind.simple]
    )

    model_config = ConfigDict(populate_by_name=True, json_schema_extra={
        "example": {
            "goal": "Brake inspection for the Corolla",
            "context": {"customerId": "c-1", "vehicleId": "v-1", "lineDescription": "Brake inspection"},
            "idempotencyKey": "req-123",
            "planner": "simple"
        }
    })


class RunCreated(BaseModel):
    """Result of ``POST /runs``."""
    run_id: str = Field(..., description="Identifier of the run.")
    already_existed: bool = Field(
        default=False,
        description="True when the idempotency key matched an earlier run; nothing was executed.",
    )
    status: RunStatus = Field(..., description="Current status of the run.")


class ToolDefinition(BaseModel):
    """Catalog entry of a registered tool."""
    name: str = Field(..., examples=["create_work_order"])
    description: str
    input_schema: Dict[str, Any] = Field(..., description="JSON schema of the tool input.")
    output_schema: Dict[str, Any] = Field(..., description="JSON schema of the tool output.")
