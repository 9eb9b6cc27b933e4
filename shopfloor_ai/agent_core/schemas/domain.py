from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


class EventKind(str, Enum):
    plan = "plan"
    tool_call = "tool_call"
    tool_result = "tool_result"
    final = "final"
    error = "error"


class PlannerKind(str, Enum):
    simple = "simple"
    guided = "guided"
    approvals = "approvals"
    fleet = "fleet"


class ToolName(str, Enum):
    find_customer_vehicle = "find_customer_vehicle"
    create_customer = "create_customer"
    create_vehicle = "create_vehicle"
    create_work_order = "create_work_order"
    add_work_order_line = "add_work_order_line"
    attach_photo_to_work_order = "attach_photo_to_work_order"
    create_custom_inspection = "create_custom_inspection"
    generate_invoice_html = "generate_invoice_html"
    email_invoice = "email_invoice"
    record_work_order_approval = "record_work_order_approval"
    list_pending_approvals = "list_pending_approvals"
    set_line_approval = "set_line_approval"
    lookup_fleet = "lookup_fleet"
    find_or_create_fleet = "find_or_create_fleet"
    find_or_create_fleet_program = "find_or_create_fleet_program"
    generate_fleet_work_orders = "generate_fleet_work_orders"


class PlannerRun(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    tenant_id: str
    user_id: str

    goal: str
    idempotency_key: Optional[str] = None
    planner: PlannerKind = PlannerKind.simple

    status: RunStatus = RunStatus.running
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class PlannerEventRecord(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    run_id: str

    step: int = Field(ge=1)
    kind: EventKind
    content: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=_utc_now)
