from __future__ import annotations

"""Line-level approval tools.

``list_pending_approvals`` is read-only; ``set_line_approval`` records one
decision for one line and refuses to overwrite an earlier decision.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import Field
from sqlalchemy import select

from ...shop.models import WorkOrderLineRow
from ..errors import ToolFailure
from ..schemas.base import BaseSchema
from ..schemas.domain import ToolName
from .base import ToolContext
from .support import ShopStoreTool, ensure_in_shop, utc_now


class ListPendingApprovalsInput(BaseSchema):
    work_order_id: Optional[str] = Field(default=None, min_length=1)
    limit: int = Field(default=25, ge=1, le=100)


class PendingLine(BaseSchema):
    line_id: str
    work_order_id: str
    description: str
    job_type: str
    labor_hours: float


class ListPendingApprovalsOutput(BaseSchema):
    items: List[PendingLine] = Field(default_factory=list)
    count: int


class SetLineApprovalInput(BaseSchema):
    line_id: str = Field(min_length=1)
    decision: Literal["approved", "declined"]
    note: Optional[str] = None


class SetLineApprovalOutput(BaseSchema):
    line_id: str
    work_order_id: str
    approval_state: str


@dataclass(frozen=True)
class ListPendingApprovalsTool(ShopStoreTool):
    name = ToolName.list_pending_approvals
    description = "List work order lines awaiting approval, optionally for one work order"
    input_schema = ListPendingApprovalsInput
    output_schema = ListPendingApprovalsOutput

    async def execute(self, payload: ListPendingApprovalsInput, ctx: ToolContext) -> ListPendingApprovalsOutput:
        stmt = (
            select(WorkOrderLineRow)
            .where(WorkOrderLineRow.shop_id == ctx.tenant_id)
            .where(WorkOrderLineRow.approval_state == "pending")
        )
        if payload.work_order_id:
            stmt = stmt.where(WorkOrderLineRow.work_order_id == payload.work_order_id)
        stmt = stmt.order_by(WorkOrderLineRow.created_at).limit(payload.limit)

        async with self.session_factory() as s:
            rows = (await s.execute(stmt)).scalars().all()

        items = [
            PendingLine(
                line_id=r.id,
                work_order_id=r.work_order_id,
                description=r.description,
                job_type=r.job_type,
                labor_hours=r.labor_time,
            )
            for r in rows
        ]
        return ListPendingApprovalsOutput(items=items, count=len(items))


@dataclass(frozen=True)
class SetLineApprovalTool(ShopStoreTool):
    name = ToolName.set_line_approval
    description = "Approve or decline a single work order line"
    input_schema = SetLineApprovalInput
    output_schema = SetLineApprovalOutput

    async def execute(self, payload: SetLineApprovalInput, ctx: ToolContext) -> SetLineApprovalOutput:
        async with self.session_factory() as s:
            line = ensure_in_shop(await s.get(WorkOrderLineRow, payload.line_id), ctx, "Work order line")
            if line.approval_state != "pending":
                raise ToolFailure(f"Line already {line.approval_state}", code="conflict")

            line.approval_state = payload.decision
            line.status = "approved" if payload.decision == "approved" else "declined"
            line.decided_by = ctx.user_id
            line.decided_at = utc_now()
            if payload.note:
                line.notes = f"{line.notes}\n{payload.note}" if line.notes else payload.note
            await s.commit()
            return SetLineApprovalOutput(
                line_id=line.id, work_order_id=line.work_order_id, approval_state=line.approval_state
            )
