from __future__ import annotations

"""Work order tools.

- ``create_work_order``: open a work order for a customer's vehicle.
- ``add_work_order_line``: add one job line priced at the shop labor rate.
- ``attach_photo_to_work_order``: attach one photo URL.
- ``record_work_order_approval``: approve a whole work order and keep history.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import Field

from ...shop.models import (
    CustomerRow,
    VehicleRow,
    WorkOrderApprovalRow,
    WorkOrderAttachmentRow,
    WorkOrderLineRow,
    WorkOrderRow,
)
from ..errors import ToolFailure
from ..schemas.base import BaseSchema
from ..schemas.domain import ToolName
from .base import ToolContext
from .support import ShopStoreTool, ensure_in_shop, new_id, shop_labor_rate, utc_now

WorkOrderType = Literal["inspection", "maintenance", "repair", "diagnosis"]
JobType = Literal["diagnosis", "inspection", "maintenance", "repair"]
ApprovalMethod = Literal["fleet", "advisor", "customer", "other"]


class CreateWorkOrderInput(BaseSchema):
    customer_id: str = Field(min_length=1)
    vehicle_id: str = Field(min_length=1)
    type: WorkOrderType = "inspection"
    notes: Optional[str] = None


class CreateWorkOrderOutput(BaseSchema):
    work_order_id: str
    status: str


class AddWorkOrderLineInput(BaseSchema):
    work_order_id: str = Field(min_length=1)
    description: str = Field(min_length=1)
    job_type: JobType = "repair"
    labor_hours: float = Field(default=1.0, ge=0, le=200)
    parts_cost: float = Field(default=0.0, ge=0)
    notes: Optional[str] = None


class AddWorkOrderLineOutput(BaseSchema):
    line_id: str
    work_order_id: str


class AttachPhotoInput(BaseSchema):
    work_order_id: str = Field(min_length=1)
    image_url: str = Field(pattern=r"^https?://\S+$")
    caption: Optional[str] = None


class AttachPhotoOutput(BaseSchema):
    attachment_id: str
    work_order_id: str


class RecordWorkOrderApprovalInput(BaseSchema):
    work_order_id: str = Field(min_length=1)
    method: ApprovalMethod = "advisor"
    note: Optional[str] = None


class RecordWorkOrderApprovalOutput(BaseSchema):
    approval_id: str
    work_order_id: str
    status: str


@dataclass(frozen=True)
class CreateWorkOrderTool(ShopStoreTool):
    name = ToolName.create_work_order
    description = "Create a work order for a customer's vehicle"
    input_schema = CreateWorkOrderInput
    output_schema = CreateWorkOrderOutput

    async def execute(self, payload: CreateWorkOrderInput, ctx: ToolContext) -> CreateWorkOrderOutput:
        async with self.session_factory() as s:
            ensure_in_shop(await s.get(CustomerRow, payload.customer_id), ctx, "Customer")
            vehicle = ensure_in_shop(await s.get(VehicleRow, payload.vehicle_id), ctx, "Vehicle")
            if vehicle.customer_id != payload.customer_id:
                raise ToolFailure("Vehicle does not belong to customer", code="invalid_reference")

            row = WorkOrderRow(
                id=new_id(),
                shop_id=ctx.tenant_id,
                customer_id=payload.customer_id,
                vehicle_id=payload.vehicle_id,
                type=payload.type,
                status="awaiting",
                notes=payload.notes,
                created_by=ctx.user_id,
                created_at=utc_now(),
            )
            s.add(row)
            await s.commit()
            return CreateWorkOrderOutput(work_order_id=row.id, status=row.status)


@dataclass(frozen=True)
class AddWorkOrderLineTool(ShopStoreTool):
    name = ToolName.add_work_order_line
    description = "Add a job line to a work order"
    input_schema = AddWorkOrderLineInput
    output_schema = AddWorkOrderLineOutput

    async def execute(self, payload: AddWorkOrderLineInput, ctx: ToolContext) -> AddWorkOrderLineOutput:
        async with self.session_factory() as s:
            ensure_in_shop(await s.get(WorkOrderRow, payload.work_order_id), ctx, "Work order")
            row = WorkOrderLineRow(
                id=new_id(),
                work_order_id=payload.work_order_id,
                shop_id=ctx.tenant_id,
                description=payload.description.strip(),
                job_type=payload.job_type,
                labor_time=payload.labor_hours,
                labor_rate=await shop_labor_rate(s, ctx),
                parts_cost=payload.parts_cost,
                notes=payload.notes,
                status="awaiting",
                approval_state="pending",
                source="agent",
                created_at=utc_now(),
            )
            s.add(row)
            await s.commit()
            return AddWorkOrderLineOutput(line_id=row.id, work_order_id=row.work_order_id)


@dataclass(frozen=True)
class AttachPhotoTool(ShopStoreTool):
    name = ToolName.attach_photo_to_work_order
    description = "Attach a photo (by URL) to a work order"
    input_schema = AttachPhotoInput
    output_schema = AttachPhotoOutput

    async def execute(self, payload: AttachPhotoInput, ctx: ToolContext) -> AttachPhotoOutput:
        async with self.session_factory() as s:
            ensure_in_shop(await s.get(WorkOrderRow, payload.work_order_id), ctx, "Work order")
            row = WorkOrderAttachmentRow(
                id=new_id(),
                work_order_id=payload.work_order_id,
                shop_id=ctx.tenant_id,
                url=payload.image_url,
                kind="photo",
                caption=payload.caption,
                created_by=ctx.user_id,
                created_at=utc_now(),
            )
            s.add(row)
            await s.commit()
            return AttachPhotoOutput(attachment_id=row.id, work_order_id=row.work_order_id)


@dataclass(frozen=True)
class RecordWorkOrderApprovalTool(ShopStoreTool):
    """Mark a work order approved and append an approval history row."""

    name = ToolName.record_work_order_approval
    description = "Record a work-order level approval (fleet, advisor, customer or other)"
    input_schema = RecordWorkOrderApprovalInput
    output_schema = RecordWorkOrderApprovalOutput

    async def execute(
        self, payload: RecordWorkOrderApprovalInput, ctx: ToolContext
    ) -> RecordWorkOrderApprovalOutput:
        async with self.session_factory() as s:
            wo = ensure_in_shop(await s.get(WorkOrderRow, payload.work_order_id), ctx, "Work order")
            approval = WorkOrderApprovalRow(
                id=new_id(),
                work_order_id=wo.id,
                shop_id=ctx.tenant_id,
                method=payload.method,
                approved_by=ctx.user_id,
                note=payload.note,
                created_at=utc_now(),
            )
            s.add(approval)
            wo.approval_state = "approved"
            wo.status = "approved"
            await s.commit()
            return RecordWorkOrderApprovalOutput(approval_id=approval.id, work_order_id=wo.id, status=wo.status)
