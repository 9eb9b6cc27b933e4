from __future__ import annotations

import pytest
from sqlalchemy import select

from shopfloor_ai.agent_core.errors import InvalidInput, ToolExecutionFailed
from shopfloor_ai.agent_core.schemas.domain import ToolName
from shopfloor_ai.shop.models import (
    WorkOrderApprovalRow,
    WorkOrderAttachmentRow,
    WorkOrderLineRow,
    WorkOrderRow,
)


async def _work_order(registry, tool_ctx, shop, **extra) -> str:
    out = await registry.invoke(
        ToolName.create_work_order,
        {"customer_id": shop.customer_id, "vehicle_id": shop.vehicle_id, **extra},
        tool_ctx,
    )
    return out.work_order_id


@pytest.mark.asyncio
async def test_create_work_order_defaults_to_inspection(registry, tool_ctx, shop, session_factory) -> None:
    wo_id = await _work_order(registry, tool_ctx, shop, notes="Squeaky brakes")

    async with session_factory() as s:
        row = await s.get(WorkOrderRow, wo_id)
    assert row.type == "inspection"
    assert row.status == "awaiting"
    assert row.notes == "Squeaky brakes"
    assert row.shop_id == shop.shop_id
    assert row.created_by == shop.user_id


@pytest.mark.asyncio
async def test_create_work_order_rejects_unknown_type(registry, tool_ctx, shop) -> None:
    with pytest.raises(InvalidInput):
        await _work_order(registry, tool_ctx, shop, type="oil")


@pytest.mark.asyncio
async def test_create_work_order_requires_matching_vehicle(registry, tool_ctx, shop) -> None:
    created = await registry.invoke(ToolName.create_customer, {"name": "Someone Else"}, tool_ctx)

    with pytest.raises(ToolExecutionFailed) as excinfo:
        await registry.invoke(
            ToolName.create_work_order,
            {"customer_id": created.customer_id, "vehicle_id": shop.vehicle_id},
            tool_ctx,
        )
    assert excinfo.value.code == "invalid_reference"


@pytest.mark.asyncio
async def test_create_work_order_refuses_foreign_vehicle(registry, tool_ctx, shop) -> None:
    with pytest.raises(ToolExecutionFailed) as excinfo:
        await registry.invoke(
            ToolName.create_work_order,
            {"customer_id": shop.customer_id, "vehicle_id": shop.other_vehicle_id},
            tool_ctx,
        )
    assert excinfo.value.code == "forbidden"


@pytest.mark.asyncio
async def test_add_line_uses_shop_labor_rate(registry, tool_ctx, shop, session_factory) -> None:
    wo_id = await _work_order(registry, tool_ctx, shop)

    out = await registry.invoke(
        ToolName.add_work_order_line,
        {"work_order_id": wo_id, "description": "Replace pads", "labor_hours": 2.5, "parts_cost": 80},
        tool_ctx,
    )

    async with session_factory() as s:
        line = await s.get(WorkOrderLineRow, out.line_id)
    assert out.work_order_id == wo_id
    assert line.labor_rate == 120.0
    assert line.labor_time == 2.5
    assert line.job_type == "repair"
    assert line.approval_state == "pending"
    assert line.source == "agent"


@pytest.mark.asyncio
async def test_add_line_to_missing_work_order(registry, tool_ctx) -> None:
    with pytest.raises(ToolExecutionFailed) as excinfo:
        await registry.invoke(
            ToolName.add_work_order_line, {"work_order_id": "nope", "description": "x"}, tool_ctx
        )
    assert excinfo.value.code == "not_found"


@pytest.mark.asyncio
async def test_attach_photo(registry, tool_ctx, shop, session_factory) -> None:
    wo_id = await _work_order(registry, tool_ctx, shop)

    out = await registry.invoke(
        ToolName.attach_photo_to_work_order,
        {"work_order_id": wo_id, "image_url": "https://cdn.example.com/p/1.jpg"},
        tool_ctx,
    )

    async with session_factory() as s:
        row = await s.get(WorkOrderAttachmentRow, out.attachment_id)
    assert row.url == "https://cdn.example.com/p/1.jpg"
    assert row.kind == "photo"


@pytest.mark.asyncio
async def test_attach_photo_requires_http_url(registry, tool_ctx, shop) -> None:
    wo_id = await _work_order(registry, tool_ctx, shop)
    with pytest.raises(InvalidInput):
        await registry.invoke(
            ToolName.attach_photo_to_work_order,
            {"work_order_id": wo_id, "image_url": "file:///etc/passwd"},
            tool_ctx,
        )


@pytest.mark.asyncio
async def test_record_work_order_approval(registry, tool_ctx, shop, session_factory) -> None:
    wo_id = await _work_order(registry, tool_ctx, shop)

    out = await registry.invoke(
        ToolName.record_work_order_approval,
        {"work_order_id": wo_id, "method": "customer", "note": "Signed at the counter"},
        tool_ctx,
    )

    async with session_factory() as s:
        wo = await s.get(WorkOrderRow, wo_id)
        history = (
            (await s.execute(select(WorkOrderApprovalRow).where(WorkOrderApprovalRow.work_order_id == wo_id)))
            .scalars()
            .all()
        )
    assert out.status == "approved"
    assert wo.approval_state == "approved"
    assert [(h.method, h.approved_by) for h in history] == [("customer", shop.user_id)]
