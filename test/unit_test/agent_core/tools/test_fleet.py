from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from shopfloor_ai.agent_core.errors import ToolExecutionFailed
from shopfloor_ai.agent_core.schemas.domain import ToolName
from shopfloor_ai.shop.models import (
    FleetProgramTaskRow,
    FleetVehicleRow,
    VehicleRow,
    WorkOrderLineRow,
    WorkOrderRow,
)


@pytest.fixture
async def fleet(registry, tool_ctx, shop, session_factory):
    """An ``Acme Logistics`` fleet with two enrolled vehicles (one inactive) and a two-task program."""
    created = await registry.invoke(ToolName.find_or_create_fleet, {"name": "Acme Logistics"}, tool_ctx)
    program = await registry.invoke(
        ToolName.find_or_create_fleet_program,
        {"fleet_id": created.fleet_id, "program_name": "PM-A"},
        tool_ctx,
    )
    now = datetime.now(timezone.utc)
    async with session_factory() as s:
        s.add(
            VehicleRow(
                id="veh-truck",
                shop_id=shop.shop_id,
                customer_id=shop.customer_id,
                license_plate="TRK001",
                created_at=now,
            )
        )
        s.add_all(
            [
                FleetVehicleRow(id="fv-1", fleet_id=created.fleet_id, vehicle_id=shop.vehicle_id, active=True),
                FleetVehicleRow(id="fv-2", fleet_id=created.fleet_id, vehicle_id="veh-truck", active=False),
                FleetProgramTaskRow(
                    id="t-2", program_id=program.program_id, display_order=2, description="Grease chassis"
                ),
                FleetProgramTaskRow(
                    id="t-1",
                    program_id=program.program_id,
                    display_order=1,
                    description="Oil change",
                    job_type="maintenance",
                    default_labor_hours=0.75,
                ),
            ]
        )
        await s.commit()
    return created.fleet_id, program.program_id


class TestLookupFleet:
    @pytest.mark.asyncio
    async def test_lookup_by_name_is_case_insensitive(self, registry, tool_ctx, fleet) -> None:
        fleet_id, program_id = fleet
        out = await registry.invoke(
            ToolName.lookup_fleet, {"name": "acme logistics", "program_name": "pm-a"}, tool_ctx
        )

        assert out.found is True
        assert out.fleet_id == fleet_id
        assert out.program_id == program_id
        assert out.active_vehicle_count == 1
        assert [p.name for p in out.programs] == ["PM-A"]

    @pytest.mark.asyncio
    async def test_lookup_miss_changes_nothing(self, registry, tool_ctx) -> None:
        out = await registry.invoke(ToolName.lookup_fleet, {"name": "Nobody"}, tool_ctx)
        assert out.found is False
        assert out.fleet_id is None

    @pytest.mark.asyncio
    async def test_lookup_needs_id_or_name(self, registry, tool_ctx) -> None:
        with pytest.raises(ToolExecutionFailed) as excinfo:
            await registry.invoke(ToolName.lookup_fleet, {}, tool_ctx)
        assert excinfo.value.code == "invalid_reference"


class TestFindOrCreate:
    @pytest.mark.asyncio
    async def test_find_or_create_fleet_is_idempotent(self, registry, tool_ctx) -> None:
        first = await registry.invoke(ToolName.find_or_create_fleet, {"name": "City Buses"}, tool_ctx)
        second = await registry.invoke(ToolName.find_or_create_fleet, {"name": "city buses "}, tool_ctx)

        assert first.created is True
        assert second.created is False
        assert second.fleet_id == first.fleet_id

    @pytest.mark.asyncio
    async def test_find_or_create_program_is_idempotent(self, registry, tool_ctx, fleet) -> None:
        fleet_id, program_id = fleet
        out = await registry.invoke(
            ToolName.find_or_create_fleet_program, {"fleet_id": fleet_id, "program_name": "PM-A"}, tool_ctx
        )
        assert out.created is False
        assert out.program_id == program_id

    @pytest.mark.asyncio
    async def test_program_for_unknown_fleet(self, registry, tool_ctx) -> None:
        with pytest.raises(ToolExecutionFailed) as excinfo:
            await registry.invoke(
                ToolName.find_or_create_fleet_program, {"fleet_id": "nope", "program_name": "PM"}, tool_ctx
            )
        assert excinfo.value.code == "not_found"


class TestGenerateFleetWorkOrders:
    @pytest.mark.asyncio
    async def test_generates_one_work_order_per_active_vehicle(
        self, registry, tool_ctx, shop, fleet, session_factory
    ) -> None:
        fleet_id, program_id = fleet

        out = await registry.invoke(
            ToolName.generate_fleet_work_orders,
            {"fleet_id": fleet_id, "program_id": program_id, "label": "Q3"},
            tool_ctx,
        )

        assert [g.vehicle_id for g in out.created] == [shop.vehicle_id]
        async with session_factory() as s:
            wo = await s.get(WorkOrderRow, out.created[0].work_order_id)
            lines = (
                (
                    await s.execute(
                        select(WorkOrderLineRow)
                        .where(WorkOrderLineRow.work_order_id == wo.id)
                        .order_by(WorkOrderLineRow.description.desc())
                    )
                )
                .scalars()
                .all()
            )
        assert wo.type == "maintenance"
        assert wo.status == "awaiting_approval"
        assert wo.source_fleet_program_id == program_id
        assert wo.notes == "Fleet program: PM-A (Q3)"
        assert [(l.description, l.job_type, l.labor_time) for l in lines] == [
            ("Oil change", "maintenance", 0.75),
            ("Grease chassis", "maintenance", 1.0),
        ]
        assert all(l.source == "fleet_program" and l.labor_rate == 120.0 for l in lines)

    @pytest.mark.asyncio
    async def test_explicit_vehicle_ids_skip_unknown_and_foreign(self, registry, tool_ctx, shop, fleet) -> None:
        fleet_id, program_id = fleet

        out = await registry.invoke(
            ToolName.generate_fleet_work_orders,
            {
                "fleet_id": fleet_id,
                "program_id": program_id,
                "vehicle_ids": ["veh-truck", "missing", shop.other_vehicle_id],
            },
            tool_ctx,
        )
        assert [g.vehicle_id for g in out.created] == ["veh-truck"]

    @pytest.mark.asyncio
    async def test_program_of_another_fleet_is_not_found(self, registry, tool_ctx, fleet) -> None:
        fleet_id, _ = fleet
        other = await registry.invoke(ToolName.find_or_create_fleet, {"name": "Other Fleet"}, tool_ctx)
        other_program = await registry.invoke(
            ToolName.find_or_create_fleet_program, {"fleet_id": other.fleet_id, "program_name": "PM-B"}, tool_ctx
        )

        with pytest.raises(ToolExecutionFailed) as excinfo:
            await registry.invoke(
                ToolName.generate_fleet_work_orders,
                {"fleet_id": fleet_id, "program_id": other_program.program_id},
                tool_ctx,
            )
        assert excinfo.value.code == "not_found"

    @pytest.mark.asyncio
    async def test_program_without_tasks_gets_generic_line(
        self, registry, tool_ctx, shop, fleet, session_factory
    ) -> None:
        fleet_id, _ = fleet
        bare = await registry.invoke(
            ToolName.find_or_create_fleet_program, {"fleet_id": fleet_id, "program_name": "Bare"}, tool_ctx
        )

        out = await registry.invoke(
            ToolName.generate_fleet_work_orders, {"fleet_id": fleet_id, "program_id": bare.program_id}, tool_ctx
        )

        async with session_factory() as s:
            lines = (
                (
                    await s.execute(
                        select(WorkOrderLineRow).where(WorkOrderLineRow.work_order_id == out.created[0].work_order_id)
                    )
                )
                .scalars()
                .all()
            )
        assert [l.description for l in lines] == ["Fleet program: Bare"]
