from __future__ import annotations

from typing import Any, List

import pytest
from sqlalchemy import func, select

from shopfloor_ai.agent_core.planning import FleetPlanner
from shopfloor_ai.agent_core.planning.fleet import NO_FLEET
from shopfloor_ai.agent_core.schemas.context import PlanContext
from shopfloor_ai.agent_core.schemas.domain import ToolName
from shopfloor_ai.shop.models import FleetRow, FleetVehicleRow, WorkOrderRow


class _Events:
    def __init__(self) -> None:
        self.items: List[Any] = []

    async def __call__(self, event) -> None:
        self.items.append(event)

    @property
    def calls(self) -> List[str]:
        return [e.name for e in self.items if e.kind == "tool_call"]


async def _count(session_factory, model) -> int:
    async with session_factory() as s:
        return (await s.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_blank_goal_without_fleet_stops(registry, tool_ctx) -> None:
    events = _Events()

    await FleetPlanner(registry).run("   ", PlanContext(), tool_ctx, events)

    assert events.calls == []
    assert events.items[-1].text == NO_FLEET


@pytest.mark.asyncio
async def test_missing_fleet_without_allow_create_changes_nothing(registry, tool_ctx, session_factory) -> None:
    events = _Events()

    await FleetPlanner(registry).run("Acme Logistics", PlanContext(), tool_ctx, events)

    assert events.calls == ["lookup_fleet"]
    assert "No matching fleet found" in events.items[-1].text
    assert await _count(session_factory, FleetRow) == 0


@pytest.mark.asyncio
async def test_missing_program_without_allow_create(registry, tool_ctx) -> None:
    await registry.invoke(ToolName.find_or_create_fleet, {"name": "Acme"}, tool_ctx)
    events = _Events()

    await FleetPlanner(registry).run("Run PM", PlanContext(fleet_name="Acme"), tool_ctx, events)

    assert events.calls == ["lookup_fleet"]
    assert 'No matching program "Maintenance Program" found' in events.items[-1].text


@pytest.mark.asyncio
async def test_allow_create_sets_up_and_generates(registry, tool_ctx, shop, session_factory) -> None:
    events = _Events()
    context = PlanContext.model_validate(
        {
            "fleetName": "Acme",
            "programName": "PM-A",
            "allowCreate": True,
            "vehicleIds": [shop.vehicle_id],
            "label": "Q1",
        }
    )

    await FleetPlanner(registry).run("Quarterly PM", context, tool_ctx, events)

    assert events.calls == [
        "lookup_fleet",
        "find_or_create_fleet",
        "find_or_create_fleet_program",
        "generate_fleet_work_orders",
    ]
    assert events.items[-1].text == "Fleet work orders generated: 1."
    assert await _count(session_factory, WorkOrderRow) == 1


@pytest.mark.asyncio
async def test_existing_fleet_and_program_by_id(registry, tool_ctx, shop, session_factory) -> None:
    fleet = await registry.invoke(ToolName.find_or_create_fleet, {"name": "Acme"}, tool_ctx)
    program = await registry.invoke(
        ToolName.find_or_create_fleet_program, {"fleet_id": fleet.fleet_id, "program_name": "PM-A"}, tool_ctx
    )
    async with session_factory() as s:
        s.add(FleetVehicleRow(id="fv-1", fleet_id=fleet.fleet_id, vehicle_id=shop.vehicle_id, active=True))
        await s.commit()
    events = _Events()

    await FleetPlanner(registry).run(
        "Run it", PlanContext(fleet_id=fleet.fleet_id, program_id=program.program_id), tool_ctx, events
    )

    assert events.calls == ["lookup_fleet", "generate_fleet_work_orders"]
    lookup_call = events.items[1]
    assert lookup_call.input == {"fleet_id": fleet.fleet_id, "program_name": "Maintenance Program"}
    generate_call = events.items[3]
    assert generate_call.input == {"fleet_id": fleet.fleet_id, "program_id": program.program_id}
    assert events.items[-1].text == "Fleet work orders generated: 1."
