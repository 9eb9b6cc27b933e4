from __future__ import annotations

"""Fleet program planner.

Generates one work order per fleet vehicle from a fleet maintenance program.

- The fleet is named by ``context.fleet_id``, ``context.fleet_name`` or the
  first 80 characters of the goal.
- The program is ``context.program_id`` or ``context.program_name``
  (default ``"Maintenance Program"``).
- ``lookup_fleet`` always runs first and changes nothing.
- Missing fleets and programs are only created when ``allow_create`` is
  true. Otherwise the planner stops after the lookup and explains what is
  missing.
"""

import logging
from typing import ClassVar, Optional

from ..schemas.context import PlanContext
from ..schemas.domain import PlannerKind, ToolName
from ..tools.base import ToolContext
from ..tools.registry import ToolRegistry
from .base import EventCallback, PlanSession

logger = logging.getLogger(__name__)

DEFAULT_PROGRAM = "Maintenance Program"
NO_FLEET = "Fleet planner needs at least a fleet name in goal or context.fleetName."


class FleetPlanner:
    kind: ClassVar[PlannerKind] = PlannerKind.fleet

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    async def run(
        self,
        goal: str,
        context: PlanContext,
        tool_ctx: ToolContext,
        on_event: EventCallback,
    ) -> None:
        session = PlanSession(self._registry, tool_ctx, on_event)
        await session.plan(f"Fleet goal: {goal}")

        fleet_id = context.text("fleet_id")
        fleet_name = context.text("fleet_name") or (goal.strip()[:80] or None)
        program_name = context.text("program_name") or DEFAULT_PROGRAM
        if fleet_id is None and fleet_name is None:
            await session.final(NO_FLEET)
            return

        lookup = await session.call(
            ToolName.lookup_fleet,
            {
                "fleet_id": fleet_id,
                "name": None if fleet_id else fleet_name,
                "program_name": program_name,
            },
        )
        fleet_id = lookup.fleet_id if lookup.found else None
        program_id: Optional[str] = context.text("program_id") or lookup.program_id

        if not (fleet_id and program_id) and context.allow_create is not True:
            missing = "fleet" if fleet_id is None else f'program "{program_name}"'
            await session.final(
                f"No matching {missing} found and creation is off (allowCreate=false). "
                "Select an existing fleet and program, or rerun with allowCreate=true for setup."
            )
            return

        if fleet_id is None:
            fleet = await session.call(
                ToolName.find_or_create_fleet,
                {
                    "name": fleet_name,
                    "contact_email": context.text("contact_email"),
                    "contact_name": context.text("contact_name"),
                },
            )
            fleet_id = fleet.fleet_id

        if program_id is None:
            program = await session.call(
                ToolName.find_or_create_fleet_program,
                {
                    "fleet_id": fleet_id,
                    "program_name": program_name,
                    "base_template_slug": context.text("base_template_slug"),
                    "include_custom_inspection": context.include_custom_inspection,
                },
            )
            program_id = program.program_id

        generated = await session.call(
            ToolName.generate_fleet_work_orders,
            {
                "fleet_id": fleet_id,
                "program_id": program_id,
                "vehicle_ids": list(context.vehicle_ids) if context.has("vehicle_ids") else None,
                "label": context.text("label"),
            },
        )
        logger.debug(f"Fleet {fleet_id} program {program_id}: {len(generated.created)} work order(s)")
        await session.final(f"Fleet work orders generated: {len(generated.created)}.")
