from __future__ import annotations

"""Fleet maintenance program tools.

- ``lookup_fleet``: read-only; resolve a fleet (and optionally a program) by
  id or name.
- ``find_or_create_fleet`` / ``find_or_create_fleet_program``: idempotent
  setup by name.
- ``generate_fleet_work_orders``: one work order per enrolled vehicle, with a
  line per program task.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from pydantic import Field
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ...shop.models import (
    FleetProgramRow,
    FleetProgramTaskRow,
    FleetRow,
    FleetVehicleRow,
    VehicleRow,
    WorkOrderLineRow,
    WorkOrderRow,
)
from ..errors import ToolFailure
from ..schemas.base import BaseSchema
from ..schemas.domain import ToolName
from .base import ToolContext
from .support import ShopStoreTool, ensure_in_shop, new_id, shop_labor_rate, utc_now

logger = logging.getLogger(__name__)


class LookupFleetInput(BaseSchema):
    fleet_id: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    program_name: Optional[str] = Field(default=None, min_length=1)


class FleetProgramSummary(BaseSchema):
    program_id: str
    name: str


class LookupFleetOutput(BaseSchema):
    found: bool
    fleet_id: Optional[str] = None
    fleet_name: Optional[str] = None
    program_id: Optional[str] = None
    programs: List[FleetProgramSummary] = Field(default_factory=list)
    active_vehicle_count: int = 0


class FindOrCreateFleetInput(BaseSchema):
    name: str = Field(min_length=1, max_length=255)
    contact_email: Optional[str] = None
    contact_name: Optional[str] = None


class FindOrCreateFleetOutput(BaseSchema):
    fleet_id: str
    created: bool


class FindOrCreateFleetProgramInput(BaseSchema):
    fleet_id: str = Field(min_length=1)
    program_name: str = Field(min_length=1, max_length=255)
    base_template_slug: Optional[str] = None
    include_custom_inspection: Optional[bool] = None


class FindOrCreateFleetProgramOutput(BaseSchema):
    program_id: str
    created: bool


class GenerateFleetWorkOrdersInput(BaseSchema):
    fleet_id: str = Field(min_length=1)
    program_id: str = Field(min_length=1)
    vehicle_ids: Optional[List[str]] = None
    label: Optional[str] = None


class GeneratedWorkOrder(BaseSchema):
    work_order_id: str
    vehicle_id: str
    customer_id: Optional[str] = None


class GenerateFleetWorkOrdersOutput(BaseSchema):
    created: List[GeneratedWorkOrder] = Field(default_factory=list)


def _same_name(column, value: str):
    return func.lower(column) == value.strip().lower()


@dataclass(frozen=True)
class LookupFleetTool(ShopStoreTool):
    name = ToolName.lookup_fleet
    description = "Look up a fleet (by id or name) and its maintenance programs without changing anything"
    input_schema = LookupFleetInput
    output_schema = LookupFleetOutput

    async def execute(self, payload: LookupFleetInput, ctx: ToolContext) -> LookupFleetOutput:
        async with self.session_factory() as s:
            if payload.fleet_id:
                fleet = ensure_in_shop(await s.get(FleetRow, payload.fleet_id), ctx, "Fleet")
            elif payload.name:
                fleet = (
                    await s.execute(
                        select(FleetRow)
                        .where(FleetRow.shop_id == ctx.tenant_id)
                        .where(_same_name(FleetRow.name, payload.name))
                        .limit(1)
                    )
                ).scalar_one_or_none()
            else:
                raise ToolFailure("Provide a fleet id or name", code="invalid_reference")

            if fleet is None:
                return LookupFleetOutput(found=False)

            programs = (
                (
                    await s.execute(
                        select(FleetProgramRow)
                        .where(FleetProgramRow.fleet_id == fleet.id)
                        .order_by(FleetProgramRow.created_at)
                    )
                )
                .scalars()
                .all()
            )
            active = (
                await s.execute(
                    select(func.count())
                    .select_from(FleetVehicleRow)
                    .where(FleetVehicleRow.fleet_id == fleet.id)
                    .where(FleetVehicleRow.active.is_(True))
                )
            ).scalar_one()

        program_id = None
        if payload.program_name:
            wanted = payload.program_name.strip().lower()
            program_id = next((p.id for p in programs if p.name.lower() == wanted), None)

        return LookupFleetOutput(
            found=True,
            fleet_id=fleet.id,
            fleet_name=fleet.name,
            program_id=program_id,
            programs=[FleetProgramSummary(program_id=p.id, name=p.name) for p in programs],
            active_vehicle_count=int(active),
        )


@dataclass(frozen=True)
class FindOrCreateFleetTool(ShopStoreTool):
    name = ToolName.find_or_create_fleet
    description = "Find a fleet by name in the current shop, creating it when missing"
    input_schema = FindOrCreateFleetInput
    output_schema = FindOrCreateFleetOutput

    async def _find(self, s, ctx: ToolContext, name: str) -> Optional[FleetRow]:
        return (
            await s.execute(
                select(FleetRow)
                .where(FleetRow.shop_id == ctx.tenant_id)
                .where(_same_name(FleetRow.name, name))
                .limit(1)
            )
        ).scalar_one_or_none()

    async def execute(self, payload: FindOrCreateFleetInput, ctx: ToolContext) -> FindOrCreateFleetOutput:
        async with self.session_factory() as s:
            existing = await self._find(s, ctx, payload.name)
            if existing is not None:
                return FindOrCreateFleetOutput(fleet_id=existing.id, created=False)

            row = FleetRow(
                id=new_id(),
                shop_id=ctx.tenant_id,
                name=payload.name.strip(),
                contact_email=payload.contact_email,
                contact_name=payload.contact_name,
                created_at=utc_now(),
            )
            s.add(row)
            try:
                await s.commit()
            except IntegrityError:
                # lost a concurrent create; the winner's row is the fleet
                await s.rollback()
                existing = await self._find(s, ctx, payload.name)
                if existing is None:
                    raise
                return FindOrCreateFleetOutput(fleet_id=existing.id, created=False)
            logger.info(f"Created fleet {row.id} ({row.name}) in shop {ctx.tenant_id}")
            return FindOrCreateFleetOutput(fleet_id=row.id, created=True)


@dataclass(frozen=True)
class FindOrCreateFleetProgramTool(ShopStoreTool):
    name = ToolName.find_or_create_fleet_program
    description = "Find a fleet maintenance program by name, creating it when missing"
    input_schema = FindOrCreateFleetProgramInput
    output_schema = FindOrCreateFleetProgramOutput

    async def execute(
        self, payload: FindOrCreateFleetProgramInput, ctx: ToolContext
    ) -> FindOrCreateFleetProgramOutput:
        async with self.session_factory() as s:
            fleet = ensure_in_shop(await s.get(FleetRow, payload.fleet_id), ctx, "Fleet")
            existing = (
                await s.execute(
                    select(FleetProgramRow)
                    .where(FleetProgramRow.fleet_id == fleet.id)
                    .where(_same_name(FleetProgramRow.name, payload.program_name))
                    .limit(1)
                )
            ).scalar_one_or_none()
            if existing is not None:
                return FindOrCreateFleetProgramOutput(program_id=existing.id, created=False)

            row = FleetProgramRow(
                id=new_id(),
                fleet_id=fleet.id,
                shop_id=ctx.tenant_id,
                name=payload.program_name.strip(),
                base_template_slug=payload.base_template_slug,
                include_custom_inspection=bool(payload.include_custom_inspection),
                created_at=utc_now(),
            )
            s.add(row)
            await s.commit()
            return FindOrCreateFleetProgramOutput(program_id=row.id, created=True)


@dataclass(frozen=True)
class GenerateFleetWorkOrdersTool(ShopStoreTool):
    """Create program work orders for a fleet's vehicles.

    Without ``vehicle_ids`` every active enrolled vehicle is used. Unknown or
    foreign vehicle ids are skipped. A program without tasks yields a single
    generic maintenance line. All work orders are written in one transaction.
    """

    name = ToolName.generate_fleet_work_orders
    description = "Generate work orders (with program task lines) for the vehicles of a fleet program"
    input_schema = GenerateFleetWorkOrdersInput
    output_schema = GenerateFleetWorkOrdersOutput

    async def execute(
        self, payload: GenerateFleetWorkOrdersInput, ctx: ToolContext
    ) -> GenerateFleetWorkOrdersOutput:
        async with self.session_factory() as s:
            fleet = ensure_in_shop(await s.get(FleetRow, payload.fleet_id), ctx, "Fleet")
            program = await s.get(FleetProgramRow, payload.program_id)
            if program is None or program.fleet_id != fleet.id:
                raise ToolFailure("Fleet program not found", code="not_found")

            vehicle_ids = list(payload.vehicle_ids or [])
            if not vehicle_ids:
                vehicle_ids = list(
                    (
                        await s.execute(
                            select(FleetVehicleRow.vehicle_id)
                            .where(FleetVehicleRow.fleet_id == fleet.id)
                            .where(FleetVehicleRow.active.is_(True))
                        )
                    )
                    .scalars()
                    .all()
                )
            if not vehicle_ids:
                return GenerateFleetWorkOrdersOutput(created=[])

            tasks = (
                (
                    await s.execute(
                        select(FleetProgramTaskRow)
                        .where(FleetProgramTaskRow.program_id == program.id)
                        .order_by(FleetProgramTaskRow.display_order)
                    )
                )
                .scalars()
                .all()
            )
            effective = [(t.description, t.job_type or "maintenance", t.default_labor_hours or 1.0) for t in tasks]
            if not effective:
                effective = [(f"Fleet program: {program.name}", "maintenance", 1.0)]

            rate = await shop_labor_rate(s, ctx)
            notes = f"Fleet program: {program.name} ({payload.label})" if payload.label else f"Fleet program: {program.name}"
            now = utc_now()
            created: List[GeneratedWorkOrder] = []

            for vehicle_id in vehicle_ids:
                vehicle = await s.get(VehicleRow, vehicle_id)
                if vehicle is None or vehicle.shop_id != ctx.tenant_id:
                    logger.debug(f"Skipping vehicle {vehicle_id}: not in shop {ctx.tenant_id}")
                    continue

                wo = WorkOrderRow(
                    id=new_id(),
                    shop_id=ctx.tenant_id,
                    customer_id=vehicle.customer_id,
                    vehicle_id=vehicle.id,
                    type="maintenance",
                    status="awaiting_approval",
                    notes=notes,
                    source_fleet_program_id=program.id,
                    created_by=ctx.user_id,
                    created_at=now,
                )
                s.add(wo)
                for description, job_type, hours in effective:
                    s.add(
                        WorkOrderLineRow(
                            id=new_id(),
                            work_order_id=wo.id,
                            shop_id=ctx.tenant_id,
                            description=description,
                            job_type=job_type,
                            labor_time=hours,
                            labor_rate=rate,
                            parts_cost=0.0,
                            status="awaiting",
                            approval_state="pending",
                            source="fleet_program",
                            created_at=now,
                        )
                    )
                created.append(
                    GeneratedWorkOrder(work_order_id=wo.id, vehicle_id=vehicle.id, customer_id=vehicle.customer_id)
                )

            await s.commit()
            return GenerateFleetWorkOrdersOutput(created=created)
