from __future__ import annotations

"""Customer and vehicle tools.

- ``find_customer_vehicle``: shop-scoped fuzzy search by plate/VIN or name.
- ``create_customer``: insert one customer; duplicates fail with ``duplicate``.
- ``create_vehicle``: insert one vehicle for an existing customer.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from pydantic import Field
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from ...shop.models import CustomerRow, VehicleRow
from ..errors import ToolFailure
from ..schemas.base import BaseSchema
from ..schemas.domain import ToolName
from .base import ToolContext
from .support import ShopStoreTool, ensure_in_shop, new_id, utc_now

logger = logging.getLogger(__name__)

_MAX_MATCHES = 5


class FindCustomerVehicleInput(BaseSchema):
    customer_query: Optional[str] = Field(default=None, min_length=1)
    plate_or_vin: Optional[str] = Field(default=None, min_length=2)


class CustomerVehicleMatch(BaseSchema):
    customer_id: str
    customer_name: str
    vehicle_id: str
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    vin: Optional[str] = None
    license_plate: Optional[str] = None


class FindCustomerVehicleOutput(BaseSchema):
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    matches: List[CustomerVehicleMatch] = Field(default_factory=list)
    found: bool
    reason: Optional[str] = None


class CreateCustomerInput(BaseSchema):
    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(default=None, max_length=64)


class CreateCustomerOutput(BaseSchema):
    customer_id: str


class CreateVehicleInput(BaseSchema):
    customer_id: str = Field(min_length=1)
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    make: Optional[str] = None
    model: Optional[str] = None
    vin: Optional[str] = Field(default=None, min_length=5, max_length=32)
    license_plate: Optional[str] = Field(default=None, min_length=2, max_length=32)


class CreateVehicleOutput(BaseSchema):
    vehicle_id: str


def _normalize(term: Optional[str]) -> str:
    return (term or "").strip()[:64]


def _match(customer_id: str, customer_name: Optional[str], v: VehicleRow) -> CustomerVehicleMatch:
    return CustomerVehicleMatch(
        customer_id=customer_id,
        customer_name=customer_name or "Customer",
        vehicle_id=v.id,
        year=v.year,
        make=v.make,
        model=v.model,
        vin=v.vin,
        license_plate=v.license_plate,
    )


@dataclass(frozen=True)
class FindCustomerVehicleTool(ShopStoreTool):
    """Search customers and vehicles of the run's shop.

    Plate/VIN search wins when both terms are given. ``customer_id`` and
    ``vehicle_id`` echo the best (first) match; when a name search hits a
    customer without vehicles only ``customer_id`` is set and ``found`` stays
    False.
    """

    name = ToolName.find_customer_vehicle
    description = "Fuzzy search customers/vehicles by name, plate, or VIN"
    input_schema = FindCustomerVehicleInput
    output_schema = FindCustomerVehicleOutput

    async def execute(self, payload: FindCustomerVehicleInput, ctx: ToolContext) -> FindCustomerVehicleOutput:
        plate_or_vin = _normalize(payload.plate_or_vin)
        customer_query = _normalize(payload.customer_query)

        async with self.session_factory() as s:
            if plate_or_vin:
                pattern = f"%{plate_or_vin}%"
                stmt = (
                    select(VehicleRow, CustomerRow.name)
                    .join(CustomerRow, CustomerRow.id == VehicleRow.customer_id)
                    .where(VehicleRow.shop_id == ctx.tenant_id)
                    .where(or_(VehicleRow.license_plate.ilike(pattern), VehicleRow.vin.ilike(pattern)))
                    .order_by(VehicleRow.created_at)
                    .limit(_MAX_MATCHES)
                )
                rows = (await s.execute(stmt)).all()
                matches = [_match(v.customer_id, name, v) for v, name in rows]
                if not matches:
                    return FindCustomerVehicleOutput(
                        found=False, reason=f'No vehicle match for "{plate_or_vin}" in this shop.'
                    )
                return FindCustomerVehicleOutput(
                    customer_id=matches[0].customer_id,
                    vehicle_id=matches[0].vehicle_id,
                    matches=matches,
                    found=True,
                )

            if customer_query:
                customers = (
                    (
                        await s.execute(
                            select(CustomerRow)
                            .where(CustomerRow.shop_id == ctx.tenant_id)
                            .where(CustomerRow.name.ilike(f"%{customer_query}%"))
                            .order_by(CustomerRow.created_at)
                            .limit(_MAX_MATCHES)
                        )
                    )
                    .scalars()
                    .all()
                )
                if not customers:
                    return FindCustomerVehicleOutput(
                        found=False, reason=f'No customer matches for "{customer_query}" in this shop.'
                    )

                by_id = {c.id: c for c in customers}
                vehicles = (
                    (
                        await s.execute(
                            select(VehicleRow)
                            .where(VehicleRow.shop_id == ctx.tenant_id)
                            .where(VehicleRow.customer_id.in_(list(by_id)))
                            .order_by(VehicleRow.created_at)
                        )
                    )
                    .scalars()
                    .all()
                )
                matches = [_match(v.customer_id, by_id[v.customer_id].name, v) for v in vehicles]
                if not matches:
                    return FindCustomerVehicleOutput(
                        customer_id=customers[0].id,
                        found=False,
                        reason=f'Customer "{customers[0].name}" has no vehicles on file.',
                    )
                return FindCustomerVehicleOutput(
                    customer_id=matches[0].customer_id,
                    vehicle_id=matches[0].vehicle_id,
                    matches=matches,
                    found=True,
                )

        return FindCustomerVehicleOutput(found=False, reason="Provide customer_query and/or plate_or_vin.")


@dataclass(frozen=True)
class CreateCustomerTool(ShopStoreTool):
    name = ToolName.create_customer
    description = "Create a customer in the current shop"
    input_schema = CreateCustomerInput
    output_schema = CreateCustomerOutput

    async def execute(self, payload: CreateCustomerInput, ctx: ToolContext) -> CreateCustomerOutput:
        async with self.session_factory() as s:
            if payload.email:
                existing = (
                    await s.execute(
                        select(CustomerRow.id)
                        .where(CustomerRow.shop_id == ctx.tenant_id)
                        .where(CustomerRow.email == payload.email)
                    )
                ).scalar_one_or_none()
                if existing is not None:
                    raise ToolFailure(f"Customer with email {payload.email} already exists", code="duplicate")

            row = CustomerRow(
                id=new_id(),
                shop_id=ctx.tenant_id,
                name=payload.name.strip(),
                email=payload.email,
                phone=payload.phone,
                created_by=ctx.user_id,
                created_at=utc_now(),
            )
            s.add(row)
            try:
                await s.commit()
            except IntegrityError as e:
                await s.rollback()
                raise ToolFailure("Customer already exists", code="duplicate") from e
            logger.debug(f"Created customer {row.id} in shop {ctx.tenant_id}")
            return CreateCustomerOutput(customer_id=row.id)


@dataclass(frozen=True)
class CreateVehicleTool(ShopStoreTool):
    name = ToolName.create_vehicle
    description = "Create a vehicle for an existing customer"
    input_schema = CreateVehicleInput
    output_schema = CreateVehicleOutput

    async def execute(self, payload: CreateVehicleInput, ctx: ToolContext) -> CreateVehicleOutput:
        async with self.session_factory() as s:
            ensure_in_shop(await s.get(CustomerRow, payload.customer_id), ctx, "Customer")
            row = VehicleRow(
                id=new_id(),
                shop_id=ctx.tenant_id,
                customer_id=payload.customer_id,
                year=payload.year,
                make=payload.make,
                model=payload.model,
                vin=payload.vin.upper() if payload.vin else None,
                license_plate=payload.license_plate.upper() if payload.license_plate else None,
                created_at=utc_now(),
            )
            s.add(row)
            await s.commit()
            return CreateVehicleOutput(vehicle_id=row.id)
