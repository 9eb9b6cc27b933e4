from __future__ import annotations

"""Custom inspection tool.

Builds an inspection sheet from a small vocabulary (vehicle type, axle and oil
sections, per-section selections and requested services) and stores it, optionally
linked to a work order.
"""

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional

from pydantic import Field

from ...shop.models import InspectionRow, WorkOrderRow
from ..schemas.base import BaseSchema
from ..schemas.domain import ToolName
from .base import ToolContext
from .support import ShopStoreTool, ensure_in_shop, new_id, utc_now

VehicleType = Literal["car", "truck", "bus", "trailer"]

_BASE_SECTIONS: Dict[str, List[str]] = {
    "Lights": ["Headlights", "Tail lights", "Turn signals", "Brake lights"],
    "Brakes": ["Pad/shoe thickness", "Rotor/drum condition", "Brake lines"],
    "Tires": ["Tread depth", "Pressure", "Sidewall condition"],
    "Steering & Suspension": ["Tie rods", "Ball joints", "Shocks/struts"],
}

_HEAVY_EXTRAS: Dict[str, List[str]] = {
    "Air System": ["Air leaks", "Compressor governor", "Air tanks drained"],
    "Coupling": ["Fifth wheel", "Kingpin", "Safety chains"],
}

_AXLE_ITEMS = ["Axle seals", "Wheel bearings", "Hub oil level", "U-bolts"]
_OIL_ITEMS = ["Engine oil level", "Oil filter", "Oil leaks", "Coolant level"]


class CreateCustomInspectionInput(BaseSchema):
    work_order_id: Optional[str] = Field(default=None, min_length=1)
    title: str = Field(default="Custom Inspection", min_length=1, max_length=255)
    vehicle_type: VehicleType = "truck"
    include_axle: bool = True
    include_oil: bool = False
    selections: Dict[str, List[str]] = Field(default_factory=dict)
    services: List[str] = Field(default_factory=list)


class CreateCustomInspectionOutput(BaseSchema):
    inspection_id: str
    work_order_id: Optional[str] = None
    section_count: int
    item_count: int


def build_sections(payload: CreateCustomInspectionInput) -> Dict[str, List[str]]:
    sections = {k: list(v) for k, v in _BASE_SECTIONS.items()}
    if payload.vehicle_type in ("truck", "bus", "trailer"):
        sections.update({k: list(v) for k, v in _HEAVY_EXTRAS.items()})
    if payload.vehicle_type == "trailer":
        sections.pop("Steering & Suspension", None)
    if payload.include_axle:
        sections["Axles"] = list(_AXLE_ITEMS)
    if payload.include_oil:
        sections["Oil & Fluids"] = list(_OIL_ITEMS)
    for section, items in payload.selections.items():
        name = section.strip()
        wanted = [i.strip() for i in items if i.strip()]
        if not name or not wanted:
            continue
        current = sections.setdefault(name, [])
        for item in wanted:
            if item not in current:
                current.append(item)
    services = [s.strip() for s in payload.services if s.strip()]
    if services:
        sections["Requested Services"] = services
    return sections


@dataclass(frozen=True)
class CreateCustomInspectionTool(ShopStoreTool):
    name = ToolName.create_custom_inspection
    description = "Create a custom inspection sheet, optionally linked to a work order"
    input_schema = CreateCustomInspectionInput
    output_schema = CreateCustomInspectionOutput

    async def execute(
        self, payload: CreateCustomInspectionInput, ctx: ToolContext
    ) -> CreateCustomInspectionOutput:
        sections = build_sections(payload)
        async with self.session_factory() as s:
            if payload.work_order_id:
                ensure_in_shop(await s.get(WorkOrderRow, payload.work_order_id), ctx, "Work order")
            row = InspectionRow(
                id=new_id(),
                shop_id=ctx.tenant_id,
                work_order_id=payload.work_order_id,
                title=payload.title,
                vehicle_type=payload.vehicle_type,
                sections=sections,
                created_by=ctx.user_id,
                created_at=utc_now(),
            )
            s.add(row)
            await s.commit()
        return CreateCustomInspectionOutput(
            inspection_id=row.id,
            work_order_id=payload.work_order_id,
            section_count=len(sections),
            item_count=sum(len(items) for items in sections.values()),
        )
