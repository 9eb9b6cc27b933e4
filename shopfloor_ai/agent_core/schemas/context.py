"""Plan context: the typed bag of optional hints a caller passes with a goal.

Callers (UI forms, API clients, other services) send context as a JSON
object, usually with camelCase keys. ``PlanContext`` accepts either casing
plus a few legacy key names (``type``, ``imageUrl``, ``customInspection``,
``program``),
ignores keys it does not know about, and never coerces types: ``"3"`` is not a
number and ``"true"`` is not a boolean. A field that fails validation makes
the whole request invalid instead of being silently dropped.

The model is frozen. Planners read it, they never write to it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

Number = Union[StrictInt, StrictFloat]


class _ContextModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class LineSpec(_ContextModel):
    """One requested work-order line."""

    description: StrictStr
    job_type: Optional[StrictStr] = None
    labor_hours: Optional[Number] = None
    notes: Optional[StrictStr] = None


class InspectionSpec(_ContextModel):
    """Requested custom inspection sheet."""

    title: Optional[StrictStr] = None
    vehicle_type: Optional[Literal["car", "truck", "bus", "trailer"]] = None
    include_axle: Optional[StrictBool] = None
    include_oil: Optional[StrictBool] = None
    selections: Optional[Dict[StrictStr, List[StrictStr]]] = None
    services: Optional[List[StrictStr]] = None


class PlanContext(_ContextModel):
    """Optional hints that accompany a goal.

    Every field is optional; planners check presence with ``has`` and decide
    whether a missing value skips a step or ends the plan with guidance.
    """

    # customer / vehicle resolution
    customer_id: Optional[StrictStr] = None
    vehicle_id: Optional[StrictStr] = None
    customer_query: Optional[StrictStr] = None
    plate_or_vin: Optional[StrictStr] = None
    customer_name: Optional[StrictStr] = None
    customer_email: Optional[StrictStr] = None
    customer_phone: Optional[StrictStr] = None
    vehicle_year: Optional[StrictInt] = None
    vehicle_make: Optional[StrictStr] = None
    vehicle_model: Optional[StrictStr] = None

    # work order
    work_order_id: Optional[StrictStr] = None
    order_type: Optional[StrictStr] = Field(
        default=None,
        validation_alias=AliasChoices("type", "orderType", "order_type"),
    )
    notes: Optional[StrictStr] = None
    line_description: Optional[StrictStr] = None
    job_type: Optional[StrictStr] = None
    labor_hours: Optional[Number] = None
    line_notes: Optional[StrictStr] = None
    lines: Optional[List[LineSpec]] = None
    photo_url: Optional[StrictStr] = Field(
        default=None,
        validation_alias=AliasChoices("photoUrl", "imageUrl", "photo_url"),
    )
    inspection: Optional[InspectionSpec] = Field(
        default=None,
        validation_alias=AliasChoices("inspection", "customInspection"),
    )

    # invoicing
    email_invoice_to: Optional[StrictStr] = None
    email_subject: Optional[StrictStr] = None

    # approvals
    auto_approve: Optional[StrictBool] = None
    approval_method: Optional[StrictStr] = None
    approval_action: Optional[Literal["list", "approve", "reject"]] = None
    line_id: Optional[StrictStr] = None
    approval_note: Optional[StrictStr] = None

    # fleet
    fleet_id: Optional[StrictStr] = None
    fleet_name: Optional[StrictStr] = None
    contact_email: Optional[StrictStr] = None
    contact_name: Optional[StrictStr] = None
    program_id: Optional[StrictStr] = None
    program_name: Optional[StrictStr] = Field(
        default=None,
        validation_alias=AliasChoices("programName", "program", "program_name"),
    )
    base_template_slug: Optional[StrictStr] = None
    include_custom_inspection: Optional[StrictBool] = None
    vehicle_ids: Optional[List[StrictStr]] = None
    label: Optional[StrictStr] = None
    allow_create: Optional[StrictBool] = Field(
        default=None,
        validation_alias=AliasChoices("allowCreate", "allow_create"),
    )

    def has(self, name: str) -> bool:
        """Return True when ``name`` carries a usable value.

        ``None``, blank strings and empty lists count as absent.
        """
        value: Any = getattr(self, name)
        if value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        if isinstance(value, list):
            return len(value) > 0
        return True

    def text(self, name: str) -> Optional[str]:
        """Return a stripped string field, or None when absent."""
        if not self.has(name):
            return None
        return str(getattr(self, name)).strip()
