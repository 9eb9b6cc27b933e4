from __future__ import annotations

import pytest
from pydantic import ValidationError

from shopfloor_ai.agent_core.schemas.context import PlanContext


def test_accepts_camel_case_and_snake_case_keys() -> None:
    ctx = PlanContext.model_validate({"customerId": "c-1", "vehicle_id": "v-1", "emailInvoiceTo": "a@b.co"})
    assert ctx.customer_id == "c-1"
    assert ctx.vehicle_id == "v-1"
    assert ctx.email_invoice_to == "a@b.co"


def test_unknown_keys_are_ignored() -> None:
    ctx = PlanContext.model_validate({"customerId": "c-1", "somethingElse": 42})
    assert ctx.customer_id == "c-1"
    assert not hasattr(ctx, "somethingElse")


@pytest.mark.parametrize(
    "payload",
    [
        {"laborHours": "3"},
        {"autoApprove": "true"},
        {"vehicleYear": "2018"},
        {"customerId": 12},
        {"vehicleIds": "veh-1"},
    ],
)
def test_types_are_not_coerced(payload: dict) -> None:
    with pytest.raises(ValidationError):
        PlanContext.model_validate(payload)


def test_labor_hours_accepts_int_and_float() -> None:
    assert PlanContext.model_validate({"laborHours": 2}).labor_hours == 2
    assert PlanContext.model_validate({"laborHours": 1.5}).labor_hours == 1.5


def test_has_treats_blank_values_as_absent() -> None:
    ctx = PlanContext.model_validate(
        {"customerId": "  ", "vehicleId": "v-1", "vehicleIds": [], "autoApprove": False}
    )
    assert ctx.has("customer_id") is False
    assert ctx.has("vehicle_id") is True
    assert ctx.has("vehicle_ids") is False
    assert ctx.has("auto_approve") is True
    assert ctx.has("photo_url") is False


def test_text_strips_whitespace() -> None:
    ctx = PlanContext.model_validate({"lineDescription": "  Replace wipers  "})
    assert ctx.text("line_description") == "Replace wipers"
    assert ctx.text("notes") is None


def test_context_is_frozen() -> None:
    ctx = PlanContext(customer_id="c-1")
    with pytest.raises(ValidationError):
        ctx.customer_id = "c-2"


def test_allow_create_reads_legacy_spelling() -> None:
    assert PlanContext.model_validate({"allowCreate": True}).allow_create is True
    assert PlanContext.model_validate({"allow_create": True}).allow_create is True


def test_nested_lines_and_inspection() -> None:
    ctx = PlanContext.model_validate(
        {
            "lines": [{"description": "Oil change", "jobType": "maintenance", "laborHours": 0.5}],
            "inspection": {"vehicleType": "bus", "includeOil": True},
        }
    )
    assert ctx.lines is not None and ctx.lines[0].job_type == "maintenance"
    assert ctx.inspection is not None and ctx.inspection.vehicle_type == "bus"

    with pytest.raises(ValidationError):
        PlanContext.model_validate({"inspection": {"vehicleType": "boat"}})


@pytest.mark.parametrize(
    "payload,field,expected",
    [
        ({"type": "repair"}, "order_type", "repair"),
        ({"orderType": "diagnosis"}, "order_type", "diagnosis"),
        ({"order_type": "maintenance"}, "order_type", "maintenance"),
        ({"imageUrl": "https://cdn.example.com/a.jpg"}, "photo_url", "https://cdn.example.com/a.jpg"),
        ({"photoUrl": "https://cdn.example.com/b.jpg"}, "photo_url", "https://cdn.example.com/b.jpg"),
        ({"program": "PM-A"}, "program_name", "PM-A"),
        ({"programName": "PM-B"}, "program_name", "PM-B"),
    ],
)
def test_legacy_key_names(payload: dict, field: str, expected: str) -> None:
    assert PlanContext.model_validate(payload).text(field) == expected


def test_custom_inspection_key_with_grouped_selections() -> None:
    ctx = PlanContext.model_validate(
        {"customInspection": {"title": "DOT", "selections": {"Brakes": ["Pads", "Rotors"]}}}
    )

    assert ctx.inspection is not None
    assert ctx.inspection.title == "DOT"
    assert ctx.inspection.selections == {"Brakes": ["Pads", "Rotors"]}

    with pytest.raises(ValidationError):
        PlanContext.model_validate({"inspection": {"selections": ["Pads"]}})
