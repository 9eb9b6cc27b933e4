from __future__ import annotations

"""Guided (resolving) planner.

Flow
----

0. Ask the optional ``ReasoningProvider`` for a ``GoalInterpretation``.
   Provider errors are logged and planning continues with an empty one.
1. Resolve the customer and vehicle, creating them when needed:

   - ``find_customer_vehicle`` when either id is missing from the context,
   - ``create_customer`` when no customer matched; a ``duplicate`` failure is
     recorded as a skipped ``tool_result`` and the lookup is repeated,
   - ``create_vehicle`` when a customer exists but no vehicle matched and a
     plate or VIN is known,
   - stop with guidance when either is still unresolved.

2. ``create_work_order``.
3. One ``add_work_order_line`` per interpreted line, or the single legacy
   ``line_description`` line from the context.
4. Optional photo, custom inspection, invoice e-mail and work-order approval.

Interpreted values take precedence over context values for the same field.
"""

import logging
from typing import Any, ClassVar, Dict, List, Optional

from ..errors import ToolExecutionFailed
from ..schemas.context import InspectionSpec, PlanContext
from ..schemas.domain import PlannerKind, ToolName
from ..tools.base import ToolContext
from ..tools.registry import ToolRegistry
from .base import JOB_TYPES, ORDER_TYPES, EventCallback, PlanSession, coerce_choice, first_text
from .reasoning import GoalInterpretation, ReasoningProvider

logger = logging.getLogger(__name__)

UNRESOLVED = "Need a specific customer and vehicle to proceed."
APPROVAL_METHODS = ("fleet", "advisor", "customer")


def approval_method(raw: Optional[str]) -> str:
    """Reduce free text such as ``"customer_signed"`` to a known approval method."""
    if raw is None or not raw.strip():
        return "advisor"
    v = raw.lower()
    return next((m for m in APPROVAL_METHODS if m in v), "other")


class ResolvingPlanner:
    kind: ClassVar[PlannerKind] = PlannerKind.guided

    def __init__(self, registry: ToolRegistry, reasoning: Optional[ReasoningProvider] = None) -> None:
        self._registry = registry
        self._reasoning = reasoning

    async def _interpret(self, goal: str, context: PlanContext) -> GoalInterpretation:
        if self._reasoning is None:
            return GoalInterpretation()
        try:
            return await self._reasoning.interpret(goal, context)
        except Exception as e:
            logger.warning(f"Goal interpretation failed, continuing without it: {type(e).__name__}: {e}")
            return GoalInterpretation()

    async def run(
        self,
        goal: str,
        context: PlanContext,
        tool_ctx: ToolContext,
        on_event: EventCallback,
    ) -> None:
        session = PlanSession(self._registry, tool_ctx, on_event)
        await session.plan(f"Goal: {goal}")

        hint = await self._interpret(goal, context)

        customer_id = context.text("customer_id")
        vehicle_id = context.text("vehicle_id")
        if not (customer_id and vehicle_id):
            customer_id, vehicle_id = await self._resolve(session, context, hint, customer_id, vehicle_id)
            if not (customer_id and vehicle_id):
                await session.final(UNRESOLVED)
                return

        created = await session.call(
            ToolName.create_work_order,
            {
                "customer_id": customer_id,
                "vehicle_id": vehicle_id,
                "type": coerce_choice(hint.order_type or context.order_type, ORDER_TYPES, "inspection"),
                "notes": first_text(hint.notes, context.notes),
            },
        )
        work_order_id = created.work_order_id

        for line in self._lines(hint, context):
            await session.call(ToolName.add_work_order_line, dict(line, work_order_id=work_order_id))

        photo_url = first_text(hint.photo_url, context.photo_url)
        if photo_url:
            await session.call(
                ToolName.attach_photo_to_work_order,
                {"work_order_id": work_order_id, "image_url": photo_url},
            )

        inspection = hint.inspection or context.inspection
        if inspection is not None:
            await session.call(ToolName.create_custom_inspection, _inspection_input(inspection, work_order_id))

        email_to = first_text(hint.email_invoice_to, context.email_invoice_to)
        if email_to:
            invoice = await session.call(ToolName.generate_invoice_html, {"work_order_id": work_order_id})
            await session.call(
                ToolName.email_invoice,
                {
                    "to": email_to,
                    "subject": first_text(hint.email_subject, context.email_subject) or "Your invoice",
                    "html": invoice.html,
                    "work_order_id": work_order_id,
                },
            )

        if hint.auto_approve is True or context.auto_approve is True:
            await session.call(
                ToolName.record_work_order_approval,
                {
                    "work_order_id": work_order_id,
                    "method": approval_method(first_text(hint.approval_method, context.approval_method)),
                },
            )

        await session.final("Done.")

    async def _resolve(
        self,
        session: PlanSession,
        context: PlanContext,
        hint: GoalInterpretation,
        customer_id: Optional[str],
        vehicle_id: Optional[str],
    ) -> tuple[Optional[str], Optional[str]]:
        query = first_text(hint.customer_query, context.customer_query, context.customer_name)
        plate_or_vin = first_text(hint.plate_or_vin, context.plate_or_vin)

        if not (query or plate_or_vin):
            return customer_id, vehicle_id

        found = await session.call(
            ToolName.find_customer_vehicle,
            {"customer_query": query, "plate_or_vin": plate_or_vin},
        )
        customer_id = customer_id or found.customer_id
        vehicle_id = vehicle_id or found.vehicle_id

        if not customer_id:
            name = first_text(context.customer_name, query) or "Default Customer"
            try:
                created = await session.call(
                    ToolName.create_customer,
                    {
                        "name": name,
                        "email": context.text("customer_email"),
                        "phone": context.text("customer_phone"),
                    },
                )
                customer_id = created.customer_id
            except ToolExecutionFailed as e:
                if e.code != "duplicate":
                    raise
                await session.result(ToolName.create_customer, {"skipped": True, "reason": e.message})
                retry = await session.call(
                    ToolName.find_customer_vehicle,
                    {"customer_query": name, "plate_or_vin": plate_or_vin},
                )
                customer_id = retry.customer_id
                vehicle_id = vehicle_id or retry.vehicle_id

        if customer_id and not vehicle_id and plate_or_vin:
            is_vin = len(plate_or_vin) > 10
            created_vehicle = await session.call(
                ToolName.create_vehicle,
                {
                    "customer_id": customer_id,
                    "vin": plate_or_vin if is_vin else None,
                    "license_plate": None if is_vin else plate_or_vin,
                    "year": context.vehicle_year,
                    "make": context.text("vehicle_make"),
                    "model": context.text("vehicle_model"),
                },
            )
            vehicle_id = created_vehicle.vehicle_id

        return customer_id, vehicle_id

    @staticmethod
    def _lines(hint: GoalInterpretation, context: PlanContext) -> List[Dict[str, Any]]:
        specs = hint.lines or context.lines or []
        lines = [
            {
                "description": spec.description.strip(),
                "job_type": coerce_choice(spec.job_type, JOB_TYPES, "repair"),
                "labor_hours": spec.labor_hours if spec.labor_hours is not None else 1,
                "notes": spec.notes,
            }
            for spec in specs
            if spec.description.strip()
        ]
        if not lines and context.has("line_description"):
            lines.append(
                {
                    "description": context.text("line_description"),
                    "job_type": coerce_choice(context.job_type, JOB_TYPES, "repair"),
                    "labor_hours": context.labor_hours if context.labor_hours is not None else 1,
                    "notes": context.text("line_notes"),
                }
            )
        return lines


def _inspection_input(spec: InspectionSpec, work_order_id: str) -> Dict[str, Any]:
    return {
        "work_order_id": work_order_id,
        "title": first_text(spec.title) or "Custom Inspection",
        "vehicle_type": spec.vehicle_type or "truck",
        "include_axle": True if spec.include_axle is None else spec.include_axle,
        "include_oil": False if spec.include_oil is None else spec.include_oil,
        "selections": dict(spec.selections or {}),
        "services": list(spec.services or []),
    }
