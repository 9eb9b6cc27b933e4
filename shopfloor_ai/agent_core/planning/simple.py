from __future__ import annotations

"""Minimal fixed-sequence planner.

Expects an already resolved customer and vehicle in the context and runs:

1. ``create_work_order``
2. ``add_work_order_line`` when ``line_description`` is given
3. ``attach_photo_to_work_order`` when ``photo_url`` is given
4. ``generate_invoice_html`` + ``email_invoice`` when ``email_invoice_to`` is given

Without a customer and vehicle it ends right after the ``plan`` event with
guidance and calls no tool.
"""

import logging
from typing import ClassVar

from ..schemas.context import PlanContext
from ..schemas.domain import PlannerKind, ToolName
from ..tools.base import ToolContext
from ..tools.registry import ToolRegistry
from .base import JOB_TYPES, ORDER_TYPES, EventCallback, PlanSession, coerce_choice

logger = logging.getLogger(__name__)

MISSING_REFERENCES = "Need customerId and vehicleId or use find_customer_vehicle first."


class MinimalPlanner:
    kind: ClassVar[PlannerKind] = PlannerKind.simple

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
        await session.plan(f"Goal: {goal}")

        if not (context.has("customer_id") and context.has("vehicle_id")):
            logger.debug("Minimal planner stopped: customer or vehicle missing")
            await session.final(MISSING_REFERENCES)
            return

        created = await session.call(
            ToolName.create_work_order,
            {
                "customer_id": context.text("customer_id"),
                "vehicle_id": context.text("vehicle_id"),
                "type": coerce_choice(context.order_type, ORDER_TYPES, "inspection"),
                "notes": context.text("notes"),
            },
        )
        work_order_id = created.work_order_id

        if context.has("line_description"):
            await session.call(
                ToolName.add_work_order_line,
                {
                    "work_order_id": work_order_id,
                    "description": context.text("line_description"),
                    "job_type": coerce_choice(context.job_type, JOB_TYPES, "repair"),
                    "labor_hours": context.labor_hours if context.labor_hours is not None else 1,
                    "notes": context.text("line_notes"),
                },
            )

        if context.has("photo_url"):
            await session.call(
                ToolName.attach_photo_to_work_order,
                {"work_order_id": work_order_id, "image_url": context.text("photo_url")},
            )

        if context.has("email_invoice_to"):
            invoice = await session.call(ToolName.generate_invoice_html, {"work_order_id": work_order_id})
            await session.call(
                ToolName.email_invoice,
                {
                    "to": context.text("email_invoice_to"),
                    "subject": context.text("email_subject") or "Your invoice",
                    "html": invoice.html,
                    "work_order_id": work_order_id,
                },
            )

        await session.final("Done.")
