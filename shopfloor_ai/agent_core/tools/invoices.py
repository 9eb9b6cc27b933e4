from __future__ import annotations

"""Invoice tools.

``generate_invoice_html`` renders a work order and its lines into a
self-contained HTML document; ``email_invoice`` delivers one HTML document to
one recipient through the configured ``Mailer``.
"""

import logging
from dataclasses import dataclass
from html import escape
from typing import Optional

from pydantic import Field
from sqlalchemy import select

from ...shop.models import CustomerRow, VehicleRow, WorkOrderLineRow, WorkOrderRow
from ..errors import ToolFailure
from ..schemas.base import BaseSchema
from ..schemas.domain import ToolName
from .base import ToolContext
from .mailer import MailDeliveryError, Mailer
from .support import ShopStoreTool, ensure_in_shop

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_STYLE = (
    "body{font-family:system-ui,-apple-system,Segoe UI,Roboto,Arial,sans-serif;margin:0;padding:24px;background:#f6f7f9;}"
    ".card{background:#fff;border:1px solid #e5e7eb;border-radius:12px;padding:24px;max-width:720px;margin:auto;}"
    ".row{display:flex;gap:16px;flex-wrap:wrap}.muted{color:#6b7280;font-size:12px}"
    "table{width:100%;border-collapse:collapse;margin-top:12px}"
    "th,td{border-bottom:1px solid #e5e7eb;padding:8px;text-align:left}.total{font-weight:700}"
)


class GenerateInvoiceHtmlInput(BaseSchema):
    work_order_id: str = Field(min_length=1)


class GenerateInvoiceHtmlOutput(BaseSchema):
    html: str = Field(min_length=1)
    labor_total: float
    parts_total: float
    total: float


class EmailInvoiceInput(BaseSchema):
    to: str = Field(pattern=_EMAIL_PATTERN)
    subject: str = Field(default="Your invoice", min_length=1, max_length=255)
    html: str = Field(min_length=1)
    work_order_id: Optional[str] = None


class EmailInvoiceOutput(BaseSchema):
    sent: bool
    to: str
    message_id: Optional[str] = None


def _money(value: float) -> str:
    return f"${value:.2f}"


@dataclass(frozen=True)
class GenerateInvoiceHtmlTool(ShopStoreTool):
    """Build a styled HTML invoice from a work order's lines.

    Line labor is ``labor_rate * labor_time``; the line total adds
    ``parts_cost``. All user-provided text is HTML-escaped.
    """

    name = ToolName.generate_invoice_html
    description = "Build a styled HTML invoice for a work order from its lines"
    input_schema = GenerateInvoiceHtmlInput
    output_schema = GenerateInvoiceHtmlOutput

    async def execute(self, payload: GenerateInvoiceHtmlInput, ctx: ToolContext) -> GenerateInvoiceHtmlOutput:
        async with self.session_factory() as s:
            wo = ensure_in_shop(await s.get(WorkOrderRow, payload.work_order_id), ctx, "Work order")
            customer = await s.get(CustomerRow, wo.customer_id) if wo.customer_id else None
            vehicle = await s.get(VehicleRow, wo.vehicle_id) if wo.vehicle_id else None
            lines = (
                (
                    await s.execute(
                        select(WorkOrderLineRow)
                        .where(WorkOrderLineRow.work_order_id == wo.id)
                        .order_by(WorkOrderLineRow.created_at)
                    )
                )
                .scalars()
                .all()
            )

        rows_html = []
        labor_total = 0.0
        parts_total = 0.0
        for line in lines:
            hours = line.labor_time or 0.0
            rate = line.labor_rate or 0.0
            parts = line.parts_cost or 0.0
            labor = hours * rate
            labor_total += labor
            parts_total += parts
            rows_html.append(
                "<tr>"
                f"<td><div><strong>{escape(line.description)}</strong></div>"
                f'<div class="muted">{escape(line.notes or "")}</div></td>'
                f"<td>{hours:.2f}h @ {_money(rate)}/h = {_money(labor)}</td>"
                f"<td>{_money(parts)}</td>"
                f"<td>{_money(labor + parts)}</td>"
                "</tr>"
            )
        total = labor_total + parts_total

        vehicle_line = " ".join(
            str(p) for p in (vehicle.year, vehicle.make, vehicle.model) if p
        ) if vehicle is not None else ""
        created = wo.created_at.strftime("%Y-%m-%d %H:%M") if wo.created_at else ""
        header = f"Work Order: {wo.id} &bull; {created}" if created else f"Work Order: {wo.id}"

        html = (
            "<!doctype html>"
            '<html><head><meta charset="utf-8" />'
            f"<title>Invoice #{escape(wo.id)}</title>"
            f"<style>{_STYLE}</style></head><body>"
            '<div class="card">'
            "<h2>Invoice</h2>"
            f'<div class="muted">{header}</div>'
            '<div class="row" style="margin-top:12px">'
            f"<div><strong>Customer</strong><br/>{escape(customer.name if customer else '')}"
            f"<br/>{escape((customer.email or '') if customer else '')}</div>"
            f"<div><strong>Vehicle</strong><br/>{escape(vehicle_line)}"
            f"<br/>VIN: {escape((vehicle.vin or '') if vehicle else '')}"
            f" &bull; Plate: {escape((vehicle.license_plate or '') if vehicle else '')}</div>"
            "</div>"
            "<table><thead><tr><th>Description</th><th>Labor</th><th>Parts</th><th>Line Total</th></tr></thead>"
            f"<tbody>{''.join(rows_html)}</tbody><tfoot>"
            f'<tr><td></td><td class="total">Labor</td><td></td><td class="total">{_money(labor_total)}</td></tr>'
            f'<tr><td></td><td class="total">Parts</td><td></td><td class="total">{_money(parts_total)}</td></tr>'
            f'<tr><td></td><td class="total">Total</td><td></td><td class="total">{_money(total)}</td></tr>'
            "</tfoot></table>"
            f'<p class="muted">Status: {escape(wo.status or "")}</p>'
            "</div></body></html>"
        )
        return GenerateInvoiceHtmlOutput(
            html=html,
            labor_total=round(labor_total, 2),
            parts_total=round(parts_total, 2),
            total=round(total, 2),
        )


@dataclass(frozen=True)
class EmailInvoiceTool:
    """Send one invoice e-mail.

    ``mailer`` is None when no mail provider is configured; the tool then
    fails with ``unavailable`` instead of pretending to send.
    """

    mailer: Optional[Mailer] = None

    name = ToolName.email_invoice
    description = "Email an HTML invoice to a single recipient"
    input_schema = EmailInvoiceInput
    output_schema = EmailInvoiceOutput

    async def execute(self, payload: EmailInvoiceInput, ctx: ToolContext) -> EmailInvoiceOutput:
        if self.mailer is None:
            raise ToolFailure("Email delivery is not configured", code="unavailable")
        try:
            message_id = await self.mailer.send(to=payload.to, subject=payload.subject, html=payload.html)
        except MailDeliveryError as e:
            raise ToolFailure(str(e), code="unavailable") from e
        logger.info(f"Invoice e-mailed to {payload.to} for shop {ctx.tenant_id}")
        return EmailInvoiceOutput(sent=True, to=payload.to, message_id=message_id)
