"""SQLAlchemy ORM models for the shop domain.

These tables back the built-in tools in ``shopfloor_ai.agent_core.tools``.
They are a deliberately small slice of a shop-management schema: enough to
resolve customers and vehicles, create work orders with lines, build an
invoice, record approvals and run fleet maintenance programs.

Design
------

- Every row carries ``shop_id``; tools filter on the run's tenant.
- Identifiers are UUID strings generated by the tools.
- Money values are floats in the shop's currency; labor is hours x rate.

Table names are prefixed with ``sf_`` like the run tables, and all models
share ``shopfloor_ai.agent_core.repos.models.Base`` so one ``create_all``
builds the whole schema.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..agent_core.repos.models import Base, JsonDocument


class ShopRow(Base):
    """Row model for ``sf_shops``."""

    __tablename__ = "sf_shops"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    labor_rate: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class ProfileRow(Base):
    """Row model for ``sf_profiles``.

    One row per user. ``shop_id`` is the user's active shop; a NULL value means
    the user is not attached to any shop yet.
    """

    __tablename__ = "sf_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shop_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class CustomerRow(Base):
    """Row model for ``sf_customers``."""

    __tablename__ = "sf_customers"
    __table_args__ = (UniqueConstraint("shop_id", "email", name="sf_customers_shop_email_uq"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class VehicleRow(Base):
    """Row model for ``sf_vehicles``."""

    __tablename__ = "sf_vehicles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    customer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    make: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    vin: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    license_plate: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class WorkOrderRow(Base):
    """Row model for ``sf_work_orders``.

    ``status`` follows the shop workflow (``awaiting``, ``awaiting_approval``,
    ``approved``, ...). ``approval_state`` is set once a work-order level
    approval has been recorded.
    """

    __tablename__ = "sf_work_orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    customer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    vehicle_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    type: Mapped[str] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(32))
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approval_state: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    source_fleet_program_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class WorkOrderLineRow(Base):
    """Row model for ``sf_work_order_lines``.

    ``approval_state`` is ``pending`` until a customer or advisor decision is
    recorded as ``approved`` or ``declined``.
    """

    __tablename__ = "sf_work_order_lines"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    work_order_id: Mapped[str] = mapped_column(String(64), index=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    description: Mapped[str] = mapped_column(Text)
    job_type: Mapped[str] = mapped_column(String(32))
    labor_time: Mapped[float] = mapped_column(Float, default=0.0)
    labor_rate: Mapped[float] = mapped_column(Float, default=0.0)
    parts_cost: Mapped[float] = mapped_column(Float, default=0.0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32))
    approval_state: Mapped[str] = mapped_column(String(32), default="pending")
    decided_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class WorkOrderAttachmentRow(Base):
    """Row model for ``sf_work_order_attachments``."""

    __tablename__ = "sf_work_order_attachments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    work_order_id: Mapped[str] = mapped_column(String(64), index=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    url: Mapped[str] = mapped_column(Text)
    kind: Mapped[str] = mapped_column(String(32), default="photo")
    caption: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class InspectionRow(Base):
    """Row model for ``sf_inspections``.

    ``sections`` holds the generated inspection sheet as JSON.
    """

    __tablename__ = "sf_inspections"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    work_order_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(255))
    vehicle_type: Mapped[str] = mapped_column(String(32))
    sections: Mapped[Dict[str, Any]] = mapped_column(JsonDocument, default=dict)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class WorkOrderApprovalRow(Base):
    """Row model for ``sf_work_order_approvals`` (approval history)."""

    __tablename__ = "sf_work_order_approvals"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    work_order_id: Mapped[str] = mapped_column(String(64), index=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    method: Mapped[str] = mapped_column(String(32))
    approved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class FleetRow(Base):
    """Row model for ``sf_fleets``."""

    __tablename__ = "sf_fleets"
    __table_args__ = (UniqueConstraint("shop_id", "name", name="sf_fleets_shop_name_uq"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255))
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class FleetVehicleRow(Base):
    """Row model for ``sf_fleet_vehicles`` (fleet enrollment)."""

    __tablename__ = "sf_fleet_vehicles"
    __table_args__ = (UniqueConstraint("fleet_id", "vehicle_id", name="sf_fleet_vehicles_uq"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    fleet_id: Mapped[str] = mapped_column(String(64), index=True)
    vehicle_id: Mapped[str] = mapped_column(String(64))
    active: Mapped[bool] = mapped_column(Boolean, default=True)


class FleetProgramRow(Base):
    """Row model for ``sf_fleet_programs``."""

    __tablename__ = "sf_fleet_programs"
    __table_args__ = (UniqueConstraint("fleet_id", "name", name="sf_fleet_programs_fleet_name_uq"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    fleet_id: Mapped[str] = mapped_column(String(64), index=True)
    shop_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255))
    base_template_slug: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    include_custom_inspection: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class FleetProgramTaskRow(Base):
    """Row model for ``sf_fleet_program_tasks``; ordered by ``display_order``."""

    __tablename__ = "sf_fleet_program_tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    program_id: Mapped[str] = mapped_column(String(64), index=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    description: Mapped[str] = mapped_column(Text)
    job_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    default_labor_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
