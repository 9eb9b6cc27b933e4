from __future__ import annotations

"""SQLAlchemy ORM models for run persistence.

These ORM models define the SQL schema used by the SQL repository
implementation in ``shopfloor_ai.agent_core.repos.sql``.

Design
------

The schema is optimized for auditability and idempotent admission:

- Runs store coarse-grained run metadata and status. A unique constraint on
  ``(tenant_id, user_id, idempotency_key)`` guarantees at most one run per
  key; rows with a NULL key never collide.
- Events form an append-only timeline. A unique constraint on
  ``(run_id, step)`` guarantees a step number is never reused.

Table names are prefixed with ``sf_`` to avoid collisions in shared databases.
The shop domain tables in ``shopfloor_ai.shop.models`` share this ``Base``.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonDocument = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class PlannerRunRow(Base):
    """Row model for ``sf_planner_runs``.

    Key fields:

    - ``status``: running/succeeded/failed; updated exactly once after creation.
    - ``planner``: which planner executed the run.
    - ``idempotency_key``: optional caller-supplied deduplication key.
    """

    __tablename__ = "sf_planner_runs"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", "idempotency_key", name="sf_planner_runs_idem_uq"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)

    goal: Mapped[str] = mapped_column(Text)
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    planner: Mapped[str] = mapped_column(String(32))

    status: Mapped[str] = mapped_column(String(32))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class PlannerEventRow(Base):
    """Row model for ``sf_planner_events``.

    ``content`` holds the typed event (``plan``/``tool_call``/...) as JSON.
    """

    __tablename__ = "sf_planner_events"
    __table_args__ = (UniqueConstraint("run_id", "step", name="sf_planner_events_step_uq"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    run_id: Mapped[str] = mapped_column(String(64), index=True)

    step: Mapped[int] = mapped_column(Integer)
    kind: Mapped[str] = mapped_column(String(32))
    content: Mapped[Dict[str, Any]] = mapped_column(JsonDocument, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
