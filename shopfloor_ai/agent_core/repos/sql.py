from __future__ import annotations

"""SQLAlchemy async repository implementations.

This module provides a Postgres-backed persistence implementation for the
repository interfaces defined in ``shopfloor_ai.agent_core.repos.interfaces``
and for the admission collaborators in ``shopfloor_ai.agent_core.admission``.

Usage
-----

Typical wiring (tests or application setup):

- Create an async engine with ``create_engine``.
- Create tables with ``create_all`` (for tests/dev).
- Create a session factory with ``create_sessionmaker``.
- Build repository instances with ``build_sql_repos``.

Transaction model
-----------------

Each repository method opens an ``AsyncSession``, performs its operation, and
commits. Every appended event is therefore durable when ``append`` returns,
before the planner moves on to its next step.

Idempotent admission relies on the ``sf_planner_runs_idem_uq`` constraint: the
loser of a concurrent insert gets an ``IntegrityError`` and falls back to
reading the winner's row.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ...shop import models as shop_models  # noqa: F401  (registers shop tables on Base)
from ...shop.models import ProfileRow
from ..admission import CallerIdentity, Identity
from ..errors import NoActiveTenant, NotAuthenticated
from ..schemas.domain import PlannerEventRecord, PlannerKind, PlannerRun, RunStatus
from .interfaces import EventRepository, RunRepository
from .models import Base, PlannerEventRow, PlannerRunRow

logger = logging.getLogger(__name__)


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    The helper normalizes Postgres URLs to ensure the async driver is used.
    For example, it rewrites ``postgresql://`` and other variants to
    ``postgresql+asyncpg://``.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    return create_async_engine(url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables (runs, events and shop domain) for the current ORM metadata.

    This is mainly intended for tests and local development.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_run(row: PlannerRunRow) -> PlannerRun:
    return PlannerRun(
        id=row.id,
        tenant_id=row.tenant_id,
        user_id=row.user_id,
        goal=row.goal,
        idempotency_key=row.idempotency_key,
        planner=PlannerKind(row.planner),
        status=RunStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_event(row: PlannerEventRow) -> PlannerEventRecord:
    return PlannerEventRecord(
        id=row.id,
        run_id=row.run_id,
        step=row.step,
        kind=row.kind,
        content=dict(row.content or {}),
        created_at=row.created_at,
    )


@dataclass(frozen=True)
class SqlRunRepository(RunRepository):
    """SQL implementation of ``RunRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, run: PlannerRun) -> tuple[PlannerRun, bool]:
        """
        Persist a new run record.

        When the idempotency key is already taken (including by a concurrent
        request that committed first), the existing run is returned.
        """
        async with self.session_factory() as s:
            s.add(
                PlannerRunRow(
                    id=run.id,
                    tenant_id=run.tenant_id,
                    user_id=run.user_id,
                    goal=run.goal,
                    idempotency_key=run.idempotency_key,
                    planner=run.planner.value,
                    status=run.status.value,
                    created_at=run.created_at,
                    updated_at=run.updated_at,
                )
            )
            try:
                await s.commit()
                return run, True
            except IntegrityError:
                await s.rollback()
                if run.idempotency_key is None:
                    raise

        existing = await self.find_by_idempotency_key(run.tenant_id, run.user_id, run.idempotency_key)
        if existing is None:
            raise RuntimeError(f"Run insert conflicted but no run holds key '{run.idempotency_key}'")
        logger.info(f"Idempotency key '{run.idempotency_key}' already held by run {existing.id}")
        return existing, False

    async def find_by_idempotency_key(self, tenant_id: str, user_id: str, key: str) -> Optional[PlannerRun]:
        async with self.session_factory() as s:
            row = (
                await s.execute(
                    select(PlannerRunRow)
                    .where(PlannerRunRow.tenant_id == tenant_id)
                    .where(PlannerRunRow.user_id == user_id)
                    .where(PlannerRunRow.idempotency_key == key)
                )
            ).scalar_one_or_none()
            return _to_run(row) if row is not None else None

    async def update_status(self, run_id: str, *, status: str) -> bool:
        """
        Move a ``running`` run to ``status``.

        Returns:
            False when the run is unknown or already terminal.
        """
        async with self.session_factory() as s:
            result = await s.execute(
                update(PlannerRunRow)
                .where(PlannerRunRow.id == run_id)
                .where(PlannerRunRow.status == RunStatus.running.value)
                .values(status=status, updated_at=_utc_now())
            )
            await s.commit()
            return bool(result.rowcount)

    async def get(self, run_id: str) -> Optional[PlannerRun]:
        async with self.session_factory() as s:
            row = await s.get(PlannerRunRow, run_id)
            return _to_run(row) if row is not None else None

    async def list(
        self,
        tenant_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PlannerRun]:
        """
        List runs, newest first.

        Args:
            tenant_id: Optional tenant identifier to filter by.
            user_id: Optional user identifier to filter by.
            limit: Max number of records to return.
            offset: Pagination offset.
        """
        async with self.session_factory() as s:
            stmt = select(PlannerRunRow)
            if tenant_id:
                stmt = stmt.where(PlannerRunRow.tenant_id == tenant_id)
            if user_id:
                stmt = stmt.where(PlannerRunRow.user_id == user_id)
            stmt = stmt.order_by(PlannerRunRow.created_at.desc()).offset(offset).limit(limit)
            rows = (await s.execute(stmt)).scalars().all()
            return [_to_run(r) for r in rows]


@dataclass(frozen=True)
class SqlEventRepository(EventRepository):
    """SQL implementation of ``EventRepository`` (append-only)."""

    session_factory: async_sessionmaker[AsyncSession]

    async def append(self, event: PlannerEventRecord) -> None:
        async with self.session_factory() as s:
            s.add(
                PlannerEventRow(
                    id=event.id,
                    run_id=event.run_id,
                    step=event.step,
                    kind=event.kind.value,
                    content=event.content,
                    created_at=event.created_at,
                )
            )
            await s.commit()

    async def list(self, run_id: str, *, after_step: int = 0, limit: int = 1000) -> list[PlannerEventRecord]:
        async with self.session_factory() as s:
            rows = (
                (
                    await s.execute(
                        select(PlannerEventRow)
                        .where(PlannerEventRow.run_id == run_id)
                        .where(PlannerEventRow.step > after_step)
                        .order_by(PlannerEventRow.step)
                        .limit(limit)
                    )
                )
                .scalars()
                .all()
            )
            return [_to_event(r) for r in rows]


@dataclass(frozen=True)
class SqlProfileIdentityResolver:
    """Resolve callers through ``sf_profiles``.

    The profile's ``shop_id`` is the tenant. A ``tenant_hint`` that differs
    from it is refused rather than honoured.
    """

    session_factory: async_sessionmaker[AsyncSession]

    async def resolve(self, caller: CallerIdentity) -> Identity:
        if not caller.user_id:
            raise NotAuthenticated()
        async with self.session_factory() as s:
            profile = await s.get(ProfileRow, caller.user_id)
        if profile is None:
            raise NotAuthenticated(f"Unknown user '{caller.user_id}'")
        if not profile.shop_id:
            raise NoActiveTenant(caller.user_id)
        if caller.tenant_hint and caller.tenant_hint != profile.shop_id:
            raise NoActiveTenant(caller.user_id)
        return Identity(tenant_id=profile.shop_id, user_id=profile.id)


@dataclass(frozen=True)
class SqlRunRateLimiter:
    """Sliding-window limit on runs started per user.

    Allows a new run while the user has started fewer than ``max_runs`` runs
    in the shop during the last ``window_seconds``.
    """

    session_factory: async_sessionmaker[AsyncSession]
    max_runs: int = 10
    window_seconds: int = 60

    async def allow(self, identity: Identity) -> bool:
        since = _utc_now() - timedelta(seconds=self.window_seconds)
        async with self.session_factory() as s:
            count = (
                await s.execute(
                    select(func.count())
                    .select_from(PlannerRunRow)
                    .where(PlannerRunRow.tenant_id == identity.tenant_id)
                    .where(PlannerRunRow.user_id == identity.user_id)
                    .where(PlannerRunRow.created_at >= since)
                )
            ).scalar_one()
        return int(count) < self.max_runs


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience bundle of all SQL repositories and admission collaborators."""

    runs: SqlRunRepository
    events: SqlEventRepository
    identity: SqlProfileIdentityResolver
    rate_limiter: SqlRunRateLimiter


def build_sql_repos(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    max_runs: int = 10,
    window_seconds: int = 60,
) -> SqlRepoBundle:
    """Build SQL repositories sharing a single session factory."""
    return SqlRepoBundle(
        runs=SqlRunRepository(session_factory),
        events=SqlEventRepository(session_factory),
        identity=SqlProfileIdentityResolver(session_factory),
        rate_limiter=SqlRunRateLimiter(session_factory, max_runs=max_runs, window_seconds=window_seconds),
    )
