from __future__ import annotations

"""Repository interface contracts.

The runtime depends on these Protocols instead of concrete persistence
implementations.

Contract guidelines
-------------------

- All methods are async.
- Repository implementations should be safe to call from the run manager
  without leaking SQLAlchemy sessions/transactions.
- ``RunRepository.create`` must be atomic with respect to the
  ``(tenant_id, user_id, idempotency_key)`` uniqueness rule: when another run
  already holds the key, it returns that run instead of inserting.
- ``RunRepository.update_status`` only moves a ``running`` run to a terminal
  status; terminal runs are never changed again.
- The event repository is append-only and rejects a reused step number.
"""

from typing import Optional, Protocol

from ..schemas.domain import PlannerEventRecord, PlannerRun


class RunRepository(Protocol):
    """Persist and query the lifecycle of a planner run."""

    async def create(self, run: PlannerRun) -> tuple[PlannerRun, bool]:
        """
        Create a new run record.

        Args:
            run: The initial run state to persist.

        Returns:
            ``(run, created)``. When the idempotency key is already taken the
            existing run is returned with ``created=False``.
        """
        ...

    async def find_by_idempotency_key(self, tenant_id: str, user_id: str, key: str) -> Optional[PlannerRun]:
        """Return the run holding ``key`` for this tenant and user, if any."""
        ...

    async def update_status(self, run_id: str, *, status: str) -> bool:
        """
        Transition a running run to a terminal status.

        Returns:
            True when the row changed; False for unknown or already terminal runs.
        """
        ...

    async def get(self, run_id: str) -> Optional[PlannerRun]:
        """Retrieve a run by its ID."""
        ...

    async def list(
        self,
        tenant_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PlannerRun]:
        """List runs, newest first, optionally filtered by tenant and user."""
        ...


class EventRepository(Protocol):
    """Append-only store for planner events."""

    async def append(self, event: PlannerEventRecord) -> None:
        """
        Append an event.

        Raises:
            A storage error when ``(run_id, step)`` already exists.
        """
        ...

    async def list(self, run_id: str, *, after_step: int = 0, limit: int = 1000) -> list[PlannerEventRecord]:
        """List a run's events with ``step > after_step``, ordered by step."""
        ...
