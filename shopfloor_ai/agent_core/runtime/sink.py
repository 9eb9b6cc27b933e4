from __future__ import annotations

"""Per-run event sink.

``RunEventSink`` is the ``on_event`` callback a planner receives. For every
event it

1. assigns the next step number (1, 2, 3, ... with no gaps),
2. persists a ``PlannerEventRecord`` through the ``EventRepository``,
3. notifies observers (live streams, tests) with the stored record.

The planner awaits the sink, so an event is durable before the planner moves
on. A storage error propagates to the planner and fails the run.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List

from ..repos import EventRepository
from ..schemas.domain import EventKind, PlannerEventRecord
from ..schemas.events import PlannerEvent

logger = logging.getLogger(__name__)

EventObserver = Callable[[PlannerEventRecord], Awaitable[None]]


class RunEventSink:
    def __init__(self, run_id: str, events: EventRepository, observers: Iterable[EventObserver] = ()) -> None:
        self._run_id = run_id
        self._events = events
        self._observers: List[EventObserver] = list(observers)
        self._next_step = 1
        self._lock = asyncio.Lock()

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def last_step(self) -> int:
        """Step number of the last persisted event (0 before the first one)."""
        return self._next_step - 1

    async def __call__(self, event: PlannerEvent) -> None:
        await self.emit(event)

    async def emit(self, event: PlannerEvent) -> PlannerEventRecord:
        async with self._lock:
            record = PlannerEventRecord(
                run_id=self._run_id,
                step=self._next_step,
                kind=EventKind(event.kind),
                content=event.model_dump(mode="json"),
            )
            await self._events.append(record)
            self._next_step += 1
        logger.debug(f"Run {self._run_id} step {record.step}: {record.kind.value}")

        for observer in self._observers:
            await observer(record)
        return record
