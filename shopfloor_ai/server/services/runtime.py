"""
Runtime Service.

Wraps the ``RunManager`` and the run/event repositories to provide the
operations the API needs: start a run, read runs and events, and follow a
run's events live.
"""

import asyncio
from typing import Any, AsyncGenerator, Dict, List, Optional

from shopfloor_ai.agent_core.admission import CallerIdentity, Identity
from shopfloor_ai.agent_core.factory import build_run_manager
from shopfloor_ai.agent_core.planning import PydanticAIReasoningProvider, ReasoningProvider
from shopfloor_ai.agent_core.repos import EventRepository, RunRepository
from shopfloor_ai.agent_core.repos.sql import SqlEventRepository, SqlRunRepository
from shopfloor_ai.agent_core.runtime import RunManager, StartRunResult
from shopfloor_ai.agent_core.schemas.context import PlanContext
from shopfloor_ai.agent_core.schemas.domain import PlannerEventRecord, PlannerKind, PlannerRun, RunStatus
from shopfloor_ai.agent_core.tools import Mailer, SendGridMailer
from shopfloor_ai.core.logging_config import get_logger
from shopfloor_ai.server.core import constant
from shopfloor_ai.server.core.config import Settings, settings
from shopfloor_ai.server.core.database import async_session_maker

logger = get_logger(__name__)


class RuntimeService:
    """
    Service layer between the HTTP API and the run manager.

    Reads are always scoped to the caller's shop; a run of another shop looks
    exactly like a missing run.
    """

    def __init__(self, manager: RunManager, runs: RunRepository, events: EventRepository) -> None:
        self.manager = manager
        self.runs = runs
        self.events = events

    async def start_run(
        self,
        *,
        goal: str,
        context: PlanContext,
        caller: CallerIdentity,
        idempotency_key: Optional[str] = None,
        planner: Optional[PlannerKind] = None,
    ) -> StartRunResult:
        return await self.manager.start_run(
            goal,
            context,
            caller,
            idempotency_key=idempotency_key,
            planner=planner,
        )

    def tool_definitions(self) -> List[Dict[str, Any]]:
        return self.manager.registry.definitions()

    async def resolve(self, caller: CallerIdentity) -> Identity:
        """Resolve the caller for read endpoints (same rules as run admission)."""
        return await self.manager.resolve(caller)

    async def get_run(self, identity: Identity, run_id: str) -> Optional[PlannerRun]:
        run = await self.runs.get(run_id)
        if run is None or run.tenant_id != identity.tenant_id:
            return None
        return run

    async def list_runs(self, identity: Identity, limit: int = 100, offset: int = 0) -> List[PlannerRun]:
        return await self.runs.list(tenant_id=identity.tenant_id, limit=limit, offset=offset)

    async def list_events(self, run_id: str, after_step: int = 0, limit: int = 1000) -> List[PlannerEventRecord]:
        return await self.events.list(run_id, after_step=after_step, limit=limit)

    async def stream_events(
        self,
        run_id: str,
        after_step: int = 0,
        poll_interval: float = constant.STREAM_POLL_INTERVAL_SECONDS,
        max_idle_cycles: int = constant.STREAM_MAX_IDLE_CYCLES,
    ) -> AsyncGenerator[PlannerEventRecord, None]:
        """
        Yield a run's events with ``step > after_step`` as they are persisted.

        Polls the event repository until the run is no longer ``running`` and
        every event has been delivered, or until the stream has been idle for
        ``max_idle_cycles`` polls.
        """
        last_step = after_step
        idle_cycles = 0
        while True:
            run = await self.runs.get(run_id)
            events = await self.events.list(run_id, after_step=last_step)
            for event in events:
                last_step = event.step
                yield event

            if run is None or run.status != RunStatus.running:
                # terminal runs append nothing more; drain what is left and stop
                if not events:
                    return
                continue

            idle_cycles = 0 if events else idle_cycles + 1
            if idle_cycles >= max_idle_cycles:
                logger.info(f"Event stream for run {run_id} closed after {idle_cycles} idle polls")
                return
            await asyncio.sleep(poll_interval)


def build_mailer(config: Settings) -> Optional[Mailer]:
    sendgrid = config.sendgrid
    if not (sendgrid.api_key and sendgrid.from_email):
        logger.info("SendGrid is not configured; invoice e-mails are disabled")
        return None
    return SendGridMailer(api_key=sendgrid.api_key, from_email=sendgrid.from_email, from_name=sendgrid.from_name)


def build_reasoning(config: Settings) -> Optional[ReasoningProvider]:
    openai = config.openai
    if not openai.api_key:
        logger.info("OPENAI_API_KEY is not set; the guided planner falls back to the simple planner")
        return None
    return PydanticAIReasoningProvider(openai.planner_model)


_runtime_service: Optional[RuntimeService] = None


def get_runtime_service() -> RuntimeService:
    """
    Dependency provider for the process-wide ``RuntimeService``.

    Built on first use from ``settings`` and the global session factory.
    """
    global _runtime_service
    if _runtime_service is None:
        rate_limit = settings.rate_limit
        manager = build_run_manager(
            session_factory=async_session_maker,
            mailer=build_mailer(settings),
            reasoning=build_reasoning(settings),
            default_planner=PlannerKind(settings.default_planner) if settings.default_planner else None,
            max_runs=rate_limit.max_runs,
            window_seconds=rate_limit.window_seconds,
        )
        _runtime_service = RuntimeService(
            manager,
            SqlRunRepository(async_session_maker),
            SqlEventRepository(async_session_maker),
        )
    return _runtime_service
