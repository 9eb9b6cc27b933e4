from __future__ import annotations

"""Run lifecycle manager.

``RunManager`` admits a run, executes its planner and records the outcome.

Admission
---------

``start_run`` performs, in order:

1. identity resolution (``NotAuthenticated`` / ``NoActiveTenant``),
2. the rate-limit gate (``RateLimited``; no run is created),
3. idempotency lookup: a known key returns the existing run without
   executing anything,
4. run creation with status ``running``. A concurrent request that wins the
   unique constraint first turns this request into a lookup as well.

Execution model
---------------

Execution is a LangGraph state machine over ``_GraphState``::

    execute --(ok)----> succeed --> END
            --(raised)-> fail -----> END

- ``execute`` runs the selected planner with a ``RunEventSink`` as its
  ``on_event`` callback, so every step is persisted before the next one.
- ``succeed`` moves the run to ``succeeded``.
- ``fail`` appends the single terminal ``error`` event and moves the run to
  ``failed``. Side effects of steps that already ran are kept; nothing is
  compensated.

After a failed run ``start_run`` raises ``RunFailed`` chained to the original
error, so callers always learn the run id.
"""

import logging
import time
from typing import Iterable, Mapping, Optional, Union

from langgraph.graph import END, StateGraph

from ...core.monitoring import log_error, log_planner_run, log_run_completion
from ..admission import CallerIdentity, Identity
from ..errors import InvalidOutput, RateLimited, RunFailed
from ..planning import ApprovalsPlanner, FleetPlanner, MinimalPlanner, Planner, ResolvingPlanner
from ..schemas.context import PlanContext
from ..schemas.domain import PlannerKind, PlannerRun, RunStatus
from ..schemas.events import ErrorEvent
from ..tools.base import ToolContext
from ..tools.registry import ToolRegistry
from .models import RuntimeDeps, StartRunResult, _GraphState
from .sink import EventObserver, RunEventSink

logger = logging.getLogger(__name__)


class RunManager:
    """Admit, execute and finalize planner runs.

    One instance serves all runs of a process; per-run data lives only in the
    graph state, so concurrent ``start_run`` calls do not interfere.
    """

    def __init__(self, deps: RuntimeDeps) -> None:
        """
        Initialize the RunManager.

        Args:
            deps: Repositories, admission collaborators, the tool registry and
                the optional reasoning provider.
        """
        self._deps = deps
        self._planners: dict[PlannerKind, Planner] = {
            PlannerKind.simple: MinimalPlanner(deps.registry),
            PlannerKind.guided: ResolvingPlanner(deps.registry, deps.reasoning),
            PlannerKind.approvals: ApprovalsPlanner(deps.registry),
            PlannerKind.fleet: FleetPlanner(deps.registry),
        }
        self._graph = self._build_graph()

    @property
    def registry(self) -> ToolRegistry:
        """The tool registry shared by all planners."""
        return self._deps.registry

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("execute", self._node_execute)
        g.add_node("succeed", self._node_succeed)
        g.add_node("fail", self._node_fail)

        g.set_entry_point("execute")
        g.add_conditional_edges(
            "execute",
            self._route_after_execute,
            {
                "succeed": "succeed",
                "fail": "fail",
            },
        )
        g.add_edge("succeed", END)
        g.add_edge("fail", END)
        return g.compile()

    def select_planner(self, requested: Optional[PlannerKind] = None) -> PlannerKind:
        """Pick the planner for a run.

        Explicit request first, then the configured default, then ``guided``
        when a reasoning provider is available and ``simple`` otherwise.
        ``guided`` without a reasoning provider falls back to ``simple``.
        """
        kind = requested or self._deps.default_planner
        if kind is None:
            kind = PlannerKind.guided if self._deps.reasoning is not None else PlannerKind.simple
        if kind == PlannerKind.guided and self._deps.reasoning is None:
            logger.info("Guided planner requested without a reasoning provider; using the simple planner")
            kind = PlannerKind.simple
        return kind

    async def resolve(self, caller: CallerIdentity) -> Identity:
        """Resolve a caller with the configured ``IdentityResolver``."""
        return await self._deps.identity.resolve(caller)

    async def start_run(
        self,
        goal: str,
        context: Union[PlanContext, Mapping[str, object], None] = None,
        caller: Optional[CallerIdentity] = None,
        idempotency_key: Optional[str] = None,
        planner: Optional[PlannerKind] = None,
        observers: Iterable[EventObserver] = (),
    ) -> StartRunResult:
        """
        Admit and execute a run.

        Args:
            goal: Free-form goal text.
            context: Plan hints, either a ``PlanContext`` or a raw mapping that
                is validated into one before anything else happens.
            caller: Unverified caller credentials.
            idempotency_key: Optional client key; reusing it returns the
                earlier run instead of executing again.
            planner: Explicit planner choice.
            observers: Extra callbacks notified after each event is stored.

        Returns:
            The run id and whether it already existed.

        Raises:
            AdmissionError: When the run was refused; no run exists.
            RunFailed: When the planner failed; the run is ``failed`` and its
                event log ends with an ``error`` event.
        """
        if not isinstance(context, PlanContext):
            context = PlanContext.model_validate(dict(context or {}))
        key = idempotency_key.strip() if idempotency_key and idempotency_key.strip() else None

        identity = await self.resolve(caller or CallerIdentity())

        if not await self._deps.rate_limiter.allow(identity):
            logger.info(f"Rate limit refused a run for user {identity.user_id} in shop {identity.tenant_id}")
            raise RateLimited()

        if key is not None:
            existing = await self._deps.runs.find_by_idempotency_key(identity.tenant_id, identity.user_id, key)
            if existing is not None:
                logger.info(f"Idempotency key '{key}' matched run {existing.id}; not executing again")
                return StartRunResult(run_id=existing.id, already_existed=True)

        kind = self.select_planner(planner)
        run, created = await self._deps.runs.create(
            PlannerRun(
                tenant_id=identity.tenant_id,
                user_id=identity.user_id,
                goal=goal,
                idempotency_key=key,
                planner=kind,
            )
        )
        if not created:
            return StartRunResult(run_id=run.id, already_existed=True)

        logger.info(f"Run {run.id} started with the {kind.value} planner")
        log_planner_run(run.id, identity.tenant_id, kind.value, goal)

        state: _GraphState = {
            "run_id": run.id,
            "goal": goal,
            "context": context,
            "planner": kind,
            "tool_ctx": ToolContext(tenant_id=identity.tenant_id, user_id=identity.user_id),
            "sink": RunEventSink(run.id, self._deps.events, observers),
            "_error": None,
        }
        started = time.perf_counter()
        final_state = await self._graph.ainvoke(state)
        log_run_completion(
            run.id,
            str(final_state.get("_terminal_status") or RunStatus.succeeded.value),
            (time.perf_counter() - started) * 1000,
        )

        error = final_state.get("_error")
        if error is not None:
            raise RunFailed(run.id, error) from error
        return StartRunResult(run_id=run.id, already_existed=False)

    async def _node_execute(self, state: _GraphState) -> _GraphState:
        """Run the planner; a raised exception is kept in the state for ``fail``."""
        planner = self._planners[state["planner"]]
        try:
            await planner.run(state["goal"], state["context"], state["tool_ctx"], state["sink"])
        except Exception as e:
            logger.warning(f"Run {state['run_id']} failed: {type(e).__name__}: {e}")
            state["_error"] = e
        return state

    async def _node_succeed(self, state: _GraphState) -> _GraphState:
        run_id = state["run_id"]
        await self._deps.runs.update_status(run_id, status=RunStatus.succeeded.value)
        state["_terminal_status"] = RunStatus.succeeded.value
        logger.info(f"Run {run_id} succeeded after {state['sink'].last_step} event(s)")
        return state

    async def _node_fail(self, state: _GraphState) -> _GraphState:
        """Record the failure: one ``error`` event, then status ``failed``."""
        run_id = state["run_id"]
        error = state.get("_error")
        message = error_message(error)
        try:
            await state["sink"].emit(ErrorEvent(message=message))
        except Exception as e:
            # the status update below still marks the run failed
            logger.error(f"Could not record the error event of run {run_id}: {e}", exc_info=True)
        try:
            await self._deps.runs.update_status(run_id, status=RunStatus.failed.value)
        except Exception as e:
            # RunFailed is still raised to the caller
            logger.error(f"Could not mark run {run_id} as failed: {e}", exc_info=True)
        state["_terminal_status"] = RunStatus.failed.value
        log_error(type(error).__name__, message, {"run_id": run_id})
        return state

    def _route_after_execute(self, state: _GraphState) -> str:
        """Route to ``fail`` when the planner raised, else ``succeed``."""
        return "fail" if state.get("_error") is not None else "succeed"


def error_message(error: Optional[BaseException]) -> str:
    """Text recorded in a run's ``error`` event.

    Output-contract violations are internal; only the tool name is exposed.
    """
    if isinstance(error, InvalidOutput):
        return f"Tool '{error.tool_name}' returned an unexpected result"
    return str(error) or type(error).__name__
