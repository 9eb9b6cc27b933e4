from __future__ import annotations

"""Runtime dependency bundle and LangGraph state types.

- ``RuntimeDeps`` collects the collaborators the run manager needs.
- ``_GraphState`` is the state passed between LangGraph nodes for one run.
- ``StartRunResult`` is what callers get back from ``RunManager.start_run``.
"""

from dataclasses import dataclass
from typing import NotRequired, Optional, Required, TypedDict

from ..admission import IdentityResolver, RateLimitGate
from ..planning.reasoning import ReasoningProvider
from ..repos import EventRepository, RunRepository
from ..schemas.context import PlanContext
from ..schemas.domain import PlannerKind
from ..tools.base import ToolContext
from ..tools.registry import ToolRegistry
from .sink import RunEventSink


@dataclass(frozen=True)
class RuntimeDeps:
    """Dependency bundle for ``RunManager``.

    Typically built by ``shopfloor_ai.agent_core.factory.build_run_manager``
    and shared by every run of the process.

    - ``runs`` / ``events``: durable run and event stores.
    - ``identity`` / ``rate_limiter``: admission collaborators.
    - ``registry``: the tools planners may call.
    - ``reasoning``: optional provider for the guided planner.
    - ``default_planner``: used when a caller does not pick one.
    """

    runs: RunRepository
    events: EventRepository
    identity: IdentityResolver
    rate_limiter: RateLimitGate
    registry: ToolRegistry

    reasoning: Optional[ReasoningProvider] = None
    default_planner: Optional[PlannerKind] = None


@dataclass(frozen=True)
class StartRunResult:
    """Outcome of a successful ``start_run``.

    ``already_existed`` is True when the idempotency key matched an earlier
    run; that run's planner was not executed again.
    """

    run_id: str
    already_existed: bool = False


class _GraphState(TypedDict):
    """LangGraph state for a single run.

    Required keys:

    - ``run_id``, ``goal``, ``context``, ``planner``: what to execute.
    - ``tool_ctx``: the tenant/user scope handed to every tool.
    - ``sink``: numbers and persists the run's events.

    Optional keys:

    - ``_error``: set by ``execute`` when the planner raised.
    - ``_terminal_status``: set by the terminal node.
    """

    run_id: Required[str]
    goal: Required[str]
    context: Required[PlanContext]
    planner: Required[PlannerKind]
    tool_ctx: Required[ToolContext]
    sink: Required[RunEventSink]
    _error: NotRequired[Optional[BaseException]]
    _terminal_status: NotRequired[str]
