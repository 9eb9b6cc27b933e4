"""Tool invocation and planning runtime.

This package contains the "engine room" of ShopFloor-AI.

Design overview
---------------

- Tools (``agent_core.tools``) are named operations with pydantic input and
  output schemas. ``ToolRegistry.invoke`` is the only way to call one.
- Planners (``agent_core.planning``) compose tool calls for a goal and narrate
  each step as a typed event.
- ``agent_core.runtime.RunManager`` admits runs (identity, rate limit,
  idempotency key), executes a planner through a LangGraph state machine and
  persists every event before the next step starts.

Typical usage
-------------

Most applications should use ``agent_core.factory.build_run_manager``:

1. Build an async SQLAlchemy session factory.
2. Build the manager (registry, repositories, optional reasoning provider).
3. Call ``RunManager.start_run`` per request.
"""

from .admission import CallerIdentity, Identity
from .errors import (
    AdmissionError,
    InvalidInput,
    InvalidOutput,
    NoActiveTenant,
    NotAuthenticated,
    RateLimited,
    RunFailed,
    ToolExecutionFailed,
    ToolFailure,
    UnknownTool,
)
from .runtime import RunManager, RuntimeDeps, StartRunResult
from .schemas.context import PlanContext
from .schemas.domain import EventKind, PlannerEventRecord, PlannerKind, PlannerRun, RunStatus, ToolName

__all__ = [
    "CallerIdentity",
    "Identity",
    "PlanContext",
    "PlannerRun",
    "PlannerEventRecord",
    "PlannerKind",
    "RunStatus",
    "EventKind",
    "ToolName",
    "RunManager",
    "RuntimeDeps",
    "StartRunResult",
    "AdmissionError",
    "NotAuthenticated",
    "NoActiveTenant",
    "RateLimited",
    "UnknownTool",
    "InvalidInput",
    "InvalidOutput",
    "ToolFailure",
    "ToolExecutionFailed",
    "RunFailed",
]
