"""LangGraph-based run lifecycle runtime.

 The runtime admits a run, executes one planner for it and finalizes its
 status, with these guarantees:

 - at most one run per ``(tenant, user, idempotency key)``;
 - every planner event is persisted with a gap-free step number before the
   planner continues;
 - a failed run ends with exactly one ``error`` event and status ``failed``,
   and the caller receives ``RunFailed`` with the run id.

 The main entry point is ``RunManager``; its collaborators are bundled in
 ``RuntimeDeps``.
 """

from .manager import RunManager
from .models import RuntimeDeps, StartRunResult
from .sink import EventObserver, RunEventSink

__all__ = [
    "RunManager",
    "RuntimeDeps",
    "StartRunResult",
    "RunEventSink",
    "EventObserver",
]
