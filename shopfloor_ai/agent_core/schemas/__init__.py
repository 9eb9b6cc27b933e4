"""Schemas and DTOs for the agent core."""

from .context import InspectionSpec, LineSpec, PlanContext
from .domain import (
    EventKind,
    PlannerEventRecord,
    PlannerKind,
    PlannerRun,
    RunStatus,
    ToolName,
)
from .events import (
    ErrorEvent,
    FinalEvent,
    PlanEvent,
    PlannerEvent,
    ToolCallEvent,
    ToolResultEvent,
    parse_event,
)

__all__ = [
    "PlannerRun",
    "PlannerEventRecord",
    "RunStatus",
    "EventKind",
    "PlannerKind",
    "ToolName",
    "PlanContext",
    "LineSpec",
    "InspectionSpec",
    "PlannerEvent",
    "PlanEvent",
    "ToolCallEvent",
    "ToolResultEvent",
    "FinalEvent",
    "ErrorEvent",
    "parse_event",
]
