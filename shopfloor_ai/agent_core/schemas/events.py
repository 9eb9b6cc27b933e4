"""Typed planner events.

A planner narrates its work through exactly five event shapes, discriminated
by ``kind``:

- ``plan``: free-text statement of intent, emitted first.
- ``tool_call``: emitted immediately before a tool is invoked.
- ``tool_result``: emitted immediately after the tool returned.
- ``final``: free-text completion (or guidance when the plan stopped early).
- ``error``: written by the run manager, never by planners, when a run fails.

The ``content`` column of a persisted event is the JSON dump of one of these
models, so ``parse_event`` can rebuild the typed event from storage.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Union

from pydantic import Field, TypeAdapter

from .base import BaseSchema


class PlanEvent(BaseSchema):
    kind: Literal["plan"] = "plan"
    text: str


class ToolCallEvent(BaseSchema):
    kind: Literal["tool_call"] = "tool_call"
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(BaseSchema):
    kind: Literal["tool_result"] = "tool_result"
    name: str
    output: Dict[str, Any] = Field(default_factory=dict)


class FinalEvent(BaseSchema):
    kind: Literal["final"] = "final"
    text: str


class ErrorEvent(BaseSchema):
    kind: Literal["error"] = "error"
    message: str


PlannerEvent = Annotated[
    Union[PlanEvent, ToolCallEvent, ToolResultEvent, FinalEvent, ErrorEvent],
    Field(discriminator="kind"),
]

_event_adapter: TypeAdapter[PlannerEvent] = TypeAdapter(PlannerEvent)


def parse_event(content: Dict[str, Any]) -> PlannerEvent:
    """Rebuild a typed event from its persisted JSON content."""
    return _event_adapter.validate_python(content)
