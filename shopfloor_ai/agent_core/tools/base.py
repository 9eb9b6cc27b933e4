from __future__ import annotations

"""Tool protocol and execution context.

A tool is the unit of side-effecting work a planner can request: create a
work order, add one line, send one e-mail. Each tool declares

- ``name``: a member of ``ToolName`` (the closed catalog),
- ``description``: human-readable text for catalogs and reasoning providers,
- ``input_schema`` / ``output_schema``: pydantic model classes,
- ``execute(payload, ctx)``: the body.

Tools are never called directly by planners. ``ToolRegistry.invoke`` validates
raw input against ``input_schema`` before ``execute`` runs and validates the
returned value against ``output_schema`` afterwards, so tool bodies:

- may assume ``payload`` is an instance of ``input_schema``,
- only check domain rules (existence, tenant ownership, uniqueness),
- report domain failures by raising ``ToolFailure``.

A tool performs one coherent unit of work. Multi-step business processes are
composed by planners.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Protocol, Type

from pydantic import BaseModel

from ..schemas.domain import ToolName


@dataclass(frozen=True)
class ToolContext:
    """Per-run ambient data passed unchanged to every tool call.

    Attributes
    ----------
    tenant_id:
        The shop the run acts for. Every read and write is scoped to it.
    user_id:
        The acting user, recorded as author on created records.
    """

    tenant_id: str
    user_id: str


class Tool(Protocol):
    """Protocol for tool implementations."""

    name: ClassVar[ToolName]
    description: ClassVar[str]
    input_schema: ClassVar[Type[BaseModel]]
    output_schema: ClassVar[Type[BaseModel]]

    async def execute(self, payload: Any, ctx: ToolContext) -> Any: ...
