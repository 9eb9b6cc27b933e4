from __future__ import annotations

"""Tool registry.

The registry maps a tool name to its implementation and owns the single
dispatch primitive, ``invoke``. Every tool call made by a planner goes through
it, which is what makes the input/output contracts hold:

1. unknown name -> ``UnknownTool``
2. input fails ``input_schema`` -> ``InvalidInput`` (the tool body never runs)
3. tool body raises -> ``ToolExecutionFailed`` chained to the original error
4. output fails ``output_schema`` -> ``InvalidOutput``
"""

import logging
import time
from typing import Any, Dict, List, Mapping, Union

from pydantic import BaseModel, ValidationError

from ...core.monitoring import log_tool_invocation
from ..errors import InvalidInput, InvalidOutput, ToolExecutionFailed, ToolFailure, UnknownTool
from ..schemas.domain import ToolName
from .base import Tool, ToolContext

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    In-memory mapping of tool names to implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the tool name.
        - ``get`` raises ``UnknownTool`` if the tool is missing.
        - Registration happens at start-up; the registry is read-only afterwards
          by convention and safe to share across concurrent runs.
    """

    def __init__(self) -> None:
        """Initialize an empty tool registry."""
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """
        Register a tool implementation.

        Args:
            tool: The tool instance to register. It must expose a ``name`` attribute.
        """
        self._tools[_key(tool.name)] = tool

    def get(self, name: Union[str, ToolName]) -> Tool:
        """
        Retrieve a registered tool by name.

        Raises:
            UnknownTool: If no tool is registered with the given name.
        """
        tool = self._tools.get(_key(name))
        if tool is None:
            raise UnknownTool(_key(name))
        return tool

    def has(self, name: Union[str, ToolName]) -> bool:
        """Check if a tool is registered."""
        return _key(name) in self._tools

    def names(self) -> List[str]:
        """Registered tool names, sorted."""
        return sorted(self._tools)

    def definitions(self) -> List[Dict[str, Any]]:
        """Describe every registered tool with its JSON schemas.

        Used to publish the catalog to clients and reasoning providers.
        """
        return [
            {
                "name": name,
                "description": tool.description,
                "input_schema": tool.input_schema.model_json_schema(),
                "output_schema": tool.output_schema.model_json_schema(),
            }
            for name, tool in sorted(self._tools.items())
        ]

    async def invoke(
        self,
        name: Union[str, ToolName],
        raw_input: Union[Mapping[str, Any], BaseModel],
        ctx: ToolContext,
    ) -> BaseModel:
        """
        Validate, execute and validate again.

        Args:
            name: The tool to call.
            raw_input: Unvalidated input, either a mapping or a model.
            ctx: The run's tool context.

        Returns:
            An instance of the tool's ``output_schema``.
        """
        tool = self.get(name)
        tool_name = _key(name)

        try:
            payload = _validate(tool.input_schema, raw_input)
        except ValidationError as e:
            logger.debug(f"Rejected input for tool '{tool_name}': {e.error_count()} error(s)")
            raise InvalidInput(tool_name, e.errors(include_url=False)) from e

        started = time.perf_counter()
        try:
            result = await tool.execute(payload, ctx)
        except ToolFailure as e:
            _record(tool_name, started, ok=False, code=e.code)
            raise ToolExecutionFailed(tool_name, e.message, code=e.code) from e
        except Exception as e:
            _record(tool_name, started, ok=False, code="exception")
            logger.warning(f"Tool '{tool_name}' raised {type(e).__name__}: {e}")
            raise ToolExecutionFailed(tool_name, str(e) or type(e).__name__) from e
        _record(tool_name, started, ok=True)

        try:
            return _validate(tool.output_schema, result)
        except ValidationError as e:
            logger.error(f"Tool '{tool_name}' violated its output schema: {e}")
            raise InvalidOutput(tool_name, e.errors(include_url=False)) from e


def _key(name: Union[str, ToolName]) -> str:
    return name.value if isinstance(name, ToolName) else str(name)


def _validate(schema: type[BaseModel], value: Any) -> BaseModel:
    # model instances, including model_construct() ones, are checked via their dump
    if isinstance(value, BaseModel):
        value = value.model_dump()
    return schema.model_validate(value)


def _record(tool_name: str, started: float, *, ok: bool, code: str | None = None) -> None:
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.debug(f"Tool '{tool_name}' finished ok={ok} in {elapsed_ms:.1f}ms")
    log_tool_invocation(tool_name, ok, elapsed_ms, error_code=code)
