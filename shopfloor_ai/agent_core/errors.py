"""Error types for the tool invocation and planning runtime.

The hierarchy mirrors the three places a run can stop:

- admission (identity, tenancy, rate limit) before any run exists,
- tool dispatch (unknown tool, schema violations, failing tool bodies),
- the run as a whole, surfaced to callers as ``RunFailed`` after the failure
  has been recorded in the run's event log.

A planner deciding it cannot proceed is not an error; it ends the plan with a
``final`` event instead.
"""

from __future__ import annotations

from typing import Any, Optional


class RuntimeAgentError(Exception):
    """Base error for all runtime exceptions."""


class AdmissionError(RuntimeAgentError):
    """Raised when a run cannot be admitted. No run record exists afterwards."""


class NotAuthenticated(AdmissionError):
    """Raised when the caller cannot be resolved to a user."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class NoActiveTenant(AdmissionError):
    """Raised when the resolved user has no active shop."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User '{user_id}' has no active shop")


class RateLimited(AdmissionError):
    """Raised when the rate-limit gate refuses a new run."""

    def __init__(self, message: str = "Too many requests, try again in a moment.") -> None:
        super().__init__(message)


class UnknownTool(RuntimeAgentError):
    """Raised when a tool name is not registered."""

    def __init__(self, name: str) -> None:
        self.tool_name = name
        super().__init__(f"Unknown tool: '{name}'")


class ToolValidationError(RuntimeAgentError):
    """Base error for schema violations at the tool boundary."""

    def __init__(self, tool_name: str, errors: list[dict[str, Any]], message: str) -> None:
        self.tool_name = tool_name
        self.errors = errors
        super().__init__(message)


class InvalidInput(ToolValidationError):
    """Raised when raw input does not satisfy a tool's input schema.

    The tool body is never reached when this is raised.
    """

    def __init__(self, tool_name: str, errors: list[dict[str, Any]]) -> None:
        super().__init__(tool_name, errors, f"Invalid input for tool '{tool_name}': {_summarize(errors)}")


class InvalidOutput(ToolValidationError):
    """Raised when a tool returns a value that violates its output schema.

    This is a contract violation inside the runtime, not a user error.
    """

    def __init__(self, tool_name: str, errors: list[dict[str, Any]]) -> None:
        super().__init__(tool_name, errors, f"Tool '{tool_name}' produced invalid output: {_summarize(errors)}")


class ToolFailure(RuntimeAgentError):
    """Raised by tool bodies for domain-level failures.

    ``code`` is a short machine-readable discriminator (``not_found``,
    ``forbidden``, ``duplicate``, ``unavailable``) that planners may branch on.
    """

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class ToolExecutionFailed(RuntimeAgentError):
    """Raised by the registry when a tool body raised."""

    def __init__(self, tool_name: str, message: str, *, code: Optional[str] = None) -> None:
        self.tool_name = tool_name
        self.message = message
        self.code = code
        super().__init__(f"Tool '{tool_name}' failed: {message}")


class RunFailed(RuntimeAgentError):
    """Raised to the caller after a run has been finalized as ``failed``."""

    def __init__(self, run_id: str, error: BaseException) -> None:
        self.run_id = run_id
        self.error = error
        super().__init__(f"Run '{run_id}' failed: {error}")


def _summarize(errors: list[dict[str, Any]]) -> str:
    parts = []
    for err in errors[:3]:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    if len(errors) > 3:
        parts.append(f"... ({len(errors) - 3} more)")
    return "; ".join(parts)
