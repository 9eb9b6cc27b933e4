"""
Runtime Exception Handlers.

Translate the agent core's error taxonomy into HTTP responses:

- ``NotAuthenticated`` -> 401
- ``NoActiveTenant`` -> 403
- ``RateLimited`` -> 429
- ``RunFailed`` -> 502 when a tool failed, 500 otherwise; the body always
  carries the failed run's id so clients can read its event log.

Output-contract violations and unexpected errors never leak their details.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from shopfloor_ai.agent_core.errors import (
    AdmissionError,
    InvalidInput,
    NoActiveTenant,
    NotAuthenticated,
    RateLimited,
    RunFailed,
    ToolExecutionFailed,
    UnknownTool,
)
from shopfloor_ai.core.logging_config import get_logger

logger = get_logger(__name__)


async def admission_exception_handler(request: Request, exc: AdmissionError) -> JSONResponse:
    if isinstance(exc, NotAuthenticated):
        status_code = 401
    elif isinstance(exc, NoActiveTenant):
        status_code = 403
    elif isinstance(exc, RateLimited):
        status_code = 429
    else:
        status_code = 400
    logger.info(f"Refused {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def run_failed_exception_handler(request: Request, exc: RunFailed) -> JSONResponse:
    error = exc.error
    if isinstance(error, ToolExecutionFailed):
        status_code = 502
        content = {"detail": error.message, "tool": error.tool_name, "code": error.code}
    elif isinstance(error, (InvalidInput, UnknownTool)):
        status_code = 500
        content = {"detail": str(error)}
    else:
        status_code = 500
        content = {"detail": "The run failed unexpectedly"}
    logger.warning(f"Run {exc.run_id} failed in {request.method} {request.url.path}: {type(error).__name__}")
    return JSONResponse(status_code=status_code, content={**content, "run_id": exc.run_id})
