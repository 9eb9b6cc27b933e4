"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for tracing of the
runtime's operations:
- Run admission and completion
- Tool invocations (name, outcome, latency)
- Reasoning-provider calls made through Pydantic AI
- API endpoint, SQLAlchemy and HTTPX tracing

All helpers are no-ops until ``initialize_logfire`` has successfully configured
Logfire, so callers never need to check whether monitoring is enabled.
"""

import logging
import os
from typing import Any, Optional

import logfire
from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Logfire configuration from environment
LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "shopfloor-ai-server")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

# Feature flags
LOGFIRE_TRACE_PYDANTIC_AI = os.getenv("LOGFIRE_TRACE_PYDANTIC_AI", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_SQLALCHEMY = os.getenv("LOGFIRE_TRACE_SQLALCHEMY", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_HTTPX = os.getenv("LOGFIRE_TRACE_HTTPX", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_FASTAPI = os.getenv("LOGFIRE_TRACE_FASTAPI", "true").lower() in ("true", "1", "yes")

_active = False


def is_enabled() -> bool:
    """Return True once Logfire has been configured for this process."""
    return _active


def initialize_logfire(app: FastAPI | None = None) -> None:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    Instrumentation is added for Pydantic AI, SQLAlchemy, HTTPX and (when
    ``app`` is given) FastAPI, each behind its own feature flag. Nothing happens
    unless ``LOGFIRE_ENABLED`` is set and ``LOGFIRE_TOKEN`` is provided.

    Args:
        app: FastAPI application instance for endpoint instrumentation (optional).
    """
    global _active

    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return

    if not LOGFIRE_TOKEN:
        logger.warning("Logfire is enabled but LOGFIRE_TOKEN is not set; monitoring stays off.")
        return

    try:
        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return

    if LOGFIRE_TRACE_PYDANTIC_AI:
        try:
            logfire.instrument_pydantic_ai()
            logger.info("Logfire: Pydantic AI instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument Pydantic AI: {e}")

    if LOGFIRE_TRACE_SQLALCHEMY:
        try:
            logfire.instrument_sqlalchemy()
            logger.info("Logfire: SQLAlchemy instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument SQLAlchemy: {e}")

    if LOGFIRE_TRACE_HTTPX:
        try:
            logfire.instrument_httpx()
            logger.info("Logfire: HTTPX instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument HTTPX: {e}")

    if LOGFIRE_TRACE_FASTAPI and app is not None:
        try:
            logfire.instrument_fastapi(app=app)
            logger.info("Logfire: FastAPI instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument FastAPI: {e}")

    _active = True
    logger.info(f"Logfire monitoring initialized: environment={LOGFIRE_ENVIRONMENT}, service={LOGFIRE_SERVICE_NAME}")


def log_planner_run(run_id: str, tenant_id: str, planner: str, goal: str) -> None:
    """
    Log the start of a planner run.

    Args:
        run_id: The unique identifier for the run
        tenant_id: The tenant (shop) identifier
        planner: The planner kind selected at admission
        goal: The caller's goal text
    """
    if not _active:
        return
    logfire.info("Planner run started", run_id=run_id, tenant_id=tenant_id, planner=planner, goal=goal)


def log_run_completion(run_id: str, status: str, duration_ms: float) -> None:
    """
    Log the terminal transition of a run.

    Args:
        run_id: The unique identifier for the run
        status: The terminal status (succeeded, failed)
        duration_ms: Wall-clock duration of the planner in milliseconds
    """
    if not _active:
        return
    logfire.info("Planner run completed", run_id=run_id, status=status, duration_ms=duration_ms)


def log_tool_invocation(tool_name: str, ok: bool, duration_ms: float, error_code: Optional[str] = None) -> None:
    """Log a single tool dispatch with its outcome and latency."""
    if not _active:
        return
    logfire.info(
        "Tool invoked",
        tool_name=tool_name,
        ok=ok,
        duration_ms=duration_ms,
        error_code=error_code,
    )


def log_error(error_type: str, error_message: str, context: Optional[dict[str, Any]] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    if not _active:
        return
    logfire.error(f"{error_type}: {error_message}", **(context or {}))
