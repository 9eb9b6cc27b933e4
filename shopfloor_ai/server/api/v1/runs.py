"""
Planner Runs API Endpoints.

This module provides the primary interface for starting planner runs and for
reading their audit trail.

Includes:
- Run admission (identity, rate limit, idempotency key) and execution
- Run listing and details, scoped to the caller's shop
- The ordered event log of a run
- Real-time event streaming via Server-Sent Events (SSE) with
  ``Last-Event-ID`` resume
"""

import json
from typing import Annotated, List, Optional

from fastapi import APIRouter, Header, HTTPException, Query, Request, Response
from sse_starlette.sse import EventSourceResponse

from shopfloor_ai.agent_core.schemas.domain import PlannerEventRecord, PlannerRun, RunStatus
from shopfloor_ai.core.logging_config import get_logger
from shopfloor_ai.server.schemas import RunCreate, RunCreated
from shopfloor_ai.server.services.deps import CallerDep, IdentityDep, RuntimeServiceDep

logger = get_logger(__name__)
router = APIRouter()


def parse_last_event_id(value: Optional[str]) -> int:
    """Turn a ``Last-Event-ID`` header into the step to resume after (0 when absent or malformed)."""
    if value is None:
        return 0
    try:
        return max(int(value.strip()), 0)
    except ValueError:
        logger.debug(f"Ignoring malformed Last-Event-ID: {value!r}")
        return 0


@router.post(
    "/",
    response_model=RunCreated,
    status_code=201,
    summary="Start Planner Run",
    description="Admit a run for the calling user and execute the selected planner.",
    response_description="The run id, whether it already existed, and its status.",
    responses={
        200: {"description": "Idempotency key matched an existing run"},
        401: {"description": "Caller is not authenticated"},
        403: {"description": "Caller has no active shop"},
        429: {"description": "Too many runs started recently"},
        502: {"description": "A tool failed; the run is recorded as failed"},
    },
)
async def create_run(
    run_in: RunCreate,
    response: Response,
    caller: CallerDep,
    service: RuntimeServiceDep,
    idempotency_key: Annotated[Optional[str], Header()] = None,
):
    """
    Start a planner run.

    - **goal**: What to do, in free text.
    - **context**: Optional hints such as customerId, vehicleId, lineDescription.
    - **idempotencyKey**: Optional; the ``Idempotency-Key`` header is used when
      the body does not carry one.
    - **planner**: Optional planner choice (simple, guided, approvals, fleet).
    """
    key = run_in.idempotency_key or idempotency_key
    result = await service.start_run(
        goal=run_in.goal,
        context=run_in.context,
        caller=caller,
        idempotency_key=key,
        planner=run_in.planner,
    )

    run = await service.runs.get(result.run_id)
    status = run.status if run is not None else RunStatus.running
    if result.already_existed:
        response.status_code = 200
        logger.info(f"Returning existing run {result.run_id} for idempotency key '{key}'")
    return RunCreated(run_id=result.run_id, already_existed=result.already_existed, status=status)


@router.get(
    "/",
    response_model=List[PlannerRun],
    summary="List Runs",
    description="List the runs of the caller's shop, newest first.",
)
async def list_runs(
    identity: IdentityDep,
    service: RuntimeServiceDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_runs(identity, limit=limit, offset=offset)


@router.get(
    "/{run_id}",
    response_model=PlannerRun,
    summary="Get Run Details",
    responses={404: {"description": "Run not found"}},
)
async def get_run(run_id: str, identity: IdentityDep, service: RuntimeServiceDep):
    run = await service.get_run(identity, run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return run


@router.get(
    "/{run_id}/events",
    response_model=List[PlannerEventRecord],
    summary="List Run Events",
    description="Retrieve the ordered event log of a run.",
    responses={404: {"description": "Run not found"}},
)
async def list_run_events(
    run_id: str,
    identity: IdentityDep,
    service: RuntimeServiceDep,
    after_step: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=1000)] = 1000,
):
    """
    List run events.

    Events come back ordered by step. Pass ``after_step`` to page or to fetch
    only what is new since the last call.
    """
    if await service.get_run(identity, run_id) is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return await service.list_events(run_id, after_step=after_step, limit=limit)


@router.get(
    "/{run_id}/stream",
    summary="Stream Run Events",
    description="Subscribe to a Server-Sent Events (SSE) stream for a specific run.",
    response_description="A stream of planner events.",
    responses={
        200: {
            "description": "SSE stream established",
            "content": {
                "text/event-stream": {
                    "example": "id: 1\nevent: plan\ndata: {\"kind\": \"plan\", \"text\": \"Goal: ...\"}\n\n"
                }
            },
        },
        404: {"description": "Run not found"},
    },
)
async def stream_run_events(
    run_id: str,
    request: Request,
    identity: IdentityDep,
    service: RuntimeServiceDep,
    last_event_id: Annotated[Optional[str], Header()] = None,
):
    """
    Stream events for a run via Server-Sent Events (SSE).

    Each message carries the step as ``id``, the event kind as ``event`` and
    the event content as JSON ``data``. Reconnecting clients send
    ``Last-Event-ID`` and receive only later steps. The stream closes once the
    run has finished and every event was delivered.
    """
    if await service.get_run(identity, run_id) is None:
        raise HTTPException(status_code=404, detail="Run not found")

    after_step = parse_last_event_id(last_event_id)
    logger.info(f"Starting event stream for run {run_id} after step {after_step}")

    async def event_generator():
        async for event in service.stream_events(run_id, after_step=after_step):
            if await request.is_disconnected():
                logger.info(f"Client disconnected from stream for run: {run_id}")
                break
            yield {
                "id": str(event.step),
                "event": event.kind.value,
                "data": json.dumps(event.content),
            }

    return EventSourceResponse(event_generator())
