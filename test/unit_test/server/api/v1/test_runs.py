"""
Unit tests for the Planner Runs API endpoints.

Covers:
- Run admission: creation, idempotency (body and header), refusals
- Failed runs surfacing as 502 with the run id
- Shop-scoped listing, details and event log
- The SSE endpoint: resume position and event framing
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from shopfloor_ai.agent_core.admission import CallerIdentity, Identity
from shopfloor_ai.server.api.v1 import runs
from shopfloor_ai.server.api.v1.runs import parse_last_event_id


def _brake_job(shop, **extra) -> dict:
    context = {"customerId": shop.customer_id, "vehicleId": shop.vehicle_id, "lineDescription": "Brake pads"}
    context.update(extra)
    return {"goal": "Brake job", "context": context, "planner": "simple"}


# =====================================================================
# POST /api/v1/runs/
# =====================================================================


@pytest.mark.asyncio
async def test_create_run(client, headers, shop):
    response = await client.post("/api/v1/runs/", json=_brake_job(shop), headers=headers)

    assert response.status_code == 201
    data = response.json()
    assert data["already_existed"] is False
    assert data["status"] == "succeeded"
    assert data["run_id"]


@pytest.mark.asyncio
async def test_create_run_idempotency_key_in_body(client, headers, shop):
    body = {**_brake_job(shop), "idempotencyKey": "req-1"}

    first = await client.post("/api/v1/runs/", json=body, headers=headers)
    second = await client.post("/api/v1/runs/", json=body, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["run_id"] == first.json()["run_id"]
    assert second.json()["already_existed"] is True


@pytest.mark.asyncio
async def test_create_run_idempotency_key_header(client, headers, shop):
    keyed = {**headers, "Idempotency-Key": "req-2"}

    first = await client.post("/api/v1/runs/", json=_brake_job(shop), headers=keyed)
    second = await client.post("/api/v1/runs/", json=_brake_job(shop), headers=keyed)

    assert second.status_code == 200
    assert second.json()["run_id"] == first.json()["run_id"]
    listed = await client.get("/api/v1/runs/", headers=headers)
    assert len(listed.json()) == 1


@pytest.mark.asyncio
async def test_create_run_without_goal_is_422(client, headers):
    response = await client.post("/api/v1/runs/", json={"goal": ""}, headers=headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_run_with_mistyped_context_is_422(client, headers, shop):
    body = _brake_job(shop, laborHours="two")
    response = await client.post("/api/v1/runs/", json=body, headers=headers)
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "caller_headers,status_code",
    [
        ({}, 401),
        ({"X-User-Id": "nobody"}, 401),
        ({"X-User-Id": "user-3"}, 403),
        ({"X-User-Id": "user-1", "X-Shop-Id": "shop-2"}, 403),
    ],
)
async def test_create_run_refused(client, caller_headers, status_code):
    response = await client.post("/api/v1/runs/", json={"goal": "Anything"}, headers=caller_headers)

    assert response.status_code == status_code
    assert response.json()["detail"]


@pytest.mark.asyncio
async def test_create_run_rate_limited(client, headers):
    for _ in range(3):
        assert (await client.post("/api/v1/runs/", json={"goal": "Look around"}, headers=headers)).status_code == 201

    response = await client.post("/api/v1/runs/", json={"goal": "One more"}, headers=headers)

    assert response.status_code == 429
    assert len((await client.get("/api/v1/runs/", headers=headers)).json()) == 3


@pytest.mark.asyncio
async def test_failed_tool_is_502_with_run_id(client, headers, shop, mailer):
    mailer.fail = True

    response = await client.post(
        "/api/v1/runs/", json=_brake_job(shop, emailInvoiceTo="jane@example.com"), headers=headers
    )

    assert response.status_code == 502
    data = response.json()
    assert data["tool"] == "email_invoice"
    assert data["code"] == "unavailable"

    run = await client.get(f"/api/v1/runs/{data['run_id']}", headers=headers)
    assert run.json()["status"] == "failed"
    events = (await client.get(f"/api/v1/runs/{data['run_id']}/events", headers=headers)).json()
    assert events[-1]["kind"] == "error"


@pytest.mark.asyncio
async def test_cross_shop_reference_is_502_forbidden(client, headers, shop):
    body = {"goal": "Sneaky", "context": {"customerId": shop.other_customer_id, "vehicleId": shop.other_vehicle_id}}

    response = await client.post("/api/v1/runs/", json=body, headers=headers)

    assert response.status_code == 502
    assert response.json()["code"] == "forbidden"


# =====================================================================
# Reads
# =====================================================================


@pytest.mark.asyncio
async def test_list_and_get_are_shop_scoped(client, headers, shop):
    mine = (await client.post("/api/v1/runs/", json=_brake_job(shop), headers=headers)).json()["run_id"]
    theirs = (
        await client.post("/api/v1/runs/", json={"goal": "Elsewhere"}, headers={"X-User-Id": shop.other_user_id})
    ).json()["run_id"]

    listed = await client.get("/api/v1/runs/", headers=headers)
    assert [r["id"] for r in listed.json()] == [mine]

    detail = await client.get(f"/api/v1/runs/{mine}", headers=headers)
    assert detail.status_code == 200
    assert detail.json()["tenant_id"] == shop.shop_id
    assert detail.json()["planner"] == "simple"

    assert (await client.get(f"/api/v1/runs/{theirs}", headers=headers)).status_code == 404
    assert (await client.get(f"/api/v1/runs/{theirs}/events", headers=headers)).status_code == 404
    assert (await client.get(f"/api/v1/runs/{theirs}/stream", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_reads_require_identity(client):
    assert (await client.get("/api/v1/runs/")).status_code == 401
    assert (await client.get("/api/v1/runs/some-id", headers={"X-User-Id": "user-3"})).status_code == 403


@pytest.mark.asyncio
async def test_get_missing_run_is_404(client, headers):
    response = await client.get("/api/v1/runs/does-not-exist", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Run not found"


@pytest.mark.asyncio
async def test_list_events_in_step_order(client, headers, shop):
    run_id = (await client.post("/api/v1/runs/", json=_brake_job(shop), headers=headers)).json()["run_id"]

    response = await client.get(f"/api/v1/runs/{run_id}/events", headers=headers)
    events = response.json()
    assert [e["step"] for e in events] == [1, 2, 3, 4, 5, 6]
    assert [e["kind"] for e in events] == ["plan", "tool_call", "tool_result", "tool_call", "tool_result", "final"]
    assert events[1]["content"] == {
        "kind": "tool_call",
        "name": "create_work_order",
        "input": {"customer_id": shop.customer_id, "vehicle_id": shop.vehicle_id, "type": "inspection"},
    }

    later = await client.get(f"/api/v1/runs/{run_id}/events", params={"after_step": 4}, headers=headers)
    assert [e["step"] for e in later.json()] == [5, 6]


# =====================================================================
# Streaming
# =====================================================================


@pytest.mark.parametrize(
    "value,expected",
    [(None, 0), ("3", 3), (" 7 ", 7), ("-2", 0), ("abc", 0)],
)
def test_parse_last_event_id(value, expected):
    assert parse_last_event_id(value) == expected


@pytest.mark.asyncio
async def test_stream_resumes_after_last_event_id(service, shop):
    identity = Identity(tenant_id=shop.shop_id, user_id=shop.user_id)
    context = {"customerId": shop.customer_id, "vehicleId": shop.vehicle_id}
    result = await service.manager.start_run("Brake job", context, CallerIdentity(user_id=shop.user_id))
    request = MagicMock()
    request.is_disconnected = AsyncMock(return_value=False)

    response = await runs.stream_run_events(result.run_id, request, identity, service, last_event_id="2")
    messages = [message async for message in response.body_iterator]

    assert [m["id"] for m in messages] == ["3", "4"]
    assert [m["event"] for m in messages] == ["tool_result", "final"]
    assert json.loads(messages[-1]["data"]) == {"kind": "final", "text": "Done."}


@pytest.mark.asyncio
async def test_stream_stops_when_client_disconnects(service, shop):
    identity = Identity(tenant_id=shop.shop_id, user_id=shop.user_id)
    result = await service.manager.start_run("Look", {}, CallerIdentity(user_id=shop.user_id))
    request = MagicMock()
    request.is_disconnected = AsyncMock(return_value=True)

    response = await runs.stream_run_events(result.run_id, request, identity, service, last_event_id=None)

    assert [message async for message in response.body_iterator] == []
