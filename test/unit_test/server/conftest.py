"""Server test fixtures: a ``RuntimeService`` over the seeded SQLite shop and an ASGI client."""

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from shopfloor_ai.agent_core.factory import build_run_manager
from shopfloor_ai.agent_core.repos.sql import SqlEventRepository, SqlRunRepository
from shopfloor_ai.server.main import app
from shopfloor_ai.server.services.runtime import RuntimeService, get_runtime_service


@pytest.fixture
def service(session_factory, mailer) -> RuntimeService:
    manager = build_run_manager(session_factory=session_factory, mailer=mailer, max_runs=3, window_seconds=60)
    return RuntimeService(manager, SqlRunRepository(session_factory), SqlEventRepository(session_factory))


@pytest.fixture
async def client(service: RuntimeService, shop) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the runtime service overridden.

    Unhandled exceptions are turned into responses by the app's handlers
    instead of being re-raised into the test.
    """
    app.dependency_overrides[get_runtime_service] = lambda: service
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://localhost") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def headers(shop) -> dict:
    return {"X-User-Id": shop.user_id}
