import pytest

from shopfloor_ai.agent_core.admission import CallerIdentity, Identity
from shopfloor_ai.agent_core.planning import PydanticAIReasoningProvider
from shopfloor_ai.agent_core.schemas.domain import EventKind, PlannerEventRecord, PlannerRun
from shopfloor_ai.agent_core.tools import SendGridMailer
from shopfloor_ai.server.core.config import Settings
from shopfloor_ai.server.services.deps import get_caller
from shopfloor_ai.server.services.runtime import RuntimeService, build_mailer, build_reasoning


async def _running_run(service: RuntimeService, steps: int) -> PlannerRun:
    run, _ = await service.runs.create(PlannerRun(tenant_id="shop-1", user_id="user-1", goal="Watch"))
    for step in range(1, steps + 1):
        await service.events.append(PlannerEventRecord(run_id=run.id, step=step, kind=EventKind.plan))
    return run


class TestStreamEvents:
    @pytest.mark.asyncio
    async def test_drains_a_finished_run_then_stops(self, service: RuntimeService):
        run = await _running_run(service, steps=3)
        await service.runs.update_status(run.id, status="succeeded")

        steps = [e.step async for e in service.stream_events(run.id, poll_interval=0)]

        assert steps == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_resumes_after_step(self, service: RuntimeService):
        run = await _running_run(service, steps=3)
        await service.runs.update_status(run.id, status="failed")

        steps = [e.step async for e in service.stream_events(run.id, after_step=2, poll_interval=0)]

        assert steps == [3]

    @pytest.mark.asyncio
    async def test_idle_running_run_closes_after_max_idle_cycles(self, service: RuntimeService):
        run = await _running_run(service, steps=1)

        steps = [e.step async for e in service.stream_events(run.id, poll_interval=0, max_idle_cycles=2)]

        assert steps == [1]

    @pytest.mark.asyncio
    async def test_unknown_run_yields_nothing(self, service: RuntimeService):
        assert [e async for e in service.stream_events("missing", poll_interval=0)] == []


class TestReads:
    @pytest.mark.asyncio
    async def test_other_shop_run_looks_missing(self, service: RuntimeService, shop):
        result = await service.start_run(
            goal="Elsewhere", context={}, caller=CallerIdentity(user_id=shop.other_user_id)
        )

        mine = Identity(tenant_id=shop.shop_id, user_id=shop.user_id)
        theirs = Identity(tenant_id=shop.other_shop_id, user_id=shop.other_user_id)
        assert await service.get_run(mine, result.run_id) is None
        assert (await service.get_run(theirs, result.run_id)).id == result.run_id
        assert await service.list_runs(mine) == []

    @pytest.mark.asyncio
    async def test_resolve_uses_profile_shop(self, service: RuntimeService, shop):
        identity = await service.resolve(CallerIdentity(user_id=shop.user_id))
        assert identity.tenant_id == shop.shop_id


class TestCollaborators:
    def test_mailer_disabled_without_credentials(self):
        assert build_mailer(Settings(SENDGRID_API_KEY="key")) is None
        assert build_mailer(Settings(SENDGRID_FROM_EMAIL="shop@example.com")) is None

    def test_mailer_built_from_settings(self):
        mailer = build_mailer(Settings(SENDGRID_API_KEY="key", SENDGRID_FROM_EMAIL="shop@example.com"))
        assert isinstance(mailer, SendGridMailer)

    def test_reasoning_requires_openai_key(self):
        assert build_reasoning(Settings(OPENAI_API_KEY=None)) is None
        provider = build_reasoning(Settings(OPENAI_API_KEY="sk-test", SHOPFLOOR_AI_PLANNER_MODEL="openai:gpt-4o"))
        assert isinstance(provider, PydanticAIReasoningProvider)


class TestGetCaller:
    def test_reads_headers(self):
        caller = get_caller(x_user_id="user-1", x_shop_id="shop-1")
        assert caller == CallerIdentity(user_id="user-1", tenant_hint="shop-1")

    def test_blank_headers_are_absent(self):
        assert get_caller(x_user_id="", x_shop_id="") == CallerIdentity()
