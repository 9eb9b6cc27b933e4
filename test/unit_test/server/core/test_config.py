"""Unit tests for the settings model and its grouped views."""

import pytest

from shopfloor_ai.server.core.config import OpenAIConfig, RateLimitConfig, SendGridConfig, Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "SHOPFLOOR_AI_SERVER_PORT",
        "SHOPFLOOR_AI_LOG_LEVEL",
        "SHOPFLOOR_AI_DEFAULT_PLANNER",
        "RUN_RATE_LIMIT_MAX_RUNS",
        "RUN_RATE_LIMIT_WINDOW_SECONDS",
        "SENDGRID_API_KEY",
        "SENDGRID_FROM_EMAIL",
        "SENDGRID_FROM_NAME",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.server_port == 8000
        assert settings.log_level == "INFO"
        assert settings.default_planner is None
        assert settings.rate_limit == RateLimitConfig(max_runs=10, window_seconds=60)
        assert settings.sendgrid.api_key is None
        assert settings.openai.planner_model == "openai:gpt-4o-mini"


class TestEnvironment:
    def test_reads_aliased_variables(self, clean_env):
        clean_env.setenv("SHOPFLOOR_AI_SERVER_PORT", "9001")
        clean_env.setenv("SHOPFLOOR_AI_DEFAULT_PLANNER", "approvals")
        clean_env.setenv("RUN_RATE_LIMIT_MAX_RUNS", "3")
        clean_env.setenv("RUN_RATE_LIMIT_WINDOW_SECONDS", "30")

        settings = Settings(_env_file=None)

        assert settings.server_port == 9001
        assert settings.default_planner == "approvals"
        assert settings.rate_limit == RateLimitConfig(max_runs=3, window_seconds=30)

    def test_unknown_planner_is_rejected(self, clean_env):
        clean_env.setenv("SHOPFLOOR_AI_DEFAULT_PLANNER", "creative")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_reads_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("SENDGRID_API_KEY=sg-key\nSENDGRID_FROM_EMAIL=shop@example.com\nSENDGRID_FROM_NAME=Main Street\n")

        settings = Settings(_env_file=env_file)

        assert settings.sendgrid == SendGridConfig(
            api_key="sg-key", from_email="shop@example.com", from_name="Main Street"
        )


class TestGroupedViews:
    def test_openai_view(self, clean_env):
        settings = Settings(_env_file=None, OPENAI_API_KEY="sk-test", SHOPFLOOR_AI_PLANNER_MODEL="openai:gpt-4o")

        assert settings.openai == OpenAIConfig(api_key="sk-test", planner_model="openai:gpt-4o")
