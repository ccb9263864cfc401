from __future__ import annotations

import pytest

from xo_finance.core.config import Settings, get_settings


@pytest.mark.asyncio
async def test_startup_fails_fast_on_config_errors_in_production(monkeypatch):
    from xo_finance import main as app_main

    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setattr(Settings, "validate_required_config", lambda _self: ["missing secret"])
    get_settings.cache_clear()

    with pytest.raises(RuntimeError, match="Configuration validation failed in production environment"):
        await app_main._startup_jobs()


@pytest.mark.asyncio
async def test_startup_logs_warning_only_on_config_errors_in_test(monkeypatch):
    from xo_finance import main as app_main

    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setattr(Settings, "validate_required_config", lambda _self: ["missing secret"])
    get_settings.cache_clear()

    await app_main._startup_jobs()


def test_validate_required_config_reports_problems(monkeypatch):
    for name in ("DATABASE_URL", "AUTH_JWT_SECRET", "SUPABASE_JWT_SECRET", "AUTH_JWKS_URL", "STRIPE_WEBHOOK_SECRET"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setenv("AI_PROVIDER", "groq")

    problems = Settings().validate_required_config()

    assert "DATABASE_URL is not set" in problems
    assert "AUTH_JWT_SECRET or AUTH_JWKS_URL must be set" in problems
    assert "STRIPE_WEBHOOK_SECRET is required when STRIPE_SECRET_KEY is set" in problems
    assert any("'groq'" in problem for problem in problems)


def test_validate_required_config_healthy(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./test.db")
    monkeypatch.setenv("AUTH_JWT_SECRET", "secret")
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    monkeypatch.setenv("AI_PROVIDER", "mock")
    monkeypatch.delenv("AI_SCOPE_PROVIDERS", raising=False)

    assert Settings().validate_required_config() == []


def test_list_settings_accept_csv_and_json(monkeypatch):
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.test, https://b.test")
    monkeypatch.setenv("AI_ALLOWED_PROVIDERS", '["Gemini", "mock"]')
    monkeypatch.setenv("AI_SCOPE_PROVIDERS", '{"education": "claude"}')
    monkeypatch.delenv("AI_PROVIDER", raising=False)

    settings = Settings()

    assert settings.cors_allow_origins == ["https://a.test", "https://b.test"]
    assert settings.ai_allowed_providers == ["gemini", "mock"]
    assert settings.provider_for_scope("education") == "claude"
    assert settings.provider_for_scope("payslip") == "mock"
