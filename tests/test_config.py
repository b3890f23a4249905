"""Tests for configuration module."""

from __future__ import annotations

from tempo.config import Settings, _ENV_PROFILES, get_database_url, get_settings


def test_settings_dataclass():
    s = Settings(database_url="postgres://localhost/test")
    assert s.database_url == "postgres://localhost/test"
    assert s.app_env == "dev"
    assert s.tempo_model == "gpt-4o-mini"
    assert s.axis_title_max_chars == 140
    assert s.runs_page_size == 12


def test_settings_frozen():
    s = Settings(database_url="x")
    try:
        s.database_url = "y"
        assert False, "Should raise"
    except AttributeError:
        pass


def test_settings_is_production():
    s = Settings(database_url="x", app_env="production")
    assert s.is_production is True
    assert s.is_dev is False


def test_get_database_url_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://from-env/db")
    assert get_database_url() == "postgres://from-env/db"


def test_get_database_url_default(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert "postgresql" in get_database_url()


def test_get_settings_uses_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://test/db")
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("TEMPO_MODEL", "gpt-4o")
    monkeypatch.setenv("TEMPO_CLARIFY_TTL_SECONDS", "120")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    get_settings.cache_clear()
    try:
        s = get_settings()
        assert s.database_url == "postgres://test/db"
        assert s.app_env == "production"
        assert s.tempo_model == "gpt-4o"
        assert s.clarify_ttl_seconds == 120
        assert s.cors_origins == ["https://a.example", "https://b.example"]
    finally:
        get_settings.cache_clear()


def test_env_profiles_exist():
    for name in ("dev", "staging", "production", "test"):
        assert name in _ENV_PROFILES


def test_test_profile_disables_rate_limit_and_context_cache():
    assert _ENV_PROFILES["test"]["rate_limit_enabled"] is False
    assert _ENV_PROFILES["test"]["context_cache_ttl_seconds"] == 0
