"""Application configuration with environment-specific profiles.

Supports dev, staging, production and test environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    database_url: str
    app_env: str = "dev"
    log_level: str = "INFO"

    # Model access (timeouts belong to the transport, not the pipeline)
    openai_api_key: str = ""
    tempo_model: str = "gpt-4o-mini"
    model_timeout_seconds: float = 45.0
    model_temperature: float = 0.3

    # External collaborators
    context_url: str = "http://localhost:3000/api/tempo"
    context_timeout_seconds: float = 10.0
    context_cache_ttl_seconds: int = 60
    reports_url: str = "http://localhost:3000/api/reports"
    reports_timeout_seconds: float = 15.0

    # Decision pipeline
    clarify_ttl_seconds: int = 900
    axis_title_max_chars: int = 140
    runs_page_size: int = 12

    # HTTP surface
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    request_id_header_name: str = "X-Request-ID"
    rate_limit_enabled: bool = False
    rate_limit_storage_uri: str = "memory://"
    ai_rate_limit: str = "20/minute"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "rate_limit_enabled": False,
    },
    "staging": {
        "log_level": "INFO",
        "rate_limit_enabled": True,
    },
    "production": {
        "log_level": "WARNING",
        "rate_limit_enabled": True,
        "model_timeout_seconds": 30.0,
    },
    "test": {
        "log_level": "WARNING",
        "rate_limit_enabled": False,
        "context_cache_ttl_seconds": 0,
    },
}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_database_url() -> str:
    """Resolve database URL from env var or local default."""
    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    return "postgresql+psycopg2://localhost:5432/tempo"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        database_url=get_database_url(),
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        tempo_model=os.getenv("TEMPO_MODEL", "gpt-4o-mini"),
        model_timeout_seconds=float(
            os.getenv("TEMPO_MODEL_TIMEOUT_SECONDS", str(profile.get("model_timeout_seconds", 45.0)))
        ),
        model_temperature=float(os.getenv("TEMPO_MODEL_TEMPERATURE", "0.3")),
        context_url=os.getenv("TEMPO_CONTEXT_URL", "http://localhost:3000/api/tempo"),
        context_timeout_seconds=float(os.getenv("TEMPO_CONTEXT_TIMEOUT_SECONDS", "10")),
        context_cache_ttl_seconds=int(
            os.getenv("TEMPO_CONTEXT_CACHE_TTL_SECONDS", str(profile.get("context_cache_ttl_seconds", 60)))
        ),
        reports_url=os.getenv("TEMPO_REPORTS_URL", "http://localhost:3000/api/reports"),
        reports_timeout_seconds=float(os.getenv("TEMPO_REPORTS_TIMEOUT_SECONDS", "15")),
        clarify_ttl_seconds=int(os.getenv("TEMPO_CLARIFY_TTL_SECONDS", "900")),
        axis_title_max_chars=int(os.getenv("TEMPO_AXIS_TITLE_MAX_CHARS", "140")),
        runs_page_size=int(os.getenv("TEMPO_RUNS_PAGE_SIZE", "12")),
        cors_origins=_env_list("CORS_ORIGINS", ["http://localhost:3000"]),
        request_id_header_name=os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID"),
        rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", profile.get("rate_limit_enabled", False)),
        rate_limit_storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
        ai_rate_limit=os.getenv("TEMPO_AI_RATE_LIMIT", "20/minute"),
    )
