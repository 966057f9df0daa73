"""
samvera.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for the process entrypoint.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration, prefix `SAMVERA_`.

    There is deliberately no "default organization" setting: tenant context is
    always resolved from the session or the user's profile.
    """

    model_config = SettingsConfigDict(env_prefix="SAMVERA_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables and dev sign-in.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "samvera-api"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Session tokens
    jwt_alg: str = "HS256"
    jwt_issuer: str = "samvera-api"
    jwt_audience: str = "samvera-web"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    session_cookie_name: str = "samvera_session"
    session_ttl_minutes: int = 60 * 24 * 7
    session_cookie_secure: bool = False

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./samvera.db"

    # List endpoints
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    # Per-principal request budget (token bucket)
    rate_limit_requests_per_minute: int = Field(default=600, ge=1)
    rate_limit_burst: int = Field(default=120, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars; the app itself reads settings from app.state.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Request handlers never call `get_settings()` directly; they receive the instance
# the app was built with (see `samvera.api.deps.settings_dep`), which keeps tests
# free to construct their own `Settings`.
