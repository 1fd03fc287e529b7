"""Client settings via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings"]


class Settings(BaseSettings):
    """OPA connection configuration — all values from environment."""

    model_config = SettingsConfigDict(env_prefix="OPA_")

    # Base URL of the OPA instance (the /v1/data prefix is added per query)
    url: str = "http://localhost:8181"

    # Transport timeout applied to every request, in seconds
    timeout_s: float = 5.0

    # Rule queried by the readiness probe
    health_path: str = "/health"
