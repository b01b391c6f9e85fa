"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

STORAGE_BACKENDS = {"supabase", "local"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    storage_backend: str = "supabase"
    supabase_url: str | None = None
    supabase_key: str | None = None
    local_store_path: str = ".nutribalance/store.json"
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    openai_timeout_seconds: float | None = 60.0
    default_timezone: str = "UTC"
    session_ttl_days: float = 7.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def resolve_storage_backend(settings: Settings) -> str:
    """Return the configured storage backend, validating Supabase credentials."""
    backend = settings.storage_backend.strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
    if backend == "supabase" and not (settings.supabase_url and settings.supabase_key):
        raise ValueError("Supabase backend requires SUPABASE_URL and SUPABASE_KEY")
    return backend
