"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

STORAGE_BACKENDS = {"file", "supabase"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "high"
    openai_store: bool = False
    storage_backend: str = "file"
    state_file: Path = Path("data/tracker_state.json")
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_table: str = "tracker_state"
    timezone: str | None = None
    api_token: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_storage_backend(raw: str | None) -> str:
    """Normalize the configured storage backend name."""
    cleaned = (raw or "").strip().lower()
    if not cleaned:
        return "file"
    if cleaned not in STORAGE_BACKENDS:
        raise ValueError(f"Unknown storage backend: {raw}")
    return cleaned
