"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from supabase import create_client

from calorie_tracker.adapters.json_file_state_repository import (
    JsonFileStateRepository,
)
from calorie_tracker.adapters.openai_analysis_client import OpenAIAnalysisClient
from calorie_tracker.adapters.supabase_state_repository import (
    SupabaseStateRepository,
)
from calorie_tracker.config import Settings, parse_storage_backend
from calorie_tracker.services.analysis import AnalysisService
from calorie_tracker.services.log_store import LogStore, StateRepository


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    log_store: LogStore
    analysis_service: AnalysisService
    close_resources: Callable[[], Awaitable[None]]


def build_state_repository(settings: Settings) -> StateRepository:
    """Create the state repository for the configured backend."""
    backend = parse_storage_backend(settings.storage_backend)
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase storage requires SUPABASE_URL and key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseStateRepository(client, table_name=settings.supabase_table)
    return JsonFileStateRepository(settings.state_file)


def local_clock(timezone_name: str | None) -> Callable[[], date]:
    """Return a callable giving today's date in the configured timezone."""
    if not timezone_name:
        return date.today
    tz = ZoneInfo(timezone_name)
    return lambda: datetime.now(tz=tz).date()


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    log_store = LogStore.load(
        build_state_repository(resolved_settings),
        clock=local_clock(resolved_settings.timezone),
    )
    openai_client = OpenAIAnalysisClient.create(resolved_settings.openai_api_key)
    analysis_service = AnalysisService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )

    async def close_resources() -> None:
        await openai_client.client.close()

    return AppContainer(
        settings=resolved_settings,
        log_store=log_store,
        analysis_service=analysis_service,
        close_resources=close_resources,
    )
