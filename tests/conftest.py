"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import date

import pytest

from calorie_tracker.config import Settings
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.models import ActivityLevel, Gender, UserProfile
from calorie_tracker.services.analysis import AnalysisClient, AnalysisService
from calorie_tracker.services.log_store import LogStore, StateRepository


@dataclass
class InMemoryStateRepository(StateRepository):
    """In-memory state repository that records every write."""

    values: dict[str, str] = field(default_factory=dict)
    writes: list[dict[str, str]] = field(default_factory=list)
    deletes: list[list[str]] = field(default_factory=list)
    fail_writes: bool = False

    def read_all(self) -> dict[str, str]:
        return dict(self.values)

    def write_many(self, values: dict[str, str]) -> None:
        if self.fail_writes:
            raise RuntimeError("storage unavailable")
        self.writes.append(dict(values))
        self.values.update(values)

    def delete_many(self, keys: list[str]) -> None:
        self.deletes.append(list(keys))
        for key in keys:
            self.values.pop(key, None)

    def decoded(self, key: str) -> object:
        return json.loads(self.values[key])


@dataclass
class FakeClock:
    """Clock returning a settable local date."""

    current: date = date(2024, 3, 15)

    def __call__(self) -> date:
        return self.current


@dataclass
class FakeAnalysisClient(AnalysisClient):
    """Fake analysis client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "dishName": "Spaghetti carbonara",
            "quantity": "about 200g",
            "calories": 400,
            "ingredients": ["spaghetti", "egg", "guanciale", "pecorino"],
            "estimatedWeightGrams": 200,
            "carbohydratesGrams": 50,
            "proteinsGrams": 16,
            "fatsGrams": 14,
        }
    )
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        self.calls.append({"prompt": prompt, "image_data_url": image_data_url})
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        openai_api_key="openai-key",
        state_file=tmp_path / "state.json",
    )


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(
        gender=Gender.FEMALE,
        age=30,
        weight_kg=70,
        height_cm=170,
        activity_level=ActivityLevel.LIGHT,
        goal_weight_kg=65,
        goal_timeframe_months=6,
    )


@pytest.fixture
def repository() -> InMemoryStateRepository:
    return InMemoryStateRepository()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(repository, clock) -> LogStore:
    return LogStore.load(repository, clock=clock)


@pytest.fixture
def profiled_store(store, profile) -> LogStore:
    store.save_profile(profile)
    return store


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def analysis_service(analysis_client) -> AnalysisService:
    return AnalysisService(
        client=analysis_client,
        model="gpt-5.2",
        reasoning_effort="high",
        store=False,
    )


@pytest.fixture
def container(settings, store, analysis_service) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        log_store=store,
        analysis_service=analysis_service,
        close_resources=close_resources,
    )
