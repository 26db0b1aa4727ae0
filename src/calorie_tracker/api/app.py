"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status

from calorie_tracker.api.models import (
    DescriptionRequest,
    GoalRequest,
    MealRequest,
    PortionRequest,
    ProfileRequest,
    WeightRequest,
)
from calorie_tracker.app_logging import configure_logging
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.analysis import NutritionEstimate
from calorie_tracker.domain.models import DailyLog, MealSlot, UserProfile
from calorie_tracker.services.analysis import AnalysisError, recalculate_portion
from calorie_tracker.services.goals import calculate_daily_goal, goal_summary
from calorie_tracker.services.log_store import LogStore
from calorie_tracker.services.records import (
    log_to_record,
    meal_to_record,
    profile_to_record,
    weight_to_record,
)
from calorie_tracker.services.stats import (
    daily_total,
    progress,
    remaining_calories,
    slot_totals,
    weekly_window,
)

NO_PROFILE = "No active profile"


def _get_store(request: Request) -> LogStore:
    container: AppContainer = request.app.state.container
    return container.log_store


async def require_token(
    request: Request, authorization: str | None = Header(default=None)
) -> None:
    """Ensure requests carry the configured bearer token, when one is set."""
    container: AppContainer = request.app.state.container
    expected = container.settings.api_token
    if expected and authorization != f"Bearer {expected}":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan, dependencies=[Depends(require_token)])
    app.state.container = container

    @app.get("/health")
    def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/profile")
    def get_profile(store: LogStore = Depends(_get_store)) -> dict[str, object]:
        """Return the active profile with its computed goal."""
        profile = _require_profile(store)
        return _profile_payload(profile)

    @app.put("/profile")
    def save_profile(
        body: ProfileRequest, store: LogStore = Depends(_get_store)
    ) -> dict[str, object]:
        """Install a new profile. Existing history is cleared."""
        profile = body.to_profile()
        store.save_profile(profile)
        return _profile_payload(profile)

    @app.delete("/profile")
    def reset_profile(store: LogStore = Depends(_get_store)) -> dict[str, str]:
        """Remove the profile and all history."""
        store.reset_profile()
        return {"status": "ok"}

    @app.get("/today")
    def today(store: LogStore = Depends(_get_store)) -> dict[str, object]:
        """Return today's log with totals and progress."""
        log = store.today_log()
        if log is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=NO_PROFILE
            )
        return _day_payload(log)

    @app.post("/meals", status_code=status.HTTP_201_CREATED)
    def add_meal(
        body: MealRequest, store: LogStore = Depends(_get_store)
    ) -> dict[str, object]:
        """Append a meal to today's log."""
        entry = store.add_meal(body.calories, body.slot, body.dish_name)
        if entry is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=NO_PROFILE
            )
        logger.info("Meal added: slot=%s calories=%s", body.slot, entry.calories)
        return {"slot": body.slot.value, "meal": meal_to_record(entry)}

    @app.delete("/meals/{slot}/{meal_id}")
    def delete_meal(
        slot: MealSlot, meal_id: str, store: LogStore = Depends(_get_store)
    ) -> dict[str, object]:
        """Remove a meal from today's log."""
        return {"deleted": store.delete_meal(slot, meal_id)}

    @app.put("/goal")
    def update_goal(
        body: GoalRequest, store: LogStore = Depends(_get_store)
    ) -> dict[str, object]:
        """Override today's calorie goal."""
        log = store.update_goal_calories(body.goal_calories)
        if log is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=NO_PROFILE
            )
        return _day_payload(log)

    @app.get("/weights")
    def list_weights(store: LogStore = Depends(_get_store)) -> dict[str, object]:
        """Return weight history sorted by date."""
        return {"weights": [weight_to_record(entry) for entry in store.weights]}

    @app.post("/weights", status_code=status.HTTP_201_CREATED)
    def add_weight(
        body: WeightRequest, store: LogStore = Depends(_get_store)
    ) -> dict[str, object]:
        """Record today's weight."""
        entry = store.add_weight_entry(body.weight_kg)
        if entry is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=NO_PROFILE
            )
        return weight_to_record(entry)

    @app.get("/week")
    def week(
        reference: date | None = None, store: LogStore = Depends(_get_store)
    ) -> dict[str, object]:
        """Return the seven days ending at the reference date."""
        profile = _require_profile(store)
        reference_date = reference or date.fromisoformat(store.today())
        days = weekly_window(
            store.history,
            reference_date,
            fallback_goal=calculate_daily_goal(profile),
        )
        return {"days": [asdict(day) for day in days]}

    @app.post("/analysis/description")
    async def analyze_description(
        body: DescriptionRequest, request: Request
    ) -> dict[str, object]:
        """Estimate nutrition from a meal description."""
        state_container: AppContainer = request.app.state.container
        try:
            estimate = await state_container.analysis_service.analyze_description(
                body.description
            )
        except AnalysisError as exc:
            raise _analysis_failed(exc) from exc
        return _estimate_payload(estimate)

    @app.post("/analysis/image")
    async def analyze_image(request: Request) -> dict[str, object]:
        """Estimate nutrition from a raw image body."""
        state_container: AppContainer = request.app.state.container
        image_bytes = await request.body()
        mime_type = request.headers.get("content-type")
        if mime_type and not mime_type.startswith("image/"):
            mime_type = None
        try:
            estimate = await state_container.analysis_service.analyze_image(
                image_bytes, mime_type
            )
        except AnalysisError as exc:
            raise _analysis_failed(exc) from exc
        return _estimate_payload(estimate)

    @app.post("/analysis/portion")
    def recalculate(body: PortionRequest) -> dict[str, object]:
        """Rescale an estimate to a corrected portion weight."""
        portion = recalculate_portion(body.estimate, body.weight_grams)
        if portion is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Estimate has no usable weight",
            )
        return asdict(portion)

    return app


def _require_profile(store: LogStore) -> UserProfile:
    profile = store.profile
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_PROFILE)
    return profile


def _profile_payload(profile: UserProfile) -> dict[str, object]:
    return {
        "profile": profile_to_record(profile),
        "daily_goal": calculate_daily_goal(profile),
        "goal": asdict(goal_summary(profile)),
    }


def _day_payload(log: DailyLog) -> dict[str, object]:
    total = daily_total(log)
    return {
        "log": log_to_record(log),
        "total_calories": total,
        "slot_totals": {slot.value: value for slot, value in slot_totals(log).items()},
        "progress": asdict(progress(total, log.goal_calories)),
        "remaining": asdict(remaining_calories(total, log.goal_calories)),
    }


def _estimate_payload(estimate: NutritionEstimate) -> dict[str, object]:
    return {"estimate": estimate.model_dump(by_alias=True)}


def _analysis_failed(exc: AnalysisError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"message": str(exc), "retryable": True},
    )
