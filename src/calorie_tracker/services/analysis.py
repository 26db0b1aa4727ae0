"""Meal analysis service backed by an LLM with structured output."""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from calorie_tracker.domain.analysis import NutritionEstimate, PortionEstimate
from calorie_tracker.services.rounding import round_half_up

_logger = logging.getLogger(__name__)

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "dishName": {"type": "string"},
        "quantity": {"type": "string"},
        "calories": {"type": "number"},
        "ingredients": {"type": "array", "items": {"type": "string"}},
        "estimatedWeightGrams": {"type": "number"},
        "carbohydratesGrams": {"type": "number"},
        "proteinsGrams": {"type": "number"},
        "fatsGrams": {"type": "number"},
    },
    "required": [
        "dishName",
        "quantity",
        "calories",
        "ingredients",
        "estimatedWeightGrams",
        "carbohydratesGrams",
        "proteinsGrams",
        "fatsGrams",
    ],
    "additionalProperties": False,
}

_INSTRUCTIONS = (
    "Identify the dish. If it is a well-known dish, give its common name. "
    "Estimate the portion size and its weight in grams. "
    "Estimate the calories for the portion shown and list the main ingredients. "
    "Also estimate carbohydrates, proteins and fats in grams. "
    "Answer only with a JSON object that follows the provided schema."
)

IMAGE_PROMPT = "Analyze the food in this image. " + _INSTRUCTIONS


def description_prompt(description: str) -> str:
    return f'Analyze this meal description: "{description}". ' + _INSTRUCTIONS


class AnalysisError(Exception):
    """Raised when the analysis service fails or returns malformed data."""


class AnalysisClient(Protocol):
    """Interface for LLM nutrition analysis."""

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
        """Return the structured analysis payload."""


@dataclass
class AnalysisService:
    """Service that prepares analysis prompts and validates results."""

    client: AnalysisClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def analyze_image(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> NutritionEstimate:
        """Estimate nutrition for a photographed meal."""
        if not image_bytes:
            raise AnalysisError("Analysis failed: image data is empty")
        data_url = _to_data_url(image_bytes, mime_type)
        return await self._run(IMAGE_PROMPT, data_url)

    async def analyze_description(self, description: str) -> NutritionEstimate:
        """Estimate nutrition for a free-text meal description."""
        if not description.strip():
            raise AnalysisError("Analysis failed: description is empty")
        return await self._run(description_prompt(description.strip()), None)

    async def _run(self, prompt: str, image_data_url: str | None) -> NutritionEstimate:
        try:
            raw = await self.client.analyze(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=prompt,
                schema=ANALYSIS_SCHEMA,
                image_data_url=image_data_url,
            )
            return NutritionEstimate.model_validate(raw)
        except ValidationError as exc:
            _logger.warning("Malformed analysis response: %s", exc.error_count())
            raise AnalysisError(
                "Analysis failed: the response does not have the expected format"
            ) from exc
        except (json.JSONDecodeError, RuntimeError) as exc:
            _logger.warning("Analysis request failed: %s", exc)
            raise AnalysisError(f"Analysis failed: {exc}") from exc


def recalculate_portion(
    estimate: NutritionEstimate, weight_grams: float
) -> PortionEstimate | None:
    """Rescale calories and macros to a corrected portion weight.

    Returns None when either weight is not positive.
    """
    if estimate.estimated_weight_grams <= 0 or weight_grams <= 0:
        return None
    ratio = weight_grams / estimate.estimated_weight_grams
    return PortionEstimate(
        weight_grams=weight_grams,
        calories=round_half_up(estimate.calories * ratio),
        carbohydrates_grams=round_half_up(estimate.carbohydrates_grams * ratio),
        proteins_grams=round_half_up(estimate.proteins_grams * ratio),
        fats_grams=round_half_up(estimate.fats_grams * ratio),
    )


def _to_data_url(image_bytes: bytes, mime_type: str | None = None) -> str:
    """Convert bytes to a base64 data URL for image input."""
    resolved = mime_type or _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{resolved};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
