"""Models for nutrition analysis results."""

from dataclasses import dataclass
from typing import Annotated

from pydantic import (
    AllowInfNan,
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
)

Number = StrictInt | Annotated[StrictFloat, AllowInfNan(False)]


class NutritionEstimate(BaseModel):
    """Structured estimate returned by the analysis service."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    dish_name: StrictStr = Field(alias="dishName")
    quantity_label: StrictStr = Field(alias="quantity")
    calories: Number
    ingredients: list[StrictStr]
    estimated_weight_grams: Number = Field(alias="estimatedWeightGrams")
    carbohydrates_grams: Number = Field(alias="carbohydratesGrams")
    proteins_grams: Number = Field(alias="proteinsGrams")
    fats_grams: Number = Field(alias="fatsGrams")


@dataclass(frozen=True)
class PortionEstimate:
    """Calories and macros rescaled to a user-supplied portion weight."""

    weight_grams: float
    calories: int
    carbohydrates_grams: int
    proteins_grams: int
    fats_grams: int
