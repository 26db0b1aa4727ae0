"""Request models validated at the HTTP boundary."""

from pydantic import BaseModel, Field

from calorie_tracker.domain.analysis import NutritionEstimate
from calorie_tracker.domain.models import ActivityLevel, Gender, MealSlot, UserProfile


class ProfileRequest(BaseModel):
    """Profile form submitted during onboarding."""

    gender: Gender
    age: int = Field(gt=0)
    weight_kg: float = Field(gt=0, allow_inf_nan=False)
    height_cm: int = Field(gt=0)
    activity_level: ActivityLevel
    goal_weight_kg: float = Field(gt=0, allow_inf_nan=False)
    goal_timeframe_months: int = Field(gt=0)

    def to_profile(self) -> UserProfile:
        return UserProfile(
            gender=self.gender,
            age=self.age,
            weight_kg=self.weight_kg,
            height_cm=self.height_cm,
            activity_level=self.activity_level,
            goal_weight_kg=self.goal_weight_kg,
            goal_timeframe_months=self.goal_timeframe_months,
        )


class MealRequest(BaseModel):
    """Meal to add to today's log."""

    calories: float = Field(ge=0, allow_inf_nan=False)
    slot: MealSlot
    dish_name: str = Field(min_length=1)


class GoalRequest(BaseModel):
    goal_calories: int = Field(gt=0)


class WeightRequest(BaseModel):
    weight_kg: float = Field(gt=0, allow_inf_nan=False)


class DescriptionRequest(BaseModel):
    description: str = Field(min_length=1)


class PortionRequest(BaseModel):
    """Analysis estimate with a corrected portion weight."""

    estimate: NutritionEstimate
    weight_grams: float = Field(gt=0, allow_inf_nan=False)
