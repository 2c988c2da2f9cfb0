from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError, ResponseParseError
from .prompts import food_analysis_prompt, meal_plan_prompt
from .suggestions import Completer

log = structlog.get_logger()


class NutritionValidationError(ResponseParseError):
    """The model answered with JSON, but not with usable nutrition data."""


class NutritionRecord(BaseModel):
    food_name: str
    serving_qty: float = 1
    serving_unit: str = "serving"
    calories: float
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: float | None = None
    sugar: float | None = None

    @field_validator("food_name")
    @classmethod
    def _validate_food_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("food_name must be non-empty.")
        return v

    @field_validator("calories")
    @classmethod
    def _validate_calories(cls, v: float) -> float:
        # NaN fails both comparisons
        if not v > 0:
            raise ValueError("calories must be > 0.")
        return v


class Alternative(BaseModel):
    name: str
    reason: str = ""


class FoodAnalysis(BaseModel):
    nutrition: NutritionRecord
    alternatives: list[Alternative] = Field(default_factory=list)


class MacroTotals(BaseModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0


class MealPlan(BaseModel):
    breakfast: str
    lunch: str
    dinner: str
    snacks: str
    totals: MacroTotals


class DietProfile(BaseModel):
    height_cm: float = Field(gt=0)
    weight_kg: float = Field(gt=0)
    diet_type: str = Field(min_length=1)
    goal: str = Field(min_length=1)

    @property
    def bmi(self) -> float:
        return round(self.weight_kg / (self.height_cm / 100) ** 2, 1)


def parse_food_analysis(value: Any) -> FoodAnalysis:
    if not isinstance(value, dict) or not isinstance(value.get("nutrition"), dict):
        raise NutritionValidationError("Invalid or unknown food name. Please enter a valid food name.")
    data = dict(value)
    if not isinstance(data.get("alternatives"), list):
        data["alternatives"] = []
    try:
        return FoodAnalysis.model_validate(data)
    except ValidationError as e:
        log.info("food_analysis_rejected", errors=e.error_count())
        raise NutritionValidationError("Invalid or unknown food name. Please enter a valid food name.") from e


def parse_meal_plan(value: Any) -> MealPlan:
    try:
        return MealPlan.model_validate(value)
    except ValidationError as e:
        log.info("meal_plan_rejected", errors=e.error_count())
        raise NutritionValidationError("The generated meal plan was incomplete. Please try again.") from e


async def analyze_food(router: Completer, food_name: str, weight_grams: float | None = None) -> FoodAnalysis:
    if not food_name or not food_name.strip():
        raise ConfigurationError("Please enter a food name.")
    if weight_grams is not None and not weight_grams > 0:
        raise ConfigurationError("Enter valid weight. Please provide weight in grams greater than 0.")

    value = await router.complete(food_analysis_prompt(food_name, weight_grams))
    analysis = parse_food_analysis(value)
    log.info("food_analyzed", food_name=analysis.nutrition.food_name, calories=analysis.nutrition.calories)
    return analysis


async def generate_meal_plan(router: Completer, profile: DietProfile) -> MealPlan:
    prompt = meal_plan_prompt(
        height_cm=profile.height_cm,
        weight_kg=profile.weight_kg,
        bmi=profile.bmi,
        diet_type=profile.diet_type,
        goal=profile.goal,
    )
    return parse_meal_plan(await router.complete(prompt))


@dataclass
class FoodItem:
    nutrition: NutritionRecord
    alternatives: list[Alternative] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class FoodLog:
    """In-memory list of analyzed foods with running totals."""

    def __init__(self) -> None:
        self._items: list[FoodItem] = []

    @property
    def items(self) -> list[FoodItem]:
        return list(self._items)

    def add(self, analysis: FoodAnalysis) -> FoodItem:
        item = FoodItem(nutrition=analysis.nutrition, alternatives=list(analysis.alternatives))
        self._items.append(item)
        return item

    def remove(self, item_id: str) -> bool:
        before = len(self._items)
        self._items = [i for i in self._items if i.id != item_id]
        return len(self._items) != before

    def totals(self) -> MacroTotals:
        return MacroTotals(
            calories=sum(i.nutrition.calories for i in self._items),
            protein=sum(i.nutrition.protein for i in self._items),
            carbs=sum(i.nutrition.carbs for i in self._items),
            fat=sum(i.nutrition.fat for i in self._items),
        )

    def macro_calories(self) -> dict[str, float]:
        """Calories contributed by each macro (4/4/9 kcal per gram); empty for an empty log."""
        t = self.totals()
        if t.calories <= 0:
            return {}
        return {"protein": t.protein * 4, "carbs": t.carbs * 4, "fat": t.fat * 9}
