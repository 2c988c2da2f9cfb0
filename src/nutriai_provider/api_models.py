from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .contracts import CompletionOptions
from .nutrition import DietProfile, MacroTotals


class CompletionBody(BaseModel):
    prompt: str
    options: CompletionOptions | None = None

    @field_validator("prompt")
    @classmethod
    def _validate_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt must be non-empty.")
        return v


class CompletionResponse(BaseModel):
    provider: str
    data: dict[str, Any] | list[Any]


class AnalyzeFoodBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    food_name: str = Field(alias="foodName")
    weight_grams: float | None = Field(default=None, alias="weightGrams")


class MealPlanBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    height: float = Field(gt=0, description="Height in cm")
    weight: float = Field(gt=0, description="Weight in kg")
    diet_type: str = Field(alias="dietType", min_length=1)
    goal: str = Field(min_length=1)

    def to_profile(self) -> DietProfile:
        return DietProfile(height_cm=self.height, weight_kg=self.weight, diet_type=self.diet_type, goal=self.goal)


class MealPlanResponse(BaseModel):
    bmi: float
    breakfast: str
    lunch: str
    dinner: str
    snacks: str
    totals: MacroTotals


class SuggestionsResponse(BaseModel):
    suggestions: list[str]


class ErrorDetail(BaseModel):
    message: str
    kind: str = "unknown"
    code: str | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


def make_error_response(*, message: str, kind: str = "unknown", code: str | None = None) -> ErrorResponse:
    return ErrorResponse(error=ErrorDetail(message=message, kind=kind, code=code))
