"""Pydantic models for manual tracking: menstrual cycles, nutrition,
fitness and mental-health logs."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import Field, field_validator, model_validator

from lunara.cycles.phase import CyclePhase
from lunara.models.base import LunaraBase, RecordMixin, UpdateModel


# ---------- Enums ----------

class FlowIntensity(str, Enum):
    light = "light"
    medium = "medium"
    heavy = "heavy"


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"
    other = "other"


class FitnessIntensity(str, Enum):
    low = "low"
    moderate = "moderate"
    high = "high"


def _dedupe(values: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for v in values:
        v = v.strip()
        if v:
            seen.setdefault(v, None)
    return list(seen)


# ---------- Menstrual Cycles ----------

class CycleBase(LunaraBase):
    start_date: date
    cycle_length: int = Field(default=28, ge=21, le=35)
    period_duration: int = Field(default=5, ge=2, le=8)
    symptoms: list[str] = Field(default_factory=list)
    flow_intensity: FlowIntensity | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("symptoms")
    @classmethod
    def unique_symptoms(cls, v: list[str]) -> list[str]:
        return _dedupe(v)


class CycleCreate(CycleBase):
    pass


class CycleUpdate(UpdateModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset(
        {"start_date", "cycle_length", "period_duration", "symptoms"}
    )

    start_date: date | None = None
    cycle_length: int | None = Field(default=None, ge=21, le=35)
    period_duration: int | None = Field(default=None, ge=2, le=8)
    symptoms: list[str] | None = None
    flow_intensity: FlowIntensity | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("symptoms")
    @classmethod
    def unique_symptoms(cls, v: list[str] | None) -> list[str] | None:
        return _dedupe(v) if v is not None else None


class CycleRead(CycleBase, RecordMixin):
    # Derived from start_date and "now" on every read; never persisted.
    current_phase: CyclePhase = CyclePhase.unknown


# ---------- Nutrition Logs ----------

class FoodItem(LunaraBase):
    name: str = Field(min_length=1)
    quantity: str | None = None
    calories: int | None = Field(default=None, ge=0)


class NutritionLogBase(LunaraBase):
    log_date: date
    meal_type: MealType
    food_items: list[FoodItem] = Field(default_factory=list)
    calories: int | None = Field(default=None, ge=0, le=5000)
    notes: str | None = None

    @field_validator("meal_type", mode="before")
    @classmethod
    def lowercase_meal_type(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class NutritionLogCreate(NutritionLogBase):
    @model_validator(mode="after")
    def total_from_items(self) -> "NutritionLogCreate":
        if self.calories is None and self.food_items:
            total = sum(item.calories or 0 for item in self.food_items)
            if total > 5000:
                raise ValueError("calories must be between 0 and 5000")
            self.calories = total
        return self


class NutritionLogRead(NutritionLogBase, RecordMixin):
    pass


# ---------- Fitness Logs ----------

class FitnessLogBase(LunaraBase):
    activity_type: str = Field(min_length=1)
    activity_name: str | None = None
    duration_minutes: int = Field(ge=1, le=480)
    # Two intensity scales are accepted side by side; see DESIGN.md.
    intensity: FitnessIntensity | None = None
    intensity_level: int | None = Field(default=None, ge=1, le=5)
    calories_burned: int | None = Field(default=None, ge=0, le=2000)
    notes: str | None = None


class FitnessLogCreate(FitnessLogBase):
    pass


class FitnessLogUpdate(UpdateModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"activity_type", "duration_minutes"})

    activity_type: str | None = Field(default=None, min_length=1)
    activity_name: str | None = None
    duration_minutes: int | None = Field(default=None, ge=1, le=480)
    intensity: FitnessIntensity | None = None
    intensity_level: int | None = Field(default=None, ge=1, le=5)
    calories_burned: int | None = Field(default=None, ge=0, le=2000)
    notes: str | None = None


class FitnessLogRead(FitnessLogBase, RecordMixin):
    logged_at: datetime | None = None


# ---------- Mental Health Logs ----------

class MentalHealthLogBase(LunaraBase):
    mood_rating: int = Field(ge=1, le=10)
    stress_level: int | None = Field(default=None, ge=1, le=10)
    anxiety_level: int | None = Field(default=None, ge=1, le=10)
    energy_level: int | None = Field(default=None, ge=1, le=10)
    sleep_quality: int | None = Field(default=None, ge=1, le=10)
    notes: str | None = None


class MentalHealthLogCreate(MentalHealthLogBase):
    pass


class MentalHealthLogUpdate(UpdateModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"mood_rating"})

    mood_rating: int | None = Field(default=None, ge=1, le=10)
    stress_level: int | None = Field(default=None, ge=1, le=10)
    anxiety_level: int | None = Field(default=None, ge=1, le=10)
    energy_level: int | None = Field(default=None, ge=1, le=10)
    sleep_quality: int | None = Field(default=None, ge=1, le=10)
    notes: str | None = None


class MentalHealthLogRead(MentalHealthLogBase, RecordMixin):
    logged_at: datetime | None = None
