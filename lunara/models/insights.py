"""Pydantic models for generated wellness insights."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field, computed_field

from lunara.models.base import LunaraBase, RecordMixin, utc_now


class InsightType(str, Enum):
    general_health = "general_health"
    cycle_prediction = "cycle_prediction"
    nutrition_advice = "nutrition_advice"
    fitness_suggestion = "fitness_suggestion"
    mood_analysis = "mood_analysis"


INSIGHT_TITLES: dict[InsightType, str] = {
    InsightType.general_health: "General Health Insight",
    InsightType.cycle_prediction: "Cycle Prediction & Tips",
    InsightType.nutrition_advice: "Nutrition Recommendations",
    InsightType.fitness_suggestion: "Fitness Suggestions",
    InsightType.mood_analysis: "Mood & Wellness Analysis",
}

INSIGHT_DESCRIPTIONS: dict[InsightType, str] = {
    InsightType.general_health: "General health and wellness advice",
    InsightType.cycle_prediction: "Menstrual cycle predictions and tips",
    InsightType.nutrition_advice: "Personalized nutrition recommendations",
    InsightType.fitness_suggestion: "Exercise suggestions based on cycle phase",
    InsightType.mood_analysis: "Mood and mental health insights",
}


class InsightRequest(LunaraBase):
    type: InsightType = InsightType.general_health


class MultipleInsightsRequest(LunaraBase):
    # Unknown strings are filtered out by the route, not rejected here.
    types: list[str] = Field(default_factory=lambda: [InsightType.general_health.value])


class InsightRead(LunaraBase, RecordMixin):
    type: InsightType
    title: str
    content: str
    confidence_score: float | None = None
    is_read: bool = False
    read_at: datetime | None = None
    generated_at: datetime
    expires_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_expired(self) -> bool:
        return self.expires_at <= utc_now()


class QuickTipRead(LunaraBase):
    tip: str
    topic: str
    source: str  # "ai_generated" | "fallback"
    generated_at: datetime = Field(default_factory=utc_now)


class InsightTypeRead(LunaraBase):
    key: str
    value: InsightType
    description: str
