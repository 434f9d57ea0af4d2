"""Cross-collection reads for a single user: latest data, statistics,
dashboard counts and the full data export.

All collection reads for one call are independent, so they are issued
together with ``asyncio.gather``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime
from statistics import fmean
from typing import Any

from lunara.auth.identity import Principal
from lunara.cycles.phase import CyclePhase, classify_phase
from lunara.models.base import utc_now
from lunara.services.records import Repositories
from lunara.services.store import Document

RECENT_LOG_LIMIT = 5
STATS_CYCLE_LIMIT = 12
STATS_LOG_LIMIT = 100
EXPORT_LIMIT = 1000
EXPORT_INSIGHT_LIMIT = 100


def with_phase(cycle: Document, now: date | datetime | None = None) -> Document:
    return {**cycle, "current_phase": classify_phase(cycle, now)}


@dataclass
class LatestData:
    latest_cycle: Document | None
    recent_nutrition: list[Document] = field(default_factory=list)
    recent_fitness: list[Document] = field(default_factory=list)
    recent_mental_health: list[Document] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "latest_cycle": self.latest_cycle,
            "recent_nutrition": self.recent_nutrition,
            "recent_fitness": self.recent_fitness,
            "recent_mental_health": self.recent_mental_health,
        }


async def latest_data(repos: Repositories, principal: Principal) -> LatestData:
    cycles, nutrition, fitness, mental = await asyncio.gather(
        repos.cycles.list(principal, limit=1),
        repos.nutrition_logs.list(principal, limit=RECENT_LOG_LIMIT),
        repos.fitness_logs.list(principal, limit=RECENT_LOG_LIMIT),
        repos.mental_health_logs.list(principal, limit=RECENT_LOG_LIMIT),
    )
    return LatestData(
        latest_cycle=with_phase(cycles[0]) if cycles else None,
        recent_nutrition=nutrition,
        recent_fitness=fitness,
        recent_mental_health=mental,
    )


def _average(values: list[float], default: float) -> float:
    return round(fmean(values), 2) if values else default


async def health_stats(repos: Repositories, principal: Principal) -> dict[str, Any]:
    cycles, nutrition, fitness, mental = await asyncio.gather(
        repos.cycles.list(principal, limit=STATS_CYCLE_LIMIT),
        repos.nutrition_logs.list(principal, limit=STATS_LOG_LIMIT),
        repos.fitness_logs.list(principal, limit=STATS_LOG_LIMIT),
        repos.mental_health_logs.list(principal, limit=STATS_LOG_LIMIT),
    )
    minutes = [log.get("duration_minutes") or 0 for log in fitness]
    return {
        "cycles": {
            "total_tracked": len(cycles),
            "average_cycle_length": _average(
                [c.get("cycle_length") or 28 for c in cycles], 28
            ),
            "average_period_duration": _average(
                [c.get("period_duration") or 5 for c in cycles], 5
            ),
        },
        "nutrition": {
            "total_logs": len(nutrition),
            "average_calories_per_day": _average(
                [log.get("calories") or 0 for log in nutrition], 0
            ),
        },
        "fitness": {
            "total_workouts": len(fitness),
            "total_minutes": sum(minutes),
            "average_duration": _average(minutes, 0),
        },
        "mental_health": {
            "total_logs": len(mental),
            "average_mood": _average([log.get("mood_rating") or 5 for log in mental], 5),
            "average_stress": _average([log.get("stress_level") or 5 for log in mental], 5),
        },
        "user_id": principal.principal_id,
        "generated_at": utc_now().isoformat(),
    }


async def record_counts(repos: Repositories, principal: Principal) -> dict[str, int]:
    cycles, nutrition, fitness, mental = await asyncio.gather(
        repos.cycles.count(principal),
        repos.nutrition_logs.count(principal),
        repos.fitness_logs.count(principal),
        repos.mental_health_logs.count(principal),
    )
    return {
        "total_cycles": cycles,
        "total_nutrition_logs": nutrition,
        "total_fitness_logs": fitness,
        "total_mental_health_logs": mental,
    }


async def export_data(repos: Repositories, principal: Principal) -> dict[str, Any]:
    cycles, nutrition, fitness, mental, insights = await asyncio.gather(
        repos.cycles.list(principal, limit=EXPORT_LIMIT),
        repos.nutrition_logs.list(principal, limit=EXPORT_LIMIT),
        repos.fitness_logs.list(principal, limit=EXPORT_LIMIT),
        repos.mental_health_logs.list(principal, limit=EXPORT_LIMIT),
        repos.insights.list(principal, limit=EXPORT_INSIGHT_LIMIT),
    )
    return {
        "data": {
            "cycles": [with_phase(c) for c in cycles],
            "nutrition_logs": nutrition,
            "fitness_logs": fitness,
            "mental_health_logs": mental,
            "ai_insights": insights,
        },
        "summary": {
            "total_cycles": len(cycles),
            "total_nutrition_logs": len(nutrition),
            "total_fitness_logs": len(fitness),
            "total_mental_health_logs": len(mental),
            "total_ai_insights": len(insights),
            "export_date": utc_now().isoformat(),
        },
    }


# ---------------------------------------------------------------------------
# Prompt context
# ---------------------------------------------------------------------------


def calculate_age(birth_date: date | str | None, today: date | None = None) -> int | None:
    if not birth_date:
        return None
    if isinstance(birth_date, str):
        try:
            birth_date = date.fromisoformat(birth_date[:10])
        except ValueError:
            return None
    today = today or utc_now().date()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


@dataclass
class UserDataSummary:
    """What the insight prompt is allowed to know about the user."""

    age: int | None = None
    weight: Any = None
    cycle_length: int | None = None
    period_duration: int | None = None
    recent_symptoms: str | None = None
    cycle_phase: str = CyclePhase.unknown.value
    recent_meals: str | None = None
    recent_activities: str | None = None
    recent_moods: str | None = None
    stress_level: float | None = None


def _describe_meals(logs: list[Document]) -> str | None:
    parts = []
    for log in logs[:3]:
        text = str(log.get("meal_type") or "meal")
        if log.get("calories") is not None:
            text += f" ({log['calories']} kcal)"
        parts.append(text)
    return ", ".join(parts) or None


def _describe_activities(logs: list[Document]) -> str | None:
    parts = [
        f"{log.get('activity_name') or log.get('activity_type')} "
        f"{log.get('duration_minutes')} min"
        for log in logs[:3]
    ]
    return ", ".join(parts) or None


def _describe_moods(logs: list[Document]) -> str | None:
    parts = [f"{log.get('mood_rating')}/10" for log in logs[:3]]
    return ", ".join(parts) or None


def build_user_summary(
    latest: LatestData, profile: Document | None = None
) -> UserDataSummary:
    profile = profile or {}
    cycle = latest.latest_cycle or {}
    stress = [
        log["stress_level"] for log in latest.recent_mental_health[:3]
        if log.get("stress_level") is not None
    ]
    return UserDataSummary(
        age=calculate_age(profile.get("birth_date")),
        weight=profile.get("weight"),
        cycle_length=cycle.get("cycle_length"),
        period_duration=cycle.get("period_duration"),
        recent_symptoms=", ".join(cycle.get("symptoms") or []) or None,
        cycle_phase=str(classify_phase(latest.latest_cycle).value),
        recent_meals=_describe_meals(latest.recent_nutrition),
        recent_activities=_describe_activities(latest.recent_fitness),
        recent_moods=_describe_moods(latest.recent_mental_health),
        stress_level=round(fmean(stress), 1) if stress else None,
    )
