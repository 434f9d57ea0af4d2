"""Wellness insight generation through the OpenAI chat completions API.

The generator only ever sees a ``UserDataSummary``; it never receives raw
records or identifiers.  Failures are reported as:

* ``UpstreamUnavailableError`` when the API is unconfigured, unreachable,
  times out or answers with an error status;
* ``GenerationFailedError`` when the call succeeds but the completion is
  empty.

Provider error text is logged, never returned to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol

import openai
from openai import AsyncOpenAI

from lunara.config import Settings, get_settings
from lunara.cycles.phase import DEFAULT_CYCLE_LENGTH, DEFAULT_PERIOD_DURATION
from lunara.errors import GenerationFailedError, LunaraError, UpstreamUnavailableError
from lunara.models.base import utc_now
from lunara.models.insights import INSIGHT_TITLES, InsightType
from lunara.services.summary import UserDataSummary

logger = logging.getLogger("lunara.insights")

DEFAULT_AGE = 25
INSIGHT_CONFIDENCE = 0.8

INSIGHT_SYSTEM_PROMPT = (
    "You are an expert women's health assistant. Provide useful and "
    "personalized advice based on user data. Respond in English in a clear and "
    "empathetic manner. Focus on health and wellness advice that is "
    "evidence-based and supportive."
)
QUICK_TIP_SYSTEM_PROMPT = (
    "You are a women's health expert. Provide a brief, actionable health tip "
    "in English. Keep it under 100 words."
)

FALLBACK_TIPS: dict[str, str] = {
    "menstrual health": (
        "Stay hydrated and maintain a balanced diet rich in iron during your "
        "menstrual cycle."
    ),
    "nutrition": (
        "Focus on eating a variety of colorful fruits and vegetables to ensure "
        "you get essential nutrients."
    ),
    "fitness": "Aim for at least 30 minutes of moderate exercise most days of the week.",
    "mental health": (
        "Take time for self-care and practice mindfulness or meditation to "
        "manage stress."
    ),
    "default": (
        "Listen to your body and prioritize getting enough sleep for overall "
        "health and wellbeing."
    ),
}


def fallback_tip(topic: str) -> str:
    return FALLBACK_TIPS.get(topic.strip().lower(), FALLBACK_TIPS["default"])


def build_insight_prompt(summary: UserDataSummary, insight_type: InsightType | str) -> str:
    insight_type = InsightType(insight_type)
    base = (
        f"User: woman, {summary.age or DEFAULT_AGE} years old, "
        f"weight: {summary.weight or 'not specified'}kg"
    )

    if insight_type is InsightType.cycle_prediction:
        return (
            f"{base}. Menstrual cycle data: average duration "
            f"{summary.cycle_length or DEFAULT_CYCLE_LENGTH} days, period duration "
            f"{summary.period_duration or DEFAULT_PERIOD_DURATION} days. Recent "
            f"symptoms: {summary.recent_symptoms or 'none'}. Provide personalized "
            "advice for the next cycle."
        )
    if insight_type is InsightType.nutrition_advice:
        return (
            f"{base}. Recent nutritional log: {summary.recent_meals or 'not available'}. "
            f"Cycle phase: {summary.cycle_phase}. Provide personalized nutritional "
            "advice considering the menstrual cycle phase."
        )
    if insight_type is InsightType.fitness_suggestion:
        return (
            f"{base}. Recent physical activity: "
            f"{summary.recent_activities or 'not available'}. Cycle phase: "
            f"{summary.cycle_phase}. Suggest appropriate exercises for this phase."
        )
    if insight_type is InsightType.mood_analysis:
        stress = summary.stress_level if summary.stress_level is not None else "medium"
        return (
            f"{base}. Recent mood: {summary.recent_moods or 'not available'}. "
            f"Stress level: {stress}. Provide advice to improve emotional "
            "wellbeing during the cycle."
        )
    return (
        f"{base}. Cycle phase: {summary.cycle_phase}. Recent health data: cycles "
        "tracked, some nutrition and fitness logs. Provide general personalized "
        "health advice for a woman in reproductive age, focusing on menstrual "
        "health and overall wellness."
    )


@dataclass
class GeneratedInsight:
    type: str
    title: str
    content: str
    confidence_score: float = INSIGHT_CONFIDENCE
    generated_at: datetime = field(default_factory=utc_now)
    expires_at: datetime | None = None

    def as_document(self) -> dict:
        return {
            "type": self.type,
            "title": self.title,
            "content": self.content,
            "confidence_score": self.confidence_score,
            "is_read": False,
            "generated_at": self.generated_at,
            "expires_at": self.expires_at,
        }


class InsightGenerator(Protocol):
    @property
    def is_available(self) -> bool: ...

    async def generate(
        self, summary: UserDataSummary, insight_type: InsightType | str
    ) -> GeneratedInsight: ...

    async def generate_many(
        self, summary: UserDataSummary, insight_types: list[InsightType | str]
    ) -> list[GeneratedInsight]: ...

    async def quick_tip(self, topic: str) -> str: ...


class OpenAIInsightGenerator:
    """Chat-completions backed insight generator.

    Usage::

        generator = OpenAIInsightGenerator(settings)
        insight = await generator.generate(summary, InsightType.mood_analysis)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        if client is None and self._settings.openai_api_key:
            client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                timeout=self._settings.request_timeout_seconds,
                max_retries=0,
            )
        self._client = client
        if self._client is None:
            logger.warning("OpenAI API key not provided. AI features will be disabled.")
        else:
            logger.info("OpenAI insight generator ready (model: %s)", self._settings.openai_model)

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def _complete(
        self, system: str, prompt: str, *, max_tokens: int, temperature: float
    ) -> str:
        if self._client is None:
            raise UpstreamUnavailableError("AI service is currently unavailable")
        try:
            completion = await self._client.chat.completions.create(
                model=self._settings.openai_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APITimeoutError as exc:
            logger.error("OpenAI request timed out: %s", exc)
            raise UpstreamUnavailableError("AI service timed out") from exc
        except openai.APIError as exc:
            logger.error("OpenAI request failed: %s", exc)
            raise UpstreamUnavailableError("AI service is currently unavailable") from exc

        content = ""
        if completion.choices:
            content = (completion.choices[0].message.content or "").strip()
        if not content:
            raise GenerationFailedError()
        return content

    async def generate(
        self, summary: UserDataSummary, insight_type: InsightType | str
    ) -> GeneratedInsight:
        insight_type = InsightType(insight_type)
        content = await self._complete(
            INSIGHT_SYSTEM_PROMPT,
            build_insight_prompt(summary, insight_type),
            max_tokens=self._settings.insight_max_tokens,
            temperature=self._settings.insight_temperature,
        )
        generated_at = utc_now()
        return GeneratedInsight(
            type=insight_type.value,
            title=INSIGHT_TITLES.get(insight_type, "Health Insight"),
            content=content,
            generated_at=generated_at,
            expires_at=generated_at + timedelta(days=self._settings.insight_expiry_days),
        )

    async def generate_many(
        self, summary: UserDataSummary, insight_types: list[InsightType | str]
    ) -> list[GeneratedInsight]:
        """Generate several insights concurrently, keeping the ones that succeed.

        Raises ``GenerationFailedError`` only when every type fails.
        """
        results = await asyncio.gather(
            *(self.generate(summary, t) for t in insight_types),
            return_exceptions=True,
        )
        insights: list[GeneratedInsight] = []
        for insight_type, result in zip(insight_types, results):
            if isinstance(result, LunaraError):
                logger.warning("Insight %s not generated: %s", insight_type, result.message)
                continue
            if isinstance(result, BaseException):
                raise result
            insights.append(result)
        if not insights:
            raise GenerationFailedError("Failed to generate any insights")
        return insights

    async def quick_tip(self, topic: str) -> str:
        return await self._complete(
            QUICK_TIP_SYSTEM_PROMPT,
            f"Give me a quick health tip about {topic} for women.",
            max_tokens=self._settings.quick_tip_max_tokens,
            temperature=self._settings.quick_tip_temperature,
        )
