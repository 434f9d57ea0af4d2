"""AI-generated wellness insights and quick tips.

Insights are stored per user like any other record, so reading, marking and
deleting them goes through the same ownership checks as the tracking data.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Query

from lunara.dependencies import CurrentUser, Generator, Repos
from lunara.errors import LunaraError, ValidationError
from lunara.insights.generator import fallback_tip
from lunara.models.base import success_response, utc_now
from lunara.models.insights import (
    INSIGHT_DESCRIPTIONS,
    InsightRead,
    InsightRequest,
    InsightType,
    InsightTypeRead,
    MultipleInsightsRequest,
    QuickTipRead,
)
from lunara.services.summary import UserDataSummary, build_user_summary, latest_data

router = APIRouter(prefix="/ai", tags=["insights"])
logger = logging.getLogger("lunara.insights")

VALID_TYPES = {t.value for t in InsightType}


def _read(record: dict[str, Any]) -> dict[str, Any]:
    return InsightRead.model_validate(record).model_dump(mode="json")


async def _user_summary(user: CurrentUser, repos: Repos) -> UserDataSummary:
    latest = await latest_data(repos, user)
    profile = await repos.profiles.get(user)
    return build_user_summary(latest, profile)


@router.post("/generate-insight", status_code=201)
async def generate_insight(
    user: CurrentUser, repos: Repos, generator: Generator, body: InsightRequest
) -> Any:
    summary = await _user_summary(user, repos)
    insight = await generator.generate(summary, body.type)
    row = await repos.insights.create(user, insight.as_document())
    return success_response(_read(row), "AI insight generated successfully")


@router.post("/generate-multiple-insights", status_code=201)
async def generate_multiple_insights(
    user: CurrentUser,
    repos: Repos,
    generator: Generator,
    body: MultipleInsightsRequest,
) -> Any:
    # unknown types are dropped rather than failing the whole batch
    types = list(dict.fromkeys(t for t in body.types if t in VALID_TYPES))
    if not types:
        raise ValidationError(
            "No valid insight types provided. Valid types: "
            + ", ".join(sorted(VALID_TYPES))
        )

    summary = await _user_summary(user, repos)
    generated = await generator.generate_many(summary, types)
    rows = [await repos.insights.create(user, i.as_document()) for i in generated]
    insights = [_read(r) for r in rows]
    return success_response(
        {"insights": insights, "count": len(insights)},
        f"Generated {len(insights)} AI insights successfully",
    )


@router.get("/insights")
async def list_insights(
    user: CurrentUser,
    repos: Repos,
    limit: int = Query(default=10, ge=1, le=100),
) -> Any:
    rows = await repos.insights.list(user, limit=limit)
    insights = [_read(r) for r in rows]
    return success_response(
        {"insights": insights, "count": len(insights), "user_id": user.principal_id},
        "AI insights retrieved successfully",
    )


@router.patch("/insights/{insight_id}/read")
async def mark_insight_read(insight_id: str, user: CurrentUser, repos: Repos) -> Any:
    row = await repos.insights.update(
        user, insight_id, {"is_read": True, "read_at": utc_now()}
    )
    return success_response(_read(row), "Insight marked as read")


@router.delete("/insights/{insight_id}")
async def delete_insight(insight_id: str, user: CurrentUser, repos: Repos) -> Any:
    await repos.insights.delete(user, insight_id)
    return success_response(None, "Insight deleted successfully")


@router.get("/quick-tip")
async def quick_tip(
    user: CurrentUser,
    generator: Generator,
    topic: str = Query(default="general health", min_length=1, max_length=100),
) -> Any:
    source = "fallback"
    tip = fallback_tip(topic)
    if generator.is_available:
        try:
            tip = await generator.quick_tip(topic)
            source = "ai_generated"
        except LunaraError as exc:
            logger.warning("Quick tip for %r fell back to static text: %s", topic, exc.message)

    result = QuickTipRead(tip=tip, topic=topic, source=source)
    return success_response(result.model_dump(mode="json"), "Quick tip generated")


@router.get("/insight-types")
async def list_insight_types(user: CurrentUser) -> Any:
    types = [
        InsightTypeRead(key=t.name, value=t, description=INSIGHT_DESCRIPTIONS[t])
        for t in InsightType
    ]
    return success_response(
        [t.model_dump(mode="json") for t in types], "Available insight types"
    )
