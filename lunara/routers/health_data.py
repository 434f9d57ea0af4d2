"""Cross-collection views over the caller's tracking data."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from lunara.dependencies import CurrentUser, Repos
from lunara.models.base import success_response, utc_now
from lunara.services.summary import health_stats, latest_data

router = APIRouter(prefix="/health-data", tags=["health data"])


@router.get("/summary")
async def get_summary(user: CurrentUser, repos: Repos) -> Any:
    """Latest cycle (with its current phase) plus the most recent logs."""
    latest = await latest_data(repos, user)
    return success_response(
        {
            **latest.as_dict(),
            "user_id": user.principal_id,
            "generated_at": utc_now().isoformat(),
        },
        "Health summary retrieved successfully",
    )


@router.get("/stats")
async def get_stats(user: CurrentUser, repos: Repos) -> Any:
    stats = await health_stats(repos, user)
    return success_response(stats, "Health statistics retrieved successfully")
