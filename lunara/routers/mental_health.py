"""Endpoints for mental health check-ins."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from lunara.dependencies import CurrentUser, Repos
from lunara.errors import ValidationError
from lunara.models.base import success_response, utc_now
from lunara.models.tracking import (
    MentalHealthLogCreate,
    MentalHealthLogRead,
    MentalHealthLogUpdate,
)

router = APIRouter(prefix="/health-data/mental-health", tags=["mental health"])


def _read(record: dict[str, Any]) -> dict[str, Any]:
    return MentalHealthLogRead.model_validate(record).model_dump(mode="json")


@router.get("")
async def list_mental_health_logs(
    user: CurrentUser,
    repos: Repos,
    limit: int = Query(default=30, ge=1, le=100),
) -> Any:
    rows = await repos.mental_health_logs.list(user, limit=limit)
    logs = [_read(r) for r in rows]
    return success_response(
        {"mental_health_logs": logs, "count": len(logs), "user_id": user.principal_id},
        "Mental health logs retrieved successfully",
    )


@router.post("", status_code=201)
async def create_mental_health_log(
    user: CurrentUser, repos: Repos, body: MentalHealthLogCreate
) -> Any:
    row = await repos.mental_health_logs.create(
        user, {**body.model_dump(), "logged_at": utc_now()}
    )
    return success_response(_read(row), "Mental health log created successfully")


@router.get("/{log_id}")
async def get_mental_health_log(log_id: str, user: CurrentUser, repos: Repos) -> Any:
    row = await repos.mental_health_logs.get(user, log_id)
    return success_response(_read(row), "Mental health log retrieved successfully")


@router.patch("/{log_id}")
async def update_mental_health_log(
    log_id: str, user: CurrentUser, repos: Repos, body: MentalHealthLogUpdate
) -> Any:
    updates = body.changes()
    if not updates:
        raise ValidationError("No fields to update")
    row = await repos.mental_health_logs.update(user, log_id, updates)
    return success_response(_read(row), "Mental health log updated successfully")


@router.delete("/{log_id}")
async def delete_mental_health_log(log_id: str, user: CurrentUser, repos: Repos) -> Any:
    await repos.mental_health_logs.delete(user, log_id)
    return success_response(None, "Mental health log deleted successfully")
