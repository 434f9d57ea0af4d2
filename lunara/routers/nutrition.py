"""Endpoints for meal / nutrition logs."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Query

from lunara.dependencies import CurrentUser, Repos
from lunara.models.base import success_response
from lunara.models.tracking import NutritionLogCreate, NutritionLogRead

router = APIRouter(prefix="/health-data/nutrition", tags=["nutrition"])


def _read(record: dict[str, Any]) -> dict[str, Any]:
    return NutritionLogRead.model_validate(record).model_dump(mode="json")


@router.get("")
async def list_nutrition_logs(
    user: CurrentUser,
    repos: Repos,
    log_date: date | None = Query(default=None, alias="date"),
    limit: int = Query(default=30, ge=1, le=100),
) -> Any:
    filters = {"log_date": log_date} if log_date else None
    rows = await repos.nutrition_logs.list(user, limit=limit, filters=filters)
    logs = [_read(r) for r in rows]
    return success_response(
        {"nutrition_logs": logs, "count": len(logs), "user_id": user.principal_id},
        "Nutrition logs retrieved successfully",
    )


@router.post("", status_code=201)
async def create_nutrition_log(
    user: CurrentUser, repos: Repos, body: NutritionLogCreate
) -> Any:
    row = await repos.nutrition_logs.create(user, body.model_dump())
    return success_response(_read(row), "Nutrition log created successfully")


@router.get("/{log_id}")
async def get_nutrition_log(log_id: str, user: CurrentUser, repos: Repos) -> Any:
    row = await repos.nutrition_logs.get(user, log_id)
    return success_response(_read(row), "Nutrition log retrieved successfully")


@router.delete("/{log_id}")
async def delete_nutrition_log(log_id: str, user: CurrentUser, repos: Repos) -> Any:
    await repos.nutrition_logs.delete(user, log_id)
    return success_response(None, "Nutrition log deleted successfully")
