"""Endpoints for workout / fitness logs."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from lunara.dependencies import CurrentUser, Repos
from lunara.errors import ValidationError
from lunara.models.base import success_response, utc_now
from lunara.models.tracking import FitnessLogCreate, FitnessLogRead, FitnessLogUpdate

router = APIRouter(prefix="/health-data/fitness", tags=["fitness"])


def _read(record: dict[str, Any]) -> dict[str, Any]:
    return FitnessLogRead.model_validate(record).model_dump(mode="json")


@router.get("")
async def list_fitness_logs(
    user: CurrentUser,
    repos: Repos,
    limit: int = Query(default=30, ge=1, le=100),
) -> Any:
    rows = await repos.fitness_logs.list(user, limit=limit)
    logs = [_read(r) for r in rows]
    return success_response(
        {"fitness_logs": logs, "count": len(logs), "user_id": user.principal_id},
        "Fitness logs retrieved successfully",
    )


@router.post("", status_code=201)
async def create_fitness_log(
    user: CurrentUser, repos: Repos, body: FitnessLogCreate
) -> Any:
    row = await repos.fitness_logs.create(
        user, {**body.model_dump(), "logged_at": utc_now()}
    )
    return success_response(_read(row), "Fitness log created successfully")


@router.get("/{log_id}")
async def get_fitness_log(log_id: str, user: CurrentUser, repos: Repos) -> Any:
    row = await repos.fitness_logs.get(user, log_id)
    return success_response(_read(row), "Fitness log retrieved successfully")


@router.patch("/{log_id}")
async def update_fitness_log(
    log_id: str, user: CurrentUser, repos: Repos, body: FitnessLogUpdate
) -> Any:
    updates = body.changes()
    if not updates:
        raise ValidationError("No fields to update")
    row = await repos.fitness_logs.update(user, log_id, updates)
    return success_response(_read(row), "Fitness log updated successfully")


@router.delete("/{log_id}")
async def delete_fitness_log(log_id: str, user: CurrentUser, repos: Repos) -> Any:
    await repos.fitness_logs.delete(user, log_id)
    return success_response(None, "Fitness log deleted successfully")
