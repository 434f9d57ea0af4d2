"""CRUD endpoints for menstrual cycles.

Every cycle in a response carries ``current_phase``, computed at read time.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from lunara.dependencies import CurrentUser, Repos
from lunara.errors import ValidationError
from lunara.models.base import success_response
from lunara.models.tracking import CycleCreate, CycleRead, CycleUpdate
from lunara.services.summary import with_phase

router = APIRouter(prefix="/health-data/cycles", tags=["cycles"])


def _read(record: dict[str, Any]) -> dict[str, Any]:
    return CycleRead.model_validate(with_phase(record)).model_dump(mode="json")


@router.get("")
async def list_cycles(
    user: CurrentUser,
    repos: Repos,
    limit: int = Query(default=50, ge=1, le=100),
) -> Any:
    rows = await repos.cycles.list(user, limit=limit)
    cycles = [_read(r) for r in rows]
    return success_response(
        {"cycles": cycles, "count": len(cycles), "user_id": user.principal_id},
        "Cycles retrieved successfully",
    )


@router.post("", status_code=201)
async def create_cycle(user: CurrentUser, repos: Repos, body: CycleCreate) -> Any:
    row = await repos.cycles.create(user, body.model_dump())
    return success_response(_read(row), "Cycle created successfully")


@router.get("/{cycle_id}")
async def get_cycle(cycle_id: str, user: CurrentUser, repos: Repos) -> Any:
    row = await repos.cycles.get(user, cycle_id)
    return success_response(_read(row), "Cycle retrieved successfully")


@router.put("/{cycle_id}")
async def update_cycle(
    cycle_id: str, user: CurrentUser, repos: Repos, body: CycleUpdate
) -> Any:
    updates = body.changes()
    if not updates:
        raise ValidationError("No fields to update")
    row = await repos.cycles.update(user, cycle_id, updates)
    return success_response(_read(row), "Cycle updated successfully")


@router.delete("/{cycle_id}")
async def delete_cycle(cycle_id: str, user: CurrentUser, repos: Repos) -> Any:
    await repos.cycles.delete(user, cycle_id)
    return success_response(None, "Cycle deleted successfully")
