"""Public endpoints: liveness check and service description."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request

from lunara.dependencies import AppSettings
from lunara.models.base import success_response, utc_now

router = APIRouter(tags=["system"])
logger = logging.getLogger("lunara.health")

ENDPOINTS = {
    "health_data": "/api/health-data",
    "ai": "/api/ai",
    "users": "/api/users",
}


@router.get("/health")
async def health_check(request: Request, settings: AppSettings) -> dict:
    """Liveness check. Returns 200 if the API process is up.

    Also performs a lightweight DB connectivity check when a database is
    attached.
    """
    db = getattr(request.app.state, "database", None)
    db_ok = await db.ping() if db is not None else False
    if db is not None and not db_ok:
        logger.warning("Health check database ping failed")

    return {
        "status": "healthy" if db_ok or db is None else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else ("unreachable" if db else "not configured"),
        "timestamp": utc_now().isoformat(),
    }


@router.get("/")
async def root(settings: AppSettings) -> Any:
    return success_response(
        {
            "name": settings.app_name,
            "version": settings.app_version,
            "documentation": "/docs",
            "endpoints": ENDPOINTS,
        },
        f"Welcome to {settings.app_name}",
    )


@router.get("/api")
async def api_index(settings: AppSettings) -> Any:
    return success_response(
        {"version": settings.app_version, "endpoints": ENDPOINTS},
        f"{settings.app_name} endpoints",
    )
