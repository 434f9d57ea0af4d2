"""Shared FastAPI dependencies injected into route handlers.

Collaborators (repositories, insight generator, settings) are built once by
the app factory / lifespan and parked on ``app.state``; nothing is
module-global.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from lunara.auth.identity import Principal
from lunara.config import Settings
from lunara.errors import AuthenticationError, UpstreamUnavailableError
from lunara.insights.generator import InsightGenerator
from lunara.services.records import Repositories


async def get_current_user(request: Request) -> Principal:
    """Return the principal verified by the auth middleware.

    The Firebase auth middleware sets ``request.state.auth`` before routes run.
    """
    principal: Principal | None = getattr(request.state, "auth", None)
    if principal is None:
        raise AuthenticationError("User authentication required")
    return principal


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repositories(request: Request) -> Repositories:
    repos: Repositories | None = getattr(request.app.state, "repositories", None)
    if repos is None:
        raise UpstreamUnavailableError("Database service unavailable")
    return repos


def get_insight_generator(request: Request) -> InsightGenerator:
    return request.app.state.insight_generator


# Annotated shortcuts for route signatures
CurrentUser = Annotated[Principal, Depends(get_current_user)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Repos = Annotated[Repositories, Depends(get_repositories)]
Generator = Annotated[InsightGenerator, Depends(get_insight_generator)]
