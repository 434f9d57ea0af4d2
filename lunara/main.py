"""Lunara API: FastAPI application entry point.

Run locally:
    uvicorn lunara.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lunara.auth.identity import FirebaseTokenVerifier, IdentityVerifier
from lunara.config import Settings, get_settings
from lunara.handlers import register_exception_handlers
from lunara.insights.generator import InsightGenerator, OpenAIInsightGenerator
from lunara.middleware.firebase_auth import FirebaseAuthMiddleware
from lunara.middleware.rate_limit import RateLimitMiddleware
from lunara.middleware.security import SecurityHeadersMiddleware
from lunara.routers import (
    cycles,
    fitness,
    health,
    health_data,
    insights,
    mental_health,
    nutrition,
    users,
)
from lunara.services.database import Database
from lunara.services.records import Repositories
from lunara.services.store import Store, build_postgres_store

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("lunara")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks.

    When no store was injected into ``create_app`` the PostgreSQL store is
    built here, after the pool is up.
    """
    settings: Settings = app.state.settings
    logger.info(
        "Starting %s v%s [%s]",
        settings.app_name,
        settings.app_version,
        settings.environment,
    )
    db: Database | None = None
    if getattr(app.state, "repositories", None) is None:
        db = Database(settings)
        await db.connect()
        if settings.database_apply_schema:
            await db.apply_schema()
        app.state.database = db
        app.state.repositories = Repositories.from_store(build_postgres_store(db))
    yield
    if db is not None:
        await db.close()
    logger.info("%s shut down", settings.app_name)


# ---------- App factory ----------

def create_app(
    settings: Settings | None = None,
    *,
    verifier: IdentityVerifier | None = None,
    store: Store | None = None,
    generator: InsightGenerator | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description=(
            "Personal health tracking: menstrual cycles with phase "
            "classification, nutrition, fitness, mental health and "
            "AI-generated wellness insights."
        ),
        version=settings.app_version,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.repositories = Repositories.from_store(store) if store else None
    app.state.insight_generator = generator or OpenAIInsightGenerator(settings)

    register_exception_handlers(app)

    # ---------- Middleware (last added runs first) ----------

    # Firebase ID token authentication
    app.add_middleware(
        FirebaseAuthMiddleware, verifier=verifier or FirebaseTokenVerifier(settings)
    )

    # Rate limiting runs before token verification
    app.add_middleware(RateLimitMiddleware, settings=settings)

    # Security headers on every response, rejections included
    app.add_middleware(SecurityHeadersMiddleware)

    # CORS, outermost so preflight is answered before authentication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
    )

    # ---------- Public routes ----------
    app.include_router(health.router)

    # ---------- API routes ----------
    api_prefix = "/api"

    app.include_router(cycles.router, prefix=api_prefix)
    app.include_router(nutrition.router, prefix=api_prefix)
    app.include_router(fitness.router, prefix=api_prefix)
    app.include_router(mental_health.router, prefix=api_prefix)
    app.include_router(health_data.router, prefix=api_prefix)
    app.include_router(insights.router, prefix=api_prefix)
    app.include_router(users.router, prefix=api_prefix)

    return app


app = create_app()
