"""Firebase ID token authentication middleware for FastAPI.

Validates the Bearer token on every request (except public routes) through
``require_authenticated`` and sets ``request.state.auth`` with the verified
``Principal`` that route handlers consume via ``get_current_user``.  A
rejected request never reaches a route, so no store access can happen
without a verified caller.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from lunara.auth.guard import require_authenticated
from lunara.auth.identity import IdentityVerifier
from lunara.errors import AuthenticationError
from lunara.handlers import error_response

logger = logging.getLogger("lunara.auth")

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/",
    "/api",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


class FirebaseAuthMiddleware(BaseHTTPMiddleware):
    """Verify Firebase-issued ID tokens and populate request.state.auth."""

    def __init__(self, app: Any, verifier: IdentityVerifier) -> None:
        super().__init__(app)
        self._verifier = verifier

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_public(request.url.path):
            return await call_next(request)

        # OPTIONS requests pass through (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        try:
            # JWKS refreshes are blocking HTTP calls
            principal = await run_in_threadpool(
                require_authenticated,
                request.headers.get("Authorization"),
                self._verifier,
            )
        except AuthenticationError as exc:
            logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
            return error_response(exc.message, exc.status_code)

        request.state.auth = principal
        return await call_next(request)
