"""Simple in-memory sliding-window rate limiter.

Best-effort only: counters live in this process, are not shared between
workers and reset on restart.  Nothing else depends on them for correctness.

Clients are keyed by the socket peer address.  ``X-Forwarded-For`` is read
only when ``rate_limit_trust_forwarded_for`` is set, i.e. when the API sits
behind a proxy that overwrites the header.
"""

from __future__ import annotations

import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from lunara.config import Settings, get_settings
from lunara.handlers import error_response

# liveness checks are never throttled
EXEMPT_PATHS: set[str] = {"/health"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP sliding window rate limiter."""

    def __init__(
        self, app: Any, settings: Settings | None = None, window_seconds: int = 60
    ) -> None:
        super().__init__(app)
        s = settings or get_settings()
        self._max_requests = s.rate_limit_per_minute
        self._trust_forwarded_for = s.rate_limit_trust_forwarded_for
        self._window_seconds = window_seconds
        # ip -> timestamps inside the current window; never holds empty lists
        self._requests: dict[str, list[float]] = {}
        self._last_sweep = time.monotonic()

    def _client_ip(self, request: Request) -> str:
        if self._trust_forwarded_for:
            forwarded = request.headers.get("X-Forwarded-For")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _cleanup(self, ip: str, now: float) -> list[float]:
        cutoff = now - self._window_seconds
        recent = [t for t in self._requests.get(ip, ()) if t > cutoff]
        if recent:
            self._requests[ip] = recent
        else:
            self._requests.pop(ip, None)
        return recent

    def _sweep(self, now: float) -> None:
        """Drop clients that have been idle for a whole window."""
        if now - self._last_sweep < self._window_seconds:
            return
        self._last_sweep = now
        for ip in list(self._requests):
            self._cleanup(ip, now)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        ip = self._client_ip(request)
        now = time.monotonic()
        self._sweep(now)
        recent = self._cleanup(ip, now)

        if len(recent) >= self._max_requests:
            retry_after = int(self._window_seconds - (now - recent[0]))
            return error_response(
                "Too many requests. Please try again later.",
                429,
                headers={"Retry-After": str(max(retry_after, 1))},
            )

        recent.append(now)
        self._requests[ip] = recent

        response = await call_next(request)

        # Inform clients of their remaining budget
        remaining = self._max_requests - len(recent)
        response.headers["X-RateLimit-Limit"] = str(self._max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(remaining, 0))

        return response
