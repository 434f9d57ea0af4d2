"""Error taxonomy shared by the guard, the data layer and the API surface.

Every error carries the HTTP status it maps to and a message that is safe
to show to the end caller.  Exception handlers in ``lunara.handlers`` turn these
into the standard response envelope.
"""

from __future__ import annotations


class LunaraError(Exception):
    """Base class for all errors surfaced through the response envelope."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(LunaraError):
    """Missing, malformed, expired or rejected bearer credential."""

    status_code = 401
    default_message = "Invalid or expired token"


class ForbiddenError(LunaraError):
    """Authenticated, but the record belongs to someone else."""

    status_code = 403
    default_message = "Access denied"


class NotFoundError(LunaraError):
    status_code = 404
    default_message = "Resource not found"


class ValidationError(LunaraError):
    status_code = 400
    default_message = "Validation error"


class UpstreamUnavailableError(LunaraError):
    """The database or the LLM service could not be reached."""

    status_code = 500
    default_message = "Service temporarily unavailable"


class GenerationFailedError(LunaraError):
    """The LLM answered but produced nothing usable."""

    status_code = 500
    default_message = "Failed to generate insight. Please try again."
