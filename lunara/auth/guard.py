"""Request-scoped authorization and data isolation.

Three composable checks cover every data-access path:

``require_authenticated``
    verify the bearer credential and produce the Principal.  Runs in the
    auth middleware before any route code.
``scope_to_owner``
    the owner filter every list / count / bulk query must carry.
``authorize_record_access``
    after a fetch by id: missing record -> NotFoundError, someone else's
    record -> ForbiddenError.  Existence is always checked first.

The guard raises exactly AuthenticationError, NotFoundError and
ForbiddenError.  Store failures pass through untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from lunara.auth.identity import IdentityVerifier, Principal
from lunara.errors import AuthenticationError, ForbiddenError, NotFoundError

logger = logging.getLogger("lunara.auth.guard")

OWNER_FIELD = "user_id"

R = TypeVar("R", bound=Mapping[str, Any])


@dataclass(frozen=True)
class OwnerFilter:
    """Constrains a query to records owned by one principal.

    Only ``scope_to_owner`` builds these; stores read ``owner_id``.
    """

    owner_id: str
    field: str = OWNER_FIELD


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError(
            "Firebase token required. Please include Authorization header "
            "with Bearer token."
        )
    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        raise AuthenticationError("Invalid token format. Token cannot be empty.")
    return token


def require_authenticated(
    authorization: str | None, verifier: IdentityVerifier
) -> Principal:
    """Verify the ``Authorization`` header value and return the caller."""
    token = extract_bearer_token(authorization)
    principal = verifier.verify(token)
    if not principal.principal_id:
        raise AuthenticationError("User authentication required")
    logger.debug("Authenticated %s", principal.principal_id)
    return principal


def scope_to_owner(principal: Principal) -> OwnerFilter:
    return OwnerFilter(owner_id=principal.principal_id)


def authorize_record_access(
    principal: Principal, record: R | None, resource: str = "Record"
) -> R:
    """Return ``record`` if ``principal`` owns it.

    ``record`` must have been fetched by id alone, so that "absent" and
    "not yours" stay distinguishable.
    """
    if record is None:
        raise NotFoundError(f"{resource} not found")
    if record.get(OWNER_FIELD) != principal.principal_id:
        logger.warning(
            "Principal %s denied access to %s %s",
            principal.principal_id,
            resource.lower(),
            record.get("id"),
        )
        raise ForbiddenError(f"Access denied to this {resource.lower()}")
    return record
