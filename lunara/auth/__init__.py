"""Authentication and per-owner data isolation.

Modules:
    identity: Firebase ID token verification (Principal, IdentityVerifier)
    guard:    require_authenticated / scope_to_owner / authorize_record_access
"""

from lunara.auth.guard import (
    OwnerFilter,
    authorize_record_access,
    require_authenticated,
    scope_to_owner,
)
from lunara.auth.identity import FirebaseTokenVerifier, IdentityVerifier, Principal

__all__ = [
    "FirebaseTokenVerifier",
    "IdentityVerifier",
    "OwnerFilter",
    "Principal",
    "authorize_record_access",
    "require_authenticated",
    "scope_to_owner",
]
