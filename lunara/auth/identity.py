"""Firebase ID token verification.

Firebase ID tokens are RS256 JWTs signed by Google's ``securetoken`` service
account.  A token is accepted when its signature matches one of the
published keys, ``aud`` equals the Firebase project id, ``iss`` equals
``https://securetoken.google.com/<project id>`` and ``sub`` is non-empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import jwt as pyjwt
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientConnectionError, PyJWKClientError

from lunara.config import Settings, get_settings
from lunara.errors import AuthenticationError

logger = logging.getLogger("lunara.auth.identity")

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller extracted from a verified Firebase ID token."""

    principal_id: str  # Firebase uid (``sub``)
    email: str | None = None
    email_verified: bool = False
    claims: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


class IdentityVerifier(Protocol):
    """Turns an opaque bearer credential into a Principal or raises
    ``AuthenticationError``."""

    def verify(self, token: str) -> Principal: ...


class FirebaseTokenVerifier:
    """Verify Firebase-issued ID tokens against Google's JWKS."""

    def __init__(
        self,
        settings: Settings | None = None,
        jwks_client: PyJWKClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._project_id = self._settings.firebase_project_id
        self._jwks_client = jwks_client or PyJWKClient(
            self._settings.firebase_jwks_url,
            cache_keys=True,
            lifespan=3600,
            timeout=int(self._settings.request_timeout_seconds),
        )

    def verify(self, token: str) -> Principal:
        if not self._project_id:
            logger.error("FIREBASE_PROJECT_ID is not configured; rejecting token")
            raise AuthenticationError("Authentication is not configured")

        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            payload = pyjwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self._project_id,
                issuer=FIREBASE_ISSUER_PREFIX + self._project_id,
                options={"require": ["exp", "iat", "sub"]},
            )
        except pyjwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired. Please login again.")
        except PyJWKClientConnectionError as exc:
            logger.error("Unable to fetch Firebase signing keys: %s", exc)
            raise AuthenticationError("Unable to verify token")
        except (pyjwt.InvalidTokenError, PyJWKClientError) as exc:
            logger.warning("Firebase token validation failed: %s", exc)
            raise AuthenticationError(
                "Invalid token format. Please provide a valid Firebase token."
            )

        uid = payload.get("sub") or payload.get("user_id")
        if not uid:
            raise AuthenticationError("Token has no subject")

        return Principal(
            principal_id=uid,
            email=payload.get("email"),
            email_verified=bool(payload.get("email_verified", False)),
            claims=payload,
        )
