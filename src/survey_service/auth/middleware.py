"""
Bearer token authentication.

This module exposes:
- JWTTokenValidator
- identity_from_claims
- get_current_identity / CurrentIdentityDep
- require_admin / AdminIdentityDep
"""

from typing import Annotated, Any

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from survey_service.auth.identity import Identity
from survey_service.config import Settings, get_settings
from survey_service.shared.exceptions import AuthenticationError, PermissionDeniedError
from survey_service.shared.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


class JWTTokenValidator:
    """Verifies bearer tokens signed with the configured secret."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def validate(self, token: str) -> dict[str, Any]:
        """Decode and verify a token.

        Raises:
            AuthenticationError: If the token is expired or invalid.
        """
        try:
            return jwt.decode(
                token,
                self._settings.jwt_secret_key,
                algorithms=[self._settings.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token", details={"error": str(e)}) from e


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    """Build an identity from verified token claims.

    Raises:
        AuthenticationError: If a required claim is missing.
    """
    missing = [name for name in ("sub", "org_id", "app_id") if not claims.get(name)]
    if missing:
        raise AuthenticationError("Token missing required claims", details={"missing": missing})

    external_ids = claims.get("external_ids") or {}
    permissions = claims.get("permissions") or []
    if isinstance(permissions, str):
        permissions = [p.strip() for p in permissions.split(",") if p.strip()]

    return Identity(
        account_id=str(claims["sub"]),
        org_id=str(claims["org_id"]),
        app_id=str(claims["app_id"]),
        external_ids={str(k): str(v) for k, v in dict(external_ids).items()},
        permissions=frozenset(permissions),
        system=bool(claims.get("system", False)),
    )


async def get_current_identity(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    settings: Settings = Depends(get_settings),
) -> Identity:
    """Authenticate the request's bearer token."""
    if credentials is None:
        logger.warning(
            "Missing authentication credentials",
            extra={"endpoint": str(request.url.path), "method": request.method},
        )
        raise AuthenticationError("Authentication credentials required")

    try:
        claims = JWTTokenValidator(settings).validate(credentials.credentials)
        return identity_from_claims(claims)
    except AuthenticationError as e:
        logger.warning(
            "Invalid token",
            extra={"endpoint": str(request.url.path), "method": request.method, "error": e.message},
        )
        raise


CurrentIdentityDep = Annotated[Identity, Depends(get_current_identity)]


async def require_admin(
    identity: CurrentIdentityDep,
    settings: Settings = Depends(get_settings),
) -> Identity:
    """Require the admin permission."""
    if not identity.has_permission(settings.admin_permission):
        logger.warning(
            "Admin permission required",
            extra={"account_id": identity.account_id, "permission": settings.admin_permission},
        )
        raise PermissionDeniedError(
            "Admin permission required",
            details={"permission": settings.admin_permission},
        )
    return identity


AdminIdentityDep = Annotated[Identity, Depends(require_admin)]
