"""Authentication dependency helpers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from ...models.auth import JWTPayload
from ...services.auth import AuthError, AuthService


@lru_cache(maxsize=1)
def get_auth_service() -> AuthService:
    return AuthService()


def _unauthorized(message: str, error: str = "unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
    )


@dataclass
class AuthContext:
    """Context extracted from a bearer token."""

    user_id: str
    token: str
    payload: JWTPayload


def _context_from_header(authorization: str, auth_service: AuthService) -> AuthContext:
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Authorization header must be in format: Bearer <token>")

    try:
        payload = auth_service.validate_jwt(token)
    except AuthError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"error": exc.error, "message": exc.message, "detail": exc.detail},
        ) from exc

    return AuthContext(user_id=payload.sub, token=token, payload=payload)


def get_auth_context(
    authorization: Annotated[Optional[str], Header(alias="Authorization")] = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """
    Extract and validate the user_id from a Bearer token.

    Raises HTTPException if the header is missing/invalid.
    """
    if not authorization:
        raise _unauthorized("Authorization header required")
    return _context_from_header(authorization, auth_service)


def get_optional_auth_context(
    authorization: Annotated[Optional[str], Header(alias="Authorization")] = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[AuthContext]:
    """Like get_auth_context, but anonymous requests yield None."""
    if not authorization:
        return None
    return _context_from_header(authorization, auth_service)


__all__ = [
    "AuthContext",
    "get_auth_context",
    "get_optional_auth_context",
    "get_auth_service",
]
