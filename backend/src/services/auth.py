"""Authentication helpers (JWT access tokens and email confirmation tokens)."""

from __future__ import annotations

import abc
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, List

import jwt
from fastapi import status

from ..models.auth import JWTPayload
from .config import AppConfig, get_config

LOCAL_DEV_USER_ID = "local-dev"
CONFIRM_PURPOSE = "confirm_email"
CONFIRM_TOKEN_TTL = timedelta(days=2)


class AuthError(Exception):
    """Domain-specific authentication error."""

    def __init__(
        self,
        error: str,
        message: str,
        *,
        status_code: int = status.HTTP_401_UNAUTHORIZED,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.status_code = status_code
        self.detail = detail or {}


def _dev_fallback_secret(config: AppConfig) -> Optional[str]:
    env = os.getenv("ENVIRONMENT", "").lower()
    if env in ("development", "dev") and config.enable_local_mode:
        return "local-dev-secret-key-123"
    return None


class TokenValidator(abc.ABC):
    """Abstract base class for token validation strategies."""

    @abc.abstractmethod
    def validate(self, token: str) -> Optional[JWTPayload]:
        """
        Validate the token and return payload if valid, or None if this validator
        does not recognize the token (allow fallthrough).
        Raises AuthError if token is recognized but invalid/expired.
        """
        pass


class StaticTokenValidator(TokenValidator):
    """Validates against a configured static token (local development)."""

    def __init__(self, static_token: Optional[str], user_id: str):
        self.static_token = static_token
        self.user_id = user_id

    def validate(self, token: str) -> Optional[JWTPayload]:
        if self.static_token and token == self.static_token:
            now = datetime.now(timezone.utc)
            return JWTPayload(
                sub=self.user_id,
                iat=int(now.timestamp()),
                exp=int((now + timedelta(days=365)).timestamp()),
            )
        return None


class JWTValidator(TokenValidator):
    """Validates standard JWT tokens signed by the application secret."""

    def __init__(self, config: AppConfig, algorithm: str = "HS256"):
        self.config = config
        self.algorithm = algorithm

    def _require_secret(self) -> str:
        secret = self.config.jwt_secret_key or _dev_fallback_secret(self.config)
        if not secret:
            raise AuthError(
                "missing_jwt_secret",
                "JWT secret is not configured.",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return secret

    def validate(self, token: str) -> Optional[JWTPayload]:
        try:
            decoded = jwt.decode(token, self._require_secret(), algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("token_expired", "Token expired") from exc
        except jwt.DecodeError:
            # Not a JWT; let the chain fall through to "Invalid credentials"
            return None
        except jwt.InvalidTokenError as exc:
            raise AuthError("invalid_token", f"Invalid token: {exc}") from exc
        return JWTPayload(**decoded)


class AuthService:
    """Issue and validate tokens using configured strategies."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        algorithm: str = "HS256",
        token_ttl_days: int = 90,
    ) -> None:
        self.config = config or get_config()
        self.algorithm = algorithm
        self.token_ttl_days = token_ttl_days

        self.validators: List[TokenValidator] = []

        # 1. Local Dev Token (Highest priority)
        if self.config.enable_local_mode:
            self.validators.append(
                StaticTokenValidator(self.config.local_dev_token, LOCAL_DEV_USER_ID)
            )

        # 2. JWT Validator (Standard)
        self.validators.append(JWTValidator(self.config, algorithm))

    def validate_jwt(self, token: str) -> JWTPayload:
        """
        Validate an access token against all registered strategies.
        Returns the first successful payload.
        Raises AuthError if no validator accepts it, if validation explicitly
        fails, or if the token was issued for another purpose.
        """
        for validator in self.validators:
            payload = validator.validate(token)
            if payload:
                if payload.purpose is not None:
                    raise AuthError("invalid_token", "Token cannot be used for API access")
                return payload

        raise AuthError("invalid_token", "Invalid authentication credentials")

    def _require_secret(self) -> str:
        secret = self.config.jwt_secret_key or _dev_fallback_secret(self.config)
        if not secret:
            raise AuthError("missing_jwt_secret", "JWT secret not configured", status_code=500)
        return secret

    def _build_payload(
        self,
        user_id: str,
        expires_in: Optional[timedelta] = None,
        purpose: Optional[str] = None,
    ) -> JWTPayload:
        now = datetime.now(timezone.utc)
        lifetime = expires_in or timedelta(days=self.token_ttl_days)
        return JWTPayload(
            sub=user_id,
            iat=int(now.timestamp()),
            exp=int((now + lifetime).timestamp()),
            purpose=purpose,
        )

    def _encode(self, payload: JWTPayload) -> str:
        return jwt.encode(
            payload.model_dump(exclude_none=True),
            self._require_secret(),
            algorithm=self.algorithm,
        )

    def create_jwt(
        self, user_id: str, *, expires_in: Optional[timedelta] = None
    ) -> str:
        """Create a signed JWT for the given user."""
        return self._encode(self._build_payload(user_id, expires_in))

    def issue_token_response(
        self, user_id: str, *, expires_in: Optional[timedelta] = None
    ) -> tuple[str, datetime]:
        """Return token string and expiry timestamp (helper for API routes)."""
        payload = self._build_payload(user_id, expires_in)
        expires_at = datetime.fromtimestamp(payload.exp, tz=timezone.utc)
        return self._encode(payload), expires_at

    def create_confirmation_token(self, user_id: str) -> str:
        """Single-purpose token that confirms the account email."""
        return self._encode(self._build_payload(user_id, CONFIRM_TOKEN_TTL, CONFIRM_PURPOSE))

    def verify_confirmation_token(self, token: str) -> str:
        """Return the user id of a valid confirmation token."""
        try:
            decoded = jwt.decode(token, self._require_secret(), algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("token_expired", "Confirmation link expired", status_code=400) from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError("invalid_token", "Invalid confirmation token", status_code=400) from exc
        payload = JWTPayload(**decoded)
        if payload.purpose != CONFIRM_PURPOSE:
            raise AuthError("invalid_token", "Invalid confirmation token", status_code=400)
        return payload.sub


__all__ = [
    "AuthService",
    "AuthError",
    "TokenValidator",
    "StaticTokenValidator",
    "JWTValidator",
    "LOCAL_DEV_USER_ID",
]
