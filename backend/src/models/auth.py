"""Authentication models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """JWT issuance response."""

    token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (always bearer)")
    expires_at: datetime = Field(..., description="Expiration timestamp")


class JWTPayload(BaseModel):
    """JWT claims payload."""

    sub: str = Field(..., description="Subject (user_id)")
    iat: int = Field(..., description="Issued at timestamp")
    exp: int = Field(..., description="Expiration timestamp")
    purpose: Optional[str] = Field(None, description="Set on single-purpose tokens")


class Credentials(BaseModel):
    """Email/password pair for sign-up and sign-in."""

    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., max_length=256)


class SignUpResponse(BaseModel):
    user_id: str
    email: str
    confirmation_required: bool = Field(
        ..., description="True when a confirmation link was sent to the email address"
    )


__all__ = ["TokenResponse", "JWTPayload", "Credentials", "SignUpResponse"]
