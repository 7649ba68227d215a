"""Email/password authentication routes and API token issuance."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.auth import Credentials, SignUpResponse, TokenResponse
from ...models.user import User
from ...services.accounts import AccountService
from ...services.auth import AuthError, AuthService
from ..dependencies import get_account_service
from ..middleware import AuthContext, get_auth_context, get_auth_service, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/auth/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    credentials: Credentials,
    accounts: AccountService = Depends(get_account_service),
):
    """Create an account; when confirmation is required the link goes to the mailer."""
    try:
        return accounts.sign_up(credentials.email, credentials.password)
    except AuthError as exc:
        raise to_http_exception(exc) from exc


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    credentials: Credentials,
    accounts: AccountService = Depends(get_account_service),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Exchange email and password for an access token."""
    try:
        user_id = accounts.sign_in(credentials.email, credentials.password)
    except AuthError as exc:
        raise to_http_exception(exc) from exc

    token, expires_at = auth_service.issue_token_response(user_id)
    logger.info("Signed in", extra={"user_id": user_id})
    return TokenResponse(token=token, token_type="bearer", expires_at=expires_at)


@router.get("/auth/confirm", response_model=User)
async def confirm_email(
    token: str = Query(..., description="Confirmation token from the sign-up response"),
    accounts: AccountService = Depends(get_account_service),
):
    """Mark the account email as confirmed."""
    try:
        return accounts.confirm_email(token)
    except AuthError as exc:
        raise to_http_exception(exc) from exc


@router.post("/api/tokens", response_model=TokenResponse)
async def create_api_token(
    auth: AuthContext = Depends(get_auth_context),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Issue a new JWT for the authenticated user."""
    token, expires_at = auth_service.issue_token_response(auth.user_id)
    return TokenResponse(token=token, token_type="bearer", expires_at=expires_at)


@router.get("/api/me", response_model=User)
async def get_current_user(
    auth: AuthContext = Depends(get_auth_context),
    accounts: AccountService = Depends(get_account_service),
):
    """Return profile metadata for the authenticated user."""
    try:
        return accounts.get_user(auth.user_id)
    except AuthError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"error": exc.error, "message": exc.message},
        ) from exc


__all__ = ["router"]
