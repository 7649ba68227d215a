"""Gmail OAuth and ingestion routes."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...models.email import FetchEmailsResult, GmailAuthUrl, GmailStatus
from ...services.gmail import GmailError, GmailService
from ..dependencies import get_gmail_service
from ..middleware import AuthContext, get_auth_context, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/gmail/auth-url", response_model=GmailAuthUrl)
async def get_gmail_auth_url(
    auth: AuthContext = Depends(get_auth_context),
    gmail: GmailService = Depends(get_gmail_service),
):
    """Google consent URL for read-only Gmail access."""
    try:
        return gmail.build_auth_url(auth.user_id)
    except GmailError as exc:
        raise to_http_exception(exc) from exc


@router.get("/api/gmail/callback", response_model=GmailStatus)
async def gmail_callback(
    code: str = Query(..., description="OAuth authorization code"),
    state: Optional[str] = Query(None, description="State parameter for CSRF protection"),
    auth: AuthContext = Depends(get_auth_context),
    gmail: GmailService = Depends(get_gmail_service),
):
    """Exchange the authorization code and store the Gmail tokens."""
    try:
        await gmail.exchange_code(auth.user_id, code, state)
    except GmailError as exc:
        raise to_http_exception(exc) from exc
    return gmail.status(auth.user_id)


@router.get("/api/gmail/status", response_model=GmailStatus)
async def get_gmail_status(
    auth: AuthContext = Depends(get_auth_context),
    gmail: GmailService = Depends(get_gmail_service),
):
    return gmail.status(auth.user_id)


@router.post("/api/gmail/fetch", response_model=FetchEmailsResult)
async def fetch_gmail_messages(
    auth: AuthContext = Depends(get_auth_context),
    gmail: GmailService = Depends(get_gmail_service),
):
    """Pull the latest messages into the processing queue."""
    try:
        return await gmail.fetch_and_queue(auth.user_id)
    except GmailError as exc:
        raise to_http_exception(exc) from exc


__all__ = ["router"]
