"""Gmail OAuth and message ingestion into the processing queue."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx

from ..models.email import (
    DecodedEmail,
    FetchEmailsResult,
    FetchError,
    GmailAuthUrl,
    GmailStatus,
    GmailTokens,
)
from .config import AppConfig, get_config
from .database import DatabaseService
from .email_queue import EmailQueueService

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_API_BASE = "https://www.googleapis.com/gmail/v1/users/me"
GMAIL_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"

OAUTH_STATE_TTL_SECONDS = 300
HTTP_TIMEOUT_SECONDS = 30.0

# state -> (user_id, created timestamp)
oauth_states: Dict[str, Tuple[str, float]] = {}


class GmailError(Exception):
    """Raised for Gmail OAuth and API failures."""

    def __init__(self, error: str, message: str, status_code: int = 400):
        super().__init__(message)
        self.error = error
        self.message = message
        self.status_code = status_code


def _create_oauth_state(user_id: str) -> str:
    """Generate a state token bound to ``user_id``."""
    now = time.time()
    expired = [
        state for state, (_, ts) in oauth_states.items() if now - ts > OAUTH_STATE_TTL_SECONDS
    ]
    for state in expired:
        oauth_states.pop(state, None)

    state = secrets.token_urlsafe(32)
    oauth_states[state] = (user_id, now)
    return state


def _consume_oauth_state(state: Optional[str], user_id: str) -> None:
    """Validate and remove the state token; raise if invalid, expired or foreign."""
    entry = oauth_states.pop(state, None) if state else None
    if (
        entry is None
        or entry[0] != user_id
        or time.time() - entry[1] > OAUTH_STATE_TTL_SECONDS
    ):
        raise GmailError("invalid_state", "Invalid or expired OAuth state.")


def _b64url_decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def _find_text_part(part: Dict[str, Any]) -> Optional[str]:
    """Depth-first search for the first ``text/plain`` body with data."""
    if part.get("mimeType") == "text/plain" and (part.get("body") or {}).get("data"):
        return part["body"]["data"]
    for child in part.get("parts") or []:
        found = _find_text_part(child)
        if found:
            return found
    return None


def _header(headers: List[Dict[str, str]], name: str) -> str:
    lowered = name.lower()
    for header in headers:
        if header.get("name", "").lower() == lowered:
            return header.get("value", "")
    return ""


def decode_message(message: Dict[str, Any]) -> DecodedEmail:
    """Extract sender, subject, received time and plain-text body from a Gmail message.

    Multipart messages use their first ``text/plain`` part; single-part
    messages use the payload body. Missing headers become empty strings.

    Raises:
        ValueError: If the message has no id or the body is not valid base64url.
    """
    email_id = message.get("id")
    if not email_id:
        raise ValueError("message has no id")
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []

    if payload.get("parts"):
        data = _find_text_part(payload)
    else:
        data = (payload.get("body") or {}).get("data")
    try:
        body = _b64url_decode(data) if data else ""
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"undecodable body: {exc}") from exc

    internal_date = message.get("internalDate")
    if internal_date:
        received_at = datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
    else:
        received_at = datetime.now(timezone.utc)

    return DecodedEmail(
        email_id=email_id,
        sender=_header(headers, "From"),
        subject=_header(headers, "Subject"),
        received_at=received_at,
        email_body=body,
    )


class GmailService:
    """Connect a Gmail account and pull its latest messages into the queue."""

    def __init__(
        self,
        db_service: Optional[DatabaseService] = None,
        queue: Optional[EmailQueueService] = None,
        *,
        config: Optional[AppConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db_service or DatabaseService()
        self.queue = queue or EmailQueueService(self.db)
        self.config = config or get_config()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS, transport=self._transport)

    def _require_oauth_config(self) -> None:
        if not self.config.google_client_id or not self.config.google_client_secret:
            raise GmailError(
                "not_configured",
                "Gmail OAuth not configured. Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET.",
                status_code=501,
            )

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def build_auth_url(self, user_id: str) -> GmailAuthUrl:
        self._require_oauth_config()
        state = _create_oauth_state(user_id)
        params = {
            "client_id": self.config.google_client_id,
            "redirect_uri": self.config.gmail_redirect_uri,
            "response_type": "code",
            "scope": GMAIL_SCOPE,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return GmailAuthUrl(auth_url=f"{GOOGLE_AUTH_URL}?{urlencode(params)}", state=state)

    async def _token_request(self, form: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(GOOGLE_TOKEN_URL, data=form)
                data = response.json()
        except httpx.HTTPError as exc:
            logger.error("Token endpoint unreachable", extra={"error": str(exc)})
            raise GmailError("token_request_failed", "Failed to reach Google token endpoint", 502) from exc
        except ValueError as exc:
            raise GmailError("token_request_failed", "Invalid token response", 502) from exc

        if response.status_code != 200 or data.get("error"):
            message = data.get("error_description") or data.get("error") or "Token request failed"
            logger.error(
                "Token request rejected",
                extra={"status_code": response.status_code, "error": data.get("error")},
            )
            raise GmailError("token_request_failed", message)
        if not data.get("access_token"):
            raise GmailError("token_request_failed", "No access token in response")
        return data

    async def exchange_code(self, user_id: str, code: str, state: Optional[str]) -> GmailTokens:
        """Swap an authorization code for tokens and store them."""
        self._require_oauth_config()
        _consume_oauth_state(state, user_id)
        data = await self._token_request(
            {
                "code": code,
                "client_id": self.config.google_client_id,
                "client_secret": self.config.google_client_secret,
                "redirect_uri": self.config.gmail_redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        tokens = GmailTokens(
            user_id=user_id,
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=int(data.get("expires_in", 3600))),
        )
        self.save_tokens(tokens)
        logger.info("Gmail connected", extra={"user_id": user_id})
        return tokens

    async def refresh_if_expired(self, tokens: GmailTokens) -> GmailTokens:
        if tokens.expires_at > datetime.now(timezone.utc):
            return tokens
        if not tokens.refresh_token:
            raise GmailError("token_expired", "Gmail token expired; reconnect Gmail", status_code=401)
        self._require_oauth_config()
        data = await self._token_request(
            {
                "refresh_token": tokens.refresh_token,
                "client_id": self.config.google_client_id,
                "client_secret": self.config.google_client_secret,
                "grant_type": "refresh_token",
            }
        )
        refreshed = GmailTokens(
            user_id=tokens.user_id,
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or tokens.refresh_token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=int(data.get("expires_in", 3600))),
        )
        self.save_tokens(refreshed)
        logger.info("Gmail token refreshed", extra={"user_id": tokens.user_id})
        return refreshed

    # ------------------------------------------------------------------
    # Token storage
    # ------------------------------------------------------------------

    def save_tokens(self, tokens: GmailTokens) -> None:
        conn = self.db.connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO gmail_integrations (user_id, access_token, refresh_token, expires_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        access_token = excluded.access_token,
                        refresh_token = excluded.refresh_token,
                        expires_at = excluded.expires_at
                    """,
                    (
                        tokens.user_id,
                        tokens.access_token,
                        tokens.refresh_token,
                        tokens.expires_at.isoformat(),
                    ),
                )
        finally:
            conn.close()

    def get_tokens(self, user_id: str) -> Optional[GmailTokens]:
        conn = self.db.connect()
        try:
            row = conn.execute(
                "SELECT * FROM gmail_integrations WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return GmailTokens(
            user_id=row["user_id"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )

    def status(self, user_id: str) -> GmailStatus:
        tokens = self.get_tokens(user_id)
        if tokens is None:
            return GmailStatus(connected=False)
        return GmailStatus(connected=True, expires_at=tokens.expires_at)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def list_message_ids(
        self, client: httpx.AsyncClient, access_token: str, max_results: int
    ) -> List[str]:
        try:
            response = await client.get(
                f"{GMAIL_API_BASE}/messages",
                params={"maxResults": max_results},
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Gmail list failed",
                extra={"status_code": exc.response.status_code},
            )
            raise GmailError("list_failed", "Failed to fetch emails", status_code=502) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Gmail list failed", extra={"error": str(exc)})
            raise GmailError("list_failed", "Failed to fetch emails", status_code=502) from exc
        return [entry["id"] for entry in data.get("messages") or [] if entry.get("id")]

    async def fetch_messages(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        message_ids: List[str],
        concurrency: Optional[int] = None,
    ) -> Tuple[List[DecodedEmail], List[FetchError]]:
        """Fetch and decode messages with at most ``concurrency`` requests in flight.

        A failed message is recorded in the error list; the rest still succeed.
        """
        semaphore = asyncio.Semaphore(max(1, concurrency or self.config.gmail_fetch_concurrency))

        async def fetch_one(message_id: str) -> DecodedEmail:
            async with semaphore:
                response = await client.get(
                    f"{GMAIL_API_BASE}/messages/{message_id}",
                    params={"format": "full"},
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
                return decode_message(response.json())

        results = await asyncio.gather(
            *(fetch_one(message_id) for message_id in message_ids),
            return_exceptions=True,
        )

        emails: List[DecodedEmail] = []
        errors: List[FetchError] = []
        for message_id, result in zip(message_ids, results):
            if isinstance(result, DecodedEmail):
                emails.append(result)
                continue
            if not isinstance(result, (httpx.HTTPError, ValueError)):
                raise result
            logger.warning(
                "Gmail message fetch failed",
                extra={"email_id": message_id, "error": str(result)},
            )
            errors.append(FetchError(email_id=message_id, message=str(result) or type(result).__name__))
        return emails, errors

    async def fetch_and_queue(self, user_id: str) -> FetchEmailsResult:
        """List the latest messages, fetch them and add new ones to the queue."""
        tokens = self.get_tokens(user_id)
        if tokens is None:
            raise GmailError("not_connected", "Gmail not connected", status_code=400)
        tokens = await self.refresh_if_expired(tokens)

        async with self._client() as client:
            message_ids = await self.list_message_ids(
                client, tokens.access_token, self.config.gmail_max_results
            )
            emails, errors = await self.fetch_messages(client, tokens.access_token, message_ids)

        queued, skipped = self.queue.enqueue(user_id, emails)
        result = FetchEmailsResult(
            fetched=len(emails),
            queued=queued,
            skipped=skipped,
            errors=errors,
        )
        logger.info(
            "Gmail fetch complete",
            extra={
                "user_id": user_id,
                "listed": len(message_ids),
                "fetched": result.fetched,
                "queued": queued,
                "skipped": skipped,
                "errors": len(errors),
            },
        )
        return result


__all__ = ["GmailService", "GmailError", "decode_message", "oauth_states"]
