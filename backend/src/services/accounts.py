"""Email/password accounts stored in SQLite."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import status

from ..models.auth import SignUpResponse
from ..models.user import User
from .auth import LOCAL_DEV_USER_ID, AuthError, AuthService
from .config import AppConfig, get_config
from .database import DatabaseService

logger = logging.getLogger(__name__)

ConfirmationMailer = Callable[[str, str], None]

MIN_PASSWORD_LENGTH = 6
PBKDF2_ITERATIONS = 260_000

AUTH_ERROR_MESSAGES = {
    "weak_password": "Password should be at least 6 characters long.",
    "invalid_credentials": "Invalid email or password.",
    "email_not_confirmed": "Please confirm your email address before signing in.",
    "user_already_exists": "An account with this email already exists.",
}


def translate_auth_error(error: str, message: Optional[str] = None) -> str:
    """User-facing text for an auth error code, defaulting to the raw message."""
    return AUTH_ERROR_MESSAGES.get(error, message or error)


def hash_password(password: str, *, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt), PBKDF2_ITERATIONS
    )
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def log_confirmation_link(email: str, link: str) -> None:
    """Default delivery: write the link to the server log for the operator."""
    logger.info(
        "Confirmation link issued: %s",
        link,
        extra={"email": email, "private": True},
    )


def _row_to_user(row: sqlite3.Row, gmail_connected: bool = False) -> User:
    return User(
        user_id=row["user_id"],
        email=row["email"],
        email_confirmed=bool(row["email_confirmed"]),
        gmail_connected=gmail_connected,
        created=datetime.fromisoformat(row["created"]),
    )


class AccountService:
    """Sign-up, sign-in and email confirmation."""

    def __init__(
        self,
        db_service: Optional[DatabaseService] = None,
        auth_service: Optional[AuthService] = None,
        config: Optional[AppConfig] = None,
        mailer: Optional[ConfirmationMailer] = None,
    ):
        self.config = config or get_config()
        self.db = db_service or DatabaseService()
        self.auth = auth_service or AuthService(self.config)
        self.mailer = mailer or log_confirmation_link

    def sign_up(self, email: str, password: str) -> SignUpResponse:
        email = _normalize_email(email)
        if "@" not in email:
            raise AuthError("invalid_email", "Please enter a valid email address.", status_code=400)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(
                "weak_password",
                translate_auth_error("weak_password"),
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )

        user_id = str(uuid.uuid4())
        confirmed = not self.config.require_email_confirmation
        conn = self.db.connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO users (user_id, email, password_hash, email_confirmed, created)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        email,
                        hash_password(password),
                        int(confirmed),
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise AuthError(
                "user_already_exists",
                translate_auth_error("user_already_exists"),
                status_code=status.HTTP_409_CONFLICT,
            ) from exc
        finally:
            conn.close()

        logger.info("Account created", extra={"user_id": user_id, "confirmed": confirmed})
        if not confirmed:
            # The token only leaves the server through the mailer.
            token = self.auth.create_confirmation_token(user_id)
            self.mailer(email, f"{self.config.app_url}/auth/confirm?token={token}")
        return SignUpResponse(user_id=user_id, email=email, confirmation_required=not confirmed)

    def _get_row_by_email(self, email: str) -> Optional[sqlite3.Row]:
        conn = self.db.connect()
        try:
            return conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (_normalize_email(email),),
            ).fetchone()
        finally:
            conn.close()

    def sign_in(self, email: str, password: str) -> str:
        """Verify credentials and return the user id."""
        row = self._get_row_by_email(email)
        if row is None or not verify_password(password, row["password_hash"]):
            logger.info("Sign-in rejected", extra={"reason": "invalid_credentials"})
            raise AuthError("invalid_credentials", translate_auth_error("invalid_credentials"))
        if self.config.require_email_confirmation and not row["email_confirmed"]:
            raise AuthError(
                "email_not_confirmed",
                translate_auth_error("email_not_confirmed"),
                status_code=status.HTTP_403_FORBIDDEN,
            )
        return row["user_id"]

    def confirm_email(self, token: str) -> User:
        user_id = self.auth.verify_confirmation_token(token)
        conn = self.db.connect()
        try:
            with conn:
                cursor = conn.execute(
                    "UPDATE users SET email_confirmed = 1 WHERE user_id = ?",
                    (user_id,),
                )
        finally:
            conn.close()
        if cursor.rowcount == 0:
            raise AuthError("invalid_token", "Invalid confirmation token", status_code=400)
        logger.info("Email confirmed", extra={"user_id": user_id})
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> User:
        conn = self.db.connect()
        try:
            row = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
            gmail = conn.execute(
                "SELECT 1 FROM gmail_integrations WHERE user_id = ?", (user_id,)
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            if user_id == LOCAL_DEV_USER_ID:
                return User(
                    user_id=user_id,
                    email_confirmed=True,
                    gmail_connected=gmail is not None,
                    created=datetime.now(timezone.utc),
                )
            raise AuthError("user_not_found", "User not found", status_code=404)
        return _row_to_user(row, gmail_connected=gmail is not None)


__all__ = [
    "AccountService",
    "translate_auth_error",
    "hash_password",
    "verify_password",
    "AUTH_ERROR_MESSAGES",
]
