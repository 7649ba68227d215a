"""Email processing queue: idempotent ingestion and explicit promotion to notes."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from ..models.email import DecodedEmail, EmailQueueItem, EmailStatus
from ..models.note import InputType, Note
from .categorizer import CategorizationError, CategorizerService
from .database import DatabaseService
from .note_store import NoteStore

logger = logging.getLogger(__name__)

PROMOTABLE_STATUSES = (EmailStatus.PENDING.value, EmailStatus.ERROR.value)


class EmailQueueError(Exception):
    """Raised for queue lookups and promotions that cannot proceed."""

    def __init__(self, error: str, message: str, status_code: int = 400):
        super().__init__(message)
        self.error = error
        self.message = message
        self.status_code = status_code


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_item(row: sqlite3.Row) -> EmailQueueItem:
    return EmailQueueItem(
        id=row["id"],
        user_id=row["user_id"],
        email_id=row["email_id"],
        sender=row["sender"],
        subject=row["subject"],
        status=EmailStatus(row["status"]),
        received_at=datetime.fromisoformat(row["received_at"]),
        processed_at=_parse_ts(row["processed_at"]),
        error_message=row["error_message"],
        email_body=row["email_body"],
    )


class EmailQueueService:
    """Queue rows are unique per ``(user_id, email_id)``."""

    def __init__(
        self,
        db_service: Optional[DatabaseService] = None,
        categorizer: Optional[CategorizerService] = None,
        store: Optional[NoteStore] = None,
    ):
        self.db = db_service or DatabaseService()
        self.store = store or NoteStore(self.db)
        self._categorizer = categorizer

    @property
    def categorizer(self) -> CategorizerService:
        if self._categorizer is None:
            self._categorizer = CategorizerService()
        return self._categorizer

    def enqueue(self, user_id: str, emails: Iterable[DecodedEmail]) -> Tuple[int, int]:
        """Insert new messages; already queued ones are left untouched.

        Returns:
            ``(queued, skipped)`` counts
        """
        queued = skipped = 0
        conn = self.db.connect()
        try:
            with conn:
                for email in emails:
                    cursor = conn.execute(
                        """
                        INSERT INTO email_processing_queue (
                            id, user_id, email_id, sender, subject, status,
                            received_at, email_body
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(user_id, email_id) DO NOTHING
                        """,
                        (
                            str(uuid.uuid4()),
                            user_id,
                            email.email_id,
                            email.sender,
                            email.subject,
                            EmailStatus.PENDING.value,
                            email.received_at.isoformat(),
                            email.email_body,
                        ),
                    )
                    if cursor.rowcount:
                        queued += 1
                    else:
                        skipped += 1
        finally:
            conn.close()
        logger.info(
            "Emails queued",
            extra={"user_id": user_id, "queued": queued, "skipped": skipped},
        )
        return queued, skipped

    def list_items(self, user_id: str, status: Optional[EmailStatus] = None) -> List[EmailQueueItem]:
        """Queue items for a user, most recently received first."""
        query = "SELECT * FROM email_processing_queue WHERE user_id = ?"
        params: list = [user_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY received_at DESC"
        conn = self.db.connect()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [_row_to_item(row) for row in rows]

    def get_item(self, user_id: str, item_id: str) -> EmailQueueItem:
        conn = self.db.connect()
        try:
            row = conn.execute(
                "SELECT * FROM email_processing_queue WHERE user_id = ? AND id = ?",
                (user_id, item_id),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            raise EmailQueueError("not_found", "Email not found", status_code=404)
        return _row_to_item(row)

    def _claim(self, user_id: str, item_id: str) -> EmailQueueItem:
        """Move a pending or failed item to ``processing``."""
        conn = self.db.connect()
        try:
            with conn:
                cursor = conn.execute(
                    f"""
                    UPDATE email_processing_queue
                    SET status = ?, error_message = NULL
                    WHERE user_id = ? AND id = ? AND status IN ({", ".join("?" * len(PROMOTABLE_STATUSES))})
                    """,
                    (EmailStatus.PROCESSING.value, user_id, item_id, *PROMOTABLE_STATUSES),
                )
        finally:
            conn.close()

        item = self.get_item(user_id, item_id)
        if cursor.rowcount == 0:
            if item.status == EmailStatus.COMPLETED:
                raise EmailQueueError("already_processed", "Email already processed", status_code=409)
            raise EmailQueueError("in_progress", "Email is already being processed", status_code=409)
        return item

    def _finish(
        self,
        user_id: str,
        item_id: str,
        status: EmailStatus,
        error_message: Optional[str] = None,
    ) -> None:
        conn = self.db.connect()
        try:
            with conn:
                conn.execute(
                    """
                    UPDATE email_processing_queue
                    SET status = ?, processed_at = ?, error_message = ?
                    WHERE user_id = ? AND id = ?
                    """,
                    (
                        status.value,
                        datetime.now(timezone.utc).isoformat(),
                        error_message,
                        user_id,
                        item_id,
                    ),
                )
        finally:
            conn.close()

    async def promote(self, user_id: str, item_id: str) -> Tuple[EmailQueueItem, Note]:
        """Convert one queued email into a note.

        ``pending`` and ``error`` items move to ``processing`` and then to
        ``completed`` (note created) or ``error`` (message recorded). Any
        failure after the claim releases the item to ``error`` so it can be
        retried.
        """
        item = self._claim(user_id, item_id)
        try:
            analysis = await self.categorizer.analyze_email(item.subject, item.sender, item.email_body)
            note = self.store.insert(
                user_id,
                item.email_body,
                analysis.category,
                analysis.tags,
                input_type=InputType.EMAIL,
                metadata={
                    "email_subject": item.subject,
                    "sender": item.sender,
                    "received_at": item.received_at.isoformat(),
                    "analysis_notes": analysis.metadata.analysis_notes,
                },
            )
            self._finish(user_id, item_id, EmailStatus.COMPLETED)
        except CategorizationError as exc:
            logger.error(
                "Email analysis failed",
                extra={"user_id": user_id, "item_id": item_id, "error": exc.error},
            )
            self._finish(user_id, item_id, EmailStatus.ERROR, exc.message)
            raise EmailQueueError("processing_failed", exc.message, status_code=502) from exc
        except Exception as exc:
            logger.exception(
                "Email promotion failed",
                extra={"user_id": user_id, "item_id": item_id},
            )
            self._finish(user_id, item_id, EmailStatus.ERROR, f"Failed to process email: {exc}")
            raise

        logger.info(
            "Email promoted to note",
            extra={"user_id": user_id, "item_id": item_id, "note_id": note.id},
        )
        return self.get_item(user_id, item_id), note


__all__ = ["EmailQueueService", "EmailQueueError"]
