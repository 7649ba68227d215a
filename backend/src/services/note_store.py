"""Row storage for notes, scoped by owner."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models.note import InputType, Note
from .database import DatabaseService

logger = logging.getLogger(__name__)


class NoteNotFoundError(Exception):
    """Raised when a note does not exist or belongs to another user."""

    def __init__(self, note_id: str):
        super().__init__(f"Note not found: {note_id}")
        self.error = "note_not_found"
        self.message = f"Note not found: {note_id}"
        self.note_id = note_id


def _row_to_note(row: sqlite3.Row) -> Note:
    metadata = row["metadata"]
    return Note(
        id=row["id"],
        user_id=row["user_id"],
        content=row["content"],
        category=row["category"],
        tags=json.loads(row["tags"] or "[]"),
        created_at=datetime.fromisoformat(row["created_at"]),
        input_type=InputType(row["input_type"] or InputType.TEXT.value),
        source_url=row["source_url"],
        source_image_path=row["source_image_path"],
        metadata=json.loads(metadata) if metadata else None,
    )


class NoteStore:
    """CRUD for the ``notes`` table. Every query filters on ``user_id``."""

    def __init__(self, db_service: Optional[DatabaseService] = None):
        self.db = db_service or DatabaseService()

    def insert(
        self,
        user_id: str,
        content: str,
        category: str,
        tags: List[str],
        *,
        input_type: InputType = InputType.TEXT,
        source_url: Optional[str] = None,
        source_image_path: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> Note:
        note = Note(
            id=str(uuid.uuid4()),
            user_id=user_id,
            content=content,
            category=category,
            tags=tags,
            created_at=created_at or datetime.now(timezone.utc),
            input_type=input_type,
            source_url=source_url,
            source_image_path=source_image_path,
            metadata=metadata,
        )
        conn = self.db.connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO notes (
                        id, user_id, content, category, tags, created_at,
                        input_type, source_url, source_image_path, metadata
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        note.id,
                        note.user_id,
                        note.content,
                        note.category,
                        json.dumps(note.tags),
                        note.created_at.isoformat(),
                        note.input_type.value,
                        note.source_url,
                        note.source_image_path,
                        json.dumps(note.metadata) if note.metadata is not None else None,
                    ),
                )
        finally:
            conn.close()

        logger.info(
            "Note stored",
            extra={"user_id": user_id, "note_id": note.id, "input_type": note.input_type.value},
        )
        return note

    def get(self, user_id: str, note_id: str) -> Note:
        conn = self.db.connect()
        try:
            row = conn.execute(
                "SELECT * FROM notes WHERE user_id = ? AND id = ?",
                (user_id, note_id),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NoteNotFoundError(note_id)
        return _row_to_note(row)

    def list_notes(self, user_id: str) -> List[Note]:
        """All notes of a user, newest first."""
        conn = self.db.connect()
        try:
            rows = conn.execute(
                "SELECT * FROM notes WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_note(row) for row in rows]

    def update(
        self,
        user_id: str,
        note_id: str,
        *,
        content: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Note:
        """Overwrite the supplied fields; omitted fields keep their value."""
        current = self.get(user_id, note_id)
        updated = current.model_copy(
            update={
                "content": content if content is not None else current.content,
                "category": category if category is not None else current.category,
                "tags": tags if tags is not None else current.tags,
            }
        )
        conn = self.db.connect()
        try:
            with conn:
                conn.execute(
                    """
                    UPDATE notes SET content = ?, category = ?, tags = ?
                    WHERE user_id = ? AND id = ?
                    """,
                    (
                        updated.content,
                        updated.category,
                        json.dumps(updated.tags),
                        user_id,
                        note_id,
                    ),
                )
        finally:
            conn.close()
        return updated


__all__ = ["NoteStore", "NoteNotFoundError"]
