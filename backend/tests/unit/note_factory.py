"""Builders for in-memory notes."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from backend.src.models.note import InputType, Note

BASE_TIME = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_note(
    note_id: str,
    category: str,
    tags: List[str],
    *,
    content: Optional[str] = None,
    input_type: InputType = InputType.TEXT,
    minutes: int = 0,
    user_id: str = "alice",
) -> Note:
    return Note(
        id=note_id,
        user_id=user_id,
        content=content if content is not None else f"Content of {note_id}",
        category=category,
        tags=tags,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        input_type=input_type,
    )
