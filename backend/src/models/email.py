"""Email ingestion models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .note import Note


class EmailStatus(str, Enum):
    """Lifecycle of a queued email; completed and error are terminal."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class EmailQueueItem(BaseModel):
    """A Gmail message staged for conversion into a note."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b8f8a8e-3f43-4e52-9f0a-5a4d6b2c7e10",
                "user_id": "alice",
                "email_id": "18c2f5e1a9b0d3c4",
                "sender": "Bob <bob@example.com>",
                "subject": "Trip itinerary",
                "status": "pending",
                "received_at": "2025-01-15T14:30:00Z",
            }
        }
    )

    id: str
    user_id: str
    email_id: str = Field(..., description="Provider message id")
    sender: str = ""
    subject: str = ""
    status: EmailStatus = EmailStatus.PENDING
    received_at: datetime
    processed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    email_body: str = ""


class DecodedEmail(BaseModel):
    """Message fields extracted from a provider payload."""

    email_id: str
    sender: str = ""
    subject: str = ""
    received_at: datetime
    email_body: str = ""


class FetchError(BaseModel):
    email_id: str
    message: str


class FetchEmailsResult(BaseModel):
    """Outcome of one list-fetch-queue run (partial success allowed)."""

    fetched: int = Field(..., ge=0, description="Messages fetched successfully")
    queued: int = Field(..., ge=0, description="New rows added to the queue")
    skipped: int = Field(..., ge=0, description="Messages already queued")
    errors: List[FetchError] = Field(default_factory=list)


class GmailTokens(BaseModel):
    user_id: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: datetime


class GmailStatus(BaseModel):
    connected: bool
    expires_at: Optional[datetime] = None


class GmailAuthUrl(BaseModel):
    auth_url: str
    state: str


class QueuePromotion(BaseModel):
    """A processed queue item and the note created from it."""

    item: EmailQueueItem
    note: Note


__all__ = [
    "EmailStatus",
    "EmailQueueItem",
    "DecodedEmail",
    "FetchError",
    "FetchEmailsResult",
    "GmailTokens",
    "GmailStatus",
    "GmailAuthUrl",
    "QueuePromotion",
]
