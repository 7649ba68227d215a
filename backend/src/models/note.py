"""Note-related Pydantic models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TITLE_FALLBACK_LENGTH = 30


class InputType(str, Enum):
    """How a note entered the system."""

    TEXT = "text"
    EMAIL = "email"
    URL = "url"
    IMAGE = "image"


def _clean_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("tags must be a list of strings")
    cleaned: List[str] = []
    for tag in value:
        if not isinstance(tag, str):
            raise ValueError("tags must be a list of strings")
        stripped = tag.strip()
        if stripped and stripped not in cleaned:
            cleaned.append(stripped)
    return cleaned


class Note(BaseModel):
    """A user-authored text unit with derived category and tags."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5f0c1d9e-0a51-4c1c-9a8c-0b7a1f6a2e11",
                "user_id": "alice",
                "content": "Call the dentist about the Tuesday appointment",
                "category": "Health",
                "tags": ["Dentist appointment", "health", "errands"],
                "created_at": "2025-01-15T14:30:00Z",
                "input_type": "text",
            }
        }
    )

    id: str = Field(..., description="Note identifier")
    user_id: str = Field(..., description="Owner user ID")
    content: str = Field(..., description="Note body")
    category: str = Field(..., description="Category assigned by the language model")
    tags: List[str] = Field(default_factory=list, description="Tags; the first is the display title")
    created_at: datetime = Field(..., description="Creation timestamp")
    input_type: InputType = Field(default=InputType.TEXT)
    source_url: Optional[str] = None
    source_image_path: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def title(self) -> str:
        return note_title(self)


class NoteCreate(BaseModel):
    """Request payload to submit a note."""

    content: str = Field(..., min_length=1, max_length=100_000)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Note content cannot be empty")
        return value


class NoteUpdate(BaseModel):
    """Request payload to edit a note."""

    content: Optional[str] = Field(None, min_length=1, max_length=100_000)
    category: Optional[str] = Field(None, min_length=1, max_length=128)
    tags: Optional[List[str]] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _validate_tags(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        return _clean_tags(value)


class RegenerateRequest(BaseModel):
    """Which metadata field to regenerate."""

    type: Literal["tags", "title"]


class UrlNoteRequest(BaseModel):
    """Request payload to create a note from a web page."""

    url: str = Field(..., min_length=1, max_length=2048)

    @field_validator("url")
    @classmethod
    def _http_only(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return value


class NoteAnalysis(BaseModel):
    """Validated shape of a categorization response."""

    model_config = ConfigDict(extra="ignore")

    category: str = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list)

    @field_validator("category")
    @classmethod
    def _strip_category(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("category must not be blank")
        return stripped

    @field_validator("tags", mode="before")
    @classmethod
    def _validate_tags(cls, value: Any) -> List[str]:
        return _clean_tags(value)


class UrlAnalysis(NoteAnalysis):
    """Categorization of a summarized web page."""

    title: str = Field(..., min_length=1)


class ImageAnalysis(NoteAnalysis):
    """Categorization of an uploaded image."""

    description: str = Field(..., min_length=1)


class EmailAnalysisMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email_subject: Optional[str] = None
    sender: Optional[str] = None
    analysis_notes: Optional[str] = None


class EmailAnalysis(NoteAnalysis):
    """Categorization of a queued email."""

    metadata: EmailAnalysisMetadata = Field(default_factory=EmailAnalysisMetadata)


class TagNotes(BaseModel):
    """A tag with the notes that carry it."""

    tag: str
    count: int = Field(..., ge=0)
    notes: List[Note]


def note_title(note: Note, length: int = TITLE_FALLBACK_LENGTH) -> str:
    """Display title: the first tag, or the first content line truncated."""
    if note.tags:
        return note.tags[0]
    first_line = note.content.split("\n")[0]
    return first_line[:length] + "..."


__all__ = [
    "InputType",
    "Note",
    "NoteCreate",
    "NoteUpdate",
    "RegenerateRequest",
    "UrlNoteRequest",
    "NoteAnalysis",
    "UrlAnalysis",
    "ImageAnalysis",
    "EmailAnalysis",
    "EmailAnalysisMetadata",
    "TagNotes",
    "note_title",
]
