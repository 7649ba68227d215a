"""User account models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """User account as exposed by the API."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": "3e1f7c52-2a0b-4d7e-8d0a-6e2b1f9c4a77",
                "email": "alice@example.com",
                "email_confirmed": True,
                "gmail_connected": False,
                "created": "2025-01-15T10:30:00Z",
            }
        }
    )

    user_id: str = Field(..., min_length=1, max_length=64, description="Internal user ID")
    email: Optional[str] = Field(None, description="Account email (absent for the local-dev user)")
    email_confirmed: bool = False
    gmail_connected: bool = False
    created: datetime = Field(..., description="Account creation timestamp")


__all__ = ["User"]
