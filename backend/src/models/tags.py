"""Tag hierarchy models."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

LIFE_SECTIONS: tuple[str, ...] = (
    "private",
    "work",
    "interests",
    "school",
    "family",
    "social",
    "health",
    "finance",
    "memories",
)


class TagCategories(BaseModel):
    """Cached grouping of tags into categories for one user."""

    categories: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Category name (optionally '<section>: <name>') to tags",
    )
    updated: Optional[datetime] = None


class CategorizeTagsRequest(BaseModel):
    """Tags to group; when omitted every tag of the user is used."""

    tags: Optional[List[str]] = None


class LifeSection(BaseModel):
    section: str
    categories: Dict[str, List[str]]


__all__ = ["LIFE_SECTIONS", "TagCategories", "CategorizeTagsRequest", "LifeSection"]
