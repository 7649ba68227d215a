"""Tag listing, tag categorization and life-section organization."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..models.note import Note, TagNotes
from ..models.tags import LifeSection, TagCategories
from .categorizer import CategorizerService
from .database import DatabaseService
from .note_store import NoteStore

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = ": "
UNSECTIONED = "other"


def group_by_tag(notes: List[Note]) -> List[TagNotes]:
    """Map every tag to the notes carrying it, most used tags first."""
    grouped: Dict[str, List[Note]] = defaultdict(list)
    for note in notes:
        for tag in note.tags:
            grouped[tag].append(note)
    ordered = sorted(grouped.items(), key=lambda item: (-len(item[1]), item[0]))
    return [TagNotes(tag=tag, count=len(members), notes=members) for tag, members in ordered]


def split_sections(categories: Dict[str, List[str]]) -> List[LifeSection]:
    """Group ``"<section>: <category>"`` keys back into sections."""
    sections: Dict[str, Dict[str, List[str]]] = {}
    for key, tags in categories.items():
        if SECTION_SEPARATOR in key:
            section, name = key.split(SECTION_SEPARATOR, 1)
        else:
            section, name = UNSECTIONED, key
        sections.setdefault(section, {})[name] = tags
    return [LifeSection(section=section, categories=cats) for section, cats in sections.items()]


class TagService:
    """Tag hierarchy for one user, with the grouping cached in ``tag_categories``."""

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

    def list_tags(self, user_id: str) -> List[TagNotes]:
        return group_by_tag(self.store.list_notes(user_id))

    def get_categories(self, user_id: str) -> TagCategories:
        """Cached grouping, or an empty one when nothing was categorized yet."""
        conn = self.db.connect()
        try:
            row = conn.execute(
                "SELECT categories, updated FROM tag_categories WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return TagCategories()
        return TagCategories(
            categories=json.loads(row["categories"]),
            updated=datetime.fromisoformat(row["updated"]),
        )

    def save_categories(self, user_id: str, categories: Dict[str, List[str]]) -> TagCategories:
        now = datetime.now(timezone.utc)
        conn = self.db.connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO tag_categories (user_id, categories, updated)
                    VALUES (?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        categories = excluded.categories,
                        updated = excluded.updated
                    """,
                    (user_id, json.dumps(categories), now.isoformat()),
                )
        finally:
            conn.close()
        return TagCategories(categories=categories, updated=now)

    async def categorize(self, user_id: str, tags: Optional[List[str]] = None) -> TagCategories:
        """Group the given tags (default: all of the user's tags) and cache the result."""
        if tags is None:
            tags = [entry.tag for entry in self.list_tags(user_id)]
        if not tags:
            return self.save_categories(user_id, {})
        grouping = await self.categorizer.categorize_tags(tags)
        logger.info(
            "Tags categorized",
            extra={"user_id": user_id, "tags": len(tags), "categories": len(grouping)},
        )
        return self.save_categories(user_id, grouping)

    async def organize(self, user_id: str) -> TagCategories:
        """Re-key the cached categories under life sections."""
        current = self.get_categories(user_id)
        if not current.categories:
            return current
        # Drop any previous section prefix so regrouping starts from plain names.
        plain = {
            key.split(SECTION_SEPARATOR, 1)[-1]: tags for key, tags in current.categories.items()
        }
        organized = await self.categorizer.organize_categories(plain)
        logger.info(
            "Categories organized",
            extra={"user_id": user_id, "categories": len(organized)},
        )
        return self.save_categories(user_id, organized)

    def life_sections(self, user_id: str) -> List[LifeSection]:
        return split_sections(self.get_categories(user_id).categories)


__all__ = ["TagService", "group_by_tag", "split_sections"]
