"""Service for managing per-user 3D graph settings in the database."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..models.settings import GraphSettings, GraphSettingsUpdateRequest
from .database import DatabaseService
from .graph_views import MOBILE_LINK_DISTANCE

logger = logging.getLogger(__name__)


def defaults_for(is_mobile: bool = False) -> GraphSettings:
    if is_mobile:
        return GraphSettings(link_distance=MOBILE_LINK_DISTANCE)
    return GraphSettings()


def _merge_stored(stored: Dict[str, Any], defaults: GraphSettings) -> GraphSettings:
    """Apply stored fields over defaults, dropping any field that no longer validates."""
    merged = defaults.model_dump(by_alias=True)
    for key, value in stored.items():
        candidate = {**merged, key: value}
        try:
            GraphSettings.model_validate(candidate)
        except ValidationError:
            logger.warning("Ignoring invalid stored graph setting", extra={"field": key})
            continue
        merged = candidate
    return GraphSettings.model_validate(merged)


class GraphSettingsService:
    """Read and write graph display settings; saves are last-write-wins upserts."""

    def __init__(self, db_service: Optional[DatabaseService] = None):
        self.db = db_service or DatabaseService()

    def get_settings(self, user_id: str, is_mobile: bool = False) -> GraphSettings:
        """
        Get user's graph settings.

        Args:
            user_id: User identifier
            is_mobile: Pick the mobile defaults for fields never saved

        Returns:
            GraphSettings (defaults if nothing is stored)
        """
        defaults = defaults_for(is_mobile)
        conn = self.db.connect()
        try:
            row = conn.execute(
                "SELECT settings FROM graph_settings WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return defaults
        try:
            stored = json.loads(row["settings"])
        except json.JSONDecodeError:
            logger.error("Stored graph settings are not valid JSON", extra={"user_id": user_id})
            return defaults
        if not isinstance(stored, dict):
            return defaults
        return _merge_stored(stored, defaults)

    def save_settings(self, user_id: str, settings: GraphSettings) -> GraphSettings:
        """Overwrite the stored settings for ``user_id``."""
        now = datetime.now(timezone.utc).isoformat()
        conn = self.db.connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO graph_settings (user_id, settings, updated)
                    VALUES (?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        settings = excluded.settings,
                        updated = excluded.updated
                    """,
                    (user_id, json.dumps(settings.model_dump(by_alias=True)), now),
                )
        finally:
            conn.close()
        logger.info("Saved graph settings", extra={"user_id": user_id})
        return settings

    def update_settings(
        self,
        user_id: str,
        changes: GraphSettingsUpdateRequest,
        is_mobile: bool = False,
    ) -> GraphSettings:
        current = self.get_settings(user_id, is_mobile)
        updated = current.model_copy(update=changes.model_dump(exclude_none=True))
        return self.save_settings(user_id, GraphSettings.model_validate(updated.model_dump()))


__all__ = ["GraphSettingsService", "defaults_for"]
