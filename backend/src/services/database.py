"""SQLite database helpers for the notes schema."""

from __future__ import annotations

from pathlib import Path
import sqlite3
from typing import Iterable

from .config import get_config

DDL_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        email_confirmed INTEGER NOT NULL DEFAULT 0,
        created TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notes (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        content TEXT NOT NULL,
        category TEXT NOT NULL,
        tags TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        input_type TEXT NOT NULL DEFAULT 'text',
        source_url TEXT,
        source_image_path TEXT,
        metadata TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_notes_user_created ON notes(user_id, created_at DESC)",
    """
    CREATE TABLE IF NOT EXISTS tag_categories (
        user_id TEXT PRIMARY KEY,
        categories TEXT NOT NULL,
        updated TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS graph_settings (
        user_id TEXT PRIMARY KEY,
        settings TEXT NOT NULL,
        updated TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gmail_integrations (
        user_id TEXT PRIMARY KEY,
        access_token TEXT NOT NULL,
        refresh_token TEXT,
        expires_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS email_processing_queue (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        email_id TEXT NOT NULL,
        sender TEXT NOT NULL DEFAULT '',
        subject TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'pending',
        received_at TEXT NOT NULL,
        processed_at TEXT,
        error_message TEXT,
        email_body TEXT NOT NULL DEFAULT '',
        UNIQUE (user_id, email_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_queue_user_received ON email_processing_queue(user_id, received_at DESC)",
)


class DatabaseService:
    """Manage SQLite connections and schema initialization."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path else get_config().database_path

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        """Return a sqlite3 connection with the proper data directory created."""
        self._ensure_directory()
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self, statements: Iterable[str] | None = None) -> Path:
        """Create all schema artifacts required by the services."""
        conn = self.connect()
        try:
            with conn:  # Transactional apply of DDL
                for statement in statements or DDL_STATEMENTS:
                    conn.execute(statement)
        finally:
            conn.close()
        return self.db_path


def init_database(db_path: str | Path | None = None) -> Path:
    """Convenience wrapper used at application startup."""
    return DatabaseService(db_path).initialize()


__all__ = ["DatabaseService", "init_database", "DDL_STATEMENTS"]
