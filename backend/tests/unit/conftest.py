"""Shared fixtures for unit tests."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from backend.src.services.categorizer import CategorizerService
from backend.src.services.database import DatabaseService
from backend.src.services.note_store import NoteStore
from backend.src.services.prompt_loader import PromptLoader


@pytest.fixture
def db(tmp_path: Path) -> DatabaseService:
    """Initialized SQLite database in a temp directory."""
    service = DatabaseService(tmp_path / "notes.db")
    service.initialize()
    return service


@pytest.fixture
def store(db: DatabaseService) -> NoteStore:
    return NoteStore(db)


@pytest.fixture
def llm() -> Mock:
    """Language model client whose replies are set per test."""
    client = Mock()
    client.complete = AsyncMock()
    return client


@pytest.fixture
def categorizer(llm: Mock, tmp_path: Path) -> CategorizerService:
    return CategorizerService(llm=llm, prompt_loader=PromptLoader(tmp_path / "no-prompts"))
