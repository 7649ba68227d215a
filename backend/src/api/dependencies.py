"""FastAPI dependency providers for the service layer."""

from __future__ import annotations

from ..services.accounts import AccountService
from ..services.auth import AuthService
from ..services.database import DatabaseService
from ..services.email_queue import EmailQueueService
from ..services.gmail import GmailService
from ..services.graph_settings import GraphSettingsService
from ..services.note_service import NoteService
from ..services.note_store import NoteStore
from ..services.tag_service import TagService
from .middleware import get_auth_service


def get_database_service() -> DatabaseService:
    return DatabaseService()


def get_note_store() -> NoteStore:
    return NoteStore(get_database_service())


def get_note_service() -> NoteService:
    return NoteService(get_note_store())


def get_tag_service() -> TagService:
    db = get_database_service()
    return TagService(db, store=NoteStore(db))


def get_graph_settings_service() -> GraphSettingsService:
    return GraphSettingsService(get_database_service())


def get_email_queue_service() -> EmailQueueService:
    db = get_database_service()
    return EmailQueueService(db, store=NoteStore(db))


def get_gmail_service() -> GmailService:
    db = get_database_service()
    return GmailService(db, EmailQueueService(db, store=NoteStore(db)))


def get_account_service() -> AccountService:
    auth_service: AuthService = get_auth_service()
    return AccountService(get_database_service(), auth_service)


__all__ = [
    "get_database_service",
    "get_note_store",
    "get_note_service",
    "get_tag_service",
    "get_graph_settings_service",
    "get_email_queue_service",
    "get_gmail_service",
    "get_account_service",
]
