"""Service layer for business logic and external integrations."""

from .accounts import AccountService, translate_auth_error
from .auth import AuthError, AuthService
from .categorizer import CategorizationError, CategorizerService
from .config import AppConfig, get_config, reload_config
from .database import DatabaseService, init_database
from .email_queue import EmailQueueError, EmailQueueService
from .gmail import GmailError, GmailService
from .graph_settings import GraphSettingsService
from .graph_transform import CATEGORY_GRAPH, TAG_NETWORK, TransformPolicy, build_graph
from .graph_views import handle_node_click, list_views, render_view
from .llm_client import LLMClient, LLMError
from .note_service import NoteProcessingError, NoteService
from .note_store import NoteNotFoundError, NoteStore
from .prompt_loader import PromptLoader, PromptLoaderError
from .tag_service import TagService

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "DatabaseService",
    "init_database",
    "AuthService",
    "AuthError",
    "AccountService",
    "translate_auth_error",
    "LLMClient",
    "LLMError",
    "PromptLoader",
    "PromptLoaderError",
    "CategorizerService",
    "CategorizationError",
    "NoteStore",
    "NoteNotFoundError",
    "NoteService",
    "NoteProcessingError",
    "TagService",
    "TransformPolicy",
    "CATEGORY_GRAPH",
    "TAG_NETWORK",
    "build_graph",
    "render_view",
    "list_views",
    "handle_node_click",
    "GraphSettingsService",
    "EmailQueueService",
    "EmailQueueError",
    "GmailService",
    "GmailError",
]
