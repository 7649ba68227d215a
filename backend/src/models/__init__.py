"""Pydantic models for data validation and serialization."""

from .auth import Credentials, JWTPayload, SignUpResponse, TokenResponse
from .email import EmailQueueItem, EmailStatus, FetchEmailsResult, QueuePromotion
from .graph import GraphData, GraphLink, GraphNode, GraphView, NodeType
from .navigation import Navigation, NavTab, RouteMatch
from .note import InputType, Note, NoteCreate, NoteUpdate, TagNotes
from .settings import GraphSettings, SimulationSettings
from .tags import LifeSection, TagCategories
from .user import User

__all__ = [
    "User",
    "Note",
    "NoteCreate",
    "NoteUpdate",
    "InputType",
    "TagNotes",
    "TagCategories",
    "LifeSection",
    "GraphNode",
    "GraphLink",
    "GraphData",
    "GraphView",
    "NodeType",
    "GraphSettings",
    "SimulationSettings",
    "EmailQueueItem",
    "EmailStatus",
    "FetchEmailsResult",
    "QueuePromotion",
    "RouteMatch",
    "NavTab",
    "Navigation",
    "TokenResponse",
    "JWTPayload",
    "Credentials",
    "SignUpResponse",
]
