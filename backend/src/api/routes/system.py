"""System routes for logs and client navigation."""

import logging
from collections import deque
from typing import Any, Dict, List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ...models.navigation import Navigation
from ...services.navigation import navigation
from ..middleware import AuthContext, get_auth_context, get_optional_auth_context

router = APIRouter()

# Global in-memory log buffer
LOG_BUFFER: deque = deque(maxlen=100)

_RECORD_ATTRS = {
    'args', 'asctime', 'created', 'exc_info', 'exc_text', 'filename',
    'funcName', 'levelname', 'levelno', 'lineno', 'module',
    'msecs', 'message', 'msg', 'name', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'thread', 'threadName',
    'taskName',
}


class LogEntry(BaseModel):
    timestamp: str
    level: str
    logger: str
    message: str
    extra: Dict[str, Any]


class MemoryLogHandler(logging.Handler):
    """Custom handler to capture logs into memory.

    Records logged with ``extra={"private": True}`` stay out of the buffer.
    """
    def emit(self, record):
        if getattr(record, "private", False):
            return
        try:
            msg = self.format(record)
            extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}

            entry = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": msg,
                "extra": extra,
            }
            LOG_BUFFER.append(entry)
        except Exception:
            self.handleError(record)


memory_handler = MemoryLogHandler()
memory_handler.setFormatter(logging.Formatter('%(message)s'))


def install_log_buffer() -> None:
    """Attach the buffer to the root logger once."""
    root = logging.getLogger()
    if memory_handler not in root.handlers:
        root.addHandler(memory_handler)
    if root.level > logging.INFO or root.level == logging.NOTSET:
        root.setLevel(logging.INFO)


@router.get("/api/system/logs", response_model=List[LogEntry])
async def get_logs(
    level: Optional[str] = Query(None, description="Only entries at this level"),
    auth: AuthContext = Depends(get_auth_context),
):
    """Retrieve recent system logs."""
    entries = list(LOG_BUFFER)
    if level:
        entries = [entry for entry in entries if entry["level"] == level.upper()]
    # Extras may hold arbitrary objects; stringify anything JSON cannot carry.
    return [
        {**entry, "extra": {k: v if isinstance(v, (str, int, float, bool, type(None))) else str(v)
                            for k, v in entry["extra"].items()}}
        for entry in entries
    ]


@router.get("/api/navigation", response_model=Navigation)
async def get_navigation(
    path: str = Query("/", description="Client path to resolve"),
    mobile: bool = Query(False),
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
):
    """Resolve a client route; anonymous callers are sent to /auth."""
    return navigation(path, authenticated=auth is not None, is_mobile=mobile)


__all__ = ["router", "LOG_BUFFER", "MemoryLogHandler", "install_log_buffer"]
