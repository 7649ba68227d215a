"""HTTP API route handlers."""

from . import auth, gmail, graph, notes, queue, system, tags

__all__ = ["auth", "notes", "tags", "graph", "gmail", "queue", "system"]
