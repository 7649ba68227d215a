"""View shell routing models."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class RouteMatch(BaseModel):
    """Result of resolving a client path."""

    status: Literal["ok", "redirect", "not_found"]
    path: str
    route: Optional[str] = Field(None, description="Matched pattern, e.g. /note/:id")
    page: Optional[str] = None
    params: Dict[str, str] = Field(default_factory=dict)
    redirect_to: Optional[str] = None


class NavTab(BaseModel):
    name: str
    url: str
    active: bool = False


class Navigation(BaseModel):
    """Resolved route plus the navigation tabs for the current device."""

    match: RouteMatch
    tabs: List[NavTab]
    layout: Literal["desktop", "mobile"]
    themes: List[str]


__all__ = ["RouteMatch", "NavTab", "Navigation"]
