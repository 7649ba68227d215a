"""Client route table and navigation tabs."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..models.navigation import Navigation, NavTab, RouteMatch

AUTH_ROUTE = "/auth"
THEMES = ["light", "dark"]

# pattern -> page
ROUTES: Tuple[Tuple[str, str], ...] = (
    ("/", "home"),
    ("/notes", "notes"),
    ("/note/:id", "note"),
    ("/tags", "tags"),
    ("/network", "network"),
    ("/network3d", "network3d"),
    ("/settings", "settings"),
    ("/queue", "queue"),
    ("/email/:id", "email"),
    ("/auth", "auth"),
    ("/gmail-callback", "gmail-callback"),
)

PUBLIC_ROUTES = {AUTH_ROUTE}

TABS: Tuple[Tuple[str, str], ...] = (
    ("Home", "/"),
    ("Notes", "/notes"),
    ("Tags", "/tags"),
    ("Network", "/network3d"),
    ("Queue", "/queue"),
    ("Settings", "/settings"),
)


def _match(pattern: str, path: str) -> Optional[Dict[str, str]]:
    pattern_parts = [part for part in pattern.split("/") if part]
    path_parts = [part for part in path.split("/") if part]
    if len(pattern_parts) != len(path_parts):
        return None
    params: Dict[str, str] = {}
    for expected, actual in zip(pattern_parts, path_parts):
        if expected.startswith(":"):
            params[expected[1:]] = actual
        elif expected != actual:
            return None
    return params


def resolve_route(path: str, authenticated: bool) -> RouteMatch:
    """Match ``path`` against the route table.

    Unauthenticated users are redirected to ``/auth`` for every route but
    ``/auth`` itself.
    """
    clean = "/" + path.split("?", 1)[0].split("#", 1)[0].strip("/")
    for pattern, page in ROUTES:
        params = _match(pattern, clean)
        if params is None:
            continue
        if not authenticated and pattern not in PUBLIC_ROUTES:
            return RouteMatch(status="redirect", path=clean, route=pattern, redirect_to=AUTH_ROUTE)
        return RouteMatch(status="ok", path=clean, route=pattern, page=page, params=params)
    return RouteMatch(status="not_found", path=clean)


def nav_tabs(current_path: str = "/") -> List[NavTab]:
    return [NavTab(name=name, url=url, active=url == current_path) for name, url in TABS]


def navigation(path: str, authenticated: bool, is_mobile: bool = False) -> Navigation:
    match = resolve_route(path, authenticated)
    return Navigation(
        match=match,
        tabs=nav_tabs(match.path) if match.status == "ok" else [],
        layout="mobile" if is_mobile else "desktop",
        themes=THEMES,
    )


__all__ = ["ROUTES", "TABS", "resolve_route", "nav_tabs", "navigation"]
