"""HTTP API routes for graph views, node search and graph settings."""

from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.graph import (
    GraphContext,
    GraphView,
    NodeClickRequest,
    NodeClickResult,
    NodeSearchResult,
    ViewInfo,
)
from ...models.settings import GraphSettings, GraphSettingsUpdateRequest, SimulationSettings
from ...services.graph_settings import GraphSettingsService
from ...services.graph_transform import build_graph, search_nodes
from ...services.graph_views import (
    NodeNotInGraphError,
    UnknownViewError,
    get_view,
    handle_node_click,
    list_views,
    render_view,
)
from ...services.note_store import NoteStore
from ..dependencies import get_graph_settings_service, get_note_store
from ..middleware import AuthContext, get_auth_context

logger = logging.getLogger(__name__)

router = APIRouter()


def _unknown_view(exc: UnknownViewError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": exc.error, "message": exc.message},
    )


@router.get("/api/graph/views", response_model=List[ViewInfo])
async def get_graph_views(auth: AuthContext = Depends(get_auth_context)):
    """List the available graph views."""
    return list_views()


@router.get("/api/graph/settings", response_model=GraphSettings, response_model_by_alias=True)
async def get_graph_settings(
    mobile: bool = Query(False, description="Use mobile defaults for unsaved fields"),
    auth: AuthContext = Depends(get_auth_context),
    service: GraphSettingsService = Depends(get_graph_settings_service),
):
    """Get the caller's 3D graph settings (defaults if none are saved)."""
    return service.get_settings(auth.user_id, is_mobile=mobile)


@router.put("/api/graph/settings", response_model=GraphSettings, response_model_by_alias=True)
async def update_graph_settings(
    changes: GraphSettingsUpdateRequest,
    mobile: bool = Query(False),
    auth: AuthContext = Depends(get_auth_context),
    service: GraphSettingsService = Depends(get_graph_settings_service),
):
    """Save graph settings; the last write wins."""
    return service.update_settings(auth.user_id, changes, is_mobile=mobile)


@router.get("/api/graph/search", response_model=List[NodeSearchResult])
async def search_graph_nodes(
    q: str = Query(..., min_length=1, description="Substring of a node name"),
    view: str = Query("graph2d"),
    limit: int = Query(10, ge=1, le=50),
    auth: AuthContext = Depends(get_auth_context),
    store: NoteStore = Depends(get_note_store),
):
    """Find nodes of a view by name."""
    try:
        spec = get_view(view)
    except UnknownViewError as exc:
        raise _unknown_view(exc) from exc
    data = build_graph(store.list_notes(auth.user_id), GraphContext(), spec.policy)
    return search_nodes(data, q, limit=limit)


@router.post("/api/graph/click", response_model=NodeClickResult)
async def click_graph_node(
    request: NodeClickRequest,
    auth: AuthContext = Depends(get_auth_context),
    store: NoteStore = Depends(get_note_store),
):
    """Resolve what a click on a node does in the given view."""
    try:
        spec = get_view(request.view)
    except UnknownViewError as exc:
        raise _unknown_view(exc) from exc
    data = build_graph(
        store.list_notes(auth.user_id),
        GraphContext(is_mobile=request.is_mobile),
        spec.policy,
    )
    try:
        return handle_node_click(data, request.node_id, is_mobile=request.is_mobile)
    except NodeNotInGraphError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": exc.error, "message": exc.message},
        ) from exc


@router.get("/api/graph/{view}", response_model=GraphView)
def get_graph_view(
    view: str,
    theme: Literal["light", "dark"] = Query("light"),
    highlight: Optional[str] = Query(None, description="Note id to highlight"),
    mobile: bool = Query(False),
    width: float = Query(800, gt=0),
    height: float = Query(600, gt=0),
    link_distance: Optional[float] = Query(None, ge=10, le=500),
    charge_strength: Optional[float] = Query(None, ge=-1000, le=0),
    collision_radius: Optional[float] = Query(None, ge=1, le=50),
    auth: AuthContext = Depends(get_auth_context),
    store: NoteStore = Depends(get_note_store),
    settings_service: GraphSettingsService = Depends(get_graph_settings_service),
):
    """Render one graph view of the caller's notes."""
    overrides = {
        key: value
        for key, value in (
            ("link_distance", link_distance),
            ("charge_strength", charge_strength),
            ("collision_radius", collision_radius),
        )
        if value is not None
    }
    context = GraphContext(theme=theme, highlighted_note_id=highlight, is_mobile=mobile)
    try:
        return render_view(
            view,
            store.list_notes(auth.user_id),
            context,
            width=width,
            height=height,
            settings=settings_service.get_settings(auth.user_id, is_mobile=mobile),
            simulation=SimulationSettings(**overrides),
        )
    except UnknownViewError as exc:
        raise _unknown_view(exc) from exc


__all__ = ["router"]
