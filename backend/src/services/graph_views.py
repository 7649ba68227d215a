"""Registry of graph views and the node click policy shared by all of them.

Each view pairs a transform policy with a layout and the tuning knobs the
client renderer applies (force-simulation strengths, zoom bounds, cooldown).
Physics itself runs in the client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from ..models.graph import (
    ForceParameters,
    GraphContext,
    GraphData,
    GraphView,
    NodeClickResult,
    NodeType,
    ViewInfo,
)
from ..models.note import Note
from ..models.settings import GraphSettings, SimulationSettings
from . import graph_layout
from .graph_transform import (
    CATEGORY_GRAPH,
    TAG_NETWORK,
    TransformPolicy,
    build_graph,
    count_connected_notes,
)

logger = logging.getLogger(__name__)

NOTE_TAG_GRAPH = TransformPolicy(namespace_ids=False, include_categories=False)

DEFAULT_WIDTH = 800.0
DEFAULT_HEIGHT = 600.0
MOBILE_LINK_DISTANCE = 60


class UnknownViewError(Exception):
    def __init__(self, view: str):
        super().__init__(f"Unknown graph view: {view}")
        self.error = "unknown_view"
        self.message = f"Unknown graph view: {view}"


class NodeNotInGraphError(Exception):
    def __init__(self, node_id: str):
        super().__init__(f"Node not found in graph: {node_id}")
        self.error = "node_not_found"
        self.message = f"Node not found in graph: {node_id}"


@dataclass
class RenderInput:
    notes: Sequence[Note]
    context: GraphContext
    width: float
    height: float
    settings: GraphSettings
    simulation: SimulationSettings


@dataclass(frozen=True)
class ViewSpec:
    name: str
    renderer: str
    description: str
    policy: TransformPolicy
    build: Callable[[RenderInput, GraphData], GraphView]


def _note_graph(inp: RenderInput, data: GraphData) -> GraphView:
    if inp.context.is_mobile:
        return _mobile_graph(inp, data)
    return GraphView(
        view="graph2d",
        renderer="force-2d",
        data=data,
        params=ForceParameters(charge_strength=-150, link_distance=100),
    )


def _mobile_graph(inp: RenderInput, data: GraphData) -> GraphView:
    return GraphView(
        view="mobile",
        renderer="force-2d",
        data=data,
        params=ForceParameters(
            charge_strength=-150,
            link_distance=MOBILE_LINK_DISTANCE,
            collision_radius=25,
            zoom_bounds=(1.0, 5.0),
            initial_zoom=2.0,
            cooldown_ticks=50,
        ),
        settings={"link_width": 2},
    )


def _radial_graph(inp: RenderInput, data: GraphData) -> GraphView:
    radius = min(inp.width, inp.height) / 3
    return GraphView(
        view="radial",
        renderer="force-2d",
        data=data,
        params=ForceParameters(
            charge_strength=-200,
            link_distance=100,
            center_strength=0.2,
            radial_strength=0.1,
            zoom_bounds=(0.5, 8.0),
            cooldown_time_ms=2000,
        ),
        positions=graph_layout.radial_positions(
            [node.id for node in data.nodes], inp.width, inp.height, radius=radius
        ),
        settings={"radial_radius": radius},
    )


def _network_graph(inp: RenderInput, data: GraphData) -> GraphView:
    sim = inp.simulation
    if inp.context.is_mobile and "link_distance" not in sim.model_fields_set:
        link_distance, charge = 50.0, -150.0
    else:
        link_distance, charge = sim.link_distance, sim.charge_strength
    return GraphView(
        view="network",
        renderer="svg-force",
        data=data,
        params=ForceParameters(
            charge_strength=charge,
            link_distance=link_distance,
            collision_radius=sim.collision_radius,
            zoom_bounds=(0.5, 4.0),
            distance_max=200,
        ),
        background_color="#1e293b" if inp.context.theme == "dark" else "#f8fafc",
    )


def _network3d_graph(inp: RenderInput, data: GraphData) -> GraphView:
    settings = inp.settings
    return GraphView(
        view="network3d",
        renderer="force-3d",
        data=data,
        params=ForceParameters(
            charge_strength=-150,
            link_distance=settings.link_distance,
            node_rel_size=settings.node_size,
        ),
        background_color=settings.background_color,
        settings=settings.model_dump(by_alias=True),
    )


def _div_graph(inp: RenderInput, data: GraphData) -> GraphView:
    return GraphView(
        view="div",
        renderer="absolute",
        data=data,
        positions=graph_layout.div_layout(inp.notes, inp.width, inp.height),
    )


def _div2_graph(inp: RenderInput, data: GraphData) -> GraphView:
    return GraphView(
        view="div2",
        renderer="absolute",
        data=data,
        positions=graph_layout.div2_layout(inp.notes, inp.width, inp.height),
    )


def _pack_graph(inp: RenderInput, data: GraphData) -> GraphView:
    return GraphView(
        view="pack",
        renderer="pack",
        data=data,
        pack=graph_layout.pack_layout(inp.notes, inp.width, inp.height, inp.context.theme),
        background_color="#1e293b" if inp.context.theme == "dark" else "#f8fafc",
    )


def _flow_graph(inp: RenderInput, data: GraphData) -> GraphView:
    return GraphView(
        view="flow",
        renderer="flow",
        data=data,
        positions=graph_layout.flow_positions(data, inp.width, inp.height),
    )


VIEWS: Dict[str, ViewSpec] = {
    spec.name: spec
    for spec in (
        ViewSpec("graph2d", "force-2d", "Force-directed notes, categories and tags", CATEGORY_GRAPH, _note_graph),
        ViewSpec("mobile", "force-2d", "Compact force graph for narrow screens", CATEGORY_GRAPH, _mobile_graph),
        ViewSpec("radial", "force-2d", "Force graph seeded on a circle with a radial pull", CATEGORY_GRAPH, _radial_graph),
        ViewSpec("network", "svg-force", "Note and tag network with live simulation knobs", TAG_NETWORK, _network_graph),
        ViewSpec("network3d", "force-3d", "3D note and tag network with saved settings", TAG_NETWORK, _network3d_graph),
        ViewSpec("div", "absolute", "Notes on a ring, tags on a golden spiral", NOTE_TAG_GRAPH, _div_graph),
        ViewSpec("div2", "absolute", "Notes on a ring, tags on a tight spiral", NOTE_TAG_GRAPH, _div2_graph),
        ViewSpec("pack", "pack", "Zoomable bubbles of categories and tags", CATEGORY_GRAPH, _pack_graph),
        ViewSpec("flow", "flow", "Node-link diagram in category, note and tag columns", CATEGORY_GRAPH, _flow_graph),
    )
}


def list_views() -> List[ViewInfo]:
    return [
        ViewInfo(name=spec.name, renderer=spec.renderer, description=spec.description)
        for spec in VIEWS.values()
    ]


def get_view(name: str) -> ViewSpec:
    try:
        return VIEWS[name]
    except KeyError:
        raise UnknownViewError(name) from None


def render_view(
    name: str,
    notes: Sequence[Note],
    context: Optional[GraphContext] = None,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
    settings: Optional[GraphSettings] = None,
    simulation: Optional[SimulationSettings] = None,
) -> GraphView:
    """Transform ``notes`` with the view's policy and attach its layout and knobs."""
    spec = get_view(name)
    context = context or GraphContext()
    data = build_graph(notes, context, spec.policy)
    view = spec.build(
        RenderInput(
            notes=notes,
            context=context,
            width=width,
            height=height,
            settings=settings or GraphSettings(),
            simulation=simulation or SimulationSettings(),
        ),
        data,
    )
    logger.debug(
        "View rendered",
        extra={"view": name, "nodes": len(data.nodes), "links": len(data.links)},
    )
    return view


def handle_node_click(data: GraphData, node_id: str, is_mobile: bool = False) -> NodeClickResult:
    """Note nodes open the note (a popover on mobile); labels report their note count."""
    node = next((candidate for candidate in data.nodes if candidate.id == node_id), None)
    if node is None:
        raise NodeNotInGraphError(node_id)

    if node.type == NodeType.NOTE:
        note_id = node.note_id or node.id
        if is_mobile:
            return NodeClickResult(action="popover", note_id=note_id, title=node.name)
        return NodeClickResult(action="navigate", route=f"/note/{note_id}", note_id=note_id)

    connected = count_connected_notes(data.links, node.id)
    return NodeClickResult(
        action="notify",
        title=f"{node.type.value.capitalize()}: {node.name}",
        description=f"Connected to {connected} notes",
        connected_notes=connected,
    )


__all__ = [
    "VIEWS",
    "ViewSpec",
    "NOTE_TAG_GRAPH",
    "list_views",
    "get_view",
    "render_view",
    "handle_node_click",
    "UnknownViewError",
    "NodeNotInGraphError",
]
