"""Note list to graph transform shared by every graph view.

One transform serves all views; a ``TransformPolicy`` selects whether node ids
are namespaced by type, whether category nodes are included and whether tag
nodes are colored by how often the tag is used.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import AbstractSet, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..models.graph import GraphContext, GraphData, GraphLink, GraphNode, NodeSearchResult, NodeType
from ..models.note import InputType, Note, note_title

logger = logging.getLogger(__name__)

HIGHLIGHT_COLOR = "#f43f5e"
LINK_HIGHLIGHT_COLOR = "#ea384c"

# (light, dark)
NODE_COLORS: Dict[NodeType, Tuple[str, str]] = {
    NodeType.NOTE: ("#475569", "#94a3b8"),
    NodeType.CATEGORY: ("#d97706", "#f59e0b"),
    NodeType.TAG: ("#16a34a", "#22c55e"),
}
NETWORK_NOTE_COLOR = ("#818cf8", "#6366f1")
URL_NOTE_COLOR = ("#3b82f6", "#60a5fa")
LINK_COLOR = ("#94a3b8", "#475569")
TAG_SCALE_RANGE = {
    "light": ("#7dd3fc", "#38bdf8"),
    "dark": ("#0ea5e9", "#0369a1"),
}
TAG_SCALE_MIN_UPPER = 8

MIN_NODE_SIZE = 2.0
MAX_NODE_SIZE = 5.0


@dataclass(frozen=True)
class TransformPolicy:
    """How the transform names and decorates nodes."""

    namespace_ids: bool
    include_categories: bool
    color_tags_by_usage: bool = False


CATEGORY_GRAPH = TransformPolicy(namespace_ids=False, include_categories=True)
TAG_NETWORK = TransformPolicy(namespace_ids=True, include_categories=False, color_tags_by_usage=True)


def _themed(pair: Tuple[str, str], theme: str) -> str:
    return pair[1] if theme == "dark" else pair[0]


def calculate_node_size(connection_count: int) -> float:
    """``1 + 0.5 * connections`` clamped to ``[2, 5]``."""
    return max(MIN_NODE_SIZE, min(MAX_NODE_SIZE, 1 + connection_count * 0.5))


def get_node_color(node_type: NodeType, theme: str, highlighted: bool = False) -> str:
    if highlighted:
        return HIGHLIGHT_COLOR
    return _themed(NODE_COLORS.get(node_type, NODE_COLORS[NodeType.NOTE]), theme)


def _hex_to_rgb(value: str) -> Tuple[int, int, int]:
    value = value.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def linear_color_scale(
    domain: Tuple[float, float], color_range: Tuple[str, str]
) -> Callable[[float], str]:
    """Map a number in ``domain`` to a hex color between the two range colors.

    Values outside the domain are clamped.
    """
    low, high = domain
    start = _hex_to_rgb(color_range[0])
    end = _hex_to_rgb(color_range[1])

    def scale(value: float) -> str:
        t = 0.0 if high == low else (value - low) / (high - low)
        t = max(0.0, min(1.0, t))
        channels = (round(a + (b - a) * t) for a, b in zip(start, end))
        return "#" + "".join(f"{channel:02x}" for channel in channels)

    return scale


def tag_usage_counts(notes: Iterable[Note]) -> Dict[str, int]:
    counts: Counter = Counter()
    for note in notes:
        counts.update(note.tags)
    return dict(counts)


def tag_color_scale(usage: Dict[str, int], theme: str) -> Callable[[float], str]:
    upper = max(TAG_SCALE_MIN_UPPER, max(usage.values(), default=0))
    return linear_color_scale((1, upper), TAG_SCALE_RANGE.get(theme, TAG_SCALE_RANGE["light"]))


def node_id(node_type: NodeType, key: str, policy: TransformPolicy) -> str:
    if not policy.namespace_ids:
        return key
    return f"{node_type.value}-{key}"


def build_graph(
    notes: Sequence[Note],
    context: Optional[GraphContext] = None,
    policy: TransformPolicy = CATEGORY_GRAPH,
) -> GraphData:
    """Convert notes into deduplicated nodes and note-to-label edges.

    Every note yields one note node, one edge to its category node (when the
    policy includes categories) and one edge per tag. Category and tag nodes
    are created on first occurrence. Sizes follow ``calculate_node_size`` of
    each node's edge count.
    """
    context = context or GraphContext()
    theme = context.theme

    usage = tag_usage_counts(notes) if policy.color_tags_by_usage else {}
    color_scale = tag_color_scale(usage, theme) if policy.color_tags_by_usage else None

    nodes: Dict[str, GraphNode] = {}
    links: List[GraphLink] = []
    url_note_ids: Set[str] = set()
    highlighted_id: Optional[str] = None

    def add_node(key: str, name: str, node_type: NodeType, **fields) -> str:
        nid = node_id(node_type, key, policy)
        if nid not in nodes:
            nodes[nid] = GraphNode(
                id=nid,
                name=name,
                type=node_type,
                color=get_node_color(node_type, theme),
                **fields,
            )
        return nid

    for note in notes:
        note_node = add_node(
            note.id,
            note_title(note),
            NodeType.NOTE,
            note_id=note.id,
            input_type=note.input_type.value,
        )
        if note.input_type == InputType.URL:
            url_note_ids.add(note_node)
        if context.highlighted_note_id is not None and note.id == context.highlighted_note_id:
            highlighted_id = note_node

        if policy.include_categories and note.category:
            category_node = add_node(note.category, note.category, NodeType.CATEGORY)
            links.append(GraphLink(source=note_node, target=category_node))

        for tag in note.tags:
            tag_node = add_node(tag, tag, NodeType.TAG)
            links.append(GraphLink(source=note_node, target=tag_node))

    connections: Counter = Counter()
    for link in links:
        connections[link.source] += 1
        connections[link.target] += 1

    for nid, node in nodes.items():
        node.connections = connections[nid]
        node.val = calculate_node_size(node.connections)
        if nid == highlighted_id:
            node.color = HIGHLIGHT_COLOR
        elif policy.color_tags_by_usage:
            if node.type == NodeType.TAG and color_scale is not None:
                node.color = color_scale(usage.get(node.name, 1))
            elif node.type == NodeType.NOTE:
                pair = URL_NOTE_COLOR if nid in url_note_ids else NETWORK_NOTE_COLOR
                node.color = _themed(pair, theme)

    for link in links:
        link.color = link_color(link, highlighted_id, url_note_ids, theme)

    logger.debug(
        "Graph built",
        extra={"notes": len(notes), "nodes": len(nodes), "links": len(links)},
    )
    return GraphData(nodes=list(nodes.values()), links=links)


def link_color(
    link: GraphLink,
    highlighted_id: Optional[str],
    url_note_ids: AbstractSet[str],
    theme: str,
) -> str:
    if highlighted_id is not None and highlighted_id in (link.source, link.target):
        return LINK_HIGHLIGHT_COLOR
    if link.source in url_note_ids or link.target in url_note_ids:
        return _themed(URL_NOTE_COLOR, theme)
    return _themed(LINK_COLOR, theme)


def count_connected_notes(links: Iterable[GraphLink], target_id: str) -> int:
    """Number of edges with an endpoint equal to ``target_id`` (linear scan)."""
    return sum(1 for link in links if link.source == target_id or link.target == target_id)


def search_nodes(data: GraphData, query: str, limit: int = 10) -> List[NodeSearchResult]:
    """Case-insensitive substring match on node names, in node order."""
    needle = query.strip().lower()
    if not needle:
        return []
    results = [
        NodeSearchResult(id=node.id, name=node.name, type=node.type)
        for node in data.nodes
        if needle in node.name.lower()
    ]
    return results[:limit]


__all__ = [
    "TransformPolicy",
    "CATEGORY_GRAPH",
    "TAG_NETWORK",
    "build_graph",
    "calculate_node_size",
    "get_node_color",
    "linear_color_scale",
    "tag_usage_counts",
    "tag_color_scale",
    "link_color",
    "count_connected_notes",
    "search_nodes",
    "HIGHLIGHT_COLOR",
    "LINK_HIGHLIGHT_COLOR",
]
