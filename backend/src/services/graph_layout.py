"""Coordinate math for the views that place nodes without a physics engine."""

from __future__ import annotations

import math
from collections import Counter
from typing import Dict, List, Optional, Sequence

import circlify

from ..models.graph import GraphData, NodePosition, NodeType, PackNode
from ..models.note import Note
from .graph_transform import linear_color_scale, tag_usage_counts

GOLDEN_RATIO = 1.618033988749895
RADIUS_FACTOR = 0.35
SPIRAL_TAG_FACTOR = 0.2
TIGHT_SPIRAL_STEP = 0.5
TIGHT_SPIRAL_TAG_FACTOR = 0.6
PACK_LEAF_WEIGHT = 100
PACK_DEPTH_RANGE = {
    "light": ("#7dd3fc", "#38bdf8"),
    "dark": ("#0ea5e9", "#0369a1"),
}
FLOW_COLUMNS = (NodeType.CATEGORY, NodeType.NOTE, NodeType.TAG)


def layout_radius(width: float, height: float) -> float:
    return min(width, height) * RADIUS_FACTOR


def radial_positions(
    note_ids: Sequence[str],
    width: float,
    height: float,
    radius: Optional[float] = None,
) -> Dict[str, NodePosition]:
    """Item ``i`` of ``n`` at angle ``2*pi*i/n`` on a circle around the center.

    The radius defaults to ``0.35 * min(width, height)``.
    """
    cx, cy = width / 2, height / 2
    if radius is None:
        radius = layout_radius(width, height)
    count = len(note_ids)
    positions: Dict[str, NodePosition] = {}
    for index, nid in enumerate(note_ids):
        angle = 2 * math.pi * index / count
        positions[nid] = NodePosition(
            x=cx + radius * math.cos(angle),
            y=cy + radius * math.sin(angle),
        )
    return positions


def golden_spiral_positions(
    tag_counts: Dict[str, int], width: float, height: float
) -> Dict[str, NodePosition]:
    """Tags on a golden-ratio spiral inside the note ring, scaled by usage.

    The spiral radius is capped at ``0.2 R``; scale runs from 0.5 to 2.0
    relative to the most used tag.
    """
    cx, cy = width / 2, height / 2
    tag_radius = layout_radius(width, height) * SPIRAL_TAG_FACTOR
    max_count = max(list(tag_counts.values()) + [1])
    positions: Dict[str, NodePosition] = {}
    for index, (tag, count) in enumerate(tag_counts.items()):
        t = index * GOLDEN_RATIO
        angle = t * 2 * math.pi
        spiral_radius = min(tag_radius * (t / (2 * math.pi)), tag_radius)
        positions[tag] = NodePosition(
            x=cx + spiral_radius * math.cos(angle),
            y=cy + spiral_radius * math.sin(angle),
            scale=0.5 + (count / max_count) * 1.5,
        )
    return positions


def tight_spiral_positions(
    notes: Sequence[Note], width: float, height: float
) -> Dict[str, NodePosition]:
    """Tags placed where first seen, by their index within that note's tag list."""
    cx, cy = width / 2, height / 2
    tag_radius = layout_radius(width, height) * TIGHT_SPIRAL_TAG_FACTOR
    positions: Dict[str, NodePosition] = {}
    for note in notes:
        for tag_index, tag in enumerate(note.tags):
            if tag in positions:
                continue
            t = tag_index * TIGHT_SPIRAL_STEP
            angle = t * 2 * math.pi
            spiral_radius = tag_radius * (t / (2 * math.pi))
            positions[tag] = NodePosition(
                x=cx + spiral_radius * math.cos(angle),
                y=cy + spiral_radius * math.sin(angle),
            )
    return positions


def div_layout(
    notes: Sequence[Note], width: float, height: float
) -> Dict[str, NodePosition]:
    positions = radial_positions([note.id for note in notes], width, height)
    positions.update(golden_spiral_positions(tag_usage_counts(notes), width, height))
    return positions


def div2_layout(
    notes: Sequence[Note], width: float, height: float
) -> Dict[str, NodePosition]:
    positions = radial_positions([note.id for note in notes], width, height)
    for tag, position in tight_spiral_positions(notes, width, height).items():
        positions.setdefault(tag, position)
    return positions


def build_pack_hierarchy(notes: Sequence[Note]) -> PackNode:
    """``root -> category -> tag``; a leaf is worth 100 per note in the category carrying the tag."""
    by_category: Dict[str, Counter] = {}
    for note in notes:
        counter = by_category.setdefault(note.category, Counter())
        counter.update(note.tags)

    categories: List[PackNode] = []
    for category, counter in by_category.items():
        leaves = [
            PackNode(name=tag, depth=2, value=count * PACK_LEAF_WEIGHT)
            for tag, count in counter.items()
        ]
        leaves.sort(key=lambda leaf: leaf.value, reverse=True)
        categories.append(
            PackNode(
                name=category,
                depth=1,
                value=sum(leaf.value for leaf in leaves),
                children=leaves,
            )
        )
    categories.sort(key=lambda node: node.value, reverse=True)
    return PackNode(
        name="root",
        depth=0,
        value=sum(node.value for node in categories),
        children=categories,
    )


def pack_layout(
    notes: Sequence[Note],
    width: float,
    height: float,
    theme: str = "light",
) -> PackNode:
    """Nested circles fitted into ``min(width, height)``, centred in the frame.

    Circle packing is delegated to circlify (front-chain packing, as in
    d3-hierarchy's ``pack``) inside a unit enclosure, then scaled.
    """
    root = build_pack_hierarchy(notes)
    target = min(width, height) / 2
    root.x, root.y, root.r = width / 2, height / 2, target

    by_id: Dict[str, PackNode] = {}
    data = []
    for cat_index, category in enumerate(root.children):
        cat_id = str(cat_index)
        by_id[cat_id] = category
        leaves = []
        for leaf_index, leaf in enumerate(category.children):
            leaf_id = f"{cat_id}/{leaf_index}"
            by_id[leaf_id] = leaf
            leaves.append({"id": leaf_id, "datum": leaf.value})
        data.append({"id": cat_id, "datum": category.value, "children": leaves})

    if data:
        for circle in circlify.circlify(data, show_enclosure=False):
            node = by_id[circle.ex["id"]]
            node.x = root.x + circle.x * target
            node.y = root.y + circle.y * target
            node.r = circle.r * target

    color = linear_color_scale((0, 5), PACK_DEPTH_RANGE.get(theme, PACK_DEPTH_RANGE["light"]))

    def paint(node: PackNode) -> None:
        if node.children:
            node.color = color(node.depth)
        for child in node.children:
            paint(child)

    paint(root)
    return root


def flow_positions(
    data: GraphData, width: float, height: float, margin: float = 40.0
) -> Dict[str, NodePosition]:
    """Layered columns (category, note, tag) with even vertical spacing."""
    columns = [
        [node.id for node in data.nodes if node.type == node_type] for node_type in FLOW_COLUMNS
    ]
    columns = [column for column in columns if column]
    positions: Dict[str, NodePosition] = {}
    if not columns:
        return positions
    usable_width = max(width - 2 * margin, 0.0)
    column_gap = usable_width / (len(columns) - 1) if len(columns) > 1 else 0.0
    for col_index, column in enumerate(columns):
        x = margin + col_index * column_gap if len(columns) > 1 else width / 2
        row_gap = (height - 2 * margin) / (len(column) + 1)
        for row_index, nid in enumerate(column):
            positions[nid] = NodePosition(x=x, y=margin + row_gap * (row_index + 1))
    return positions


def flatten_pack(root: PackNode) -> List[PackNode]:
    """All descendants below the root, depth-first."""
    result: List[PackNode] = []
    stack = list(reversed(root.children))
    while stack:
        node = stack.pop()
        result.append(node)
        stack.extend(reversed(node.children))
    return result


__all__ = [
    "radial_positions",
    "golden_spiral_positions",
    "tight_spiral_positions",
    "div_layout",
    "div2_layout",
    "build_pack_hierarchy",
    "pack_layout",
    "flow_positions",
    "flatten_pack",
    "layout_radius",
]
