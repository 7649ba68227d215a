"""Unit tests for the note-to-graph transform."""

import pytest

from backend.src.models.graph import GraphContext, GraphLink, NodeType
from backend.src.models.note import InputType
from backend.src.services.graph_transform import (
    CATEGORY_GRAPH,
    HIGHLIGHT_COLOR,
    LINK_COLOR,
    LINK_HIGHLIGHT_COLOR,
    NETWORK_NOTE_COLOR,
    NODE_COLORS,
    TAG_NETWORK,
    URL_NOTE_COLOR,
    build_graph,
    calculate_node_size,
    count_connected_notes,
    linear_color_scale,
    link_color,
    search_nodes,
    tag_color_scale,
)

from backend.tests.unit.note_factory import make_note


@pytest.fixture
def two_notes():
    return [
        make_note("1", "X", ["a", "b"]),
        make_note("2", "X", ["b"]),
    ]


def _edge_set(data):
    return {(link.source, link.target) for link in data.links}


def _node_map(data):
    return {node.id: node for node in data.nodes}


class TestCategoryGraph:
    def test_reference_example(self, two_notes) -> None:
        data = build_graph(two_notes)

        nodes = _node_map(data)
        assert set(nodes) == {"1", "2", "X", "a", "b"}
        assert _edge_set(data) == {("1", "X"), ("1", "a"), ("1", "b"), ("2", "X"), ("2", "b")}
        assert nodes["b"].connections == 2
        assert nodes["X"].type == NodeType.CATEGORY
        assert nodes["a"].type == NodeType.TAG

    def test_counts_match_distinct_labels_and_edges(self) -> None:
        notes = [
            make_note("1", "Work", ["meeting", "team"]),
            make_note("2", "Home", ["team"]),
            make_note("3", "Work", []),
        ]

        data = build_graph(notes)

        types = [node.type for node in data.nodes]
        assert types.count(NodeType.NOTE) == 3
        assert types.count(NodeType.CATEGORY) == 2
        assert types.count(NodeType.TAG) == 2
        assert len(data.links) == len(notes) + sum(len(note.tags) for note in notes)

    def test_every_edge_references_known_nodes(self, two_notes) -> None:
        data = build_graph(two_notes, policy=TAG_NETWORK)

        ids = set(_node_map(data))
        for link in data.links:
            assert link.source in ids
            assert link.target in ids

    def test_transform_is_deterministic(self, two_notes) -> None:
        context = GraphContext(theme="dark", highlighted_note_id="2")

        first = build_graph(two_notes, context)
        second = build_graph(two_notes, context)

        assert first.model_dump() == second.model_dump()

    def test_note_name_is_display_title(self) -> None:
        data = build_graph([make_note("1", "X", [], content="First line\nsecond")])

        assert _node_map(data)["1"].name == "First line..."

    def test_theme_colors(self, two_notes) -> None:
        light = _node_map(build_graph(two_notes, GraphContext(theme="light")))
        dark = _node_map(build_graph(two_notes, GraphContext(theme="dark")))

        assert light["X"].color == NODE_COLORS[NodeType.CATEGORY][0]
        assert dark["a"].color == NODE_COLORS[NodeType.TAG][1]

    def test_highlighted_note(self, two_notes) -> None:
        data = build_graph(two_notes, GraphContext(highlighted_note_id="1"))

        assert _node_map(data)["1"].color == HIGHLIGHT_COLOR
        highlighted = [link for link in data.links if link.color == LINK_HIGHLIGHT_COLOR]
        assert {(link.source, link.target) for link in highlighted} == {
            ("1", "X"),
            ("1", "a"),
            ("1", "b"),
        }

    def test_raw_ids_merge_colliding_labels(self) -> None:
        data = build_graph([make_note("1", "travel", ["travel"])])

        nodes = _node_map(data)
        assert set(nodes) == {"1", "travel"}
        assert nodes["travel"].type == NodeType.CATEGORY
        assert nodes["travel"].connections == 2


class TestTagNetwork:
    def test_ids_are_namespaced_and_categories_dropped(self, two_notes) -> None:
        data = build_graph(two_notes, policy=TAG_NETWORK)

        assert set(_node_map(data)) == {"note-1", "note-2", "tag-a", "tag-b"}
        assert len(data.links) == 3

    def test_tag_equal_to_note_id_does_not_collide(self) -> None:
        data = build_graph([make_note("a", "X", ["a"])], policy=TAG_NETWORK)

        assert set(_node_map(data)) == {"note-a", "tag-a"}

    def test_note_colors(self) -> None:
        notes = [
            make_note("1", "X", ["a"]),
            make_note("2", "X", ["a"], input_type=InputType.URL),
        ]

        nodes = _node_map(build_graph(notes, GraphContext(theme="dark"), TAG_NETWORK))

        assert nodes["note-1"].color == NETWORK_NOTE_COLOR[1]
        assert nodes["note-2"].color == URL_NOTE_COLOR[1]

    def test_tags_colored_by_usage(self, two_notes) -> None:
        nodes = _node_map(build_graph(two_notes, policy=TAG_NETWORK))
        scale = tag_color_scale({"a": 1, "b": 2}, "light")

        assert nodes["tag-a"].color == scale(1) == "#7dd3fc"
        assert nodes["tag-b"].color == scale(2)
        assert nodes["tag-a"].color != nodes["tag-b"].color


class TestHelpers:
    @pytest.mark.parametrize(
        "connections,expected",
        [(0, 2.0), (1, 2.0), (2, 2.0), (3, 2.5), (6, 4.0), (8, 5.0), (20, 5.0)],
    )
    def test_calculate_node_size(self, connections, expected) -> None:
        assert calculate_node_size(connections) == expected

    def test_node_size_is_non_decreasing(self) -> None:
        sizes = [calculate_node_size(count) for count in range(30)]

        assert sizes == sorted(sizes)
        assert min(sizes) >= 2 and max(sizes) <= 5

    def test_linear_color_scale_clamps(self) -> None:
        scale = linear_color_scale((0, 10), ("#000000", "#ffffff"))

        assert scale(-5) == "#000000"
        assert scale(5) == "#808080"
        assert scale(50) == "#ffffff"

    def test_tag_color_scale_domain_has_minimum_upper_bound(self) -> None:
        scale = tag_color_scale({"a": 2}, "light")

        assert scale(8) == "#38bdf8"
        assert scale(2) != "#38bdf8"

    def test_link_color_checks_url_note_membership(self) -> None:
        url_notes = {"note-2"}

        assert link_color(GraphLink(source="note-2", target="tag-a"), None, url_notes, "light") == URL_NOTE_COLOR[0]
        assert link_color(GraphLink(source="note-1", target="tag-a"), None, url_notes, "dark") == LINK_COLOR[1]
        assert link_color(GraphLink(source="note-2", target="tag-a"), "tag-a", url_notes, "light") == LINK_HIGHLIGHT_COLOR

    def test_count_connected_notes(self, two_notes) -> None:
        data = build_graph(two_notes)

        assert count_connected_notes(data.links, "X") == 2
        assert count_connected_notes(data.links, "a") == 1
        assert count_connected_notes(data.links, "missing") == 0

    def test_search_nodes(self, two_notes) -> None:
        data = build_graph(two_notes, policy=CATEGORY_GRAPH)

        assert [result.id for result in search_nodes(data, " X ")] == ["X"]
        assert search_nodes(data, "") == []
        assert [result.id for result in search_nodes(data, "b")] == ["b", "2"]
        assert len(search_nodes(data, "b", limit=1)) == 1
