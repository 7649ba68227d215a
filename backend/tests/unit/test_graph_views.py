"""Unit tests for graph view rendering and node clicks."""

import pytest

from backend.src.models.graph import GraphContext
from backend.src.models.settings import GraphSettings, SimulationSettings
from backend.src.services.graph_transform import build_graph
from backend.src.services.graph_views import (
    VIEWS,
    NodeNotInGraphError,
    UnknownViewError,
    handle_node_click,
    list_views,
    render_view,
)

from backend.tests.unit.note_factory import make_note


@pytest.fixture
def notes():
    return [
        make_note("1", "X", ["a", "b"]),
        make_note("2", "X", ["b"]),
    ]


def test_list_views_matches_registry() -> None:
    names = [view.name for view in list_views()]

    assert names == list(VIEWS)
    assert {"graph2d", "mobile", "network", "network3d", "pack"} <= set(names)


@pytest.mark.parametrize("name", list(VIEWS))
def test_every_view_renders(notes, name) -> None:
    view = render_view(name, notes)

    assert view.view == name
    assert view.data.nodes


def test_unknown_view(notes) -> None:
    with pytest.raises(UnknownViewError) as excinfo:
        render_view("sankey", notes)
    assert excinfo.value.error == "unknown_view"


def test_graph2d_switches_to_mobile(notes) -> None:
    view = render_view("graph2d", notes, GraphContext(is_mobile=True))

    assert view.view == "mobile"
    assert view.params.link_distance == 60
    assert view.params.zoom_bounds == (1.0, 5.0)
    assert view.params.cooldown_ticks == 50


def test_network_uses_simulation_settings(notes) -> None:
    view = render_view(
        "network", notes, simulation=SimulationSettings(link_distance=250, charge_strength=-500)
    )

    assert view.params.link_distance == 250
    assert view.params.charge_strength == -500
    assert view.params.distance_max == 200
    assert {node.id for node in view.data.nodes} == {"note-1", "note-2", "tag-a", "tag-b"}


def test_network_mobile_defaults(notes) -> None:
    view = render_view("network", notes, GraphContext(is_mobile=True))

    assert view.params.link_distance == 50
    assert view.params.charge_strength == -150


def test_network_mobile_keeps_explicit_distance(notes) -> None:
    view = render_view(
        "network", notes, GraphContext(is_mobile=True), simulation=SimulationSettings(link_distance=80)
    )

    assert view.params.link_distance == 80


def test_network3d_applies_saved_settings(notes) -> None:
    settings = GraphSettings(node_size=10, link_distance=200, background_color="#000000")

    view = render_view("network3d", notes, settings=settings)

    assert view.params.node_rel_size == 10
    assert view.params.link_distance == 200
    assert view.background_color == "#000000"
    assert view.settings["nodeSize"] == 10


def test_radial_view_positions_every_node(notes) -> None:
    view = render_view("radial", notes, width=600, height=300)

    assert set(view.positions) == {node.id for node in view.data.nodes}
    assert view.settings["radial_radius"] == 100


def test_pack_view_has_hierarchy(notes) -> None:
    view = render_view("pack", notes, GraphContext(theme="dark"))

    assert view.pack is not None
    assert view.background_color == "#1e293b"


class TestNodeClick:
    def test_note_navigates(self, notes) -> None:
        result = handle_node_click(build_graph(notes), "1")

        assert result.action == "navigate"
        assert result.route == "/note/1"

    def test_note_opens_popover_on_mobile(self, notes) -> None:
        result = handle_node_click(build_graph(notes), "2", is_mobile=True)

        assert result.action == "popover"
        assert result.note_id == "2"
        assert result.route is None

    def test_namespaced_note_uses_original_id(self, notes) -> None:
        data = render_view("network", notes).data

        assert handle_node_click(data, "note-1").route == "/note/1"

    def test_tag_reports_connected_notes(self, notes) -> None:
        result = handle_node_click(build_graph(notes), "b")

        assert result.action == "notify"
        assert result.title == "Tag: b"
        assert result.description == "Connected to 2 notes"
        assert result.connected_notes == 2

    def test_category_reports_connected_notes(self, notes) -> None:
        result = handle_node_click(build_graph(notes), "X")

        assert result.title == "Category: X"
        assert result.connected_notes == 2

    def test_missing_node(self, notes) -> None:
        with pytest.raises(NodeNotInGraphError):
            handle_node_click(build_graph(notes), "nope")
