"""Tests for the timeline, node colouring and manual-edit validation."""

from __future__ import annotations

import pytest

from solaris.graph.editing import apply_property_edits, validate_link_input
from solaris.graph.models import GRAPH_COLORS, GraphNode, NodeType
from solaris.graph.views import node_color, parse_timestamp, timeline


# ---------------------------------------------------------------------------
# timeline
# ---------------------------------------------------------------------------

class TestTimeline:
    def test_groups_by_month_oldest_first(self, fragment, registry):
        groups = timeline(fragment.nodes, registry.files())
        assert [month for month, _ in groups] == ["February 2024", "March 2024"]
        assert groups[0][1][0].node.id == "disc"

    def test_conflict_flag(self, fragment, registry):
        groups = timeline(fragment.nodes, registry.files())
        assert groups[0][1][0].conflict is True
        assert groups[1][1][0].conflict is False

    def test_file_selection_highlights_matching_events(self, fragment, registry):
        pdf = registry.files()[0]
        groups = timeline(fragment.nodes, registry.files(), selected_file_id=pdf.id)
        flags = {e.node.id: e.highlighted for _, events in groups for e in events}
        assert flags == {"disc": False, "transfer": True}

    def test_unparseable_timestamps_skipped(self, registry):
        nodes = [
            GraphNode("a", "A", properties={"timestamp": "last Tuesday"}),
            GraphNode("b", "B", properties={"timestamp": "2023-12-31T23:00:00Z"}),
            GraphNode("c", "C"),
        ]
        groups = timeline(nodes, registry.files())
        assert [(m, [e.node.id for e in evs]) for m, evs in groups] == [("December 2023", ["b"])]

    def test_parse_timestamp(self):
        assert parse_timestamp("2024-03-12").day == 12
        assert parse_timestamp("not a date") is None


# ---------------------------------------------------------------------------
# node_color
# ---------------------------------------------------------------------------

class TestNodeColor:
    def test_type_colours(self, registry):
        files = registry.files()
        assert node_color(GraphNode("a", "A", NodeType.ENTITY), files) == GRAPH_COLORS["entity"]
        assert node_color(GraphNode("b", "B", NodeType.EVENT), files) == GRAPH_COLORS["event"]
        assert node_color(GraphNode("c", "C", NodeType.CONFLICT), files) == GRAPH_COLORS["conflict"]

    def test_custom_colour_wins(self, registry):
        node = GraphNode("a", "A", properties={"custom_color": "#facc15"})
        assert node_color(node, registry.files(), highlighted_node_id="other") == "#facc15"

    def test_selection_dims_others(self, fragment, registry):
        audio = registry.files()[1]
        mark, transfer, _ = fragment.nodes
        assert node_color(mark, registry.files(), selected_file_id=audio.id) == GRAPH_COLORS["selected"]
        assert node_color(transfer, registry.files(), selected_file_id=audio.id) == GRAPH_COLORS["dimmed"]

    def test_highlighted_node(self, fragment, registry):
        mark = fragment.nodes[0]
        assert node_color(mark, registry.files(), highlighted_node_id="mark") == GRAPH_COLORS["selected"]


# ---------------------------------------------------------------------------
# editing
# ---------------------------------------------------------------------------

class TestEditing:
    def test_blank_keys_dropped(self):
        node = GraphNode("a", "A", properties={"name": "x"})
        updated = apply_property_edits(node, [("name", "y"), ("  ", "ignored"), ("role", "cfo")])
        assert updated.properties == {"name": "y", "role": "cfo"}
        assert node.properties == {"name": "x"}

    def test_attachments_and_provenance_survive(self):
        node = GraphNode(
            "a", "A", properties={"source_file": "Audio.mp3", "attached_files": ["f1"]}
        )
        updated = apply_property_edits(node, [("description", "d")])
        assert updated.properties["attached_files"] == ["f1"]
        assert updated.properties["source_file"] == "Audio.mp3"

    def test_new_source_file_replaces_old(self):
        node = GraphNode("a", "A", properties={"source_file": "Audio.mp3"})
        updated = apply_property_edits(node, [("source_file", "memo.pdf")])
        assert updated.source_file == "memo.pdf"

    def test_label_and_type(self):
        updated = apply_property_edits(
            GraphNode("a", "A"), [], label="Luna", node_type=NodeType.EVENT
        )
        assert (updated.label, updated.type) == ("Luna", NodeType.EVENT)
        with pytest.raises(ValueError):
            apply_property_edits(GraphNode("a", "A"), [], label="  ")

    def test_validate_link_input(self):
        assert validate_link_input(" b ", " OWNS ") == ("b", "OWNS")
        with pytest.raises(ValueError):
            validate_link_input("", "OWNS")
        with pytest.raises(ValueError):
            validate_link_input("b", " ")
