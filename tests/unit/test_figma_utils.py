"""Tests for ticketgen.context.figma_utils."""

from __future__ import annotations

from ticketgen.context.figma_utils import (
    NodeIndex,
    WalkStats,
    figma_color_to_hex,
    interactive_kind,
    is_interactive,
    node_size,
    solid_colors,
    text_style,
    walk_nodes,
)


def _chain(depth: int) -> dict:
    root = {"id": "0", "type": "FRAME", "children": []}
    current = root
    for i in range(1, depth):
        child = {"id": str(i), "type": "FRAME", "children": []}
        current["children"].append(child)
        current = child
    return root


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


class TestColors:

    def test_opaque(self):
        assert figma_color_to_hex({"r": 1, "g": 0, "b": 0, "a": 1}) == "#FF0000"

    def test_alpha_appended(self):
        assert figma_color_to_hex({"r": 0, "g": 0, "b": 0, "a": 0.5}) == "#00000080"

    def test_solid_colors_skips_hidden_and_gradients(self):
        node = {
            "fills": [
                {"type": "SOLID", "color": {"r": 1, "g": 1, "b": 1}},
                {"type": "SOLID", "visible": False, "color": {"r": 0, "g": 0, "b": 0}},
                {"type": "GRADIENT_LINEAR"},
            ],
            "strokes": [{"type": "SOLID", "color": {"r": 0, "g": 0, "b": 1}}],
        }
        assert solid_colors(node) == ["#FFFFFF", "#0000FF"]


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


class TestWalkNodes:

    def test_selection_wrapper_not_yielded(self):
        doc = {"type": "SELECTION", "children": [{"id": "a", "type": "FRAME"}, {"id": "b", "type": "TEXT"}]}
        assert [(n["id"], d) for n, d in walk_nodes(doc)] == [("a", 0), ("b", 0)]

    def test_preorder_depths(self):
        doc = {"id": "r", "type": "FRAME", "children": [
            {"id": "a", "type": "FRAME", "children": [{"id": "a1", "type": "TEXT"}]},
            {"id": "b", "type": "TEXT"},
        ]}
        assert [(n["id"], d) for n, d in walk_nodes(doc)] == [("r", 0), ("a", 1), ("a1", 2), ("b", 1)]

    def test_plain_node_root_yielded_without_cycle(self):
        stats = WalkStats()
        nodes = list(walk_nodes({"id": "btn", "type": "COMPONENT"}, stats=stats))
        assert [n["id"] for n, _ in nodes] == ["btn"]
        assert stats.cycles == 0

    def test_container_referenced_by_child_counts_as_cycle(self):
        doc = {"type": "DOCUMENT", "children": []}
        doc["children"].append({"id": "a", "type": "FRAME", "children": [doc]})
        stats = WalkStats()
        assert [n["id"] for n, _ in walk_nodes(doc, stats=stats)] == ["a"]
        assert stats.cycles == 1

    def test_non_dict_input(self):
        assert list(walk_nodes(None)) == []
        assert list(walk_nodes(["not", "a", "node"])) == []  # type: ignore[arg-type]

    def test_non_dict_children_ignored(self):
        doc = {"id": "r", "type": "FRAME", "children": ["junk", None, {"id": "ok"}]}
        assert [n["id"] for n, _ in walk_nodes(doc)] == ["r", "ok"]

    def test_depth_limit_truncates(self):
        stats = WalkStats()
        nodes = list(walk_nodes(_chain(200), max_depth=10, stats=stats))
        assert len(nodes) == 11
        assert stats.truncated
        assert stats.max_depth_seen == 10

    def test_very_deep_tree_terminates(self):
        stats = WalkStats()
        nodes = list(walk_nodes(_chain(5000), max_depth=64, stats=stats))
        assert len(nodes) == 65
        assert stats.truncated

    def test_cycle_visited_once(self):
        node = {"id": "loop", "type": "FRAME", "children": []}
        node["children"].append(node)
        stats = WalkStats()
        nodes = list(walk_nodes(node, stats=stats))
        assert len(nodes) == 1
        assert stats.cycles == 1


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------


class TestNodeHelpers:

    def test_node_size_from_bbox(self):
        assert node_size({"absoluteBoundingBox": {"width": 10, "height": 20}}) == (10.0, 20.0)

    def test_node_size_plugin_shape(self):
        assert node_size({"width": 3, "height": 4}) == (3.0, 4.0)
        assert node_size({}) is None

    def test_text_style_rest_and_plugin(self):
        assert text_style({"style": {"fontFamily": "Inter", "fontSize": 14}}) == {
            "fontFamily": "Inter", "fontSize": 14,
        }
        assert text_style({"fontName": {"family": "Roboto"}, "fontSize": 12, "fontWeight": 700}) == {
            "fontFamily": "Roboto", "fontSize": 12, "fontWeight": 700,
        }

    def test_interactive_detection(self):
        assert is_interactive({"name": "Submit Button"})
        assert is_interactive({"name": "Card", "reactions": [{"trigger": {}}]})
        assert not is_interactive({"name": "Divider"})

    def test_interactive_kind_aliases(self):
        assert interactive_kind({"name": "Primary CTA"}) == "button"
        assert interactive_kind({"name": "Email field"}) == "input"
        assert interactive_kind({"name": "Hero"}) == "prototype-trigger"


class TestNodeIndex:

    def test_index(self, button_frame):
        index = NodeIndex.build(button_frame)
        assert len(index) == 3
        assert [n["id"] for n in index.of_type("TEXT")] == ["1:3", "1:4"]
        assert index.texts() == ["Sign up", "No credit card required"]
        assert index.names() == ["Primary Button", "Label", "Caption"]

    def test_empty(self):
        index = NodeIndex.build(None)
        assert len(index) == 0
        assert index.texts() == []
