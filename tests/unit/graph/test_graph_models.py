"""Tests for flow graph models and node parsing."""

import pytest

from chatflow.core.errors import GraphLoadError
from chatflow.graph.models import (
    ActionNode,
    AINode,
    ButtonMessageNode,
    Edge,
    MessageNode,
    TriggerNode,
    UnknownNode,
    parse_node,
)
from tests.factories import build_graph


class TestParseNode:
    def test_trigger_text_falls_back_to_message_then_label(self):
        assert parse_node({"id": "t", "type": "trigger", "data": {"text": "A"}}).data.text == "A"
        assert (
            parse_node({"id": "t", "type": "trigger", "data": {"message": "B"}}).data.text == "B"
        )
        assert parse_node({"id": "t", "type": "trigger", "data": {"label": "C"}}).data.text == "C"
        assert parse_node({"id": "t", "type": "trigger"}).data.text == ""

    def test_message_defaults(self):
        node = parse_node({"id": "m", "type": "message", "data": {}})
        assert isinstance(node, MessageNode)
        assert node.data.text == "Hello"
        assert node.data.images == []

    def test_media_without_url_is_dropped(self):
        node = parse_node(
            {
                "id": "m",
                "type": "message",
                "data": {
                    "text": "Look",
                    "images": [{"url": "https://x/a.png", "caption": "A"}, {"caption": "no url"}],
                },
            }
        )
        assert [i.url for i in node.data.images] == ["https://x/a.png"]

    def test_button_defaults_and_filtering(self):
        node = parse_node(
            {"id": "b", "type": "buttonMessage", "data": {"buttons": ["Yes", "", None, "No"]}}
        )
        assert isinstance(node, ButtonMessageNode)
        assert node.data.text == "Choose an option:"
        assert node.data.buttons == ["Yes", "No"]

    def test_ai_default_prompt(self):
        node = parse_node({"id": "a", "type": "ai", "data": {}})
        assert isinstance(node, AINode)
        assert node.data.prompt == "You are a helpful assistant."

    def test_action_method_is_upper_cased(self):
        node = parse_node({"id": "x", "type": "action", "data": {"method": "put", "url": "/y"}})
        assert isinstance(node, ActionNode)
        assert node.data.method == "PUT"
        assert parse_node({"id": "x", "type": "action"}).data.method == "POST"

    def test_unknown_type_is_preserved(self):
        node = parse_node({"id": "z", "type": "carousel", "data": {"items": [1]}})
        assert isinstance(node, UnknownNode)
        assert node.type == "carousel"
        assert node.data == {"items": [1]}

    def test_non_mapping_is_rejected(self):
        with pytest.raises(ValueError):
            parse_node(["not", "a", "node"])


class TestEdge:
    def test_branch_from_data(self):
        edge = Edge.model_validate({"source": "c", "target": "x", "data": {"branch": True}})
        assert edge.branch == "true"

    def test_branch_falls_back_to_source_handle(self):
        edge = Edge.model_validate({"source": "c", "target": "x", "sourceHandle": "false"})
        assert edge.branch == "false"

    def test_non_string_label_becomes_empty(self):
        edge = Edge.model_validate({"source": "a", "target": "b", "label": None})
        assert edge.label == ""


class TestFlowGraph:
    def test_lookup_and_outgoing_order(self, button_graph):
        assert button_graph.node("b").type == "buttonMessage"
        assert button_graph.node("missing") is None
        assert [e.target for e in button_graph.outgoing("b")] == ["yes", "no"]

    def test_first_trigger_wins(self):
        graph = build_graph(
            nodes=[
                {"id": "t1", "type": "trigger"},
                {"id": "t2", "type": "trigger"},
            ],
            edges=[],
        )
        assert isinstance(graph.trigger(), TriggerNode)
        assert graph.trigger().id == "t1"

    def test_no_trigger(self):
        graph = build_graph(nodes=[{"id": "m", "type": "message"}], edges=[])
        assert graph.trigger() is None

    def test_numeric_ids_and_owner_alias(self):
        graph = build_graph(nodes=[], edges=[], flow_id=7, ownerId=12)
        assert graph.id == "7"
        assert graph.owner_id == "12"

    def test_numeric_node_and_edge_ids(self):
        graph = build_graph(
            nodes=[
                {"id": 1, "type": "trigger"},
                {"id": 2, "type": "message", "data": {"text": "Hi"}},
            ],
            edges=[{"id": 10, "source": 1, "target": 2}],
        )

        assert graph.node("2") is not None
        edge = graph.outgoing("1")[0]
        assert (edge.id, edge.target) == ("10", "2")

    def test_boolean_id_is_rejected(self):
        with pytest.raises(GraphLoadError):
            build_graph(nodes=[{"id": True, "type": "message"}], edges=[])

    def test_invalid_node_fails_load(self):
        with pytest.raises(GraphLoadError):
            build_graph(nodes=["oops"], edges=[])
