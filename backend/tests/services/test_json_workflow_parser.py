"""Unit tests for the canonical workflow JSON parser."""

from __future__ import annotations

import json

import pytest

from procflow.services.json_workflow_parser import parse_json_workflow
from procflow.services.workflow_errors import WorkflowParseError
from tests.conftest import make_node, make_process, make_transition


class TestParseCanonical:
    def test_basic_fields(self):
        content = json.dumps(
            {
                "id": "p1",
                "name": "Leave Request",
                "code": "leave-request",
                "description": "Ask for time off",
                "nodes": [
                    {"id": "s", "type": "start", "name": "Start"},
                    {
                        "id": "t",
                        "type": "task",
                        "name": "Fill form",
                        "assignee": "employee",
                        "formRef": "leave-form",
                    },
                ],
                "transitions": [{"id": "e1", "from": "s", "to": "t", "label": "go"}],
            }
        )
        wf = parse_json_workflow(content)
        assert (wf.id, wf.name, wf.code, wf.description) == (
            "p1",
            "Leave Request",
            "leave-request",
            "Ask for time off",
        )
        task = wf.nodes[1]
        assert task.assignee == "employee"
        assert task.form_ref == "leave-form"
        assert wf.transitions[0].label == "go"

    def test_round_trip_export(self):
        original = make_process(
            [
                make_node("a", node_type="start", x=10, y=20),
                make_node("b", description="second", form_ref="f-1", x=10, y=170),
                make_node("c", node_type="end", x=10, y=320),
            ],
            [
                make_transition("a", "b", condition="ok"),
                make_transition("b", "c", label="done"),
            ],
            name="Round Trip",
            code="round-trip",
        )
        parsed = parse_json_workflow(json.dumps(original.export()))
        assert parsed.export() == original.export()

    def test_empty_text_fields_kept(self):
        original = make_process(
            [make_node("a", description="", assignee="", x=10, y=20)],
            [make_transition("a", "a", label="")],
            description="",
        )
        parsed = parse_json_workflow(json.dumps(original.export()))
        assert parsed.export() == original.export()
        assert parsed.nodes[0].description == ""

    def test_envelope(self):
        content = json.dumps(
            {
                "type": "process",
                "data": {"name": "Wrapped", "nodes": [{"id": "a", "name": "A"}], "transitions": []},
            }
        )
        wf = parse_json_workflow(content)
        assert wf.name == "Wrapped"
        assert [n.id for n in wf.nodes] == ["a"]

    def test_edges_alias(self):
        content = json.dumps(
            {
                "nodes": [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}],
                "edges": [{"id": "e", "source": "a", "target": "b"}],
            }
        )
        t = parse_json_workflow(content).transitions[0]
        assert (t.from_, t.to) == ("a", "b")


class TestParseDefaults:
    def test_missing_metadata(self):
        wf = parse_json_workflow('{"nodes": [], "transitions": []}')
        assert wf.name == "Workflow"
        assert wf.code == "workflow"
        assert len(wf.id) == 9

    def test_unknown_type_becomes_task(self):
        wf = parse_json_workflow('{"nodes": [{"id": "a", "type": "robot", "name": "A"}], "transitions": []}')
        assert wf.nodes[0].type == "task"

    def test_missing_ids_are_generated(self):
        wf = parse_json_workflow('{"nodes": [{"name": "A"}], "transitions": [{"from": "x", "to": "y"}]}')
        assert wf.nodes[0].id
        assert wf.transitions[0].id

    def test_duplicate_node_ids_first_wins(self):
        content = json.dumps(
            {
                "nodes": [{"id": "a", "name": "First"}, {"id": "a", "name": "Second"}],
                "transitions": [],
            }
        )
        wf = parse_json_workflow(content)
        assert [n.name for n in wf.nodes] == ["First"]

    def test_bad_position_reset_to_origin(self):
        content = json.dumps(
            {
                "nodes": [
                    {"id": "a", "name": "A", "position": {"x": "left", "y": 3}},
                    {"id": "b", "name": "B", "position": [1, 2]},
                ],
                "transitions": [],
            }
        )
        wf = parse_json_workflow(content)
        assert all(n.position.is_origin for n in wf.nodes)

    def test_dangling_transition_kept(self):
        content = json.dumps(
            {"nodes": [{"id": "a", "name": "A"}], "transitions": [{"from": "a", "to": "ghost"}]}
        )
        assert parse_json_workflow(content).transitions[0].to == "ghost"


class TestParseErrors:
    def test_invalid_json(self):
        with pytest.raises(WorkflowParseError, match="Invalid workflow JSON"):
            parse_json_workflow("{nope")

    def test_not_an_object(self):
        with pytest.raises(WorkflowParseError, match="expected an object"):
            parse_json_workflow("[1, 2]")

    def test_missing_nodes(self):
        with pytest.raises(WorkflowParseError, match="missing nodes"):
            parse_json_workflow('{"transitions": []}')

    def test_missing_transitions(self):
        with pytest.raises(WorkflowParseError, match="missing transitions"):
            parse_json_workflow('{"nodes": []}')

    def test_non_object_node(self):
        with pytest.raises(WorkflowParseError, match="nodes must be objects"):
            parse_json_workflow('{"nodes": ["a"], "transitions": []}')
