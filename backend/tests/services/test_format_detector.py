"""Unit tests for input format detection."""

from __future__ import annotations

import pytest

from procflow.schemas.workflow import WorkflowFormat
from procflow.services.format_detector import detect_format


class TestDetectJson:
    def test_object(self):
        assert detect_format('{"nodes": [], "transitions": []}') is WorkflowFormat.JSON

    def test_array(self):
        assert detect_format("[1, 2, 3]") is WorkflowFormat.JSON

    def test_surrounding_whitespace(self):
        assert detect_format('\n\n   {"nodes": []}  \n') is WorkflowFormat.JSON

    def test_broken_json_is_not_json(self):
        assert detect_format('{"nodes": [') is WorkflowFormat.NATURAL


class TestDetectXml:
    def test_state_machine_is_xaml(self):
        content = '<Activity><StateMachine DisplayName="x" /></Activity>'
        assert detect_format(content) is WorkflowFormat.XAML

    def test_wf_namespace_is_xaml(self):
        content = (
            '<?xml version="1.0"?>\n'
            '<Activity xmlns="http://schemas.microsoft.com/netfx/2009/xaml/activities" />'
        )
        assert detect_format(content) is WorkflowFormat.XAML

    def test_prefixed_bpmn(self):
        content = '<bpmn:definitions xmlns:bpmn="x"><bpmn:process id="p" /></bpmn:definitions>'
        assert detect_format(content) is WorkflowFormat.BPMN

    def test_unprefixed_bpmn(self):
        content = '<?xml version="1.0"?><definitions><process id="p" /></definitions>'
        assert detect_format(content) is WorkflowFormat.BPMN

    def test_state_machine_wins_over_bpmn_markers(self):
        content = "<definitions><process><StateMachine /></process></definitions>"
        assert detect_format(content) is WorkflowFormat.XAML

    def test_unrelated_xml_is_natural(self):
        assert detect_format("<html><body>hi</body></html>") is WorkflowFormat.NATURAL


class TestDetectMermaid:
    @pytest.mark.parametrize(
        "header",
        ["graph TD", "graph LR", "flowchart TD", "flowchart", "stateDiagram-v2", "stateDiagram"],
    )
    def test_headers(self, header):
        assert detect_format(f"{header}\n  A --> B") is WorkflowFormat.MERMAID

    def test_leading_blank_lines(self):
        assert detect_format("\n\n  flowchart LR\nA-->B") is WorkflowFormat.MERMAID

    def test_word_prefix_is_not_header(self):
        assert detect_format("graphic design review\nthen approve") is WorkflowFormat.NATURAL


class TestDetectNatural:
    def test_prose(self):
        content = "When a ticket comes in, a manager reviews it and then closes it."
        assert detect_format(content) is WorkflowFormat.NATURAL

    def test_empty(self):
        assert detect_format("") is WorkflowFormat.NATURAL
        assert detect_format("   \n ") is WorkflowFormat.NATURAL
