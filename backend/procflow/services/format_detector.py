"""Classify raw workflow text into one of the supported input formats."""

from __future__ import annotations

import json
import re

from procflow.schemas.workflow import WorkflowFormat

# WF4 XAML activities namespace
WF_NAMESPACE = "http://schemas.microsoft.com/netfx"

_MERMAID_HEADER = re.compile(r"^(?:graph|flowchart)(?:\s|$)|^stateDiagram")


def _is_json(text: str) -> bool:
    if not text.startswith(("{", "[")):
        return False
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def detect_format(content: str) -> WorkflowFormat:
    """Return the format tag for *content*.

    Anything unrecognised is reported as ``natural`` (free text), which the
    normalizer hands back to the conversational side rather than parsing.
    """
    trimmed = content.strip()

    if _is_json(trimmed):
        return WorkflowFormat.JSON

    if "<?xml" in trimmed or trimmed.startswith("<"):
        if "StateMachine" in trimmed or WF_NAMESPACE in trimmed:
            return WorkflowFormat.XAML
        if "bpmn:" in trimmed or ("definitions" in trimmed and "process" in trimmed):
            return WorkflowFormat.BPMN

    if _MERMAID_HEADER.match(_first_line(trimmed)):
        return WorkflowFormat.MERMAID

    return WorkflowFormat.NATURAL
