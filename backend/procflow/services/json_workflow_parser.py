"""Parse the canonical BusinessProcess JSON, bare or wrapped as ``{type, data}``."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from procflow.schemas.workflow import (
    NODE_TYPES,
    BusinessProcess,
    Position,
    ProcessNode,
    ProcessTransition,
    generate_id,
)
from procflow.services.workflow_errors import WorkflowParseError

logger = logging.getLogger(__name__)


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _text(value: Any, default: str) -> str:
    return default if value is None else str(value)


def _position(raw: Any) -> Position:
    if not isinstance(raw, dict):
        return Position()
    try:
        return Position.model_validate(raw)
    except ValidationError:
        return Position()


def _node(raw: dict[str, Any]) -> ProcessNode:
    node_type = raw.get("type") or "task"
    if node_type not in NODE_TYPES:
        logger.debug("Unknown node type %r, treating as task", node_type)
        node_type = "task"
    return ProcessNode(
        id=_optional_str(raw.get("id")) or generate_id(),
        type=node_type,
        name=_text(raw.get("name"), "Node"),
        description=_optional_str(raw.get("description")),
        assignee=_optional_str(raw.get("assignee")),
        form_ref=_optional_str(raw.get("formRef")),
        position=_position(raw.get("position")),
    )


def _transition(raw: dict[str, Any]) -> ProcessTransition:
    return ProcessTransition(
        id=_optional_str(raw.get("id")) or generate_id(),
        from_=_optional_str(raw.get("from")) or _optional_str(raw.get("source")) or "",
        to=_optional_str(raw.get("to")) or _optional_str(raw.get("target")) or "",
        label=_optional_str(raw.get("label")),
        condition=_optional_str(raw.get("condition")),
    )


def parse_json_workflow(content: str) -> BusinessProcess:
    try:
        parsed = json.loads(content)
    except ValueError as exc:
        raise WorkflowParseError(f"Invalid workflow JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise WorkflowParseError("Invalid workflow JSON: expected an object")

    data = parsed.get("data") if isinstance(parsed.get("data"), dict) else parsed

    raw_nodes = data.get("nodes")
    if not isinstance(raw_nodes, list):
        raise WorkflowParseError("Invalid workflow JSON: missing nodes array")
    raw_transitions = data.get("transitions")
    if raw_transitions is None:
        raw_transitions = data.get("edges")
    if not isinstance(raw_transitions, list):
        raise WorkflowParseError("Invalid workflow JSON: missing transitions/edges array")

    nodes: list[ProcessNode] = []
    seen: set[str] = set()
    for raw in raw_nodes:
        if not isinstance(raw, dict):
            raise WorkflowParseError("Invalid workflow JSON: nodes must be objects")
        node = _node(raw)
        if node.id in seen:
            logger.debug("Dropping duplicate node id %s", node.id)
            continue
        seen.add(node.id)
        nodes.append(node)

    transitions: list[ProcessTransition] = []
    for raw in raw_transitions:
        if not isinstance(raw, dict):
            raise WorkflowParseError("Invalid workflow JSON: transitions must be objects")
        transitions.append(_transition(raw))

    return BusinessProcess(
        id=_optional_str(data.get("id")) or generate_id(),
        name=_text(data.get("name"), "Workflow"),
        code=_text(data.get("code"), "workflow"),
        description=_optional_str(data.get("description")),
        nodes=nodes,
        transitions=transitions,
    )
