"""Discrete edits to a workflow, used for conversational editing.

Every operation works on a deep copy and returns it; the workflow passed in is
never modified. Batches are applied in order, each on the previous result.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from procflow.core.metrics import workflow_mutations_total
from procflow.schemas.workflow import (
    BusinessProcess,
    ProcessNode,
    ProcessTransition,
    WorkflowMutation,
    generate_id,
)
from procflow.services.workflow_errors import MutationError
from procflow.services.workflow_layout import LayoutOptions, relayout_pending

logger = logging.getLogger(__name__)


def _require(payload: dict[str, Any], *keys: str) -> None:
    missing = [k for k in keys if not payload.get(k)]
    if missing:
        raise MutationError(f"Mutation payload missing: {', '.join(missing)}")


def _merged_node(node: ProcessNode, changes: dict[str, Any]) -> ProcessNode:
    changes = {("formRef" if k == "form_ref" else k): v for k, v in changes.items()}
    data = {**node.model_dump(by_alias=True), **changes, "id": node.id}
    try:
        return ProcessNode.model_validate(data)
    except ValidationError as exc:
        msg = exc.errors()[0]["msg"]
        raise MutationError(f"Invalid node update for {node.id}: {msg}") from exc


def _merged_transition(t: ProcessTransition, changes: dict[str, Any]) -> ProcessTransition:
    data = {**t.model_dump(by_alias=True), **changes, "from": t.from_, "to": t.to}
    try:
        return ProcessTransition.model_validate(data)
    except ValidationError as exc:
        msg = exc.errors()[0]["msg"]
        raise MutationError(f"Invalid transition update for {t.id}: {msg}") from exc


def _add_node(wf: BusinessProcess, payload: dict[str, Any]) -> None:
    _require(payload, "name")
    node_id = payload.get("id") or generate_id()
    if any(n.id == node_id for n in wf.nodes):
        raise MutationError(f"Node {node_id} already exists")
    data = {k: v for k, v in payload.items() if k != "position"}
    data.update(id=node_id, type=payload.get("type") or "task")
    try:
        wf.nodes.append(ProcessNode.model_validate(data))
    except ValidationError as exc:
        raise MutationError(f"Invalid node: {exc.errors()[0]['msg']}") from exc


def _remove_node(wf: BusinessProcess, payload: dict[str, Any]) -> None:
    _require(payload, "id")
    node_id = payload["id"]
    wf.nodes = [n for n in wf.nodes if n.id != node_id]
    wf.transitions = [t for t in wf.transitions if t.from_ != node_id and t.to != node_id]


def _update_node(wf: BusinessProcess, payload: dict[str, Any]) -> None:
    _require(payload, "id")
    changes = {k: v for k, v in payload.items() if k != "id"}
    for idx, node in enumerate(wf.nodes):
        if node.id == payload["id"]:
            wf.nodes[idx] = _merged_node(node, changes)
            return
    logger.debug("updateNode: no node %s", payload["id"])


def _add_transition(wf: BusinessProcess, payload: dict[str, Any]) -> None:
    _require(payload, "from", "to")
    try:
        transition = ProcessTransition(
            id=payload.get("id") or generate_id(),
            from_=payload["from"],
            to=payload["to"],
            label=payload.get("label"),
            condition=payload.get("condition"),
        )
    except ValidationError as exc:
        raise MutationError(f"Invalid transition: {exc.errors()[0]['msg']}") from exc
    wf.transitions.append(transition)


def _remove_transition(wf: BusinessProcess, payload: dict[str, Any]) -> None:
    _require(payload, "from", "to")
    wf.transitions = [
        t for t in wf.transitions if not (t.from_ == payload["from"] and t.to == payload["to"])
    ]


def _update_transition(wf: BusinessProcess, payload: dict[str, Any]) -> None:
    _require(payload, "from", "to")
    changes = {k: v for k, v in payload.items() if k not in ("from", "to")}
    for idx, t in enumerate(wf.transitions):
        if t.from_ == payload["from"] and t.to == payload["to"]:
            wf.transitions[idx] = _merged_transition(t, changes)
            return
    logger.debug("updateTransition: no transition %s -> %s", payload["from"], payload["to"])


def apply_mutation(workflow: BusinessProcess, mutation: WorkflowMutation) -> BusinessProcess:
    updated = workflow.model_copy(deep=True)
    payload = mutation.payload

    if mutation.type == "addNode":
        _add_node(updated, payload)
    elif mutation.type == "removeNode":
        _remove_node(updated, payload)
    elif mutation.type == "updateNode":
        _update_node(updated, payload)
    elif mutation.type == "addTransition":
        _add_transition(updated, payload)
    elif mutation.type == "removeTransition":
        _remove_transition(updated, payload)
    elif mutation.type == "updateTransition":
        _update_transition(updated, payload)
    else:
        raise MutationError(f"Unknown mutation type: {mutation.type}")

    workflow_mutations_total.labels(mutation_type=mutation.type).inc()
    return updated


def apply_mutations(
    workflow: BusinessProcess,
    mutations: list[WorkflowMutation],
    *,
    relayout: bool = True,
    options: LayoutOptions | None = None,
) -> BusinessProcess:
    """Apply *mutations* in order.

    With *relayout*, nodes left without a position (typically new ones) are
    placed afterwards; nodes that already had coordinates keep them.
    """
    updated = workflow
    for mutation in mutations:
        updated = apply_mutation(updated, mutation)
    if relayout:
        updated = relayout_pending(updated, options)
    elif updated is workflow:
        updated = workflow.model_copy(deep=True)
    return updated


def workflow_to_context(workflow: BusinessProcess) -> str:
    """Compact JSON of the graph structure, for use as editing context."""
    return json.dumps(
        {
            "name": workflow.name,
            "nodes": [{"id": n.id, "name": n.name, "type": n.type} for n in workflow.nodes],
            "transitions": [_edge_context(t) for t in workflow.transitions],
        },
        indent=2,
    )


def _edge_context(t: ProcessTransition) -> dict[str, str]:
    edge = {"from": t.from_, "to": t.to}
    if t.label:
        edge["label"] = t.label
    return edge
