"""Advisory checks on a parsed workflow. Findings never fail normalization."""

from __future__ import annotations

from procflow.schemas.workflow import BusinessProcess


def validate_workflow(workflow: BusinessProcess) -> list[str]:
    warnings: list[str] = []
    node_ids = {n.id for n in workflow.nodes}

    for t in workflow.transitions:
        if t.from_ not in node_ids:
            warnings.append(f"Transition references unknown source: {t.from_}")
        if t.to not in node_ids:
            warnings.append(f"Transition references unknown target: {t.to}")

    if len(workflow.nodes) > 1:
        connected = {t.from_ for t in workflow.transitions} | {t.to for t in workflow.transitions}
        for n in workflow.nodes:
            if n.id not in connected:
                warnings.append(f'Node "{n.name}" is isolated (no connections)')

    if not any(n.type == "start" for n in workflow.nodes):
        warnings.append("Workflow has no start node")
    if not any(n.type == "end" for n in workflow.nodes):
        warnings.append("Workflow has no end node")

    return warnings
