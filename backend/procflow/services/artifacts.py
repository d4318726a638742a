"""Extract generated artifacts from assistant message text.

The assistant returns artifacts as fenced JSON blocks shaped
``{"type": "dictionary" | "form" | "process", "data": {...}, "reasoning": "..."}``.
Blocks that are not valid JSON or not artifacts are ignored. Process artifacts
whose nodes lack coordinates are laid out before being handed back.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from procflow.schemas.workflow import BusinessProcess, GeneratedArtifact
from procflow.services.workflow_layout import apply_layout

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

ARTIFACT_TYPES = ("dictionary", "form", "process")


def _has_position(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    pos = node.get("position")
    return (
        isinstance(pos, dict)
        and isinstance(pos.get("x"), (int, float))
        and isinstance(pos.get("y"), (int, float))
    )


def ensure_workflow_positions(data: dict[str, Any]) -> dict[str, Any]:
    """Lay out a process artifact if any node is missing a usable position."""
    nodes = data.get("nodes")
    if not isinstance(nodes, list) or not nodes:
        return data
    if all(_has_position(n) for n in nodes):
        return data

    # unusable positions are dropped so the node lands at the origin
    cleaned = [
        n if _has_position(n) or not isinstance(n, dict)
        else {k: v for k, v in n.items() if k != "position"}
        for n in nodes
    ]
    try:
        process = BusinessProcess.model_validate(
            {**data, "nodes": cleaned, "transitions": data.get("transitions") or []}
        )
    except ValidationError as exc:
        logger.warning("Process artifact is not a valid workflow, leaving as-is: %s", exc)
        return data

    apply_layout(process.nodes, process.transitions, force=True)
    return {**data, **process.export()}


def extract_artifacts(content: str) -> list[GeneratedArtifact]:
    artifacts: list[GeneratedArtifact] = []

    for match in _JSON_BLOCK.finditer(content):
        try:
            parsed = json.loads(match.group(1).strip())
        except ValueError:
            continue
        if not isinstance(parsed, dict):
            continue

        artifact_type = parsed.get("type")
        data = parsed.get("data")
        if artifact_type not in ARTIFACT_TYPES or not isinstance(data, dict):
            continue

        if artifact_type == "process":
            data = ensure_workflow_positions(data)

        reasoning = parsed.get("reasoning")
        artifacts.append(
            GeneratedArtifact(
                type=artifact_type,
                data=data,
                reasoning=reasoning if isinstance(reasoning, str) else None,
            )
        )

    return artifacts


def get_artifact_display_name(artifact: GeneratedArtifact) -> str:
    if artifact.type == "dictionary":
        category = artifact.data.get("category")
        if isinstance(category, dict) and category.get("name"):
            return str(category["name"])
    elif artifact.data.get("name"):
        return str(artifact.data["name"])
    return "Unknown Artifact"
