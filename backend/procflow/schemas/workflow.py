"""Canonical workflow model shared by every parser, the layout engine and the API.

The JSON form (``model_dump(by_alias=True, exclude_none=True)``) is the export
and persistence format: transitions use ``from``/``to`` and nodes use
``formRef``. Attribute names stay pythonic (``from_``, ``form_ref``); either
spelling is accepted on construction.
"""

from __future__ import annotations

import random
import string
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

_ID_ALPHABET = string.ascii_lowercase + string.digits

NodeType = Literal["start", "end", "task", "gateway", "subprocess"]
NODE_TYPES: tuple[str, ...] = ("start", "end", "task", "gateway", "subprocess")


def generate_id() -> str:
    """Short random identifier for nodes, transitions and processes."""
    return "".join(random.choices(_ID_ALPHABET, k=9))


class WorkflowFormat(str, Enum):
    JSON = "json"
    XAML = "xaml"
    BPMN = "bpmn"
    MERMAID = "mermaid"
    NATURAL = "natural"


class Position(BaseModel):
    x: float = 0
    y: float = 0

    @property
    def is_origin(self) -> bool:
        return self.x == 0 and self.y == 0


class ProcessNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: NodeType = "task"
    name: str
    description: str | None = None
    assignee: str | None = None
    form_ref: str | None = Field(default=None, alias="formRef")
    position: Position = Field(default_factory=Position)


class ProcessTransition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_: str = Field(alias="from")
    to: str
    condition: str | None = None
    label: str | None = None


class BusinessProcess(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str = "Workflow"
    code: str = "workflow"
    description: str | None = None
    nodes: list[ProcessNode] = []
    transitions: list[ProcessTransition] = []

    def export(self) -> dict[str, Any]:
        """Lossless JSON-ready dict in the wire shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class NormalizationResult(BaseModel):
    success: bool
    workflow: BusinessProcess | None = None
    format: WorkflowFormat
    error: str | None = None
    warnings: list[str] | None = None


# ── Mutations ──────────────────────────────────────────────────────────

MutationType = Literal[
    "addNode",
    "removeNode",
    "updateNode",
    "addTransition",
    "removeTransition",
    "updateTransition",
]


class WorkflowMutation(BaseModel):
    type: MutationType
    payload: dict[str, Any] = {}


# ── Artifacts ──────────────────────────────────────────────────────────

ArtifactType = Literal["dictionary", "form", "process"]


class GeneratedArtifact(BaseModel):
    type: ArtifactType
    data: dict[str, Any]
    reasoning: str | None = None


# ── Request bodies ─────────────────────────────────────────────────────

LayoutDirection = Literal["TB", "LR"]


class WorkflowContent(BaseModel):
    content: str


class NormalizeRequest(BaseModel):
    content: str
    format: WorkflowFormat | None = None
    direction: LayoutDirection | None = None


class WorkflowBody(BaseModel):
    workflow: BusinessProcess


class LayoutRequest(BaseModel):
    workflow: BusinessProcess
    direction: LayoutDirection | None = None
    force: bool = False


class MutateRequest(BaseModel):
    workflow: BusinessProcess
    mutations: list[WorkflowMutation]
    relayout: bool = True
