"""Parse Mermaid-style flowchart text into a BusinessProcess.

Supported subset::

    flowchart TD
    A((Start)) --> B[Fill form]
    B -->|submit| C{Approved?}
    C -- no --> B
    C --> D((End))

Node shapes carry the node type: ``[..]`` task, ``((..))`` start/end (decided
by the node id), ``{..}`` decision gateway, ``[[..]]`` subprocess. Declarations
may appear inline on either side of an edge, and edges can be chained
(``A --> B --> C``). ``stateDiagram`` headers are accepted too, with ``[*]``
standing for the initial/final pseudo-state and ``A --> B : label`` edges.
"""

from __future__ import annotations

import re

from procflow.schemas.workflow import (
    BusinessProcess,
    NodeType,
    ProcessNode,
    ProcessTransition,
    generate_id,
)

_NODE = re.compile(
    r"\s*(?P<id>\[\*\]|\w+)"
    r"(?:\(\((?P<circle>[^)]*)\)\)"
    r"|\(\[(?P<stadium>[^\]]*)\]\)"
    r"|\[\[(?P<subroutine>[^\]]*)\]\]"
    r"|\[(?P<square>[^\]]*)\]"
    r"|\{\{(?P<hexagon>[^}]*)\}\}"
    r"|\{(?P<rhombus>[^}]*)\}"
    r"|\((?P<round>[^)]*)\))?"
)

# "-->", "---", "==>", "-.->", "-- text -->", each optionally followed by "|label|"
_EDGE = re.compile(
    r"\s*(?:--\s*(?P<inline>[^-|>\s][^>]*?)\s*--+>|(?:--+|==+|-\.+-)>?)"
    r"\s*(?:\|(?P<piped>[^|]*)\|)?"
)

_STATE_LABEL = re.compile(r"\s*:\s*(?P<label>.+)$")

_SHAPE_TYPES: dict[str, NodeType] = {
    "stadium": "task",
    "square": "task",
    "round": "task",
    "subroutine": "subprocess",
    "hexagon": "gateway",
    "rhombus": "gateway",
}

PSEUDO_STATE = "[*]"
START_PSEUDO_ID = "__start__"
END_PSEUDO_ID = "__end__"


def _clean_label(text: str | None) -> str | None:
    if text is None:
        return None
    text = text.strip().strip('"').strip()
    return text or None


class _FlowchartBuilder:
    def __init__(self) -> None:
        self.nodes: list[ProcessNode] = []
        self.transitions: list[ProcessTransition] = []
        self._by_id: dict[str, ProcessNode] = {}

    def _add(self, node_id: str, node_type: NodeType, name: str) -> str:
        # first declaration of an id wins
        if node_id not in self._by_id:
            node = ProcessNode(id=node_id, type=node_type, name=name)
            self.nodes.append(node)
            self._by_id[node_id] = node
        return node_id

    def declare(self, match: re.Match[str], *, as_target: bool) -> str:
        node_id = match.group("id")
        if node_id == PSEUDO_STATE:
            if as_target:
                return self._add(END_PSEUDO_ID, "end", "End")
            return self._add(START_PSEUDO_ID, "start", "Start")

        circle = match.group("circle")
        if circle is not None:
            node_type: NodeType = "start" if "start" in node_id.lower() else "end"
            return self._add(node_id, node_type, _clean_label(circle) or node_id)

        for shape, shape_type in _SHAPE_TYPES.items():
            label = match.group(shape)
            if label is not None:
                return self._add(node_id, shape_type, _clean_label(label) or node_id)

        return self._add(node_id, "task", node_id)

    def connect(self, source: str, target: str, label: str | None) -> None:
        self.transitions.append(
            ProcessTransition(id=generate_id(), from_=source, to=target, label=label)
        )

    def feed(self, line: str) -> None:
        first = _NODE.match(line)
        if not first:
            return
        has_shape = any(
            first.group(shape) is not None for shape in ("circle", *_SHAPE_TYPES)
        )
        edge = _EDGE.match(line, first.end())
        if not has_shape and not edge:
            # keywords such as "end", "subgraph", "classDef", "direction"
            return

        source = self.declare(first, as_target=False)
        pos = first.end()
        while edge:
            target_match = _NODE.match(line, edge.end())
            if not target_match:
                break
            target = self.declare(target_match, as_target=True)
            label = _clean_label(edge.group("piped")) or _clean_label(edge.group("inline"))
            pos = target_match.end()

            state_label = _STATE_LABEL.match(line, pos)
            if state_label:
                label = label or _clean_label(state_label.group("label"))
                pos = len(line)

            self.connect(source, target, label)
            source = target
            edge = _EDGE.match(line, pos)


def parse_mermaid_workflow(content: str) -> BusinessProcess:
    lines = [
        line.strip().rstrip(";")
        for line in content.splitlines()
        if line.strip() and not line.strip().startswith("%%")
    ]

    builder = _FlowchartBuilder()
    # first line is the "graph TD" / "flowchart LR" / "stateDiagram" header
    for line in lines[1:]:
        builder.feed(line)

    return BusinessProcess(
        name="Mermaid Workflow",
        code="mermaid-workflow",
        description="Imported from Mermaid diagram",
        nodes=builder.nodes,
        transitions=builder.transitions,
    )
