"""Layered layout for workflow graphs.

Three phases, in the usual Sugiyama style:

1. **Layering**: longest-path ranks. A depth-first forest is grown from the
   roots (``start`` nodes and nodes without incoming transitions). Edges that
   run back into a node still on the DFS stack are cycle edges and do not
   constrain ranks, so every graph terminates in O(V + E). Components that
   cannot be reached from any root are laid out after the deepest layer.
2. **Ordering**: four barycenter sweeps (down then up) to reduce crossings.
3. **Positioning**: fixed node footprint and gaps, every layer centred on a
   shared axis. ``TB`` stacks layers vertically, ``LR`` horizontally.

A workflow whose nodes all carry non-origin positions is left alone so
coordinates supplied by the user (or by the editor) survive re-imports.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Protocol

import httpx

from procflow.config import settings
from procflow.core.metrics import workflow_layout_runs_total
from procflow.schemas.workflow import BusinessProcess, Position, ProcessNode, ProcessTransition

logger = logging.getLogger(__name__)

ORDERING_SWEEPS = 4

# Layers are centred on this offset from the margin along the cross axis
_TB_AXIS_OFFSET = 400
_LR_AXIS_OFFSET = 300


@dataclass(frozen=True)
class LayoutOptions:
    direction: str = "TB"
    node_width: float = 150
    node_height: float = 50
    horizontal_gap: float = 80
    vertical_gap: float = 100
    margin_x: float = 50
    margin_y: float = 50

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", self.direction.upper())

    @classmethod
    def default(cls, direction: str | None = None) -> LayoutOptions:
        return cls(direction=direction or settings.LAYOUT_DIRECTION)


# ── Graph helpers ─────────────────────────────────────────────────────


def _adjacency(
    nodes: list[ProcessNode], transitions: list[ProcessTransition]
) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    outgoing: dict[str, list[str]] = {n.id: [] for n in nodes}
    incoming: dict[str, list[str]] = {n.id: [] for n in nodes}
    for t in transitions:
        # dangling transitions are a validation concern, not a layout one
        if t.from_ in outgoing and t.to in incoming:
            outgoing[t.from_].append(t.to)
            incoming[t.to].append(t.from_)
    return outgoing, incoming


def _dfs_postorder(
    start: str,
    outgoing: dict[str, list[str]],
    visited: set[str],
    back_edges: set[tuple[str, str]],
) -> list[str]:
    """Iterative DFS from *start*; records cycle edges into *back_edges*."""
    postorder: list[str] = []
    in_progress = {start}
    visited.add(start)
    stack = [(start, iter(outgoing[start]))]
    while stack:
        node, successors = stack[-1]
        for succ in successors:
            if succ in in_progress:
                back_edges.add((node, succ))
                continue
            if succ in visited:
                continue
            visited.add(succ)
            in_progress.add(succ)
            stack.append((succ, iter(outgoing[succ])))
            break
        else:
            stack.pop()
            in_progress.discard(node)
            postorder.append(node)
    return postorder


def assign_layers(
    nodes: list[ProcessNode],
    outgoing: dict[str, list[str]],
    incoming: dict[str, list[str]],
) -> list[list[str]]:
    """Longest-path layering that tolerates cycles and unreachable parts."""
    if not nodes:
        return []

    roots = [n.id for n in nodes if n.type == "start" or not incoming[n.id]]
    if not roots:
        roots = [nodes[0].id]

    visited: set[str] = set()
    back_edges: set[tuple[str, str]] = set()
    layer: dict[str, int] = {}
    deepest = -1

    def rank(postorder: list[str], base: int) -> None:
        nonlocal deepest
        # reverse DFS postorder is a topological order once back edges are ignored
        for node in reversed(postorder):
            ranked = [
                layer[p] for p in incoming[node] if p in layer and (p, node) not in back_edges
            ]
            layer[node] = max(ranked) + 1 if ranked else base
            deepest = max(deepest, layer[node])

    forest: list[str] = []
    for root in roots:
        if root not in visited:
            forest.extend(_dfs_postorder(root, outgoing, visited, back_edges))
    rank(forest, 0)

    for n in nodes:
        if n.id not in visited:
            rank(_dfs_postorder(n.id, outgoing, visited, back_edges), deepest + 1)

    grouped: dict[int, list[str]] = {}
    for n in nodes:
        grouped.setdefault(layer[n.id], []).append(n.id)
    return [grouped[i] for i in sorted(grouped)]


def _barycenter_sort(
    layer: list[str], reference: list[str], neighbours: dict[str, list[str]]
) -> list[str]:
    ref_index = {node_id: idx for idx, node_id in enumerate(reference)}

    def key(node_id: str) -> float:
        ranks = [ref_index[nb] for nb in neighbours[node_id] if nb in ref_index]
        return sum(ranks) / len(ranks) if ranks else float("inf")

    # sorted() is stable, so ties and unanchored nodes keep their order
    return sorted(layer, key=key)


def order_layers(
    layers: list[list[str]],
    outgoing: dict[str, list[str]],
    incoming: dict[str, list[str]],
) -> list[list[str]]:
    ordered = [list(layer) for layer in layers]
    for _ in range(ORDERING_SWEEPS):
        for i in range(1, len(ordered)):
            ordered[i] = _barycenter_sort(ordered[i], ordered[i - 1], incoming)
        for i in range(len(ordered) - 2, -1, -1):
            ordered[i] = _barycenter_sort(ordered[i], ordered[i + 1], outgoing)
    return ordered


def assign_positions(layers: list[list[str]], options: LayoutOptions) -> dict[str, Position]:
    vertical = options.direction != "LR"
    positions: dict[str, Position] = {}

    for layer_index, layer in enumerate(layers):
        if vertical:
            step = options.node_width + options.horizontal_gap
        else:
            step = options.node_height + options.vertical_gap
        span = (len(layer) - 1) * step

        for rank, node_id in enumerate(layer):
            offset = rank * step - span / 2
            if vertical:
                positions[node_id] = Position(
                    x=options.margin_x + _TB_AXIS_OFFSET + offset,
                    y=options.margin_y + layer_index * (options.node_height + options.vertical_gap),
                )
            else:
                positions[node_id] = Position(
                    x=options.margin_x + layer_index * (options.node_width + options.horizontal_gap),
                    y=options.margin_y + _LR_AXIS_OFFSET + offset,
                )
    return positions


# ── Public entry points ───────────────────────────────────────────────


def needs_layout(nodes: list[ProcessNode]) -> bool:
    return any(n.position.is_origin for n in nodes)


def compute_positions(
    nodes: list[ProcessNode],
    transitions: list[ProcessTransition],
    options: LayoutOptions | None = None,
) -> dict[str, Position]:
    opts = options or LayoutOptions.default()
    outgoing, incoming = _adjacency(nodes, transitions)
    layers = assign_layers(nodes, outgoing, incoming)
    return assign_positions(order_layers(layers, outgoing, incoming), opts)


def apply_layout(
    nodes: list[ProcessNode],
    transitions: list[ProcessTransition],
    options: LayoutOptions | None = None,
    *,
    force: bool = False,
) -> None:
    """Position *nodes* in place.

    No-op for an empty list, or when every node is already placed (unless
    *force* is set).
    """
    if not nodes or (not force and not needs_layout(nodes)):
        return
    positions = compute_positions(nodes, transitions, options)
    for node in nodes:
        node.position = positions[node.id]


def layout_workflow(
    workflow: BusinessProcess,
    options: LayoutOptions | None = None,
    *,
    force: bool = False,
) -> BusinessProcess:
    """Return a laid-out copy of *workflow*."""
    updated = workflow.model_copy(deep=True)
    apply_layout(updated.nodes, updated.transitions, options, force=force)
    return updated


def relayout_pending(workflow: BusinessProcess, options: LayoutOptions | None = None) -> BusinessProcess:
    """Place only nodes still at the origin; placed nodes keep their coordinates."""
    updated = workflow.model_copy(deep=True)
    if not needs_layout(updated.nodes):
        return updated
    positions = compute_positions(updated.nodes, updated.transitions, options)
    for node in updated.nodes:
        if node.position.is_origin:
            node.position = positions[node.id]
    return updated


# ── Backends ──────────────────────────────────────────────────────────


class LayoutBackend(Protocol):
    name: str

    async def layout(
        self, workflow: BusinessProcess, options: LayoutOptions | None = None
    ) -> BusinessProcess: ...


class IntrinsicLayoutBackend:
    """The layering algorithm above, behind the async backend interface."""

    name = "intrinsic"

    async def layout(
        self, workflow: BusinessProcess, options: LayoutOptions | None = None
    ) -> BusinessProcess:
        status = "ok" if workflow.nodes and needs_layout(workflow.nodes) else "skipped"
        workflow_layout_runs_total.labels(backend=self.name, status=status).inc()
        return layout_workflow(workflow, options)


class HttpLayoutBackend:
    """Delegate layout to an external graph-layout service.

    The service receives ``{"workflow": <export>, "options": {...}}`` and
    answers ``{"positions": {"<node id>": {"x": .., "y": ..}}}``. Any transport
    or payload problem falls back to the built-in layout; nodes the service
    did not place are positioned locally as well.
    """

    name = "http"

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def _fetch_positions(
        self, workflow: BusinessProcess, options: LayoutOptions
    ) -> dict[str, Position]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(
                self.url,
                json={"workflow": workflow.export(), "options": asdict(options)},
            )
            resp.raise_for_status()
            raw = resp.json()["positions"]
        return {node_id: Position(x=float(p["x"]), y=float(p["y"])) for node_id, p in raw.items()}

    async def layout(
        self, workflow: BusinessProcess, options: LayoutOptions | None = None
    ) -> BusinessProcess:
        opts = options or LayoutOptions.default()
        if not workflow.nodes or not needs_layout(workflow.nodes):
            workflow_layout_runs_total.labels(backend=self.name, status="skipped").inc()
            return workflow.model_copy(deep=True)

        try:
            positions = await self._fetch_positions(workflow, opts)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Layout service at %s failed (%s); using built-in layout", self.url, exc)
            workflow_layout_runs_total.labels(backend=self.name, status="fallback").inc()
            return layout_workflow(workflow, opts)

        updated = workflow.model_copy(deep=True)
        for node in updated.nodes:
            if node.id in positions:
                node.position = positions[node.id]
        workflow_layout_runs_total.labels(backend=self.name, status="ok").inc()
        return relayout_pending(updated, opts)


def get_layout_backend() -> LayoutBackend:
    if settings.LAYOUT_SERVICE_URL:
        return HttpLayoutBackend(settings.LAYOUT_SERVICE_URL, timeout=settings.LAYOUT_SERVICE_TIMEOUT)
    return IntrinsicLayoutBackend()
