"""Shared test fixtures for the procflow backend.

Provides:
- FastAPI test app + async HTTP client (no external services needed)
- Factory helpers for building canonical workflows in tests
"""

from __future__ import annotations

import os

# Set test environment BEFORE any app imports so Settings() picks them up.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LAYOUT_DIRECTION", "TB")
os.environ.setdefault("LAYOUT_SERVICE_URL", "")

import pytest
from httpx import ASGITransport, AsyncClient

from procflow.schemas.workflow import (
    BusinessProcess,
    Position,
    ProcessNode,
    ProcessTransition,
)

# ---------------------------------------------------------------------------
# FastAPI test app + HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def app():
    """Minimal FastAPI app carrying only the versioned API router."""
    from fastapi import FastAPI

    from procflow.api.v1.router import api_router
    from procflow.config import settings

    test_app = FastAPI()
    test_app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    return test_app


@pytest.fixture
async def client(app):
    """HTTP test client for the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


def make_node(node_id, *, node_type="task", name=None, x=0, y=0, **kwargs) -> ProcessNode:
    return ProcessNode(
        id=node_id,
        type=node_type,
        name=name or node_id,
        position=Position(x=x, y=y),
        **kwargs,
    )


def make_transition(source, target, *, transition_id=None, **kwargs) -> ProcessTransition:
    return ProcessTransition(
        id=transition_id or f"{source}-{target}",
        from_=source,
        to=target,
        **kwargs,
    )


def make_process(nodes, edges=(), **kwargs) -> BusinessProcess:
    """Build a process from nodes and ``(from, to)`` pairs or ProcessTransitions."""
    transitions = [
        e if isinstance(e, ProcessTransition) else make_transition(*e) for e in edges
    ]
    return BusinessProcess(
        id=kwargs.pop("id", "proc-1"),
        nodes=list(nodes),
        transitions=transitions,
        **kwargs,
    )


def linear_process(*ids: str) -> BusinessProcess:
    """start -> task... -> end chain over *ids* (first is start, last is end)."""
    nodes = []
    for idx, node_id in enumerate(ids):
        if idx == 0:
            node_type = "start"
        elif idx == len(ids) - 1:
            node_type = "end"
        else:
            node_type = "task"
        nodes.append(make_node(node_id, node_type=node_type))
    return make_process(nodes, zip(ids, ids[1:]))
