"""Integration test for the /metrics endpoint on the FastAPI app.

Uses a lightweight TestClient against the real app; /metrics just returns
prometheus_client output.
"""

from __future__ import annotations

import pytest
from starlette.testclient import TestClient

from procflow.main import app


@pytest.fixture()
def client():
    return TestClient(app, raise_server_exceptions=False)


class TestMetricsEndpoint:
    def test_returns_200(self, client):
        resp = client.get("/metrics")
        assert resp.status_code == 200

    def test_content_type(self, client):
        resp = client.get("/metrics")
        assert "text/plain" in resp.headers["content-type"]

    def test_contains_standard_metrics(self, client):
        body = client.get("/metrics").text
        # prometheus_client always includes process metrics on Linux
        assert "python_info" in body

    def test_contains_app_info(self, client):
        assert "procflow_info" in client.get("/metrics").text

    def test_contains_http_metrics(self, client):
        client.post("/api/v1/workflows/detect", json={"content": "graph TD\nA-->B"})
        body = client.get("/metrics").text
        assert "http_requests_total" in body
        assert "http_request_duration_seconds" in body

    def test_contains_workflow_metrics(self, client):
        client.post("/api/v1/workflows/normalize", json={"content": "graph TD\nA-->B"})
        body = client.get("/metrics").text
        assert 'workflow_normalizations_total{format="mermaid",status="ok"}' in body


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["version"]
