"""Prometheus metric definitions for the procflow backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, Info

# ── Application info ────────────────────────────────────────────────
app_info = Info("procflow", "procflow application metadata")

# ── HTTP request metrics ────────────────────────────────────────────
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Workflow pipeline metrics ───────────────────────────────────────
workflow_normalizations_total = Counter(
    "workflow_normalizations_total",
    "Workflow normalization attempts by detected format and outcome",
    ["format", "status"],
)

workflow_normalize_duration_seconds = Histogram(
    "workflow_normalize_duration_seconds",
    "Time spent parsing, validating and laying out a workflow",
    ["format"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

workflow_mutations_total = Counter(
    "workflow_mutations_total",
    "Workflow mutations applied",
    ["mutation_type"],
)

workflow_layout_runs_total = Counter(
    "workflow_layout_runs_total",
    "Layout runs by backend and outcome",
    ["backend", "status"],
)
