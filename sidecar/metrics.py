"""Prometheus metrics for the hook sidecars.

Served on ``GET /metrics`` over the hook socket.
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

hook_call_duration = Histogram(
    "kubevirt_hook_call_seconds",
    "Duration of hook callback invocations",
    ["hook", "operation", "status"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, float("inf")),
)

hook_fallbacks = Counter(
    "kubevirt_hook_fallbacks_total",
    "Callbacks that returned their input unchanged because of an error",
    ["hook", "reason"],
)

hook_mutations = Counter(
    "kubevirt_hook_mutations_total",
    "Domain elements modified or added by a hook",
    ["hook", "kind"],
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
