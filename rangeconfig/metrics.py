"""Prometheus metrics for the configuration server.

The /metrics endpoint serves these in Prometheus exposition format.
"""
from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

resolve_requests = Counter(
    "rangeconfig_resolve_requests_total",
    "Configuration requests by outcome",
    ["result"],  # hit, miss, invalid
)

reload_total = Counter(
    "rangeconfig_reload_total",
    "Inventory reloads by outcome",
    ["status"],  # success, error
)

inventory_instances = Gauge(
    "rangeconfig_inventory_instances",
    "Instances in the current inventory snapshot",
)


def get_metrics() -> tuple[bytes, str]:
    """Return (body, content_type) for the /metrics endpoint."""
    return generate_latest(), CONTENT_TYPE_LATEST
