"""Elasticsearch Monitor - read-only cluster and host dashboard."""

from __future__ import annotations

__version__ = "0.1.0"

from es_monitor.core.schemas import (  # noqa: E402
    HealthIssue,
    MetricDimension,
    MonitorConfig,
    Severity,
    Thresholds,
)

__all__ = [
    "HealthIssue",
    "MetricDimension",
    "MonitorConfig",
    "Severity",
    "Thresholds",
    "__version__",
]
