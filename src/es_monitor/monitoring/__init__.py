"""Monitoring module - host and cluster metrics derivation.

Provides two collector implementations:
- SystemCollector: host CPU, memory, disk and network counters via psutil
- ClusterCollector: Elasticsearch health and statistics APIs

Shared building blocks:
- counters: snapshot store and counter-reset-safe rate derivation
- smoothing: spike filter for aggregate rate streams
- classifier: which interfaces and devices count toward host totals
- health: threshold classification into health issues
"""

from __future__ import annotations

from es_monitor.monitoring.base import (
    BaseCollector,
    ClusterSnapshot,
    IndexSummary,
    NodeSummary,
    SystemMetrics,
)
from es_monitor.monitoring.classifier import ResourceClassifier, ResourceKind
from es_monitor.monitoring.cluster_collector import ClusterCollector, cluster_issues
from es_monitor.monitoring.counters import (
    UNINITIALIZED,
    DerivedRate,
    RateDeriver,
    SnapshotStore,
    counter_delta,
)
from es_monitor.monitoring.health import (
    SubjectMetrics,
    cluster_health_issues,
    evaluate,
    host_metrics_batch,
    node_metrics_batch,
    sort_issues,
)
from es_monitor.monitoring.smoothing import HistoryWindow, SpikeFilter
from es_monitor.monitoring.system_collector import SystemCollector

__all__ = [
    "BaseCollector",
    "ClusterCollector",
    "ClusterSnapshot",
    "DerivedRate",
    "HistoryWindow",
    "IndexSummary",
    "NodeSummary",
    "RateDeriver",
    "ResourceClassifier",
    "ResourceKind",
    "SnapshotStore",
    "SpikeFilter",
    "SubjectMetrics",
    "SystemCollector",
    "SystemMetrics",
    "UNINITIALIZED",
    "cluster_health_issues",
    "cluster_issues",
    "counter_delta",
    "evaluate",
    "host_metrics_batch",
    "node_metrics_batch",
    "sort_issues",
]
