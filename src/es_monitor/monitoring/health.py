"""Threshold classification of derived metrics into health issues.

``evaluate`` is a pure function: it compares each subject's observed values
against the configured warning/critical bounds and returns a fresh,
severity-ordered list of ``HealthIssue`` objects. Nothing is remembered
between cycles, so a persisting problem is simply reported again.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from es_monitor.core.schemas import (
    ClusterHealth,
    HealthIssue,
    MetricDimension,
    Severity,
    Thresholds,
)
from es_monitor.monitoring.base import NodeSummary, SystemMetrics


@dataclass(frozen=True)
class SubjectMetrics:
    """Observed values for one subject (a node, a mount point, the host)."""

    subject: str | None
    values: dict[MetricDimension, float] = field(default_factory=dict)


_DIMENSION_ORDER = {dimension: i for i, dimension in enumerate(MetricDimension)}

_COMPONENTS: dict[MetricDimension, str] = {
    MetricDimension.HEAP_PERCENT: "jvm",
    MetricDimension.OLD_GC_COUNT: "jvm",
    MetricDimension.DISK_PERCENT: "disk",
    MetricDimension.FD_PERCENT: "system",
    MetricDimension.CPU_PERCENT: "cpu",
    MetricDimension.MEMORY_PERCENT: "memory",
}

_MESSAGES: dict[MetricDimension, str] = {
    MetricDimension.HEAP_PERCENT: "JVM heap usage {value:.0f}%",
    MetricDimension.OLD_GC_COUNT: "Old-generation GC count {value:.0f}",
    MetricDimension.DISK_PERCENT: "Disk usage {value:.1f}%",
    MetricDimension.FD_PERCENT: "File descriptor usage {value:.1f}%",
    MetricDimension.CPU_PERCENT: "CPU usage {value:.1f}%",
    MetricDimension.MEMORY_PERCENT: "Memory usage {value:.1f}%",
}

_SUGGESTIONS: dict[tuple[MetricDimension, Severity], str] = {
    (MetricDimension.HEAP_PERCENT, Severity.CRITICAL): (
        "Increase heap size or reduce query load; check for memory leaks"
    ),
    (MetricDimension.HEAP_PERCENT, Severity.WARNING): (
        "Watch the heap trend; consider optimizing queries or increasing heap size"
    ),
    (MetricDimension.OLD_GC_COUNT, Severity.CRITICAL): (
        "Review heap sizing; old-generation collections are stalling the node"
    ),
    (MetricDimension.OLD_GC_COUNT, Severity.WARNING): (
        "Check heap configuration, optimize queries and aggregations, reduce fielddata usage"
    ),
    (MetricDimension.DISK_PERCENT, Severity.CRITICAL): (
        "Delete old indices or expand disk capacity now; enable an ILM policy"
    ),
    (MetricDimension.DISK_PERCENT, Severity.WARNING): (
        "Plan index cleanup or disk expansion; check index growth rate"
    ),
    (MetricDimension.FD_PERCENT, Severity.CRITICAL): (
        "Raise the open file limit (ulimit -n) and check for file handle leaks"
    ),
    (MetricDimension.FD_PERCENT, Severity.WARNING): (
        "Increase the system file descriptor limit: ulimit -n"
    ),
    (MetricDimension.CPU_PERCENT, Severity.CRITICAL): (
        "Find the hot threads (/_nodes/hot_threads) and shed or reroute load"
    ),
    (MetricDimension.CPU_PERCENT, Severity.WARNING): (
        "Review expensive queries and indexing bursts"
    ),
    (MetricDimension.MEMORY_PERCENT, Severity.CRITICAL): (
        "Free memory or add capacity; the host is at risk of OOM kills"
    ),
    (MetricDimension.MEMORY_PERCENT, Severity.WARNING): (
        "Check for memory-hungry processes next to Elasticsearch"
    ),
}


def _classify(observed: float, warning: float, critical: float) -> tuple[Severity, float] | None:
    if observed >= critical:
        return Severity.CRITICAL, critical
    if observed >= warning:
        return Severity.WARNING, warning
    return None


def _sort_key(issue: HealthIssue) -> tuple[int, str, int]:
    dimension_rank = (
        _DIMENSION_ORDER[issue.dimension] if issue.dimension is not None else len(_DIMENSION_ORDER)
    )
    return issue.severity.rank, issue.subject or "", dimension_rank


def sort_issues(issues: Iterable[HealthIssue]) -> list[HealthIssue]:
    """Order issues critical -> warning -> info, then by subject and dimension."""
    return sorted(issues, key=_sort_key)


def evaluate(metrics_batch: Iterable[SubjectMetrics], thresholds: Thresholds) -> list[HealthIssue]:
    """Classify a batch of observed values against thresholds.

    Bounds are inclusive: ``observed >= critical`` is critical,
    ``critical > observed >= warning`` is a warning, anything lower is
    ignored. A subject gets at most one issue per dimension.

    Args:
        metrics_batch: Observed values per subject
        thresholds: Warning/critical bounds per dimension

    Returns:
        Issues sorted by severity, subject and dimension
    """
    issues: list[HealthIssue] = []
    for subject_metrics in metrics_batch:
        for dimension, observed in subject_metrics.values.items():
            pair = thresholds.get(dimension)
            if pair is None:
                continue
            result = _classify(observed, pair.warning, pair.critical)
            if result is None:
                continue
            severity, boundary = result
            issues.append(
                HealthIssue(
                    severity=severity,
                    component=_COMPONENTS[dimension],
                    dimension=dimension,
                    subject=subject_metrics.subject,
                    message=_MESSAGES[dimension].format(value=observed),
                    observed_value=observed,
                    threshold=boundary,
                    suggestion=_SUGGESTIONS[(dimension, severity)],
                )
            )
    return sort_issues(issues)


def node_metrics_batch(nodes: Iterable[NodeSummary]) -> list[SubjectMetrics]:
    """Build evaluation input from Elasticsearch node summaries."""
    return [
        SubjectMetrics(
            subject=node.name or node.node_id,
            values={
                MetricDimension.HEAP_PERCENT: node.heap_used_percent,
                MetricDimension.OLD_GC_COUNT: float(node.old_gc_count),
                MetricDimension.DISK_PERCENT: node.disk_used_percent,
                MetricDimension.FD_PERCENT: node.fd_percent,
                MetricDimension.CPU_PERCENT: node.cpu_percent,
                MetricDimension.MEMORY_PERCENT: node.memory_percent,
            },
        )
        for node in nodes
    ]


def host_metrics_batch(metrics: SystemMetrics, host_label: str = "host") -> list[SubjectMetrics]:
    """Build evaluation input from the local host snapshot.

    CPU and memory are evaluated for the host itself; disk usage once per
    mounted partition, with the mount point as subject.
    """
    batch = [
        SubjectMetrics(
            subject=host_label,
            values={
                MetricDimension.CPU_PERCENT: metrics.cpu.usage_percent,
                MetricDimension.MEMORY_PERCENT: metrics.memory.used_percent,
            },
        )
    ]
    for partition in metrics.disk.partitions:
        batch.append(
            SubjectMetrics(
                subject=f"{host_label}:{partition.mountpoint}",
                values={MetricDimension.DISK_PERCENT: partition.used_percent},
            )
        )
    return batch


def cluster_health_issues(health: ClusterHealth) -> list[HealthIssue]:
    """Turn cluster-level status and shard states into issues."""
    issues: list[HealthIssue] = []
    subject = health.cluster_name or None
    status = health.status.lower()

    if status == "red":
        issues.append(
            HealthIssue(
                severity=Severity.CRITICAL,
                component="cluster",
                subject=subject,
                message="Cluster status RED: at least one primary shard is unassigned",
                observed_value=float(health.unassigned_shards),
                suggestion="Check /_cluster/allocation/explain and bring missing nodes back",
            )
        )
    elif status == "yellow":
        issues.append(
            HealthIssue(
                severity=Severity.WARNING,
                component="cluster",
                subject=subject,
                message="Cluster status YELLOW: replica shards are unassigned",
                observed_value=float(health.unassigned_shards),
                suggestion="Add data nodes or lower number_of_replicas for affected indices",
            )
        )

    if health.unassigned_shards > 0 and status != "red":
        issues.append(
            HealthIssue(
                severity=Severity.WARNING,
                component="shards",
                subject=subject,
                message=f"{health.unassigned_shards} unassigned shards",
                observed_value=float(health.unassigned_shards),
                threshold=0,
                suggestion="Inspect shard allocation with /_cluster/allocation/explain",
            )
        )
    if health.relocating_shards > 0:
        issues.append(
            HealthIssue(
                severity=Severity.INFO,
                component="shards",
                subject=subject,
                message=f"{health.relocating_shards} shards relocating",
                observed_value=float(health.relocating_shards),
            )
        )
    if health.initializing_shards > 0:
        issues.append(
            HealthIssue(
                severity=Severity.INFO,
                component="shards",
                subject=subject,
                message=f"{health.initializing_shards} shards initializing",
                observed_value=float(health.initializing_shards),
            )
        )
    return sort_issues(issues)
