"""Tests for Monitor orchestration."""

from datetime import datetime
from io import StringIO
from unittest.mock import MagicMock

from rich.console import Console

from es_monitor.core.schemas import (
    ClusterHealth,
    MonitorConfig,
    SamplingConfig,
    Severity,
)
from es_monitor.display.terminal import SECTION_CLUSTER, SECTION_SYSTEM
from es_monitor.monitor import Monitor
from es_monitor.monitoring.base import (
    ClusterSnapshot,
    CPUMetrics,
    NodeSummary,
    SystemMetrics,
)


def make_monitor(**sampling) -> Monitor:
    config = MonitorConfig(sampling=SamplingConfig(**sampling))
    monitor = Monitor(
        config, client=MagicMock(), console=Console(file=StringIO(), width=160)
    )
    monitor.system_collector = MagicMock()
    monitor.system_collector.collect.return_value = SystemMetrics(
        timestamp=datetime.now(), cpu=CPUMetrics(usage_percent=95.0)
    )
    monitor.cluster_collector = MagicMock()
    monitor.cluster_collector.collect.return_value = ClusterSnapshot(
        timestamp=datetime.now(),
        health=ClusterHealth(status="red", unassigned_shards=1),
        nodes=[NodeSummary(node_id="n1", name="es-1", heap_used_percent=20.0)],
    )
    return monitor


class TestMonitor:
    """Tests for Monitor."""

    def test_sample_system_publishes_issues(self):
        monitor = make_monitor()
        monitor.sample_system()

        snapshot = monitor.snapshot()
        assert snapshot.get(SECTION_SYSTEM).cpu.usage_percent == 95.0
        assert [i.subject for i in snapshot.issues] == ["host"]
        assert snapshot.issues[0].severity == Severity.CRITICAL

    def test_sample_cluster_publishes_issues(self):
        monitor = make_monitor()
        monitor.sample_cluster()

        snapshot = monitor.snapshot()
        assert snapshot.get(SECTION_CLUSTER).health.status == "red"
        assert [i.component for i in snapshot.issues] == ["cluster"]

    def test_cluster_timeout_from_safety(self):
        monitor = make_monitor()
        monitor.sample_cluster()

        monitor.cluster_collector.collect.assert_called_once_with(
            timeout=monitor.config.safety.request_timeout_seconds
        )

    def test_all_sections_failed_keeps_previous_snapshot(self):
        monitor = make_monitor()
        monitor.sample_cluster()

        monitor.cluster_collector.collect.return_value = ClusterSnapshot(
            timestamp=datetime.now(),
            errors={"health": "refused", "nodes": "refused", "indices": "refused"},
        )
        monitor.sample_cluster()

        snapshot = monitor.snapshot()
        assert snapshot.get(SECTION_CLUSTER).health.status == "red"
        assert snapshot.errors[SECTION_CLUSTER] == "refused"

    def test_job_error_published(self):
        monitor = make_monitor()
        monitor._on_job_error(SECTION_SYSTEM, OSError("no /proc"))

        assert monitor.snapshot().errors[SECTION_SYSTEM] == "OSError: no /proc"

    def test_run_once_samples_twice(self):
        monitor = make_monitor(system_interval_seconds=0.5)
        snapshot = monitor.run_once()

        assert monitor.system_collector.collect.call_count == 2
        assert monitor.cluster_collector.collect.call_count == 2
        assert snapshot.get(SECTION_SYSTEM) is not None

    def test_run_once_stopped_early(self):
        monitor = make_monitor(system_interval_seconds=60)
        monitor.stop()
        monitor.run_once()

        assert monitor.system_collector.collect.call_count == 1

    def test_render(self):
        monitor = make_monitor()
        monitor.sample_system()
        monitor.render()

        assert "Elasticsearch Monitor" in monitor.console.file.getvalue()
