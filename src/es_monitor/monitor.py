"""Dashboard orchestration.

``Monitor`` wires the read-only client, the host and cluster collectors,
the metrics cache and the sampling scheduler together:

- the system job samples host counters and evaluates host thresholds
- the cluster job (started after a short delay so its HTTP traffic is not
  part of the first network sample) aggregates the cluster APIs
- the render job redraws the dashboard from an immutable cache snapshot
"""

from __future__ import annotations

import logging
import threading

from rich.console import Console
from rich.live import Live

from es_monitor.client.elasticsearch import ElasticsearchClient
from es_monitor.core.schemas import MonitorConfig
from es_monitor.display.terminal import SECTION_CLUSTER, SECTION_SYSTEM, DashboardRenderer
from es_monitor.monitoring.classifier import ResourceClassifier
from es_monitor.monitoring.cluster_collector import (
    SECTION_HEALTH,
    SECTION_INDICES,
    SECTION_NODES,
    ClusterCollector,
    cluster_issues,
)
from es_monitor.monitoring.health import evaluate, host_metrics_batch
from es_monitor.monitoring.system_collector import SystemCollector
from es_monitor.scheduler import DashboardSnapshot, MetricsCache, SamplingScheduler

logger = logging.getLogger(__name__)

RENDER_JOB = "render"

_CLUSTER_SECTIONS = (SECTION_HEALTH, SECTION_NODES, SECTION_INDICES)


class Monitor:
    """Runs the sampling jobs and renders the live dashboard.

    Example:
        ```python
        config = MonitorConfig(connection=ConnectionConfig(host="es01"))
        monitor = Monitor(config)
        monitor.run()  # blocks until stop() or Ctrl-C
        ```
    """

    def __init__(
        self,
        config: MonitorConfig,
        client: ElasticsearchClient | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            config: Validated monitor configuration
            client: Pre-built client (constructed from ``config`` if None)
            console: Console to draw on (stdout if None)
        """
        self.config = config
        self.client = client or ElasticsearchClient(config.connection, config.safety)
        self.console = console or Console()

        self.cache = MetricsCache()
        self.system_collector = SystemCollector(
            sampling=config.sampling,
            classifier=ResourceClassifier.from_config(config.classifier),
        )
        self.cluster_collector = ClusterCollector(self.client)
        self.renderer = DashboardRenderer(
            thresholds=config.thresholds,
            max_indices=config.max_indices_displayed,
            cluster_label=config.connection.base_url,
        )
        self.scheduler = SamplingScheduler()
        self._shutdown = threading.Event()

    def sample_system(self) -> None:
        metrics = self.system_collector.collect()
        issues = evaluate(host_metrics_batch(metrics), self.config.thresholds)
        self.cache.publish(SECTION_SYSTEM, metrics, issues)

    def sample_cluster(self) -> None:
        """Aggregate the cluster APIs and publish the snapshot.

        When every section failed the previous snapshot stays on screen and
        only the error is recorded.
        """
        snapshot = self.cluster_collector.collect(
            timeout=self.config.safety.request_timeout_seconds
        )
        if all(section in snapshot.errors for section in _CLUSTER_SECTIONS):
            message = snapshot.errors.get(SECTION_HEALTH, "cluster unreachable")
            self.cache.publish_error(SECTION_CLUSTER, message)
            return
        self.cache.publish(
            SECTION_CLUSTER, snapshot, cluster_issues(snapshot, self.config.thresholds)
        )

    def _on_job_error(self, name: str, error: Exception) -> None:
        self.cache.publish_error(name, f"{type(error).__name__}: {error}")

    def snapshot(self) -> DashboardSnapshot:
        return self.cache.snapshot()

    def run_once(self) -> DashboardSnapshot:
        """Prime the rate derivers, sample again and return one snapshot.

        The second sample follows the first after the system interval so
        rates are derived over a realistic window.
        """
        self.sample_system()
        self.sample_cluster()
        if self._shutdown.wait(self.config.sampling.system_interval_seconds):
            return self.snapshot()
        self.sample_system()
        self.sample_cluster()
        return self.snapshot()

    def run(self) -> None:
        """Start every job and redraw until ``stop()`` is called."""
        sampling = self.config.sampling
        self.scheduler.add_job(
            SECTION_SYSTEM,
            sampling.system_interval_seconds,
            self.sample_system,
            on_error=self._on_job_error,
        )
        self.scheduler.add_job(
            SECTION_CLUSTER,
            sampling.cluster_interval_seconds,
            self.sample_cluster,
            initial_delay=sampling.cluster_initial_delay_seconds,
            on_error=self._on_job_error,
        )

        with Live(
            self.renderer.render(self.snapshot()),
            console=self.console,
            auto_refresh=False,
            screen=False,
        ) as live:

            def redraw() -> None:
                live.update(self.renderer.render(self.snapshot()), refresh=True)

            self.scheduler.add_job(
                RENDER_JOB,
                sampling.render_interval_seconds,
                redraw,
                on_error=self._on_job_error,
            )
            logger.info(
                f"Monitoring {self.config.connection.base_url} every "
                f"{sampling.system_interval_seconds:g}s"
            )
            self.scheduler.start()
            try:
                self._shutdown.wait()
            finally:
                self.scheduler.stop(timeout=self.config.safety.request_timeout_seconds + 1)

    def stop(self) -> None:
        """Ask ``run`` or ``run_once`` to return; safe from signal handlers."""
        self._shutdown.set()

    def render(self, snapshot: DashboardSnapshot | None = None) -> None:
        self.console.print(self.renderer.render(snapshot or self.snapshot()))
