"""Elasticsearch cluster collector.

Aggregates /_cluster/health, /_nodes/stats, /_stats and /_cat/indices into
a ``ClusterSnapshot``. Each section is fetched independently so a slow or
failing endpoint only blanks its own part of the dashboard.

Indexing and query totals are cumulative per node and per index; rates go
through the same ``RateDeriver`` as host counters, keyed ``node:<id>`` and
``index:<name>``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

from es_monitor.client.elasticsearch import ElasticsearchClient, ElasticsearchError
from es_monitor.core.schemas import (
    HealthIssue,
    IndexInfo,
    IndexStat,
    IndexStats,
    NodeStat,
    Thresholds,
)
from es_monitor.monitoring.base import (
    BaseCollector,
    ClusterSnapshot,
    IndexSummary,
    NodeSummary,
)
from es_monitor.monitoring.counters import DerivedRate, RateDeriver
from es_monitor.monitoring.health import (
    cluster_health_issues,
    evaluate,
    node_metrics_batch,
    sort_issues,
)

logger = logging.getLogger(__name__)

SECTION_HEALTH = "health"
SECTION_NODES = "nodes"
SECTION_INDICES = "indices"


def _to_int(value: str | None) -> int:
    """Parse a cat API number; missing or non-numeric values count as 0."""
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


def disk_used_percent(total_bytes: int, available_bytes: int) -> float:
    if total_bytes <= 0:
        return 0.0
    return (total_bytes - available_bytes) / total_bytes * 100


def fd_used_percent(open_fds: int, max_fds: int) -> float:
    if max_fds <= 0:
        return 0.0
    return open_fds / max_fds * 100


class ClusterCollector(BaseCollector):
    """Collector for remote cluster health and statistics.

    Owns its ``RateDeriver``; must only be driven from one thread.
    """

    def __init__(
        self,
        client: ElasticsearchClient,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self._clock = clock
        self._deriver = RateDeriver()

    @property
    def name(self) -> str:
        return "cluster"

    def is_available(self) -> bool:
        try:
            self.client.ping()
            return True
        except ElasticsearchError as e:
            logger.debug(f"Cluster not reachable: {e}")
            return False

    def collect(self, timeout: float | None = None) -> ClusterSnapshot:
        """Fetch every section and build a snapshot.

        Args:
            timeout: Per-request timeout in seconds (capped by the client's
                safety timeout)

        Returns:
            ClusterSnapshot with ``errors`` holding one message per failed section
        """
        snapshot = ClusterSnapshot(timestamp=datetime.now(UTC))

        try:
            snapshot.health = self.client.get_cluster_health(timeout=timeout)
        except ElasticsearchError as e:
            logger.warning(f"Cluster health unavailable: {e}")
            snapshot.errors[SECTION_HEALTH] = str(e)

        try:
            node_stats = self.client.get_node_stats(timeout=timeout)
            snapshot.nodes = self._summarize_nodes(node_stats.nodes, self._clock())
        except ElasticsearchError as e:
            logger.warning(f"Node stats unavailable: {e}")
            snapshot.errors[SECTION_NODES] = str(e)

        snapshot.indices = self._collect_indices(snapshot.errors, timeout)

        live = [f"node:{n.node_id}" for n in snapshot.nodes]
        live += [f"index:{i.name}" for i in snapshot.indices]
        # Keep previous readings for sections that failed this cycle
        if SECTION_NODES in snapshot.errors:
            live += [k for k in self._deriver.store.keys() if k.startswith("node:")]
        if SECTION_INDICES in snapshot.errors:
            live += [k for k in self._deriver.store.keys() if k.startswith("index:")]
        self._deriver.store.prune(live)

        return snapshot

    def _collect_indices(
        self, errors: dict[str, str], timeout: float | None
    ) -> list[IndexSummary]:
        cat_rows: list[IndexInfo] | None = None
        stats: IndexStats | None = None
        failures: list[str] = []

        try:
            cat_rows = self.client.get_cat_indices(timeout=timeout)
        except ElasticsearchError as e:
            logger.warning(f"Index listing unavailable: {e}")
            failures.append(str(e))

        try:
            stats = self.client.get_index_stats(timeout=timeout)
        except ElasticsearchError as e:
            logger.warning(f"Index stats unavailable: {e}")
            failures.append(str(e))

        if cat_rows is None and stats is None:
            errors[SECTION_INDICES] = "; ".join(failures)
            return []
        if failures:
            errors[SECTION_INDICES] = "; ".join(failures)

        return self._summarize_indices(cat_rows or [], stats, self._clock())

    def _summarize_nodes(self, nodes: dict[str, NodeStat], now: float) -> list[NodeSummary]:
        summaries: list[NodeSummary] = []
        for node_id, node in sorted(nodes.items(), key=lambda item: item[1].name or item[0]):
            fs_total = node.fs.total
            summary = NodeSummary(
                node_id=node_id,
                name=node.name or node_id,
                ip=node.ip or node.host,
                roles=list(node.roles),
                uptime_millis=node.jvm.uptime_in_millis,
                heap_used_percent=float(node.jvm.mem.heap_used_percent),
                heap_used_bytes=node.jvm.mem.heap_used_in_bytes,
                heap_max_bytes=node.jvm.mem.heap_max_in_bytes,
                young_gc_count=node.jvm.gc.collectors.young.collection_count,
                old_gc_count=node.jvm.gc.collectors.old.collection_count,
                cpu_percent=float(node.os.cpu.percent),
                memory_percent=float(node.os.mem.used_percent),
                load_avg_1=node.os.cpu.load_average.get("1m", 0.0),
                open_file_descriptors=node.process.open_file_descriptors,
                max_file_descriptors=node.process.max_file_descriptors,
                fd_percent=fd_used_percent(
                    node.process.open_file_descriptors, node.process.max_file_descriptors
                ),
                disk_total_bytes=fs_total.total_in_bytes,
                disk_available_bytes=fs_total.available_in_bytes,
                disk_used_percent=disk_used_percent(
                    fs_total.total_in_bytes, fs_total.available_in_bytes
                ),
                docs_count=node.indices.docs.count,
                store_size_bytes=node.indices.store.size_in_bytes,
                segments_count=node.indices.segments.count,
            )

            rate = self._deriver.derive(
                f"node:{node_id}",
                {
                    "index_total": node.indices.indexing.index_total,
                    "query_total": node.indices.search.query_total,
                },
                now,
            )
            if isinstance(rate, DerivedRate):
                summary.indexing_rate = rate["index_total"]
                summary.query_rate = rate["query_total"]
            summaries.append(summary)
        return summaries

    def _summarize_indices(
        self, cat_rows: list[IndexInfo], stats: IndexStats | None, now: float
    ) -> list[IndexSummary]:
        by_name: dict[str, IndexSummary] = {}
        for row in cat_rows:
            if not row.index:
                continue
            by_name[row.index] = IndexSummary(
                name=row.index,
                health=row.health,
                status=row.status,
                primaries=_to_int(row.pri),
                replicas=_to_int(row.rep),
                docs_count=_to_int(row.docs_count),
                store_size_bytes=_to_int(row.store_size),
            )

        if stats is not None:
            for name, index_stat in stats.indices.items():
                summary = by_name.get(name)
                if summary is None:
                    summary = self._summary_from_stats(name, index_stat)
                    by_name[name] = summary
                summary.segments_count = index_stat.total.segments.count

                rate = self._deriver.derive(
                    f"index:{name}",
                    {
                        "index_total": index_stat.primaries.indexing.index_total,
                        "query_total": index_stat.total.search.query_total,
                    },
                    now,
                )
                if isinstance(rate, DerivedRate):
                    summary.indexing_rate = rate["index_total"]
                    summary.query_rate = rate["query_total"]

        return sorted(by_name.values(), key=lambda s: (-s.store_size_bytes, s.name))

    @staticmethod
    def _summary_from_stats(name: str, index_stat: IndexStat) -> IndexSummary:
        return IndexSummary(
            name=name,
            health=index_stat.health,
            status=index_stat.status,
            docs_count=index_stat.primaries.docs.count,
            store_size_bytes=index_stat.total.store.size_in_bytes,
        )


def cluster_issues(snapshot: ClusterSnapshot, thresholds: Thresholds) -> list[HealthIssue]:
    """All health issues for a cluster snapshot, severity ordered."""
    issues = evaluate(node_metrics_batch(snapshot.nodes), thresholds)
    if snapshot.health is not None:
        issues.extend(cluster_health_issues(snapshot.health))
    return sort_issues(issues)
