"""Base collector abstract class and derived-metric containers.

All collectors implement this interface so the scheduler can drive host and
cluster sampling the same way.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from es_monitor.core.schemas import ClusterHealth


@dataclass
class CPUMetrics:
    """Host CPU utilisation."""

    usage_percent: float = 0.0
    per_cpu_percent: list[float] = field(default_factory=list)
    user_percent: float = 0.0
    system_percent: float = 0.0
    idle_percent: float = 0.0
    iowait_percent: float = 0.0
    irq_percent: float = 0.0
    softirq_percent: float = 0.0
    steal_percent: float = 0.0
    cores: int = 0
    logical_cores: int = 0
    load_avg_1: float = 0.0
    load_avg_5: float = 0.0
    load_avg_15: float = 0.0


@dataclass
class MemoryMetrics:
    """Host memory and swap (bytes)."""

    total: int = 0
    available: int = 0
    used: int = 0
    free: int = 0
    used_percent: float = 0.0
    buffers: int = 0
    cached: int = 0
    shared: int = 0
    swap_total: int = 0
    swap_used: int = 0
    swap_free: int = 0
    swap_used_percent: float = 0.0
    page_in: int = 0
    page_out: int = 0


@dataclass
class DiskDeviceMetrics:
    """Per-device I/O rates derived from cumulative counters."""

    device: str
    read_bytes_per_sec: float = 0.0
    write_bytes_per_sec: float = 0.0
    read_ops_per_sec: float = 0.0
    write_ops_per_sec: float = 0.0
    io_util_percent: float = 0.0
    avg_request_size: float = 0.0


@dataclass
class PartitionMetrics:
    """Filesystem usage for one mounted partition."""

    device: str
    mountpoint: str
    fstype: str = ""
    total: int = 0
    used: int = 0
    free: int = 0
    used_percent: float = 0.0
    inodes_total: int = 0
    inodes_used: int = 0
    inodes_free: int = 0
    inodes_used_percent: float = 0.0


@dataclass
class DiskMetrics:
    """Aggregate disk I/O rates over countable devices plus partition usage."""

    read_bytes_per_sec: float = 0.0
    write_bytes_per_sec: float = 0.0
    read_ops_per_sec: float = 0.0
    write_ops_per_sec: float = 0.0
    io_util_percent: float = 0.0  # Busiest countable device
    total_read_bytes: int = 0
    total_write_bytes: int = 0
    devices: list[DiskDeviceMetrics] = field(default_factory=list)
    partitions: list[PartitionMetrics] = field(default_factory=list)


@dataclass
class InterfaceMetrics:
    """Per-interface rates and cumulative counters."""

    name: str
    physical: bool = False
    bytes_sent_per_sec: float = 0.0
    bytes_recv_per_sec: float = 0.0
    packets_sent_per_sec: float = 0.0
    packets_recv_per_sec: float = 0.0
    errors_per_sec: float = 0.0
    drops_per_sec: float = 0.0
    bytes_sent: int = 0
    bytes_recv: int = 0
    packets_sent: int = 0
    packets_recv: int = 0
    errors_in: int = 0
    errors_out: int = 0
    drops_in: int = 0
    drops_out: int = 0


@dataclass
class NetworkMetrics:
    """Aggregate network rates over countable interfaces.

    ``bytes_sent_per_sec``/``bytes_recv_per_sec`` are spike-filtered; the
    ``physical_*`` totals only include interfaces with physical NIC names.
    """

    bytes_sent_per_sec: float = 0.0
    bytes_recv_per_sec: float = 0.0
    physical_bytes_sent_per_sec: float = 0.0
    physical_bytes_recv_per_sec: float = 0.0
    packets_sent_per_sec: float = 0.0
    packets_recv_per_sec: float = 0.0
    errors_per_sec: float = 0.0
    drops_per_sec: float = 0.0
    total_bytes_sent: int = 0
    total_bytes_recv: int = 0
    total_packets_sent: int = 0
    total_packets_recv: int = 0
    interfaces: list[InterfaceMetrics] = field(default_factory=list)


@dataclass
class SystemMetrics:
    """A point-in-time host snapshot with rate-derived figures.

    ``rates_ready`` is False until the collector has seen two samples, so
    rate fields are zero on the first cycle rather than meaningless.
    """

    timestamp: datetime
    cpu: CPUMetrics = field(default_factory=CPUMetrics)
    memory: MemoryMetrics = field(default_factory=MemoryMetrics)
    disk: DiskMetrics = field(default_factory=DiskMetrics)
    network: NetworkMetrics = field(default_factory=NetworkMetrics)
    rates_ready: bool = False
    errors: dict[str, str] = field(default_factory=dict)


@dataclass
class NodeSummary:
    """Per-node figures extracted from /_nodes/stats."""

    node_id: str
    name: str
    ip: str = ""
    roles: list[str] = field(default_factory=list)
    uptime_millis: int = 0
    heap_used_percent: float = 0.0
    heap_used_bytes: int = 0
    heap_max_bytes: int = 0
    young_gc_count: int = 0
    old_gc_count: int = 0
    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    load_avg_1: float = 0.0
    open_file_descriptors: int = 0
    max_file_descriptors: int = 0
    fd_percent: float = 0.0
    disk_total_bytes: int = 0
    disk_available_bytes: int = 0
    disk_used_percent: float = 0.0
    docs_count: int = 0
    store_size_bytes: int = 0
    segments_count: int = 0
    indexing_rate: float | None = None  # docs/s, None until two samples seen
    query_rate: float | None = None  # queries/s


@dataclass
class IndexSummary:
    """Per-index figures merged from /_cat/indices and /_stats."""

    name: str
    health: str = ""
    status: str = ""
    primaries: int = 0
    replicas: int = 0
    docs_count: int = 0
    store_size_bytes: int = 0
    segments_count: int = 0
    indexing_rate: float | None = None
    query_rate: float | None = None


@dataclass
class ClusterSnapshot:
    """Result of one remote-API aggregation pass.

    Each section is fetched independently; a failed section is None and its
    error message is stored under ``errors[section]``.
    """

    timestamp: datetime
    health: ClusterHealth | None = None
    nodes: list[NodeSummary] = field(default_factory=list)
    indices: list[IndexSummary] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


class BaseCollector(ABC):
    """Abstract base class for metrics collectors.

    Implementations:
    - SystemCollector: host counters via psutil
    - ClusterCollector: Elasticsearch REST API aggregation
    """

    @abstractmethod
    def collect(self) -> Any:
        """Take one sample and return the derived metrics."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this collector can run in the current environment.

        Returns:
            True if the collector's prerequisites are met
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this collector."""
