"""Pydantic schemas for es-monitor.

This module defines the data contracts used throughout the monitor: runtime
configuration, alert thresholds, health issues, and the subset of the
Elasticsearch REST payloads the dashboard reads.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from es_monitor.core.constants import (
    ALLOWED_ENDPOINTS,
    DEFAULT_HISTORY_SIZE,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SPIKE_FACTOR,
    DISK_DENY_PREFIXES,
    MAX_INTERFACE_RATE_BYTES,
    NETWORK_DENY_EXACT,
    NETWORK_DENY_PREFIXES,
    PHYSICAL_INTERFACE_PREFIXES,
    SMOOTHED_RATE_CEILING_BYTES,
)


class MetricDimension(str, Enum):
    """Metric families evaluated by the health-issue engine."""

    HEAP_PERCENT = "heap_percent"
    OLD_GC_COUNT = "old_gc_count"
    DISK_PERCENT = "disk_percent"
    FD_PERCENT = "fd_percent"
    CPU_PERCENT = "cpu_percent"
    MEMORY_PERCENT = "memory_percent"


class Severity(str, Enum):
    """Health issue severity, most severe first."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort rank (0 = most severe)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


# =============================================================================
# THRESHOLDS AND HEALTH ISSUES
# =============================================================================


class ThresholdPair(BaseModel):
    """Inclusive warning/critical lower bounds for one metric dimension."""

    model_config = ConfigDict(frozen=True)

    warning: float = Field(..., ge=0, description="Observed >= warning triggers a warning")
    critical: float = Field(..., ge=0, description="Observed >= critical triggers a critical")

    @model_validator(mode="after")
    def validate_ordering(self) -> ThresholdPair:
        """Reject pairs where the warning bound is not below the critical bound."""
        if self.warning >= self.critical:
            raise ValueError(
                f"warning threshold ({self.warning}) must be lower than "
                f"critical threshold ({self.critical})"
            )
        return self


DEFAULT_THRESHOLDS: dict[str, dict[str, float]] = {
    MetricDimension.HEAP_PERCENT.value: {"warning": 75, "critical": 85},
    MetricDimension.OLD_GC_COUNT.value: {"warning": 10, "critical": 50},
    MetricDimension.DISK_PERCENT.value: {"warning": 85, "critical": 90},
    MetricDimension.FD_PERCENT.value: {"warning": 80, "critical": 95},
    MetricDimension.CPU_PERCENT.value: {"warning": 60, "critical": 80},
    MetricDimension.MEMORY_PERCENT.value: {"warning": 80, "critical": 90},
}


class Thresholds(BaseModel):
    """Immutable mapping of metric dimension to its warning/critical pair.

    Accepts either ``{"limits": {...}}`` or the flat ``{"heap_percent": {...}}``
    form used in configuration files. Dimensions not given fall back to
    ``DEFAULT_THRESHOLDS``.
    """

    model_config = ConfigDict(frozen=True)

    limits: dict[MetricDimension, ThresholdPair] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def merge_defaults(cls, data: Any) -> Any:
        """Wrap flat mappings and fill in missing dimensions."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return data
        given = data["limits"] if "limits" in data else data
        if given is None:
            given = {}
        if not isinstance(given, dict):
            raise ValueError(
                f"thresholds must map dimension names to pairs, got {type(given).__name__}"
            )

        merged: dict[str, Any] = {key: dict(pair) for key, pair in DEFAULT_THRESHOLDS.items()}
        for key, pair in given.items():
            name = key.value if isinstance(key, MetricDimension) else str(key)
            merged[name] = pair
        return {"limits": merged}

    def __getitem__(self, dimension: MetricDimension) -> ThresholdPair:
        return self.limits[dimension]

    def get(self, dimension: MetricDimension) -> ThresholdPair | None:
        """Return the pair for a dimension, or None if not configured."""
        return self.limits.get(dimension)


class HealthIssue(BaseModel):
    """A severity-classified finding produced by comparing a metric to thresholds.

    Attributes:
        severity: critical, warning or info
        component: Affected component (jvm, disk, system, cpu, memory, cluster)
        dimension: Metric dimension that triggered the issue (None for cluster status)
        subject: Node name, mount point or other subject (None for cluster-wide)
        message: Human-readable description
        observed_value: Value that was evaluated
        threshold: Boundary that was met
        suggestion: Static remediation text
    """

    model_config = ConfigDict(frozen=True)

    severity: Severity
    component: str
    dimension: MetricDimension | None = None
    subject: str | None = None
    message: str
    observed_value: float
    threshold: float | None = None
    suggestion: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


# =============================================================================
# RUNTIME CONFIGURATION
# =============================================================================


class ConnectionConfig(BaseModel):
    """Connection settings for the monitored Elasticsearch cluster."""

    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=9200, ge=1, le=65535)
    scheme: str = Field(default="http", description="http or https")
    username: str | None = Field(default=None)
    password: str | None = Field(default=None)
    verify_tls: bool = Field(default=True, description="Verify server certificates for https")
    read_only: bool = Field(default=True, description="Refuse every non read-only request")

    @field_validator("scheme")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        """Only plain HTTP and HTTPS are supported."""
        v = v.lower()
        if v not in ("http", "https"):
            raise ValueError(f"Unsupported scheme: {v}. Use http or https")
        return v

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"


class SafetyConfig(BaseModel):
    """Production safety limits applied by the HTTP client."""

    allowed_endpoints: list[str] = Field(default_factory=lambda: list(ALLOWED_ENDPOINTS))
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0, le=300, description="Per-request timeout"
    )
    max_concurrency: int = Field(
        default=DEFAULT_MAX_CONCURRENCY, ge=1, le=32, description="Concurrent request limit"
    )


class SamplingConfig(BaseModel):
    """Sampling intervals and smoothing parameters."""

    system_interval_seconds: float = Field(default=2.0, ge=0.5, le=3600)
    cluster_interval_seconds: float = Field(default=2.0, ge=0.5, le=3600)
    render_interval_seconds: float = Field(default=2.0, ge=0.2, le=3600)
    cluster_initial_delay_seconds: float = Field(
        default=1.5, ge=0, le=60, description="Delay before the first cluster sample"
    )
    history_size: int = Field(default=DEFAULT_HISTORY_SIZE, ge=3, le=60)
    spike_factor: float = Field(default=DEFAULT_SPIKE_FACTOR, gt=1)
    max_interface_rate_bytes: float = Field(default=MAX_INTERFACE_RATE_BYTES, gt=0)
    smoothed_rate_ceiling_bytes: float = Field(default=SMOOTHED_RATE_CEILING_BYTES, gt=0)


class ClassifierConfig(BaseModel):
    """Name rules for including OS resources in host totals."""

    network_deny_exact: list[str] = Field(default_factory=lambda: list(NETWORK_DENY_EXACT))
    network_deny_prefixes: list[str] = Field(default_factory=lambda: list(NETWORK_DENY_PREFIXES))
    disk_deny_prefixes: list[str] = Field(default_factory=lambda: list(DISK_DENY_PREFIXES))
    physical_prefixes: list[str] = Field(
        default_factory=lambda: list(PHYSICAL_INTERFACE_PREFIXES)
    )


class MonitorConfig(BaseModel):
    """Top-level monitor configuration.

    This is the main configuration loaded from YAML/JSON files.
    """

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    max_indices_displayed: int = Field(default=20, ge=0, le=1000)


# =============================================================================
# ELASTICSEARCH PAYLOADS (read-only subset)
# =============================================================================


class ClusterHealth(BaseModel):
    """Response of GET /_cluster/health."""

    cluster_name: str = ""
    status: str = "unknown"
    timed_out: bool = False
    number_of_nodes: int = 0
    number_of_data_nodes: int = 0
    active_primary_shards: int = 0
    active_shards: int = 0
    relocating_shards: int = 0
    initializing_shards: int = 0
    unassigned_shards: int = 0
    delayed_unassigned_shards: int = 0
    number_of_pending_tasks: int = 0
    number_of_in_flight_fetch: int = 0
    active_shards_percent_as_number: float = 0.0


class DocsStats(BaseModel):
    count: int = 0
    deleted: int = 0


class StoreStats(BaseModel):
    size_in_bytes: int = 0


class IndexingStats(BaseModel):
    index_total: int = 0
    index_time_in_millis: int = 0
    index_current: int = 0


class SearchStats(BaseModel):
    query_total: int = 0
    query_time_in_millis: int = 0
    query_current: int = 0


class SegmentsStats(BaseModel):
    count: int = 0
    memory_in_bytes: int = 0


class IndicesStats(BaseModel):
    """Document, store, indexing, search and segment counters."""

    docs: DocsStats = Field(default_factory=DocsStats)
    store: StoreStats = Field(default_factory=StoreStats)
    indexing: IndexingStats = Field(default_factory=IndexingStats)
    search: SearchStats = Field(default_factory=SearchStats)
    segments: SegmentsStats = Field(default_factory=SegmentsStats)


class JVMMemStats(BaseModel):
    heap_used_in_bytes: int = 0
    heap_used_percent: int = 0
    heap_max_in_bytes: int = 0


class GCCollectorStats(BaseModel):
    collection_count: int = 0
    collection_time_in_millis: int = 0


class GCCollectors(BaseModel):
    young: GCCollectorStats = Field(default_factory=GCCollectorStats)
    old: GCCollectorStats = Field(default_factory=GCCollectorStats)


class GCStats(BaseModel):
    collectors: GCCollectors = Field(default_factory=GCCollectors)


class JVMStats(BaseModel):
    uptime_in_millis: int = 0
    mem: JVMMemStats = Field(default_factory=JVMMemStats)
    gc: GCStats = Field(default_factory=GCStats)


class OSCPUStats(BaseModel):
    percent: int = 0
    load_average: dict[str, float] = Field(default_factory=dict)


class OSMemStats(BaseModel):
    total_in_bytes: int = 0
    free_in_bytes: int = 0
    used_in_bytes: int = 0
    free_percent: int = 0
    used_percent: int = 0


class OSStats(BaseModel):
    cpu: OSCPUStats = Field(default_factory=OSCPUStats)
    mem: OSMemStats = Field(default_factory=OSMemStats)


class ProcessStats(BaseModel):
    open_file_descriptors: int = 0
    max_file_descriptors: int = 0


class FSTotalStats(BaseModel):
    total_in_bytes: int = 0
    free_in_bytes: int = 0
    available_in_bytes: int = 0


class FSStats(BaseModel):
    total: FSTotalStats = Field(default_factory=FSTotalStats)


class NodeStat(BaseModel):
    """A single node entry from GET /_nodes/stats."""

    name: str = ""
    host: str = ""
    ip: str = ""
    transport_address: str = ""
    version: str = ""
    roles: list[str] = Field(default_factory=list)
    indices: IndicesStats = Field(default_factory=IndicesStats)
    os: OSStats = Field(default_factory=OSStats)
    process: ProcessStats = Field(default_factory=ProcessStats)
    jvm: JVMStats = Field(default_factory=JVMStats)
    fs: FSStats = Field(default_factory=FSStats)


class NodeStats(BaseModel):
    """Response of GET /_nodes/stats."""

    cluster_name: str = ""
    nodes: dict[str, NodeStat] = Field(default_factory=dict)


class IndexShardStats(BaseModel):
    docs: DocsStats = Field(default_factory=DocsStats)
    store: StoreStats = Field(default_factory=StoreStats)
    indexing: IndexingStats = Field(default_factory=IndexingStats)
    search: SearchStats = Field(default_factory=SearchStats)
    segments: SegmentsStats = Field(default_factory=SegmentsStats)


class IndexStat(BaseModel):
    uuid: str = ""
    health: str = ""
    status: str = ""
    primaries: IndexShardStats = Field(default_factory=IndexShardStats)
    total: IndexShardStats = Field(default_factory=IndexShardStats)


class IndexStats(BaseModel):
    """Response of GET /_stats."""

    indices: dict[str, IndexStat] = Field(default_factory=dict)


class IndexInfo(BaseModel):
    """A row of GET /_cat/indices?format=json&bytes=b.

    The cat API reports every value as a string.
    """

    model_config = ConfigDict(populate_by_name=True)

    health: str = ""
    status: str = ""
    index: str = ""
    uuid: str = ""
    pri: str | None = None
    rep: str | None = None
    docs_count: str | None = Field(default=None, alias="docs.count")
    docs_deleted: str | None = Field(default=None, alias="docs.deleted")
    store_size: str | None = Field(default=None, alias="store.size")
    pri_store_size: str | None = Field(default=None, alias="pri.store.size")
