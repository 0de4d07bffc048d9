"""Core module - configuration and schemas."""

from __future__ import annotations

from es_monitor.core.config import default_config, load_config, write_sample_config
from es_monitor.core.schemas import (
    ClassifierConfig,
    ClusterHealth,
    ConnectionConfig,
    HealthIssue,
    IndexInfo,
    IndexStats,
    MetricDimension,
    MonitorConfig,
    NodeStat,
    NodeStats,
    SafetyConfig,
    SamplingConfig,
    Severity,
    ThresholdPair,
    Thresholds,
)

__all__ = [
    "ClassifierConfig",
    "ClusterHealth",
    "ConnectionConfig",
    "default_config",
    "HealthIssue",
    "IndexInfo",
    "IndexStats",
    "load_config",
    "MetricDimension",
    "MonitorConfig",
    "NodeStat",
    "NodeStats",
    "SafetyConfig",
    "SamplingConfig",
    "Severity",
    "ThresholdPair",
    "Thresholds",
    "write_sample_config",
]
