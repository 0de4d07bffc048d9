"""Tests for es-monitor schemas and configuration loading."""

import json

import pytest
from pydantic import ValidationError

from es_monitor.core.config import default_config, load_config, write_sample_config
from es_monitor.core.schemas import (
    ClusterHealth,
    ConnectionConfig,
    IndexInfo,
    MetricDimension,
    MonitorConfig,
    NodeStats,
    SamplingConfig,
    ThresholdPair,
    Thresholds,
)


class TestThresholdPair:
    """Tests for ThresholdPair schema."""

    def test_valid_pair(self):
        pair = ThresholdPair(warning=75, critical=85)
        assert pair.warning == 75
        assert pair.critical == 85

    def test_warning_equal_to_critical_rejected(self):
        with pytest.raises(ValidationError):
            ThresholdPair(warning=85, critical=85)

    def test_warning_above_critical_rejected(self):
        with pytest.raises(ValidationError):
            ThresholdPair(warning=90, critical=80)

    def test_frozen(self):
        pair = ThresholdPair(warning=1, critical=2)
        with pytest.raises(ValidationError):
            pair.warning = 5


class TestThresholds:
    """Tests for Thresholds schema."""

    def test_defaults(self):
        thresholds = Thresholds()

        assert thresholds[MetricDimension.HEAP_PERCENT] == ThresholdPair(warning=75, critical=85)
        assert thresholds[MetricDimension.OLD_GC_COUNT].warning == 10
        assert thresholds[MetricDimension.DISK_PERCENT].critical == 90
        assert thresholds[MetricDimension.FD_PERCENT].warning == 80
        assert thresholds[MetricDimension.CPU_PERCENT] == ThresholdPair(warning=60, critical=80)
        assert thresholds[MetricDimension.MEMORY_PERCENT].critical == 90

    def test_flat_form_merges_defaults(self):
        thresholds = Thresholds.model_validate({"heap_percent": {"warning": 60, "critical": 70}})

        assert thresholds[MetricDimension.HEAP_PERCENT].warning == 60
        assert thresholds[MetricDimension.CPU_PERCENT].warning == 60
        assert len(thresholds.limits) == len(MetricDimension)

    def test_limits_form(self):
        thresholds = Thresholds(
            limits={MetricDimension.DISK_PERCENT: ThresholdPair(warning=50, critical=60)}
        )
        assert thresholds.get(MetricDimension.DISK_PERCENT).critical == 60

    def test_invalid_pair_rejected_at_load(self):
        with pytest.raises(ValidationError):
            Thresholds.model_validate({"disk_percent": {"warning": 95, "critical": 90}})

    def test_non_mapping_limits_rejected(self):
        with pytest.raises(ValidationError):
            MonitorConfig.model_validate({"thresholds": {"limits": [1, 2]}})

    def test_unknown_dimension_rejected(self):
        with pytest.raises(ValidationError):
            Thresholds.model_validate({"latency_ms": {"warning": 1, "critical": 2}})


class TestMonitorConfig:
    """Tests for MonitorConfig schema."""

    def test_defaults(self):
        config = default_config()

        assert config.connection.base_url == "http://localhost:9200"
        assert config.connection.read_only is True
        assert config.safety.request_timeout_seconds == 10.0
        assert config.safety.max_concurrency == 5
        assert config.sampling.history_size == 10
        assert config.sampling.cluster_initial_delay_seconds == 1.5
        assert config.max_indices_displayed == 20

    def test_scheme_validation(self):
        assert ConnectionConfig(scheme="HTTPS").scheme == "https"
        with pytest.raises(ValidationError):
            ConnectionConfig(scheme="ftp")

    def test_history_size_bounds(self):
        with pytest.raises(ValidationError):
            SamplingConfig(history_size=2)
        with pytest.raises(ValidationError):
            SamplingConfig(history_size=61)

    def test_model_dump_round_trip_keeps_thresholds(self):
        config = MonitorConfig.model_validate(
            {"thresholds": {"cpu_percent": {"warning": 30, "critical": 40}}}
        )
        restored = MonitorConfig.model_validate(config.model_dump())

        assert restored.thresholds[MetricDimension.CPU_PERCENT].warning == 30


class TestLoadConfig:
    """Tests for configuration file loading."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "connection:\n  host: es01\n  port: 9201\n"
            "thresholds:\n  heap_percent: {warning: 70, critical: 80}\n"
        )
        config = load_config(path)

        assert config.connection.host == "es01"
        assert config.connection.port == 9201
        assert config.thresholds[MetricDimension.HEAP_PERCENT].critical == 80

    def test_load_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"sampling": {"system_interval_seconds": 5}}))

        assert load_config(path).sampling.system_interval_seconds == 5

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(path) == MonitorConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config(path)

    def test_invalid_thresholds(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("thresholds:\n  fd_percent: {warning: 95, critical: 80}\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_yaml_syntax_error(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("connection: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(path)

    def test_sample_config_is_valid(self, tmp_path):
        path = tmp_path / "sub" / "es-monitor.yaml"
        write_sample_config(path)

        assert load_config(path) == MonitorConfig()


class TestElasticsearchPayloads:
    """Tests for the Elasticsearch response models."""

    def test_cluster_health_ignores_extra_fields(self):
        health = ClusterHealth.model_validate(
            {"cluster_name": "prod", "status": "green", "number_of_nodes": 3, "extra": 1}
        )
        assert health.number_of_nodes == 3
        assert health.unassigned_shards == 0

    def test_node_stats_partial_payload(self):
        stats = NodeStats.model_validate(
            {
                "cluster_name": "prod",
                "nodes": {
                    "n1": {
                        "name": "es-1",
                        "jvm": {"mem": {"heap_used_percent": 42}},
                        "process": {"open_file_descriptors": 100},
                    }
                },
            }
        )
        node = stats.nodes["n1"]

        assert node.jvm.mem.heap_used_percent == 42
        assert node.process.max_file_descriptors == 0
        assert node.jvm.gc.collectors.old.collection_count == 0

    def test_index_info_dotted_keys(self):
        info = IndexInfo.model_validate(
            {"index": "logs", "health": "green", "docs.count": "42", "store.size": "1024"}
        )
        assert info.docs_count == "42"
        assert info.store_size == "1024"
