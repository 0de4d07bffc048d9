"""Configuration loading utilities.

Supports YAML and JSON configuration files with schema validation.
"""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from es_monitor.core.schemas import MonitorConfig

SAMPLE_CONFIG = """\
# es-monitor configuration
connection:
  host: localhost
  port: 9200
  scheme: http          # http or https
  # username: elastic
  # password: changeme
  verify_tls: true

safety:
  request_timeout_seconds: 10
  max_concurrency: 5

sampling:
  system_interval_seconds: 2
  cluster_interval_seconds: 2
  render_interval_seconds: 2
  # Delay the first cluster request so its traffic stays out of the first network sample
  cluster_initial_delay_seconds: 1.5
  history_size: 10
  spike_factor: 10
  max_interface_rate_bytes: 1073741824      # 1 GiB/s
  smoothed_rate_ceiling_bytes: 104857600    # 100 MiB/s

# Inclusive lower bounds; warning must be lower than critical
thresholds:
  heap_percent: {warning: 75, critical: 85}
  old_gc_count: {warning: 10, critical: 50}
  disk_percent: {warning: 85, critical: 90}
  fd_percent: {warning: 80, critical: 95}
  cpu_percent: {warning: 60, critical: 80}
  memory_percent: {warning: 80, critical: 90}

max_indices_displayed: 20
"""


def load_config(path: Path | str) -> MonitorConfig:
    """Load and validate a monitor configuration file.

    Args:
        path: Path to YAML or JSON configuration file

    Returns:
        Validated MonitorConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or the file cannot be parsed
        pydantic.ValidationError: If config is invalid (including warning >= critical)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    with open(path, encoding="utf-8") as f:
        if suffix in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    return MonitorConfig.model_validate(data or {})


def write_sample_config(path: Path) -> None:
    """Write a commented sample configuration to ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SAMPLE_CONFIG, encoding="utf-8")


def default_config() -> MonitorConfig:
    """Return a configuration with every default applied."""
    return MonitorConfig()
