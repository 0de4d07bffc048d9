"""Shared constants for es-monitor.

Centralized constants to avoid duplication and ensure consistency across modules.
"""

from __future__ import annotations

# Size of the per-stream smoothing window (number of samples kept).
DEFAULT_HISTORY_SIZE = 10

# Below this many samples in a window the spike filter passes values through.
MIN_SMOOTHING_SAMPLES = 3

# A candidate above SPIKE_FACTOR x the mean of the prior window is treated as a spike.
DEFAULT_SPIKE_FACTOR = 10.0

# Per-interface byte rate above which a single sample is considered corrupt (1 GiB/s).
MAX_INTERFACE_RATE_BYTES = 1024 * 1024 * 1024

# Smoothed aggregate byte rate above which the window minimum is used (100 MiB/s).
SMOOTHED_RATE_CEILING_BYTES = 100 * 1024 * 1024

# Read-only Elasticsearch endpoints the client is allowed to call.
ALLOWED_ENDPOINTS = (
    "/_cluster/health",
    "/_nodes/stats",
    "/_stats",
    "/_cat/indices",
    "/",
)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_CONCURRENCY = 5

# Filesystems and mount points that never hold real data.
PSEUDO_FILESYSTEMS = ("tmpfs", "devtmpfs", "squashfs", "overlay")
PSEUDO_MOUNT_PREFIXES = ("/sys", "/proc", "/dev", "/run")

# Interface names that are never counted toward host network totals.
NETWORK_DENY_EXACT = ("lo",)
NETWORK_DENY_PREFIXES = (
    "veth",
    "docker",
    "br-",
    "cni",
    "flannel",
    "calico",
    "cali",
    "tunl",
    "vlan",
    "vxlan",
    "virbr",
    "virb",
    "kube-ipvs",
    "weave",
    "tun",
    "tap",
    "gre",
)

# Block devices that are never counted toward host disk totals.
DISK_DENY_PREFIXES = ("loop", "ram", "zram", "sr", "fd", "dm-")

# Conventional physical NIC names (eth0, eno1, ens3, enp0s3, wlan0, wlp2s0, ib0, bond0).
PHYSICAL_INTERFACE_PREFIXES = ("eth", "en", "em", "wl", "ww", "ib", "bond")
