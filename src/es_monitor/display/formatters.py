"""Formatting helpers for dashboard values.

Functions:
    format_bytes: Human-readable binary size (KiB steps, labelled KB/MB/...)
    format_bytes_per_sec: Size per second
    format_bandwidth: Bytes per second as bits per second (Kbps/Mbps/Gbps)
    format_percent: Percentage with two decimals
    format_rate: Event rate with K/M suffixes
    format_duration: Milliseconds as "Ns", "Nm Ns" or "Nh Nm"
    format_count: Integer with thousands separators
    truncate: Shorten a string with a trailing ellipsis
    severity_style: rich style for a severity
    percent_style: rich style for a value against a threshold pair
"""

from __future__ import annotations

from es_monitor.core.schemas import Severity, ThresholdPair

_UNITS = "KMGTPE"


def format_bytes(byte_count: int | float) -> str:
    """Format a byte count with binary multiples.

    Args:
        byte_count: Number of bytes (negative values are shown as 0)

    Returns:
        e.g. "512 B", "1.50 KB", "2.00 GB"
    """
    value = max(0, int(byte_count))
    if value < 1024:
        return f"{value} B"
    div, exp = 1024, 0
    n = value // 1024
    while n >= 1024 and exp < len(_UNITS) - 1:
        div *= 1024
        exp += 1
        n //= 1024
    return f"{value / div:.2f} {_UNITS[exp]}B"


def format_bytes_per_sec(bytes_per_sec: float) -> str:
    return f"{format_bytes(bytes_per_sec)}/s"


def format_bandwidth(bytes_per_sec: float) -> str:
    """Format a byte rate as link bandwidth.

    Args:
        bytes_per_sec: Throughput in bytes per second

    Returns:
        Kbps below 1 Mbps, Gbps from 1024 Mbps up, Mbps otherwise
    """
    mbps = bytes_per_sec * 8 / (1024 * 1024)
    if mbps < 1:
        return f"{mbps * 1024:.2f} Kbps"
    if mbps < 1024:
        return f"{mbps:.2f} Mbps"
    return f"{mbps / 1024:.2f} Gbps"


def format_percent(value: float) -> str:
    return f"{value:.2f}%"


def format_rate(rate: float | None, unit: str = "/s") -> str:
    """Format an event rate such as docs/s or queries/s.

    ``None`` (rate not yet available) renders as "-".
    """
    if rate is None:
        return "-"
    if rate < 0.01:
        return f"0.0 {unit}"
    if rate < 1000:
        return f"{rate:.1f} {unit}"
    if rate < 1_000_000:
        return f"{rate / 1000:.1f} K{unit}"
    return f"{rate / 1_000_000:.1f} M{unit}"


def format_duration(millis: int) -> str:
    seconds = max(0, millis) // 1000
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def format_count(value: int) -> str:
    return f"{value:,}"


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    if max_len <= 3:
        return text[:max_len]
    return text[: max_len - 3] + "..."


_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}

_CLUSTER_STATUS_STYLES = {"green": "bold green", "yellow": "bold yellow", "red": "bold red"}


def severity_style(severity: Severity) -> str:
    return _SEVERITY_STYLES[severity]


def cluster_status_style(status: str) -> str:
    return _CLUSTER_STATUS_STYLES.get(status.lower(), "dim")


def percent_style(value: float, pair: ThresholdPair | None) -> str:
    """Colour a percentage green/yellow/red against its thresholds.

    Without thresholds the value is shown unstyled.
    """
    if pair is None:
        return ""
    if value >= pair.critical:
        return "red"
    if value >= pair.warning:
        return "yellow"
    return "green"
