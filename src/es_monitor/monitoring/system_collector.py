"""Host resource collector backed by psutil.

Each call to ``collect`` takes one sample of CPU, memory, disk and network
counters. Disk and network counters are cumulative, so rates are derived
against the previous sample of the same device or interface; the first call
only primes the snapshot store and reports zero rates.

Metrics sourced:
- cpu_percent / cpu_times_percent / getloadavg: CPU utilisation and load
- virtual_memory / swap_memory: memory and swap usage
- disk_io_counters(perdisk=True): per-device bytes, operations and busy time
- disk_partitions / disk_usage: filesystem usage
- net_io_counters(pernic=True): per-interface bytes, packets, errors, drops
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from datetime import UTC, datetime

import psutil

from es_monitor.core.constants import PSEUDO_FILESYSTEMS, PSEUDO_MOUNT_PREFIXES
from es_monitor.core.schemas import SamplingConfig
from es_monitor.monitoring.base import (
    BaseCollector,
    CPUMetrics,
    DiskDeviceMetrics,
    DiskMetrics,
    InterfaceMetrics,
    MemoryMetrics,
    NetworkMetrics,
    PartitionMetrics,
    SystemMetrics,
)
from es_monitor.monitoring.classifier import ResourceClassifier, ResourceKind
from es_monitor.monitoring.counters import DerivedRate, RateDeriver
from es_monitor.monitoring.smoothing import SpikeFilter

logger = logging.getLogger(__name__)

NET_BYTES_SENT_STREAM = "net.bytes_sent"
NET_BYTES_RECV_STREAM = "net.bytes_recv"

# psutil raises these when a /proc or /sys file vanishes or is unreadable mid-read
_COLLECTION_ERRORS = (OSError, RuntimeError, psutil.Error)


class SystemCollector(BaseCollector):
    """Collector that samples host counters through psutil.

    Disk and network deltas are computed by a dedicated ``RateDeriver`` per
    resource family; aggregate network byte rates go through a ``SpikeFilter``.
    All of this state is owned by the collector and must only be touched from
    the thread that calls ``collect``.
    """

    def __init__(
        self,
        sampling: SamplingConfig | None = None,
        classifier: ResourceClassifier | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the system collector.

        Args:
            sampling: Smoothing window and rate plausibility limits
            classifier: Name rules for countable devices and interfaces
            clock: Time source for rate derivation (monotonic by default so
                wall-clock adjustments never affect rates)
        """
        self._sampling = sampling or SamplingConfig()
        self._classifier = classifier or ResourceClassifier()
        self._clock = clock
        self._disk_deriver = RateDeriver()
        self._net_deriver = RateDeriver()
        self._spike_filter = SpikeFilter(
            capacity=self._sampling.history_size,
            spike_factor=self._sampling.spike_factor,
            ceilings={
                NET_BYTES_SENT_STREAM: self._sampling.smoothed_rate_ceiling_bytes,
                NET_BYTES_RECV_STREAM: self._sampling.smoothed_rate_ceiling_bytes,
            },
        )
        self._samples_taken = 0

    @property
    def name(self) -> str:
        return "system"

    def is_available(self) -> bool:
        """psutil supports every platform the monitor runs on; check it can read CPU times."""
        try:
            psutil.cpu_times()
            return True
        except _COLLECTION_ERRORS:
            return False

    def collect(self) -> SystemMetrics:
        """Take one host sample.

        A failing sub-collection is logged, recorded in ``errors`` and left at
        its defaults; it never prevents the other parts from being sampled.
        """
        now = self._clock()
        metrics = SystemMetrics(timestamp=datetime.now(UTC))

        for section, func in (
            ("cpu", self._collect_cpu),
            ("memory", self._collect_memory),
        ):
            try:
                setattr(metrics, section, func())
            except _COLLECTION_ERRORS as e:
                logger.warning(f"Failed to collect {section} metrics: {e}")
                metrics.errors[section] = str(e)

        try:
            metrics.disk = self._collect_disk(now)
        except _COLLECTION_ERRORS as e:
            logger.warning(f"Failed to collect disk metrics: {e}")
            metrics.errors["disk"] = str(e)

        try:
            metrics.network = self._collect_network(now)
        except _COLLECTION_ERRORS as e:
            logger.warning(f"Failed to collect network metrics: {e}")
            metrics.errors["network"] = str(e)

        self._samples_taken += 1
        metrics.rates_ready = self._samples_taken > 1
        return metrics

    def _collect_cpu(self) -> CPUMetrics:
        cpu = CPUMetrics()
        cpu.logical_cores = psutil.cpu_count(logical=True) or 0
        cpu.cores = psutil.cpu_count(logical=False) or 0

        # interval=None compares against the previous call, so no blocking sleep
        cpu.usage_percent = psutil.cpu_percent(interval=None)
        cpu.per_cpu_percent = list(psutil.cpu_percent(interval=None, percpu=True))

        times = psutil.cpu_times_percent(interval=None)
        cpu.user_percent = times.user
        cpu.system_percent = times.system
        cpu.idle_percent = times.idle
        cpu.iowait_percent = getattr(times, "iowait", 0.0)
        cpu.irq_percent = getattr(times, "irq", 0.0)
        cpu.softirq_percent = getattr(times, "softirq", 0.0)
        cpu.steal_percent = getattr(times, "steal", 0.0)

        try:
            cpu.load_avg_1, cpu.load_avg_5, cpu.load_avg_15 = psutil.getloadavg()
        except (AttributeError, OSError):
            logger.debug("Load average unavailable on this platform")

        return cpu

    def _collect_memory(self) -> MemoryMetrics:
        vm = psutil.virtual_memory()
        memory = MemoryMetrics(
            total=vm.total,
            available=vm.available,
            used=vm.used,
            free=vm.free,
            used_percent=vm.percent,
            buffers=getattr(vm, "buffers", 0),
            cached=getattr(vm, "cached", 0),
            shared=getattr(vm, "shared", 0),
        )

        swap = psutil.swap_memory()
        memory.swap_total = swap.total
        memory.swap_used = swap.used
        memory.swap_free = swap.free
        memory.swap_used_percent = swap.used / swap.total * 100 if swap.total > 0 else 0.0
        memory.page_in = swap.sin
        memory.page_out = swap.sout
        return memory

    def _collect_disk(self, now: float) -> DiskMetrics:
        disk = DiskMetrics()
        counters = psutil.disk_io_counters(perdisk=True) or {}

        live: list[str] = []
        for device, counter in sorted(counters.items()):
            if not self._classifier.is_countable(device, ResourceKind.DISK):
                continue
            live.append(device)
            disk.total_read_bytes += counter.read_bytes
            disk.total_write_bytes += counter.write_bytes

            rate = self._disk_deriver.derive(
                device,
                {
                    "read_bytes": counter.read_bytes,
                    "write_bytes": counter.write_bytes,
                    "read_ops": counter.read_count,
                    "write_ops": counter.write_count,
                    # busy_time (ms) only exists on Linux and FreeBSD
                    "busy_ms": getattr(counter, "busy_time", 0),
                },
                now,
            )
            if not isinstance(rate, DerivedRate):
                continue

            device_metrics = _disk_device_metrics(device, rate)
            disk.devices.append(device_metrics)
            disk.read_bytes_per_sec += device_metrics.read_bytes_per_sec
            disk.write_bytes_per_sec += device_metrics.write_bytes_per_sec
            disk.read_ops_per_sec += device_metrics.read_ops_per_sec
            disk.write_ops_per_sec += device_metrics.write_ops_per_sec
            disk.io_util_percent = max(disk.io_util_percent, device_metrics.io_util_percent)

        self._disk_deriver.store.prune(live)
        disk.partitions = self._collect_partitions()
        return disk

    def _collect_partitions(self) -> list[PartitionMetrics]:
        partitions: list[PartitionMetrics] = []
        for partition in psutil.disk_partitions(all=False):
            if partition.fstype.startswith(PSEUDO_FILESYSTEMS):
                continue
            if partition.mountpoint.startswith(PSEUDO_MOUNT_PREFIXES):
                continue
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except (PermissionError, OSError) as e:
                logger.debug(f"Skipping partition {partition.mountpoint}: {e}")
                continue
            partitions.append(
                PartitionMetrics(
                    device=partition.device,
                    mountpoint=partition.mountpoint,
                    fstype=partition.fstype,
                    total=usage.total,
                    used=usage.used,
                    free=usage.free,
                    used_percent=usage.percent,
                    **_inode_usage(partition.mountpoint),
                )
            )
        return partitions

    def _collect_network(self, now: float) -> NetworkMetrics:
        network = NetworkMetrics()
        counters = psutil.net_io_counters(pernic=True) or {}
        max_rate = self._sampling.max_interface_rate_bytes

        live: list[str] = []
        any_rate = False
        for name, counter in sorted(counters.items()):
            if not self._classifier.is_countable(name, ResourceKind.NETWORK):
                continue
            live.append(name)
            physical = self._classifier.is_physical(name)

            network.total_bytes_sent += counter.bytes_sent
            network.total_bytes_recv += counter.bytes_recv
            network.total_packets_sent += counter.packets_sent
            network.total_packets_recv += counter.packets_recv

            rate = self._net_deriver.derive(
                name,
                {
                    "bytes_sent": counter.bytes_sent,
                    "bytes_recv": counter.bytes_recv,
                    "packets_sent": counter.packets_sent,
                    "packets_recv": counter.packets_recv,
                    "errors": counter.errin + counter.errout,
                    "drops": counter.dropin + counter.dropout,
                },
                now,
            )
            if not isinstance(rate, DerivedRate):
                continue
            any_rate = True

            sent = rate["bytes_sent"]
            recv = rate["bytes_recv"]
            # A single interface cannot plausibly exceed this; treat as corrupt sample
            if sent > max_rate:
                logger.debug(f"Discarding implausible send rate {sent:.0f} B/s on {name}")
                sent = 0.0
            if recv > max_rate:
                logger.debug(f"Discarding implausible receive rate {recv:.0f} B/s on {name}")
                recv = 0.0

            network.interfaces.append(
                InterfaceMetrics(
                    name=name,
                    physical=physical,
                    bytes_sent_per_sec=sent,
                    bytes_recv_per_sec=recv,
                    packets_sent_per_sec=rate["packets_sent"],
                    packets_recv_per_sec=rate["packets_recv"],
                    errors_per_sec=rate["errors"],
                    drops_per_sec=rate["drops"],
                    bytes_sent=counter.bytes_sent,
                    bytes_recv=counter.bytes_recv,
                    packets_sent=counter.packets_sent,
                    packets_recv=counter.packets_recv,
                    errors_in=counter.errin,
                    errors_out=counter.errout,
                    drops_in=counter.dropin,
                    drops_out=counter.dropout,
                )
            )
            network.bytes_sent_per_sec += sent
            network.bytes_recv_per_sec += recv
            network.packets_sent_per_sec += rate["packets_sent"]
            network.packets_recv_per_sec += rate["packets_recv"]
            network.errors_per_sec += rate["errors"]
            network.drops_per_sec += rate["drops"]
            if physical:
                network.physical_bytes_sent_per_sec += sent
                network.physical_bytes_recv_per_sec += recv

        self._net_deriver.store.prune(live)

        if any_rate:
            network.bytes_sent_per_sec = self._spike_filter.smooth(
                NET_BYTES_SENT_STREAM, network.bytes_sent_per_sec, now
            )
            network.bytes_recv_per_sec = self._spike_filter.smooth(
                NET_BYTES_RECV_STREAM, network.bytes_recv_per_sec, now
            )
        return network


def _disk_device_metrics(device: str, rate: DerivedRate) -> DiskDeviceMetrics:
    """Build per-device metrics from derived rates.

    I/O utilisation is busy milliseconds per elapsed millisecond, capped at 100%.
    """
    io_util = min(100.0, rate["busy_ms"] / 1000 * 100)
    read_bytes = rate["read_bytes"]
    write_bytes = rate["write_bytes"]
    total_ops = rate["read_ops"] + rate["write_ops"]
    avg_request_size = (read_bytes + write_bytes) / total_ops if total_ops > 0 else 0.0
    return DiskDeviceMetrics(
        device=device,
        read_bytes_per_sec=read_bytes,
        write_bytes_per_sec=write_bytes,
        read_ops_per_sec=rate["read_ops"],
        write_ops_per_sec=rate["write_ops"],
        io_util_percent=io_util,
        avg_request_size=avg_request_size,
    )


def _inode_usage(mountpoint: str) -> dict[str, int | float]:
    """Inode counts for a mount point; empty where statvfs is unavailable."""
    if not hasattr(os, "statvfs"):
        return {}
    try:
        stat = os.statvfs(mountpoint)
    except OSError as e:
        logger.debug(f"No inode figures for {mountpoint}: {e}")
        return {}
    used = max(0, stat.f_files - stat.f_ffree)
    return {
        "inodes_total": stat.f_files,
        "inodes_used": used,
        "inodes_free": stat.f_ffree,
        "inodes_used_percent": used / stat.f_files * 100 if stat.f_files else 0.0,
    }
