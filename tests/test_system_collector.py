"""Tests for SystemCollector with psutil mocked out."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from es_monitor.core.schemas import SamplingConfig
from es_monitor.monitoring.system_collector import SystemCollector

PSUTIL = "es_monitor.monitoring.system_collector.psutil"


def disk_io(read_bytes=0, write_bytes=0, read_count=0, write_count=0, busy_time=0):
    return SimpleNamespace(
        read_bytes=read_bytes,
        write_bytes=write_bytes,
        read_count=read_count,
        write_count=write_count,
        busy_time=busy_time,
    )


def net_io(bytes_sent=0, bytes_recv=0, packets_sent=0, packets_recv=0, errin=0, drops=0):
    return SimpleNamespace(
        bytes_sent=bytes_sent,
        bytes_recv=bytes_recv,
        packets_sent=packets_sent,
        packets_recv=packets_recv,
        errin=errin,
        errout=0,
        dropin=drops,
        dropout=0,
    )


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def configure_psutil(mock_psutil: MagicMock) -> None:
    """Static CPU, memory and partition readings."""
    mock_psutil.cpu_count.side_effect = lambda logical=True: 8 if logical else 4
    mock_psutil.cpu_percent.side_effect = (
        lambda interval=None, percpu=False: [10.0, 30.0] if percpu else 20.0
    )
    mock_psutil.cpu_times_percent.return_value = SimpleNamespace(
        user=12.0, system=5.0, idle=80.0, iowait=3.0, irq=0.0, softirq=0.0, steal=0.0
    )
    mock_psutil.getloadavg.return_value = (1.0, 0.5, 0.25)
    mock_psutil.virtual_memory.return_value = SimpleNamespace(
        total=16_000, available=4_000, used=12_000, free=1_000, percent=75.0,
        buffers=100, cached=2_000, shared=50,
    )
    mock_psutil.swap_memory.return_value = SimpleNamespace(
        total=1_000, used=250, free=750, sin=7, sout=9
    )
    mock_psutil.disk_partitions.return_value = [
        SimpleNamespace(device="/dev/sda1", mountpoint="/", fstype="ext4"),
        SimpleNamespace(device="tmpfs", mountpoint="/tmp", fstype="tmpfs"),
        SimpleNamespace(device="/dev/sdb1", mountpoint="/run/media", fstype="ext4"),
    ]
    mock_psutil.disk_usage.return_value = SimpleNamespace(
        total=1_000, used=900, free=100, percent=90.0
    )


class TestSystemCollector:
    """Tests for SystemCollector."""

    def test_cpu_and_memory(self):
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            mock_psutil.net_io_counters.return_value = {}
            metrics = SystemCollector(clock=FakeClock()).collect()

        assert metrics.cpu.usage_percent == 20.0
        assert metrics.cpu.per_cpu_percent == [10.0, 30.0]
        assert metrics.cpu.cores == 4
        assert metrics.cpu.logical_cores == 8
        assert metrics.cpu.iowait_percent == 3.0
        assert metrics.cpu.load_avg_1 == 1.0
        assert metrics.memory.used_percent == 75.0
        assert metrics.memory.swap_used_percent == pytest.approx(25.0)
        assert metrics.memory.page_out == 9
        assert metrics.errors == {}

    def test_partitions_skip_pseudo_filesystems(self):
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            mock_psutil.net_io_counters.return_value = {}
            metrics = SystemCollector(clock=FakeClock()).collect()

        assert [p.mountpoint for p in metrics.disk.partitions] == ["/"]
        assert metrics.disk.partitions[0].used_percent == 90.0

    def test_partition_inodes(self):
        statvfs = SimpleNamespace(f_files=1_000, f_ffree=250)
        with (
            patch(PSUTIL) as mock_psutil,
            patch("es_monitor.monitoring.system_collector.os.statvfs", return_value=statvfs),
        ):
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            mock_psutil.net_io_counters.return_value = {}
            partition = SystemCollector(clock=FakeClock()).collect().disk.partitions[0]

        assert partition.inodes_total == 1_000
        assert partition.inodes_used == 750
        assert partition.inodes_free == 250
        assert partition.inodes_used_percent == pytest.approx(75.0)

    def test_partition_without_inode_figures(self):
        with (
            patch(PSUTIL) as mock_psutil,
            patch(
                "es_monitor.monitoring.system_collector.os.statvfs",
                side_effect=OSError("not supported"),
            ),
        ):
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            mock_psutil.net_io_counters.return_value = {}
            partition = SystemCollector(clock=FakeClock()).collect().disk.partitions[0]

        assert partition.used_percent == 90.0
        assert partition.inodes_total == 0

    def test_first_sample_primes_rates(self):
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {"sda": disk_io(read_bytes=1000)}
            mock_psutil.net_io_counters.return_value = {"eth0": net_io(bytes_sent=1000)}
            metrics = SystemCollector(clock=FakeClock()).collect()

        assert metrics.rates_ready is False
        assert metrics.disk.read_bytes_per_sec == 0.0
        assert metrics.network.bytes_sent_per_sec == 0.0
        assert metrics.network.total_bytes_sent == 1000

    def test_network_rates(self):
        """1,000,000 -> 1,500,000 bytes over 5 seconds is 100,000 B/s."""
        clock = FakeClock()
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            collector = SystemCollector(clock=clock)

            mock_psutil.net_io_counters.return_value = {
                "eth0": net_io(bytes_sent=1_000_000, packets_sent=100),
                "lo": net_io(bytes_sent=5_000_000),
            }
            collector.collect()

            clock.now += 5
            mock_psutil.net_io_counters.return_value = {
                "eth0": net_io(bytes_sent=1_500_000, packets_sent=600),
                "lo": net_io(bytes_sent=9_000_000),
            }
            metrics = collector.collect()

        assert metrics.rates_ready is True
        assert metrics.network.bytes_sent_per_sec == pytest.approx(100_000.0)
        assert metrics.network.physical_bytes_sent_per_sec == pytest.approx(100_000.0)
        assert metrics.network.packets_sent_per_sec == pytest.approx(100.0)
        assert [i.name for i in metrics.network.interfaces] == ["eth0"]

    def test_virtual_interfaces_excluded(self):
        clock = FakeClock()
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            collector = SystemCollector(clock=clock)

            mock_psutil.net_io_counters.return_value = {
                "veth1234": net_io(bytes_recv=0),
                "docker0": net_io(bytes_recv=0),
            }
            collector.collect()
            clock.now += 1
            mock_psutil.net_io_counters.return_value = {
                "veth1234": net_io(bytes_recv=10_000),
                "docker0": net_io(bytes_recv=10_000),
            }
            metrics = collector.collect()

        assert metrics.network.bytes_recv_per_sec == 0.0
        assert metrics.network.interfaces == []

    def test_implausible_interface_rate_zeroed(self):
        clock = FakeClock()
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            collector = SystemCollector(SamplingConfig(max_interface_rate_bytes=1000), clock=clock)

            mock_psutil.net_io_counters.return_value = {"eth0": net_io(bytes_recv=0)}
            collector.collect()
            clock.now += 1
            mock_psutil.net_io_counters.return_value = {"eth0": net_io(bytes_recv=50_000)}
            metrics = collector.collect()

        assert metrics.network.interfaces[0].bytes_recv_per_sec == 0.0
        assert metrics.network.bytes_recv_per_sec == 0.0

    def test_network_counter_reset(self):
        clock = FakeClock()
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            collector = SystemCollector(clock=clock)

            mock_psutil.net_io_counters.return_value = {"eth0": net_io(bytes_sent=1_000_000)}
            collector.collect()
            clock.now += 2
            mock_psutil.net_io_counters.return_value = {"eth0": net_io(bytes_sent=200)}
            metrics = collector.collect()

        assert metrics.network.bytes_sent_per_sec == pytest.approx(100.0)

    def test_disk_rates_and_util(self):
        clock = FakeClock()
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.net_io_counters.return_value = {}
            collector = SystemCollector(clock=clock)

            mock_psutil.disk_io_counters.return_value = {
                "sda": disk_io(),
                "loop0": disk_io(),
            }
            collector.collect()
            clock.now += 2
            mock_psutil.disk_io_counters.return_value = {
                "sda": disk_io(
                    read_bytes=4096 * 20, write_bytes=0, read_count=20, busy_time=3000
                ),
                "loop0": disk_io(read_bytes=10**9),
            }
            metrics = collector.collect()

        disk = metrics.disk
        assert [d.device for d in disk.devices] == ["sda"]
        assert disk.read_bytes_per_sec == pytest.approx(4096 * 10)
        assert disk.read_ops_per_sec == pytest.approx(10.0)
        assert disk.devices[0].avg_request_size == pytest.approx(4096)
        # 1500 busy ms per second is clamped to 100%
        assert disk.io_util_percent == 100.0

    def test_vanished_interface_forgotten(self):
        clock = FakeClock()
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.return_value = {}
            collector = SystemCollector(clock=clock)

            mock_psutil.net_io_counters.return_value = {"eth1": net_io(bytes_sent=100)}
            collector.collect()
            clock.now += 1
            mock_psutil.net_io_counters.return_value = {}
            collector.collect()
            clock.now += 1
            mock_psutil.net_io_counters.return_value = {"eth1": net_io(bytes_sent=5000)}
            metrics = collector.collect()

        # eth1 came back and starts uninitialized instead of diffing against a stale reading
        assert metrics.network.interfaces == []

    def test_failing_section_recorded(self):
        with patch(PSUTIL) as mock_psutil:
            configure_psutil(mock_psutil)
            mock_psutil.disk_io_counters.side_effect = OSError("no /proc/diskstats")
            mock_psutil.net_io_counters.return_value = {}
            metrics = SystemCollector(clock=FakeClock()).collect()

        assert "disk" in metrics.errors
        assert metrics.cpu.usage_percent == 20.0

    def test_name(self):
        assert SystemCollector().name == "system"
