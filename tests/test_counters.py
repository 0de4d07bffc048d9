"""Tests for counter snapshots and rate derivation."""

import pytest

from es_monitor.monitoring.counters import (
    UNINITIALIZED,
    CounterReading,
    DerivedRate,
    RateDeriver,
    SnapshotStore,
    counter_delta,
)


class TestCounterDelta:
    """Tests for the counter_delta utility."""

    def test_growing_counter(self):
        assert counter_delta(1500, 1000) == 500

    def test_flat_counter(self):
        assert counter_delta(1000, 1000) == 0

    def test_reset_counter_uses_current_value(self):
        """A counter that went backwards restarted; the new value is the delta."""
        assert counter_delta(200, 1_000_000) == 200

    def test_wraparound_with_known_width(self):
        assert counter_delta(10, 2**32 - 6, wrap_bits=32) == 16

    def test_wider_previous_than_width_is_reset(self):
        assert counter_delta(10, 2**40, wrap_bits=32) == 10

    def test_never_negative(self):
        for current, previous in [(0, 5), (3, 3), (10, 2), (0, 0)]:
            assert counter_delta(current, previous) >= 0


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    def test_put_and_get(self):
        store = SnapshotStore()
        reading = CounterReading(counters={"bytes": 1}, timestamp=1.0)
        store.put("eth0", reading)

        assert store.get("eth0") is reading
        assert "eth0" in store
        assert len(store) == 1

    def test_get_missing_returns_none(self):
        assert SnapshotStore().get("eth0") is None

    def test_prune_forgets_vanished_keys(self):
        store = SnapshotStore()
        for key in ("eth0", "eth1", "wlan0"):
            store.put(key, CounterReading(counters={}, timestamp=0.0))

        removed = store.prune(["eth0"])

        assert sorted(removed) == ["eth1", "wlan0"]
        assert store.keys() == ["eth0"]

    def test_forget_and_clear(self):
        store = SnapshotStore()
        store.put("a", CounterReading(counters={}, timestamp=0.0))
        store.put("b", CounterReading(counters={}, timestamp=0.0))

        store.forget("a")
        store.forget("missing")
        assert store.keys() == ["b"]

        store.clear()
        assert len(store) == 0


class TestRateDeriver:
    """Tests for RateDeriver."""

    def test_first_observation_is_uninitialized(self):
        deriver = RateDeriver()
        result = deriver.derive("eth0", {"bytes_sent": 1_000_000}, now=100.0)

        assert result is UNINITIALIZED
        assert not result
        assert "eth0" in deriver.store

    def test_rate_over_elapsed_time(self):
        """1,000,000 -> 1,500,000 bytes over 5 seconds is 100,000 B/s."""
        deriver = RateDeriver()
        deriver.derive("eth0", {"bytes_sent": 1_000_000}, now=100.0)
        result = deriver.derive("eth0", {"bytes_sent": 1_500_000}, now=105.0)

        assert isinstance(result, DerivedRate)
        assert result["bytes_sent"] == pytest.approx(100_000.0)
        assert result.elapsed_seconds == pytest.approx(5.0)
        assert result.resets == ()

    def test_counter_reset(self):
        """A counter reset yields current / elapsed, never a negative rate."""
        deriver = RateDeriver()
        deriver.derive("eth0", {"bytes_sent": 1_000_000}, now=10.0)
        result = deriver.derive("eth0", {"bytes_sent": 200}, now=12.0)

        assert isinstance(result, DerivedRate)
        assert result["bytes_sent"] == pytest.approx(100.0)
        assert result.resets == ("bytes_sent",)

    def test_non_positive_elapsed(self):
        deriver = RateDeriver()
        deriver.derive("sda", {"read_bytes": 10}, now=50.0)

        assert deriver.derive("sda", {"read_bytes": 20}, now=50.0) is UNINITIALIZED
        assert deriver.derive("sda", {"read_bytes": 30}, now=49.0) is UNINITIALIZED

    def test_stores_current_reading_even_when_uninitialized(self):
        """The reading taken on a zero-elapsed cycle becomes the new baseline."""
        deriver = RateDeriver()
        deriver.derive("sda", {"read_bytes": 10}, now=50.0)
        deriver.derive("sda", {"read_bytes": 20}, now=50.0)
        result = deriver.derive("sda", {"read_bytes": 40}, now=52.0)

        assert isinstance(result, DerivedRate)
        assert result["read_bytes"] == pytest.approx(10.0)

    def test_new_counter_grows_from_zero(self):
        deriver = RateDeriver()
        deriver.derive("node:a", {"index_total": 100}, now=0.0)
        result = deriver.derive("node:a", {"index_total": 200, "query_total": 40}, now=2.0)

        assert isinstance(result, DerivedRate)
        assert result["query_total"] == pytest.approx(20.0)
        assert result.get("missing") == 0.0

    def test_keys_are_independent(self):
        deriver = RateDeriver()
        deriver.derive("eth0", {"bytes": 0}, now=0.0)
        deriver.derive("eth1", {"bytes": 0}, now=0.0)
        eth0 = deriver.derive("eth0", {"bytes": 100}, now=1.0)
        eth1 = deriver.derive("eth1", {"bytes": 300}, now=1.0)

        assert eth0["bytes"] == pytest.approx(100.0)
        assert eth1["bytes"] == pytest.approx(300.0)

    def test_reset_clears_store(self):
        deriver = RateDeriver()
        deriver.derive("eth0", {"bytes": 0}, now=0.0)
        deriver.reset()

        assert deriver.derive("eth0", {"bytes": 100}, now=1.0) is UNINITIALIZED

    def test_shared_store(self):
        store = SnapshotStore()
        deriver = RateDeriver(store)
        deriver.derive("eth0", {"bytes": 0}, now=0.0)

        assert deriver.store is store
        assert "eth0" in store
