"""Cumulative-counter snapshot store and rate derivation.

OS and Elasticsearch counters (bytes sent, I/O operations, documents
indexed, ...) only ever grow until the owning process, interface or node
restarts. A per-second rate is obtained by differencing two readings of the
same resource and dividing by the time between them.

Reset handling lives in one place, ``counter_delta``: when a counter goes
backwards it is assumed to have restarted from zero and the new value is
taken as the delta. This overcounts for one cycle after a genuine reset, but
never produces a negative rate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class _Uninitialized:
    """Marker returned when no rate can be derived for a cycle."""

    _instance: _Uninitialized | None = None

    def __new__(cls) -> _Uninitialized:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNINITIALIZED"


UNINITIALIZED = _Uninitialized()


@dataclass(frozen=True)
class CounterReading:
    """Cumulative counters for one resource captured at ``timestamp`` (seconds)."""

    counters: Mapping[str, int | float]
    timestamp: float


@dataclass(frozen=True)
class DerivedRate:
    """Per-second rates for one resource.

    Attributes:
        rates: Counter name -> rate per second (never negative)
        elapsed_seconds: Time between the two readings
        resets: Names of counters that went backwards this cycle
    """

    rates: dict[str, float]
    elapsed_seconds: float
    resets: tuple[str, ...] = field(default=())

    def __getitem__(self, name: str) -> float:
        return self.rates[name]

    def get(self, name: str, default: float = 0.0) -> float:
        return self.rates.get(name, default)


def counter_delta(
    current: int | float,
    previous: int | float,
    wrap_bits: int | None = None,
) -> int | float:
    """Compute the growth of a cumulative counter between two readings.

    Args:
        current: Latest counter value
        previous: Counter value at the previous reading
        wrap_bits: Width of a fixed-size counter known to wrap around
            (e.g. 32 for a uint32 kernel counter). None means a decrease is
            always treated as a restart.

    Returns:
        ``current - previous`` if the counter grew (or stayed flat). Otherwise
        the modular difference when ``wrap_bits`` is given and ``previous``
        fits in that width, else ``current`` (the counter restarted from zero).
    """
    if current >= previous:
        return current - previous
    if wrap_bits is not None and previous < 2**wrap_bits:
        return current + 2**wrap_bits - previous
    return current


class SnapshotStore:
    """Most recent raw reading per resource key.

    Owned by a single collector; not thread-safe.
    """

    def __init__(self) -> None:
        self._readings: dict[str, CounterReading] = {}

    def get(self, key: str) -> CounterReading | None:
        return self._readings.get(key)

    def put(self, key: str, reading: CounterReading) -> None:
        self._readings[key] = reading

    def forget(self, key: str) -> None:
        self._readings.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._readings)

    def prune(self, live_keys: Iterable[str]) -> list[str]:
        """Drop readings for resources that are no longer reported.

        A resource that disappears and later comes back then starts from an
        uninitialized state instead of being differenced against a stale reading.

        Args:
            live_keys: Keys seen in the current cycle

        Returns:
            The keys that were removed
        """
        live = set(live_keys)
        stale = [key for key in self._readings if key not in live]
        for key in stale:
            del self._readings[key]
        if stale:
            logger.debug(f"Pruned {len(stale)} stale counter snapshots: {stale}")
        return stale

    def clear(self) -> None:
        self._readings.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._readings

    def __len__(self) -> int:
        return len(self._readings)


class RateDeriver:
    """Turns successive cumulative readings into per-second rates.

    Example:
        ```python
        deriver = RateDeriver()
        deriver.derive("eth0", {"bytes_sent": 1_000_000}, now=100.0)  # UNINITIALIZED
        rate = deriver.derive("eth0", {"bytes_sent": 1_500_000}, now=105.0)
        rate["bytes_sent"]  # 100000.0
        ```
    """

    def __init__(self, store: SnapshotStore | None = None) -> None:
        self.store = store if store is not None else SnapshotStore()

    def derive(
        self,
        resource_key: str,
        counters: Mapping[str, int | float],
        now: float,
    ) -> DerivedRate | _Uninitialized:
        """Derive rates for ``resource_key`` against its previous reading.

        The stored reading is always replaced with the current one, whether
        or not a rate is emitted.

        Args:
            resource_key: Interface, device, node or index identifier
            counters: Current cumulative counter values
            now: Sample time in seconds

        Returns:
            DerivedRate, or UNINITIALIZED on first observation or when the
            elapsed time is not positive.
        """
        current = CounterReading(counters=dict(counters), timestamp=now)
        previous = self.store.get(resource_key)
        self.store.put(resource_key, current)

        if previous is None:
            return UNINITIALIZED

        elapsed = now - previous.timestamp
        if elapsed <= 0:
            logger.debug(
                f"Non-positive elapsed time ({elapsed:.3f}s) for {resource_key}, skipping rate"
            )
            return UNINITIALIZED

        rates: dict[str, float] = {}
        resets: list[str] = []
        for name, value in current.counters.items():
            prev_value = previous.counters.get(name, 0)
            if value < prev_value:
                resets.append(name)
            rates[name] = counter_delta(value, prev_value) / elapsed

        if resets:
            logger.debug(f"Counter reset detected for {resource_key}: {resets}")

        return DerivedRate(rates=rates, elapsed_seconds=elapsed, resets=tuple(resets))

    def reset(self) -> None:
        """Forget every stored reading."""
        self.store.clear()
