"""Spike filter for aggregate rate streams.

Short sampling windows and scheduling jitter occasionally produce a single
absurd rate sample (for example a network total 50x its recent level). The
filter keeps a small history per stream and reports the window median,
substituting the prior mean when the newest value is an obvious spike.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

import numpy as np

from es_monitor.core.constants import (
    DEFAULT_HISTORY_SIZE,
    DEFAULT_SPIKE_FACTOR,
    MIN_SMOOTHING_SAMPLES,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: float
    value: float


class HistoryWindow:
    """Fixed-capacity FIFO of recent samples for one stream."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._entries: deque[HistoryEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, value: float, timestamp: float) -> None:
        self._entries.append(HistoryEntry(timestamp=timestamp, value=value))

    def values(self) -> list[float]:
        return [e.value for e in self._entries]

    def span_seconds(self) -> float:
        """Time covered by the window, from the oldest to the newest sample."""
        if len(self._entries) < 2:
            return 0.0
        return self._entries[-1].timestamp - self._entries[0].timestamp

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class SpikeFilter:
    """Median smoother with single-sample spike rejection and a ceiling clamp.

    Decision rule per call, once the window holds at least 3 samples:

    1. If the candidate exceeds ``spike_factor`` times the mean of the prior
       samples (and that mean is positive), return the prior mean.
    2. Otherwise return the window median.
    3. If the stream has a ceiling and the result is still above it, return
       the window minimum instead. This covers runs of corrupted samples that
       have pushed the median itself out of range.

    Owned by a single collector; not thread-safe.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_HISTORY_SIZE,
        spike_factor: float = DEFAULT_SPIKE_FACTOR,
        ceilings: dict[str, float] | None = None,
    ) -> None:
        """Initialize the filter.

        Args:
            capacity: Samples kept per stream
            spike_factor: Multiple of the prior mean that marks a spike
            ceilings: Optional stream key -> implausibility ceiling
        """
        self.capacity = capacity
        self.spike_factor = spike_factor
        self.ceilings = dict(ceilings or {})
        self._windows: dict[str, HistoryWindow] = {}

    def window(self, stream_key: str) -> HistoryWindow:
        if stream_key not in self._windows:
            self._windows[stream_key] = HistoryWindow(self.capacity)
        return self._windows[stream_key]

    def smooth(self, stream_key: str, candidate_value: float, now: float) -> float:
        """Add a sample to the stream and return the filtered value.

        Args:
            stream_key: Metric stream identifier (e.g. "net.bytes_sent")
            candidate_value: Newly derived aggregate value
            now: Sample time in seconds

        Returns:
            Filtered value (the candidate itself while fewer than 3 samples exist)
        """
        window = self.window(stream_key)
        window.append(candidate_value, now)

        if len(window) < MIN_SMOOTHING_SAMPLES:
            return candidate_value

        values = np.asarray(window.values(), dtype=float)
        median = float(np.median(values))
        prior_mean = float(np.mean(values[:-1]))

        if prior_mean > 0 and candidate_value > self.spike_factor * prior_mean:
            logger.debug(
                f"Spike on {stream_key}: {candidate_value:.1f} > "
                f"{self.spike_factor:g} x prior mean {prior_mean:.1f} "
                f"over {window.span_seconds():.1f}s"
            )
            result = prior_mean
        else:
            result = median

        ceiling = self.ceilings.get(stream_key)
        if ceiling is not None and result > ceiling:
            minimum = float(np.min(values))
            logger.debug(
                f"Smoothed {stream_key} {result:.1f} above ceiling {ceiling:.1f}, "
                f"using window minimum {minimum:.1f}"
            )
            result = minimum

        return result

    def reset(self, stream_key: str | None = None) -> None:
        """Clear one stream's window, or all of them."""
        if stream_key is None:
            self._windows.clear()
        else:
            self._windows.pop(stream_key, None)
