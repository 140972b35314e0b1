"""winqa Response-Time Tracker -- rolling latency model of the target app.

Keeps a fixed-size FIFO window of observed response times (ms) and turns
it into a recommended timeout: the 95th percentile of the window times a
safety factor, clamped into the configured timeout bounds.

One tracker is shared by every interaction of a test run, so each operation
holds a single lock for its whole read-modify-write sequence.
"""

from __future__ import annotations

import collections
import dataclasses
import logging
import math
import threading

from winqa.config import TimeoutBounds, WinQAConfig
from winqa.models import (
    DEFAULT_RESPONSE_TIME_WINDOW,
    MIN_SAMPLES_FOR_ADAPTIVE,
    PERCENTILE,
    SAFETY_FACTOR,
)

logger = logging.getLogger("winqa.engine.response_tracker")


@dataclasses.dataclass
class ResponseTimeStats:
    """Read-only snapshot of the current window."""

    count: int
    min: float
    max: float
    mean: float
    median: float
    percentile_95: float


def percentile_index(count: int) -> int:
    """Index of the 95th percentile in a sorted list of *count* samples.

    ``ceil(count * 0.95) - 1``, clamped into ``[0, count - 1]``.
    """
    index = math.ceil(count * PERCENTILE) - 1
    return max(0, min(count - 1, index))


class ResponseTimeTracker:
    """Sliding window of response times with a percentile-based timeout."""

    def __init__(
        self,
        window_size: int = DEFAULT_RESPONSE_TIME_WINDOW,
        bounds: TimeoutBounds | None = None,
        safety_factor: float = SAFETY_FACTOR,
        adaptive_enabled: bool = True,
    ) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self._window_size = window_size
        self._bounds = bounds or TimeoutBounds()
        self._safety_factor = safety_factor
        self._adaptive_enabled = adaptive_enabled
        self._samples: collections.deque[float] = collections.deque()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: WinQAConfig) -> ResponseTimeTracker:
        return cls(
            window_size=config.response_time_window,
            bounds=config.timeout_bounds,
            adaptive_enabled=config.adaptive_timeouts,
        )

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def bounds(self) -> TimeoutBounds:
        return self._bounds

    @property
    def adaptive_enabled(self) -> bool:
        return self._adaptive_enabled

    @property
    def samples(self) -> list[float]:
        """Current window, oldest first."""
        with self._lock:
            return list(self._samples)

    def record_response_time(self, ms: float) -> None:
        """Append one observed latency, evicting the oldest beyond capacity."""
        if not math.isfinite(ms) or ms < 0:
            raise ValueError(f"Response time must be a finite, non-negative number, got {ms}")
        with self._lock:
            self._samples.append(float(ms))
            while len(self._samples) > self._window_size:
                self._samples.popleft()

    def get_adaptive_timeout(self, base_timeout: int | None = None) -> int:
        """Recommended timeout in ms.

        With fewer than three samples *base_timeout* (default: the initial
        timeout) is returned unchanged.
        """
        base = self._bounds.initial if base_timeout is None else base_timeout
        with self._lock:
            count = len(self._samples)
            if count < MIN_SAMPLES_FOR_ADAPTIVE:
                return base

            ordered = sorted(self._samples)
            p95 = ordered[percentile_index(count)]
            calculated = int(p95 * self._safety_factor)
            adaptive = max(self._bounds.minimum, min(self._bounds.maximum, calculated))

        logger.debug(
            "Adaptive timeout: %dms (from %d samples, P95: %dms)",
            adaptive,
            count,
            int(p95),
        )
        return adaptive

    def resolve_timeout(self, base_timeout: int) -> int:
        """Adaptive timeout when enabled, else *base_timeout* as configured."""
        if not self._adaptive_enabled:
            return base_timeout
        return self.get_adaptive_timeout(base_timeout)

    def get_stats(self) -> ResponseTimeStats | None:
        """Statistics for the current window, or None when it is empty."""
        with self._lock:
            if not self._samples:
                return None
            times = list(self._samples)

        ordered = sorted(times)
        count = len(ordered)
        return ResponseTimeStats(
            count=count,
            min=ordered[0],
            max=ordered[-1],
            mean=sum(ordered) / count,
            median=ordered[count // 2],
            percentile_95=ordered[percentile_index(count)],
        )

    def reset(self) -> None:
        """Forget all recorded response times."""
        with self._lock:
            self._samples.clear()
        logger.debug("Response time history reset")
