"""winqa Condition Poller -- "poll until predicate true or timeout".

Two variants share one contract:

- ``poll_until`` sleeps a fixed interval between evaluations.
- ``poll_until_adaptive`` polls aggressively while the condition is likely
  to become true soon and backs off additively during long stalls.  On
  success it can feed the elapsed time into a ResponseTimeTracker.

Both block the calling thread through the injected Clock, return ``False``
on timeout (never raise), and treat an exception from the predicate as
"not ready yet".
"""

from __future__ import annotations

import logging
from typing import Callable

from winqa.engine.protocols import Clock, SystemClock
from winqa.engine.response_tracker import ResponseTimeTracker
from winqa.models import (
    ADAPTIVE_FAST_PHASE_MS,
    ADAPTIVE_INTERVAL_STEP_MS,
    ADAPTIVE_MAX_INTERVAL_MS,
    ADAPTIVE_MEDIUM_INTERVAL_MS,
    ADAPTIVE_MEDIUM_PHASE_MS,
    ADAPTIVE_MIN_INTERVAL_MS,
    DEFAULT_POLL_INTERVAL_MS,
)

logger = logging.getLogger("winqa.engine.poller")

Predicate = Callable[[], bool]


def next_adaptive_interval(elapsed_ms: float, current_interval_ms: float) -> float:
    """Sleep interval for the next adaptive poll.

    100ms for the first 2s, 300ms until 5s, then +100ms per iteration up
    to 1000ms.
    """
    if elapsed_ms < ADAPTIVE_FAST_PHASE_MS:
        return ADAPTIVE_MIN_INTERVAL_MS
    if elapsed_ms < ADAPTIVE_MEDIUM_PHASE_MS:
        return ADAPTIVE_MEDIUM_INTERVAL_MS
    base = max(current_interval_ms, ADAPTIVE_MEDIUM_INTERVAL_MS)
    return min(base + ADAPTIVE_INTERVAL_STEP_MS, ADAPTIVE_MAX_INTERVAL_MS)


class ConditionPoller:
    """Blocking poll loops over an injectable clock.

    Usage::

        poller = ConditionPoller(tracker=tracker)
        if not poller.poll_until_adaptive(lambda: button.is_enabled(), 5000, "button enabled"):
            raise AutomationError(FailureKind.NOT_ENABLED, "button never enabled")
    """

    def __init__(
        self,
        clock: Clock | None = None,
        tracker: ResponseTimeTracker | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._tracker = tracker

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def tracker(self) -> ResponseTimeTracker | None:
        return self._tracker

    def poll_until(
        self,
        predicate: Predicate,
        timeout_ms: float,
        interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
        description: str = "condition",
    ) -> bool:
        """Evaluate *predicate* every *interval_ms* until true or *timeout_ms*."""
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")

        logger.debug("Waiting for %s (timeout: %dms)", description, timeout_ms)
        start = self._clock.now_ms()
        attempts = 0

        while True:
            attempts += 1
            if self._evaluate(predicate, description, attempts):
                logger.debug("%s met after %d attempts", description, attempts)
                return True

            elapsed = self._clock.now_ms() - start
            if elapsed >= timeout_ms:
                logger.warning(
                    "%s not met after %dms (%d attempts)",
                    description,
                    timeout_ms,
                    attempts,
                )
                return False

            self._clock.sleep_ms(min(interval_ms, timeout_ms - elapsed))

    def poll_until_adaptive(
        self,
        predicate: Predicate,
        timeout_ms: float,
        description: str = "condition",
        record_latency: bool = True,
    ) -> bool:
        """Like :meth:`poll_until` with the adaptive interval curve.

        On success, when *record_latency* is set and a tracker is attached,
        the elapsed time is recorded as one response-time sample.
        """
        logger.debug("Waiting (adaptive) for %s (timeout: %dms)", description, timeout_ms)
        start = self._clock.now_ms()
        interval = float(ADAPTIVE_MIN_INTERVAL_MS)
        attempts = 0

        while True:
            attempts += 1
            if self._evaluate(predicate, description, attempts):
                elapsed = self._clock.now_ms() - start
                logger.debug("%s met after %dms (%d attempts)", description, elapsed, attempts)
                if record_latency and self._tracker is not None:
                    self._tracker.record_response_time(elapsed)
                return True

            elapsed = self._clock.now_ms() - start
            if elapsed >= timeout_ms:
                logger.warning(
                    "%s not met after %dms (%d attempts)",
                    description,
                    timeout_ms,
                    attempts,
                )
                return False

            interval = next_adaptive_interval(elapsed, interval)
            self._clock.sleep_ms(min(interval, timeout_ms - elapsed))

    @staticmethod
    def _evaluate(predicate: Predicate, description: str, attempt: int) -> bool:
        try:
            return bool(predicate())
        except Exception as exc:
            logger.debug("Error checking %s on attempt %d: %s", description, attempt, exc)
            return False
