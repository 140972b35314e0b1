"""winqa Failure Classifier & Retrier.

Retries operations that failed for transient UI reasons (element momentarily
unavailable, a wait timed out, not clickable, not enabled) with a fixed delay
and a bounded attempt count.  Assertion failures are never retried, whatever
``max_retries`` is: they are confirmed test failures, not flaky
infrastructure.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar

from winqa.engine.errors import AutomationError, FailureKind, RetryExhaustedError
from winqa.engine.protocols import Clock, SystemClock
from winqa.models import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY_MS

logger = logging.getLogger("winqa.engine.retry_policy")

T = TypeVar("T")


def classify_failure(exc: BaseException) -> FailureKind:
    """Map a raised exception to its FailureKind.

    | raised                  | kind            |
    |-------------------------|-----------------|
    | AssertionError          | ASSERTION       |
    | AutomationError         | its own ``kind``|
    | builtin TimeoutError    | TIMEOUT         |
    | anything else           | OTHER           |
    """
    if isinstance(exc, AssertionError):
        return FailureKind.ASSERTION
    if isinstance(exc, AutomationError):
        return exc.kind
    if isinstance(exc, TimeoutError):
        return FailureKind.TIMEOUT
    return FailureKind.OTHER


class RetryPolicy:
    """Bounded fixed-delay retry of transient automation failures."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        clock: Clock | None = None,
    ) -> None:
        self._max_retries = max_retries
        self._delay_ms = delay_ms
        self._clock = clock or SystemClock()

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    def execute(
        self,
        operation: Callable[[], T],
        max_retries: int | None = None,
        delay_ms: int | None = None,
    ) -> T:
        """Run *operation*, retrying transient failures.

        Returns the operation's result.  Re-raises assertion and
        non-transient failures unchanged on first occurrence.  Raises
        RetryExhaustedError with every attempt's failure once
        ``max_retries`` additional attempts have also failed.
        """
        retries = self._max_retries if max_retries is None else max_retries
        delay = self._delay_ms if delay_ms is None else delay_ms
        if retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {retries}")

        failures: list[BaseException] = []
        attempts = 0

        while True:
            attempts += 1
            try:
                return operation()
            except Exception as exc:
                failures.append(exc)
                kind = classify_failure(exc)

                if kind is FailureKind.ASSERTION:
                    logger.warning("Assertion failure detected, not retrying")
                    raise

                if not kind.is_transient:
                    logger.warning("Non-transient error, not retrying: %s", type(exc).__name__)
                    raise

                if attempts > retries:
                    logger.error("Maximum retries reached (%d)", retries)
                    raise RetryExhaustedError(
                        f"Operation failed after {retries} retries",
                        failures,
                    ) from exc

                logger.warning(
                    "Attempt %d failed with transient error: %s. Retrying in %dms...",
                    attempts,
                    exc,
                    delay,
                )
                self._clock.sleep_ms(delay)

    def execute_action(
        self,
        action: Callable[[], Any],
        max_retries: int | None = None,
        delay_ms: int | None = None,
    ) -> None:
        """Same as :meth:`execute` for operations whose result is irrelevant."""
        self.execute(action, max_retries=max_retries, delay_ms=delay_ms)


def retrying(
    max_retries: int = DEFAULT_MAX_RETRIES,
    delay_ms: int = DEFAULT_RETRY_DELAY_MS,
    clock: Clock | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator applying a RetryPolicy to every call of the function.

    Example::

        @retrying(max_retries=2, delay_ms=250)
        def press_ok():
            find_by_name_path(window, ["OK"]).click_input()
    """
    policy = RetryPolicy(max_retries=max_retries, delay_ms=delay_ms, clock=clock)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return policy.execute(lambda: func(*args, **kwargs))

        return wrapper

    return decorator
