"""Failure taxonomy shared by the poller, retrier and acquisition controller."""

from __future__ import annotations

import enum
from typing import Sequence


class FailureKind(enum.Enum):
    """Tag carried by every automation failure raised by winqa."""

    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    NOT_CLICKABLE = "not_clickable"
    NOT_ENABLED = "not_enabled"
    ASSERTION = "assertion"
    OTHER = "other"

    @property
    def is_transient(self) -> bool:
        return self in TRANSIENT_KINDS


TRANSIENT_KINDS = frozenset(
    {
        FailureKind.UNAVAILABLE,
        FailureKind.TIMEOUT,
        FailureKind.NOT_CLICKABLE,
        FailureKind.NOT_ENABLED,
    }
)


class AutomationError(Exception):
    """A UI interaction failed; ``kind`` decides whether it may be retried."""

    def __init__(self, kind: FailureKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        return f"[{self.kind.value}] {super().__str__()}"


class RetryExhaustedError(Exception):
    """A transient failure persisted through every allowed attempt."""

    def __init__(self, message: str, failures: Sequence[BaseException]) -> None:
        self.failures: list[BaseException] = list(failures)
        lines = [message]
        for idx, failure in enumerate(self.failures, start=1):
            lines.append(f"  attempt {idx}: {type(failure).__name__}: {failure}")
        super().__init__("\n".join(lines))


class AcquisitionError(Exception):
    """The target application's main window could not be found in time."""

    def __init__(
        self,
        message: str,
        elapsed_ms: float,
        process_id: int | None,
        candidates: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.elapsed_ms = elapsed_ms
        self.process_id = process_id
        self.candidates = list(candidates)
