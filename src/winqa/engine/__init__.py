"""winqa engine -- adaptive synchronization and resilience core.

- ConditionPoller: fixed and adaptive "poll until true or timeout"
- ResponseTimeTracker: rolling latency window and percentile-based timeouts
- RetryPolicy: transient-failure retry that never retries assertions
- TargetAcquisitionController: launch/attach and strict -> relaxed window search
- ElementWrapper: click / type / read with implicit adaptive waits

PywinautoBackend is NOT eagerly imported here because it depends on
platform-specific packages (pywinauto, psutil, pywin32).  Import it directly
when needed:
  from winqa.engine.desktop_backend import PywinautoBackend
"""

from winqa.engine.acquisition import (
    AcquisitionMode,
    AcquisitionState,
    AcquisitionStatus,
    TargetAcquisitionController,
)
from winqa.engine.element import ElementWrapper
from winqa.engine.errors import (
    AcquisitionError,
    AutomationError,
    FailureKind,
    RetryExhaustedError,
)
from winqa.engine.poller import ConditionPoller
from winqa.engine.protocols import Clock, DesktopBackend, DesktopWindow, SystemClock
from winqa.engine.response_tracker import ResponseTimeStats, ResponseTimeTracker
from winqa.engine.retry_policy import RetryPolicy, classify_failure, retrying
from winqa.engine.window_search import RelaxedMatcher, SearchPhase, StrictMatcher

__all__ = [
    "AcquisitionError",
    "AcquisitionMode",
    "AcquisitionState",
    "AcquisitionStatus",
    "AutomationError",
    "Clock",
    "ConditionPoller",
    "DesktopBackend",
    "DesktopWindow",
    "ElementWrapper",
    "FailureKind",
    "RelaxedMatcher",
    "ResponseTimeStats",
    "ResponseTimeTracker",
    "RetryExhaustedError",
    "RetryPolicy",
    "SearchPhase",
    "StrictMatcher",
    "SystemClock",
    "TargetAcquisitionController",
    "classify_failure",
    "retrying",
]
