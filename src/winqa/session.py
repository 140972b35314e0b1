"""winqa Suite Session -- lifecycle of the application under test for one suite.

The application is acquired once per suite and shared by every test.  Before
each test the main window is brought back to the foreground; after a failed
test a screenshot of the window is saved as evidence.  Evidence capture is
best-effort: its own errors are logged and never mask the test failure.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from pathlib import Path
from types import TracebackType
from typing import Any

from winqa.config import WinQAConfig, WinQAConfigError
from winqa.engine.acquisition import TargetAcquisitionController
from winqa.engine.element import ElementWrapper
from winqa.engine.poller import ConditionPoller
from winqa.engine.protocols import Clock, DesktopBackend, DesktopWindow, SystemClock
from winqa.engine.response_tracker import ResponseTimeTracker
from winqa.engine.retry_policy import RetryPolicy

logger = logging.getLogger("winqa.session")

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"


class SuiteSession:
    """Owns the tracker, poller, retry policy and acquisition controller of a run.

    Usage::

        with SuiteSession(WinQAConfig.load(find_project_dir())) as session:
            session.before_test("adds two numbers")
            page = CalculatorPage(session.main_window, session.poller)
            ...
            session.after_test("adds two numbers", failed=False)
    """

    def __init__(
        self,
        config: WinQAConfig,
        backend: DesktopBackend | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self._clock = clock or SystemClock()
        self._backend = backend
        self.tracker = ResponseTimeTracker.from_config(config)
        self.poller = ConditionPoller(clock=self._clock, tracker=self.tracker)
        self.retry = RetryPolicy(
            max_retries=config.max_retries,
            delay_ms=config.retry_delay,
            clock=self._clock,
        )
        self._controller: TargetAcquisitionController | None = None
        self._log_handler: logging.Handler | None = None

    # -- Collaborators -------------------------------------------------------

    @property
    def backend(self) -> DesktopBackend:
        if self._backend is None:
            from winqa.engine.desktop_backend import PywinautoBackend

            self._backend = PywinautoBackend(backend=self.config.backend)
        return self._backend

    @property
    def controller(self) -> TargetAcquisitionController:
        if self._controller is None:
            self._controller = TargetAcquisitionController.from_config(
                self.config, self.backend, clock=self._clock
            )
        return self._controller

    @property
    def main_window(self) -> DesktopWindow | None:
        if self._controller is None:
            return None
        return self._controller.main_window

    def wrap(self, element: Any) -> ElementWrapper:
        """ElementWrapper over *element* using this run's poller and default timeout."""
        return ElementWrapper(element, self.poller, default_timeout_ms=self.config.default_timeout)

    # -- Lifecycle -----------------------------------------------------------

    def start(self) -> DesktopWindow:
        """Acquire the application's main window for the whole suite."""
        if not self.config.app_path:
            raise WinQAConfigError(
                "app_path is not configured\n\n"
                "To fix: set app_path in .winqa/config.yaml or export WINQA_APP_PATH"
            )
        self._attach_log_file()
        logger.info("==== Starting test suite ====")
        try:
            window = self.controller.acquire(self.config.app_path, self.config.acquire_timeout)
        except Exception:
            logger.error("Error launching application for the suite", exc_info=True)
            self.controller.close()
            self._detach_log_file()
            raise
        logger.info("Application ready for test suite: '%s'", window.title)
        return window

    def before_test(self, test_name: str) -> None:
        logger.info("==== Starting test: %s ====", test_name)
        if self.config.reset_latency_per_test:
            self.tracker.reset()
        if self._controller is not None:
            self._controller.ensure_foreground()

    def after_test(self, test_name: str, failed: bool) -> Path | None:
        """Finish a test; returns the evidence path when one was captured."""
        logger.info("Test %s finished: %s", test_name, "FAILED" if failed else "passed")
        evidence = None
        if failed:
            logger.warning("Test failed, capturing screenshot")
            evidence = self.capture_evidence(test_name)
        logger.info("==== Test finished: %s ====", test_name)
        return evidence

    def capture_evidence(self, test_name: str) -> Path | None:
        """Screenshot of the main window into the evidence dir, or None."""
        try:
            window = self.main_window
            if window is None:
                logger.warning("No main window to capture for %s", test_name)
                return None
            stamp = dt.datetime.now().strftime("%Y%m%d-%H%M%S")
            safe_name = re.sub(r"[^A-Za-z0-9_.-]+", "_", test_name).strip("_") or "test"
            path = Path(self.config.evidence_dir) / f"{safe_name}-{stamp}.png"
            if not self.backend.capture(window, path):
                logger.warning("Screenshot not available for %s", test_name)
                return None
            logger.info("Screenshot captured: %s", path)
            return path
        except Exception as exc:
            logger.error("Error capturing evidence for %s: %s", test_name, exc)
            return None

    def stop(self) -> None:
        """Close the application and log the latency summary."""
        logger.info("==== Finishing test suite ====")
        if self._controller is not None:
            self._controller.close()
        stats = self.tracker.get_stats()
        if stats is not None:
            logger.info(
                "Response times: %d samples, min %.0fms, median %.0fms, P95 %.0fms, max %.0fms",
                stats.count,
                stats.min,
                stats.median,
                stats.percentile_95,
                stats.max,
            )
        self._detach_log_file()

    def __enter__(self) -> SuiteSession:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()

    # -- Logging -------------------------------------------------------------

    def _attach_log_file(self) -> None:
        if self.config.log_file is None or self._log_handler is not None:
            return
        log_path = Path(self.config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root = logging.getLogger("winqa")
        root.addHandler(handler)
        if root.level == logging.NOTSET or root.level > logging.INFO:
            root.setLevel(logging.INFO)
        self._log_handler = handler

    def _detach_log_file(self) -> None:
        if self._log_handler is None:
            return
        logging.getLogger("winqa").removeHandler(self._log_handler)
        self._log_handler.close()
        self._log_handler = None
