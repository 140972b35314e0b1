"""winqa Target Acquisition Controller -- launch/attach and main-window search.

Flow of one :meth:`TargetAcquisitionController.acquire` call::

    IDLE -> ATTACH_OR_LAUNCH -> SEARCH_STRICT -> SEARCH_RELAXED -> ACQUIRED
                                                               \\-> FAILED

An already-running process with the executable's name is attached to;
otherwise the executable is launched.  The main window is then searched on a
fixed 500ms poll: for the first 5s only windows owned by the acquired
process id qualify (strict), after that title heuristics take over
(relaxed).  The found window is brought to the foreground.  On timeout an
AcquisitionError carries the elapsed time, the process id and the windows
that were visible during the search.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import threading
from pathlib import PureWindowsPath
from typing import Mapping, Sequence

from winqa.config import WinQAConfig
from winqa.engine.errors import AcquisitionError
from winqa.engine.poller import ConditionPoller
from winqa.engine.protocols import Clock, DesktopBackend, DesktopWindow, SystemClock
from winqa.engine.window_search import (
    DEFAULT_EXCLUDED_TITLES,
    RelaxedMatcher,
    SearchPhase,
    StrictMatcher,
    phase_for,
)
from winqa.models import (
    ACQUIRE_POLL_INTERVAL_MS,
    ATTACH_SETTLE_MS,
    DEFAULT_ACQUIRE_TIMEOUT_MS,
    FOREGROUND_SETTLE_MS,
    LAUNCH_SETTLE_MS,
    MAX_REPORTED_CANDIDATES,
    STRICT_PHASE_MS,
)

logger = logging.getLogger("winqa.engine.acquisition")


class AcquisitionMode(enum.Enum):
    ATTACHED = "attached"
    LAUNCHED = "launched"


class AcquisitionStatus(enum.Enum):
    IDLE = "idle"
    ATTACH_OR_LAUNCH = "attach_or_launch"
    SEARCH_STRICT = "search_strict"
    SEARCH_RELAXED = "search_relaxed"
    ACQUIRED = "acquired"
    FAILED = "failed"


@dataclasses.dataclass
class AcquisitionState:
    """Transient state of one acquisition call."""

    status: AcquisitionStatus = AcquisitionStatus.IDLE
    process_id: int | None = None
    mode: AcquisitionMode | None = None
    search_phase: SearchPhase = SearchPhase.STRICT
    # Visible, titled windows seen while searching -- diagnostics only
    candidate_windows: list[str] = dataclasses.field(default_factory=list)

    def record_candidate(self, window: DesktopWindow) -> None:
        if not window.is_searchable:
            return
        info = window.describe()
        if info not in self.candidate_windows:
            self.candidate_windows.append(info)


def process_name_for(executable_path: str) -> str:
    """``C:\\Windows\\System32\\calc.exe`` -> ``calc``."""
    return PureWindowsPath(executable_path).stem


class TargetAcquisitionController:
    """Finds and owns the main window of the application under test.

    Usage::

        controller = TargetAcquisitionController(PywinautoBackend())
        window = controller.acquire(r"C:\\Windows\\System32\\calc.exe", timeout_ms=10000)
        ...
        controller.close()
    """

    def __init__(
        self,
        backend: DesktopBackend,
        clock: Clock | None = None,
        default_timeout_ms: int = DEFAULT_ACQUIRE_TIMEOUT_MS,
        poll_interval_ms: int = ACQUIRE_POLL_INTERVAL_MS,
        strict_phase_ms: int = STRICT_PHASE_MS,
        attach_settle_ms: int = ATTACH_SETTLE_MS,
        launch_settle_ms: int = LAUNCH_SETTLE_MS,
        foreground_settle_ms: int = FOREGROUND_SETTLE_MS,
        excluded_titles: Sequence[str] = DEFAULT_EXCLUDED_TITLES,
        title_rules: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self._backend = backend
        self._clock = clock or SystemClock()
        self._poller = ConditionPoller(clock=self._clock)
        self._default_timeout_ms = default_timeout_ms
        self._poll_interval_ms = poll_interval_ms
        self._strict_phase_ms = strict_phase_ms
        self._attach_settle_ms = attach_settle_ms
        self._launch_settle_ms = launch_settle_ms
        self._foreground_settle_ms = foreground_settle_ms
        self._excluded_titles = tuple(excluded_titles)
        self._title_rules = title_rules

        self._lock = threading.Lock()
        self._state = AcquisitionState()
        self._process_id: int | None = None
        self._main_window: DesktopWindow | None = None

    @classmethod
    def from_config(
        cls,
        config: WinQAConfig,
        backend: DesktopBackend,
        clock: Clock | None = None,
    ) -> TargetAcquisitionController:
        return cls(backend, clock=clock, default_timeout_ms=config.acquire_timeout)

    # -- Properties ----------------------------------------------------------

    @property
    def main_window(self) -> DesktopWindow | None:
        return self._main_window

    @property
    def process_id(self) -> int | None:
        return self._process_id

    @property
    def last_state(self) -> AcquisitionState:
        return self._state

    # -- Acquisition ---------------------------------------------------------

    def acquire(self, executable_path: str, timeout_ms: int | None = None) -> DesktopWindow:
        """Attach to or launch *executable_path* and return its main window.

        Raises AcquisitionError when no window is found within *timeout_ms*.
        """
        timeout = self._default_timeout_ms if timeout_ms is None else timeout_ms
        with self._lock:
            logger.info("Launching application: %s", executable_path)
            state = AcquisitionState(status=AcquisitionStatus.ATTACH_OR_LAUNCH)
            self._state = state
            process_name = process_name_for(executable_path)

            try:
                pid = self._attach_or_launch(executable_path, process_name, state)
            except Exception:
                state.status = AcquisitionStatus.FAILED
                logger.error("Error launching application: %s", executable_path, exc_info=True)
                raise
            # Owned from here on, so close() still reaches it if the search fails
            self._process_id = pid

            settle = self._attach_settle_ms if state.mode is AcquisitionMode.ATTACHED else self._launch_settle_ms
            self._clock.sleep_ms(settle)

            window = self._search(state, pid, process_name, timeout)
            state.status = AcquisitionStatus.ACQUIRED
            self._main_window = window

        self.ensure_foreground(window)
        return window

    def _attach_or_launch(self, executable_path: str, process_name: str, state: AcquisitionState) -> int:
        pid: int | None = None
        if process_name.strip():
            try:
                pid = self._backend.find_running_process(process_name)
                if pid is not None:
                    self._backend.attach(pid)
            except Exception as exc:
                logger.warning("Could not attach to existing process for %s: %s", executable_path, exc)
                pid = None

        if pid is not None:
            state.mode = AcquisitionMode.ATTACHED
            logger.info("Attached to existing process with PID: %d", pid)
        else:
            pid = self._backend.launch(executable_path)
            state.mode = AcquisitionMode.LAUNCHED
            logger.info("Process launched with PID: %d", pid)
        state.process_id = pid
        return pid

    def _search(self, state: AcquisitionState, pid: int, process_name: str, timeout_ms: int) -> DesktopWindow:
        strict = StrictMatcher(pid)
        relaxed = RelaxedMatcher(process_name, self._excluded_titles, self._title_rules)
        found: list[DesktopWindow] = []
        state.status = AcquisitionStatus.SEARCH_STRICT
        start = self._clock.now_ms()

        def _search_cycle() -> bool:
            elapsed = self._clock.now_ms() - start
            phase = phase_for(elapsed, self._strict_phase_ms)
            if phase is SearchPhase.RELAXED and state.search_phase is SearchPhase.STRICT:
                state.search_phase = SearchPhase.RELAXED
                state.status = AcquisitionStatus.SEARCH_RELAXED
                logger.warning("Switching to relaxed window search (by title) after %dms", elapsed)

            window = self._query_main_window(pid)
            if window is not None:
                logger.info(
                    "Main window found via process main window: '%s' (PID: %d, Mode: Standard)",
                    window.title,
                    pid,
                )
                found.append(window)
                return True

            windows = self._backend.top_level_windows()
            for candidate in windows:
                state.record_candidate(candidate)

            matcher = strict if phase is SearchPhase.STRICT else relaxed
            match = matcher.match(windows)
            if match is None:
                return False
            logger.info(
                "Window found: '%s' (PID: %d, Mode: %s, Class: %s)",
                match.title,
                match.process_id,
                matcher.phase.value.capitalize(),
                match.class_name,
            )
            found.append(match)
            return True

        if self._poller.poll_until(
            _search_cycle,
            timeout_ms,
            interval_ms=self._poll_interval_ms,
            description=f"main window of '{process_name}'",
        ):
            return found[0]

        elapsed = self._clock.now_ms() - start
        state.status = AcquisitionStatus.FAILED
        reported = state.candidate_windows[:MAX_REPORTED_CANDIDATES]
        logger.warning(
            "Window not found after %dms. Windows detected: %d",
            elapsed,
            len(state.candidate_windows),
        )
        for info in reported:
            logger.warning("  - %s", info)

        lines = [
            f"Could not get the main window after {elapsed:.0f}ms (PID: {pid}). "
            f"Windows found: {len(state.candidate_windows)}"
        ]
        lines.extend(f"  - {info}" for info in reported)
        message = "\n".join(lines)
        logger.error(message)
        raise AcquisitionError(message, elapsed_ms=elapsed, process_id=pid, candidates=reported)

    def _query_main_window(self, pid: int) -> DesktopWindow | None:
        try:
            window = self._backend.main_window(pid)
        except Exception as exc:
            logger.debug("Process main window lookup failed: %s", exc)
            return None
        if window is None or window.is_offscreen:
            return None
        return window

    # -- Foreground ----------------------------------------------------------

    def ensure_foreground(self, window: DesktopWindow | None = None) -> None:
        """Bring *window* (default: the acquired main window) to the front.

        Best-effort: failures are logged and never raised.
        """
        target = window or self._main_window
        if target is None:
            logger.debug("No window to bring to the foreground")
            return
        if window is None and target.is_offscreen:
            return

        try:
            if target.native_handle is not None:
                try:
                    self._backend.set_foreground(target.native_handle)
                    logger.debug("Window brought to front with SetForegroundWindow")
                except Exception as exc:
                    logger.debug("SetForegroundWindow failed: %s", exc)

            self._backend.focus(target)
            logger.debug("Window focused through the accessibility layer")
            self._clock.sleep_ms(self._foreground_settle_ms)
        except Exception as exc:
            logger.warning("Could not bring window to the foreground, continuing anyway: %s", exc)

    # -- Teardown ------------------------------------------------------------

    def close(self) -> None:
        """Close the application acquired by this controller."""
        with self._lock:
            if self._process_id is None:
                return
            pid = self._process_id
            try:
                logger.info("Closing application pid=%d", pid)
                self._backend.close(pid)
            except Exception as exc:
                logger.error("Error closing application pid=%d: %s", pid, exc)
            finally:
                self._process_id = None
                self._main_window = None
                self._state = AcquisitionState()
