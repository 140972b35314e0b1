"""Unit tests for winqa.engine.acquisition — attach/launch and the two-phase main-window search."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from winqa.config import WinQAConfig
from winqa.engine.acquisition import (
    AcquisitionMode,
    AcquisitionState,
    AcquisitionStatus,
    TargetAcquisitionController,
    process_name_for,
)
from winqa.engine.errors import AcquisitionError
from winqa.engine.protocols import DesktopWindow
from winqa.engine.window_search import SearchPhase

CALC = r"C:\Windows\System32\calc.exe"
ACME = r"C:\Program Files\Acme\acme.exe"


def win(title: str, pid: int, cls: str = "Window", offscreen: bool = False, handle: int | None = None):
    return DesktopWindow(
        title=title,
        process_id=pid,
        class_name=cls,
        is_offscreen=offscreen,
        native_handle=handle,
    )


# ---------------------------------------------------------------------------
# 1. Helpers
# ---------------------------------------------------------------------------

class TestProcessName:
    @pytest.mark.parametrize(
        "path, expected",
        [
            (CALC, "calc"),
            (ACME, "acme"),
            ("/opt/tools/acme.bin", "acme"),
            ("notepad", "notepad"),
        ],
    )
    def test_stem_of_executable(self, path, expected):
        assert process_name_for(path) == expected


class TestAcquisitionState:
    def test_record_candidate_dedups_and_skips_invisible(self):
        state = AcquisitionState()
        state.record_candidate(win("Photos", 2))
        state.record_candidate(win("Photos", 2))
        state.record_candidate(win("", 3))
        state.record_candidate(win("Hidden", 4, offscreen=True))
        assert state.candidate_windows == ["Photos (PID: 2, Class: Window)"]


# ---------------------------------------------------------------------------
# 2. Attach or launch
# ---------------------------------------------------------------------------

class TestAttachOrLaunch:
    """A running process is attached to; otherwise the executable is launched."""

    def test_launches_when_nothing_running(self, clock, desktop):
        desktop.add_window(win("Acme", 4242))
        controller = TargetAcquisitionController(desktop, clock=clock)

        controller.acquire(ACME)

        assert desktop.launched == [ACME]
        assert desktop.attached == []
        assert controller.last_state.mode is AcquisitionMode.LAUNCHED
        assert clock.sleeps[0] == 1500

    def test_attaches_to_running_process(self, clock, desktop):
        desktop.running = {"calc": 77}
        desktop.main_windows[77] = (0, win("Calculator", 77, handle=0x1234))
        controller = TargetAcquisitionController(desktop, clock=clock)

        window = controller.acquire(CALC)

        assert desktop.attached == [77]
        assert desktop.launched == []
        assert window.title == "Calculator"
        assert controller.process_id == 77
        assert controller.last_state.mode is AcquisitionMode.ATTACHED
        assert clock.sleeps == [500, 500]

    def test_failed_attach_falls_back_to_launch(self, clock, desktop):
        desktop.running = {"acme": 77}
        desktop.attach_error = RuntimeError("access denied")
        desktop.add_window(win("Acme", 4242))
        controller = TargetAcquisitionController(desktop, clock=clock)

        controller.acquire(ACME)

        assert desktop.launched == [ACME]
        assert controller.process_id == 4242
        assert controller.last_state.mode is AcquisitionMode.LAUNCHED

    def test_launch_failure_propagates(self, clock, desktop):
        desktop.launch_error = FileNotFoundError("acme.exe")
        controller = TargetAcquisitionController(desktop, clock=clock)

        with pytest.raises(FileNotFoundError):
            controller.acquire(ACME)

        assert controller.last_state.status is AcquisitionStatus.FAILED
        assert controller.main_window is None


# ---------------------------------------------------------------------------
# 3. Strict phase
# ---------------------------------------------------------------------------

class TestStrictSearch:
    """During the first five seconds only the acquired pid's windows qualify."""

    def test_owned_window_found_on_first_cycle(self, clock, desktop):
        target = desktop.add_window(win("Acme", 4242))
        desktop.add_window(win("Other", 9))
        controller = TargetAcquisitionController(desktop, clock=clock)

        window = controller.acquire(ACME)

        assert window is target
        assert controller.main_window is target
        assert controller.last_state.status is AcquisitionStatus.ACQUIRED
        assert controller.last_state.search_phase is SearchPhase.STRICT
        # launch settle, then foreground settle
        assert clock.sleeps == [1500, 500]

    def test_window_appearing_later_is_found_on_next_cycle(self, clock, desktop):
        target = desktop.add_window(win("Acme", 4242), at_ms=2700)
        controller = TargetAcquisitionController(desktop, clock=clock)

        assert controller.acquire(ACME) is target
        assert clock.sleeps == [1500, 500, 500, 500, 500]

    def test_process_main_window_is_preferred(self, clock, desktop):
        main = win("Acme Main", 4242)
        desktop.main_windows[4242] = (0, main)
        desktop.add_window(win("Acme Toolbox", 4242))
        controller = TargetAcquisitionController(desktop, clock=clock)

        assert controller.acquire(ACME) is main
        assert desktop.enumerations == 0

    def test_offscreen_main_window_is_ignored(self, clock, desktop):
        desktop.main_windows[4242] = (0, win("Acme Hidden", 4242, offscreen=True))
        visible = desktop.add_window(win("Acme", 4242))
        controller = TargetAcquisitionController(desktop, clock=clock)

        assert controller.acquire(ACME) is visible

    def test_main_window_lookup_error_falls_through_to_enumeration(self, clock, desktop):
        desktop.main_window = MagicMock(side_effect=RuntimeError("no top window"))
        visible = desktop.add_window(win("Acme", 4242))
        controller = TargetAcquisitionController(desktop, clock=clock)

        assert controller.acquire(ACME) is visible

    def test_foreign_window_not_accepted_while_strict(self, clock, desktop):
        desktop.add_window(win("Acme", 9999))
        controller = TargetAcquisitionController(desktop, clock=clock)

        with pytest.raises(AcquisitionError):
            controller.acquire(ACME, timeout_ms=4500)


# ---------------------------------------------------------------------------
# 4. Relaxed phase
# ---------------------------------------------------------------------------

class TestRelaxedSearch:
    """After five seconds the window may belong to another process."""

    def test_calculator_hosted_by_other_process(self, clock, desktop, caplog):
        desktop.launch_pid = 100
        desktop.add_window(win("Program Manager", 5, cls="Progman"))
        calculator = desktop.add_window(win("Calculadora", 200, cls="ApplicationFrameWindow"))
        controller = TargetAcquisitionController(desktop, clock=clock)

        with caplog.at_level(logging.INFO, logger="winqa.engine.acquisition"):
            window = controller.acquire(CALC)

        assert window is calculator
        assert controller.process_id == 100
        assert controller.last_state.search_phase is SearchPhase.RELAXED
        # launch settle + 10 strict cycles + foreground settle
        assert clock.now == 1500 + 5000 + 500
        switches = [r for r in caplog.records if "relaxed window search" in r.getMessage()]
        assert len(switches) == 1
        assert any("Mode: Relaxed" in r.getMessage() for r in caplog.records)

    def test_title_match_appearing_at_six_seconds(self, clock, desktop):
        desktop.launch_pid = 100
        desktop.add_window(win("Program Manager", 5, cls="Progman"))
        calculator = desktop.add_window(win("Calculator", 200), at_ms=1500 + 6000)
        controller = TargetAcquisitionController(desktop, clock=clock)

        assert controller.acquire(CALC) is calculator
        assert controller.last_state.search_phase is SearchPhase.RELAXED
        assert clock.now == 1500 + 6000 + 500

    def test_denylisted_window_never_chosen(self, clock, desktop):
        desktop.launch_pid = 100
        desktop.add_window(win("Taskbar", 1, cls="Shell_TrayWnd"))
        acme = desktop.add_window(win("Acme", 300), at_ms=7000)
        controller = TargetAcquisitionController(desktop, clock=clock)

        assert controller.acquire(ACME) is acme

    def test_custom_strict_phase(self, clock, desktop):
        desktop.launch_pid = 100
        other = desktop.add_window(win("Acme", 300))
        controller = TargetAcquisitionController(desktop, clock=clock, strict_phase_ms=0)

        assert controller.acquire(ACME) is other
        assert clock.sleeps == [1500, 500]


# ---------------------------------------------------------------------------
# 5. Failure diagnostics
# ---------------------------------------------------------------------------

class TestAcquisitionFailure:
    """Timeout raises AcquisitionError with elapsed time, pid and candidates."""

    def test_timeout_reports_candidates(self, clock, desktop):
        desktop.launch_pid = 100
        desktop.add_window(win("Taskbar", 1, cls="Shell_TrayWnd"))
        desktop.add_window(win("Photos", 2))
        desktop.add_window(win("", 3))
        controller = TargetAcquisitionController(desktop, clock=clock)

        with pytest.raises(AcquisitionError) as exc_info:
            controller.acquire(CALC, timeout_ms=10000)

        err = exc_info.value
        assert err.elapsed_ms == 10000
        assert err.process_id == 100
        assert err.candidates == [
            "Taskbar (PID: 1, Class: Shell_TrayWnd)",
            "Photos (PID: 2, Class: Window)",
        ]
        assert "Could not get the main window after 10000ms (PID: 100)" in str(err)
        assert "Windows found: 2" in str(err)
        assert controller.last_state.status is AcquisitionStatus.FAILED
        assert controller.main_window is None

    def test_candidate_report_is_capped_at_ten(self, clock, desktop):
        for idx in range(12):
            desktop.add_window(win(f"Document {idx}", 500 + idx))
        controller = TargetAcquisitionController(desktop, clock=clock)

        with pytest.raises(AcquisitionError) as exc_info:
            controller.acquire(CALC, timeout_ms=1000)

        assert len(exc_info.value.candidates) == 10
        assert "Windows found: 12" in str(exc_info.value)
        assert len(controller.last_state.candidate_windows) == 12

    def test_zero_timeout_searches_once(self, clock, desktop):
        controller = TargetAcquisitionController(desktop, clock=clock)

        with pytest.raises(AcquisitionError) as exc_info:
            controller.acquire(ACME, timeout_ms=0)

        assert exc_info.value.elapsed_ms == 0
        assert desktop.enumerations == 1

    def test_default_timeout_comes_from_config(self, clock, desktop):
        config = WinQAConfig(acquire_timeout=3000)
        controller = TargetAcquisitionController.from_config(config, desktop, clock=clock)

        with pytest.raises(AcquisitionError) as exc_info:
            controller.acquire(ACME)

        assert exc_info.value.elapsed_ms == 3000


# ---------------------------------------------------------------------------
# 6. Foreground and teardown
# ---------------------------------------------------------------------------

class TestEnsureForeground:
    """Foregrounding is best-effort and never raises."""

    def _acquired(self, clock, desktop, handle=0xBEEF):
        desktop.add_window(win("Acme", 4242, handle=handle))
        controller = TargetAcquisitionController(desktop, clock=clock)
        controller.acquire(ACME)
        desktop.foregrounded.clear()
        desktop.focused.clear()
        return controller

    def test_native_foreground_then_focus(self, clock, desktop):
        controller = self._acquired(clock, desktop)
        controller.ensure_foreground()
        assert desktop.foregrounded == [0xBEEF]
        assert len(desktop.focused) == 1

    def test_without_native_handle_only_focus(self, clock, desktop):
        controller = self._acquired(clock, desktop, handle=None)
        controller.ensure_foreground()
        assert desktop.foregrounded == []
        assert len(desktop.focused) == 1

    def test_native_failure_still_focuses(self, clock, desktop):
        controller = self._acquired(clock, desktop)
        desktop.foreground_error = OSError("access denied")
        controller.ensure_foreground()
        assert len(desktop.focused) == 1

    def test_focus_failure_is_swallowed(self, clock, desktop, caplog):
        controller = self._acquired(clock, desktop)
        desktop.focus_error = RuntimeError("element gone")
        with caplog.at_level(logging.WARNING, logger="winqa.engine.acquisition"):
            controller.ensure_foreground()
        assert "continuing anyway" in caplog.text

    def test_nothing_acquired_is_a_no_op(self, clock, desktop):
        TargetAcquisitionController(desktop, clock=clock).ensure_foreground()
        assert desktop.focused == []
        assert clock.sleeps == []


class TestClose:
    def test_close_kills_acquired_process_and_resets(self, clock, desktop):
        desktop.add_window(win("Acme", 4242))
        controller = TargetAcquisitionController(desktop, clock=clock)
        controller.acquire(ACME)

        controller.close()

        assert desktop.closed == [4242]
        assert controller.main_window is None
        assert controller.process_id is None
        assert controller.last_state.status is AcquisitionStatus.IDLE

    def test_close_error_is_logged_not_raised(self, clock, desktop):
        desktop.add_window(win("Acme", 4242))
        desktop.close_error = RuntimeError("already exited")
        controller = TargetAcquisitionController(desktop, clock=clock)
        controller.acquire(ACME)

        controller.close()

        assert controller.process_id is None

    def test_close_before_acquire_does_nothing(self, clock, desktop):
        TargetAcquisitionController(desktop, clock=clock).close()
        assert desktop.closed == []

    def test_failed_search_still_closes_launched_process(self, clock, desktop):
        desktop.add_window(win("Photos", 9))
        controller = TargetAcquisitionController(desktop, clock=clock)

        with pytest.raises(AcquisitionError):
            controller.acquire(ACME, timeout_ms=1000)
        assert controller.process_id == 4242
        assert controller.main_window is None

        controller.close()

        assert desktop.launched == [ACME]
        assert desktop.closed == [4242]
        assert controller.process_id is None

    def test_launch_failure_leaves_nothing_to_close(self, clock, desktop):
        desktop.launch_error = OSError("file not found")
        controller = TargetAcquisitionController(desktop, clock=clock)

        with pytest.raises(OSError):
            controller.acquire(ACME)
        controller.close()

        assert desktop.closed == []
