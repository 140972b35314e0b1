"""Shared fixtures for winqa unit tests."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from winqa.engine.protocols import DesktopWindow


# ---------------------------------------------------------------------------
# Fake clock: sleeping advances time, nothing blocks
# ---------------------------------------------------------------------------

class FakeClock:
    """Millisecond clock whose sleep only moves the hands."""

    def __init__(self, start_ms: float = 0) -> None:
        self.now = start_ms
        self.sleeps: list[float] = []

    def now_ms(self) -> float:
        return self.now

    def sleep_ms(self, ms: float) -> None:
        self.sleeps.append(ms)
        self.now += ms


# ---------------------------------------------------------------------------
# Fake desktop: windows appear on a schedule of clock times
# ---------------------------------------------------------------------------

class FakeDesktop:
    """DesktopBackend double driven by the FakeClock.

    ``schedule`` holds ``(appears_at_ms, DesktopWindow)`` pairs; a window is
    enumerated once the clock has reached its time.  ``main_windows`` maps a
    pid to the window its process reports as main (same timing rule).
    """

    def __init__(self, clock: FakeClock, launch_pid: int = 4242) -> None:
        self.clock = clock
        self.launch_pid = launch_pid
        self.running: dict[str, int] = {}
        self.schedule: list[tuple[float, DesktopWindow]] = []
        self.main_windows: dict[int, tuple[float, DesktopWindow]] = {}

        self.attached: list[int] = []
        self.launched: list[str] = []
        self.closed: list[int] = []
        self.foregrounded: list[int] = []
        self.focused: list[DesktopWindow] = []
        self.captured: list[Path] = []
        self.enumerations = 0

        self.attach_error: Exception | None = None
        self.launch_error: Exception | None = None
        self.foreground_error: Exception | None = None
        self.focus_error: Exception | None = None
        self.close_error: Exception | None = None
        self.capture_error: Exception | None = None

    def add_window(self, window: DesktopWindow, at_ms: float = 0) -> DesktopWindow:
        self.schedule.append((at_ms, window))
        return window

    # -- DesktopBackend ------------------------------------------------------

    def find_running_process(self, process_name: str) -> int | None:
        return self.running.get(process_name.lower())

    def attach(self, process_id: int) -> None:
        if self.attach_error is not None:
            raise self.attach_error
        self.attached.append(process_id)

    def launch(self, executable_path: str) -> int:
        if self.launch_error is not None:
            raise self.launch_error
        self.launched.append(executable_path)
        return self.launch_pid

    def main_window(self, process_id: int) -> DesktopWindow | None:
        entry = self.main_windows.get(process_id)
        if entry is None or self.clock.now_ms() < entry[0]:
            return None
        return entry[1]

    def top_level_windows(self) -> list[DesktopWindow]:
        self.enumerations += 1
        now = self.clock.now_ms()
        return [window for at_ms, window in self.schedule if now >= at_ms]

    def set_foreground(self, native_handle: int) -> bool:
        if self.foreground_error is not None:
            raise self.foreground_error
        self.foregrounded.append(native_handle)
        return True

    def focus(self, window: DesktopWindow) -> None:
        if self.focus_error is not None:
            raise self.focus_error
        self.focused.append(window)

    def close(self, process_id: int) -> None:
        self.closed.append(process_id)
        if self.close_error is not None:
            raise self.close_error

    def capture(self, window: DesktopWindow, path: Path) -> bool:
        if self.capture_error is not None:
            raise self.capture_error
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x89PNG fake")
        self.captured.append(path)
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def desktop(clock: FakeClock) -> FakeDesktop:
    return FakeDesktop(clock)


# ---------------------------------------------------------------------------
# Fixture: temporary project directory with .winqa/ structure
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Create a temporary .winqa/ project directory with a minimal config."""
    winqa_dir = tmp_path / ".winqa"
    for sub in ("evidence", "logs"):
        (winqa_dir / sub).mkdir(parents=True)

    config_data = {
        "app_path": r"C:\Windows\System32\calc.exe",
        "backend": "uia",
        "timeouts": {"adaptive": True, "initial": 5000, "min": 2000, "max": 30000},
        "acquisition": {"timeout": 10000},
    }
    (winqa_dir / "config.yaml").write_text(
        yaml.dump(config_data, default_flow_style=False), encoding="utf-8"
    )

    return winqa_dir


# ---------------------------------------------------------------------------
# Fixture: sample config YAML string
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_config_yaml() -> str:
    """Return a valid winqa config.yaml as a string."""
    return """\
app_path: 'C:\\Program Files\\Acme\\acme.exe'
backend: win32
default_timeout: 4000
evidence_dir: shots
log_file: logs/run.log
reset_latency_per_test: true
timeouts:
  adaptive: true
  initial: 6000
  min: 1500
  max: 20000
  response_time_window: 20
acquisition:
  timeout: 15000
retry:
  max_retries: 2
  delay: 250
"""
