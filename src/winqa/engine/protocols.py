"""Seams between the synchronization engine and its environment.

The engine never calls ``time`` or the operating system directly.  It reads
time through a :class:`Clock` and reaches processes and windows through a
:class:`DesktopBackend`, so every wait and every search can be driven by
fakes in unit tests.
"""

from __future__ import annotations

import dataclasses
import time
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@dataclasses.dataclass
class DesktopWindow:
    """Snapshot of one top-level window as seen by a backend."""

    title: str
    process_id: int
    class_name: str = ""
    is_offscreen: bool = False
    native_handle: int | None = None
    # Backend object (pywinauto wrapper) -- not serialised
    _ref: Any = dataclasses.field(default=None, repr=False, compare=False)

    @property
    def is_searchable(self) -> bool:
        """Visible and titled: the only windows window search considers."""
        return bool(self.title) and not self.is_offscreen

    def describe(self) -> str:
        return f"{self.title} (PID: {self.process_id}, Class: {self.class_name})"


@runtime_checkable
class Clock(Protocol):
    """Millisecond clock with a blocking sleep."""

    def now_ms(self) -> float: ...

    def sleep_ms(self, ms: float) -> None: ...


class SystemClock:
    """Clock backed by ``time.monotonic`` and ``time.sleep``."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def sleep_ms(self, ms: float) -> None:
        if ms > 0:
            time.sleep(ms / 1000.0)


@runtime_checkable
class DesktopBackend(Protocol):
    """Process and window facilities of the operating system.

    PywinautoBackend maps these to pywinauto / psutil / pywin32.
    """

    def find_running_process(self, process_name: str) -> int | None: ...

    def attach(self, process_id: int) -> None: ...

    def launch(self, executable_path: str) -> int: ...

    def main_window(self, process_id: int) -> DesktopWindow | None: ...

    def top_level_windows(self) -> list[DesktopWindow]: ...

    def set_foreground(self, native_handle: int) -> bool: ...

    def focus(self, window: DesktopWindow) -> None: ...

    def close(self, process_id: int) -> None: ...

    def capture(self, window: DesktopWindow, path: Path) -> bool: ...
