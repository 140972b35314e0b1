"""winqa Desktop Backend -- Windows processes and windows via pywinauto.

Implements the DesktopBackend protocol on top of:

- pywinauto ``Application`` / ``Desktop`` for launch, attach and window
  enumeration, through either accessibility layer (``"uia"`` for UI
  Automation, ``"win32"`` for the legacy MSAA/Win32 layer),
- psutil for finding an already-running process by name,
- pywin32 ``win32gui.SetForegroundWindow`` for native foregrounding.

Platform dependencies are conditionally imported so that winqa (and its
test suite, which drives the engine through fakes) keeps working on systems
without them, e.g. Linux CI or Windows without the ``[windows]`` extra.
"""

from __future__ import annotations

import logging
from pathlib import Path, PureWindowsPath
from typing import Any

from winqa.engine.protocols import DesktopWindow

logger = logging.getLogger("winqa.engine.desktop_backend")

# ---------------------------------------------------------------------------
# Conditional platform imports
# ---------------------------------------------------------------------------
_HAS_PYWINAUTO = False

try:
    import psutil  # type: ignore[import-untyped]
    import win32gui  # type: ignore[import-untyped]
    from pywinauto import Application, Desktop  # type: ignore[import-untyped]

    _HAS_PYWINAUTO = True
except ImportError:
    pass


class PywinautoBackend:
    """Process and window access for the application under test.

    Usage::

        backend = PywinautoBackend(backend="uia")
        controller = TargetAcquisitionController(backend)
    """

    def __init__(self, backend: str = "uia") -> None:
        if not _HAS_PYWINAUTO:
            raise RuntimeError(
                "pywinauto, psutil and pywin32 are required for desktop automation. "
                "Install them with: pip install 'winqa[windows]'"
            )
        self._backend_name = backend
        self._app: Any = None  # pywinauto Application

    @property
    def backend_name(self) -> str:
        return self._backend_name

    # -- Processes -----------------------------------------------------------

    def find_running_process(self, process_name: str) -> int | None:
        """PID of the first live process named *process_name* (extension optional)."""
        wanted = process_name.lower()
        for proc in psutil.process_iter(["pid", "name", "status"]):
            name = proc.info.get("name") or ""
            if PureWindowsPath(name).stem.lower() != wanted:
                continue
            if proc.info.get("status") in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD):
                continue
            return int(proc.info["pid"])
        return None

    def attach(self, process_id: int) -> None:
        self._app = Application(backend=self._backend_name).connect(process=process_id)

    def launch(self, executable_path: str) -> int:
        self._app = Application(backend=self._backend_name).start(f'"{executable_path}"')
        return int(self._app.process)

    def close(self, process_id: int) -> None:
        """Close gracefully, then kill if the process resists."""
        app = self._app
        if app is None or app.process != process_id:
            app = Application(backend=self._backend_name).connect(process=process_id)
        try:
            app.kill(soft=True)
        except Exception as exc:
            logger.warning("Graceful close of pid=%d failed, forcing: %s", process_id, exc)
            app.kill(soft=False)
        self._app = None

    # -- Windows -------------------------------------------------------------

    def main_window(self, process_id: int) -> DesktopWindow | None:
        if self._app is None or self._app.process != process_id:
            self.attach(process_id)
        wrapper = self._app.top_window().wrapper_object()
        return self._to_window(wrapper)

    def top_level_windows(self) -> list[DesktopWindow]:
        windows: list[DesktopWindow] = []
        for wrapper in Desktop(backend=self._backend_name).windows():
            try:
                windows.append(self._to_window(wrapper))
            except Exception as exc:
                logger.debug("Error reading window: %s", exc)
        return windows

    def set_foreground(self, native_handle: int) -> bool:
        win32gui.SetForegroundWindow(native_handle)
        return True

    def focus(self, window: DesktopWindow) -> None:
        if window._ref is not None:
            window._ref.set_focus()

    def capture(self, window: DesktopWindow, path: Path) -> bool:
        """Save a screenshot of *window* to *path*."""
        if window._ref is None:
            return False
        path.parent.mkdir(parents=True, exist_ok=True)
        window._ref.capture_as_image().save(str(path))
        return True

    def element_root(self, window: DesktopWindow, layer: str | None = None) -> Any:
        """Wrapper of *window* in the given accessibility layer.

        ``layer`` defaults to this backend's own; pass ``"win32"`` to reach
        the legacy layer from a ``"uia"`` backend (or vice versa).
        """
        layer = layer or self._backend_name
        if layer == self._backend_name and window._ref is not None:
            return window._ref
        if window.native_handle is None:
            raise ValueError(f"Window '{window.title}' exposes no native handle for layer '{layer}'")
        return Desktop(backend=layer).window(handle=window.native_handle).wrapper_object()

    @staticmethod
    def _to_window(wrapper: Any) -> DesktopWindow:
        handle = getattr(wrapper, "handle", None)
        return DesktopWindow(
            title=wrapper.window_text() or "",
            process_id=int(wrapper.process_id()),
            class_name=wrapper.class_name() or "",
            is_offscreen=not wrapper.is_visible(),
            native_handle=int(handle) if handle else None,
            _ref=wrapper,
        )
