"""Element interaction helpers for page objects.

Works on pywinauto wrappers from either accessibility layer (``"uia"`` or
the legacy ``"win32"``/MSAA layer): anything exposing ``children()``,
``window_text()``, ``is_enabled()`` and ``is_visible()``.

Every wait goes through the adaptive ConditionPoller, so successful waits
feed the ResponseTimeTracker, and timeouts are sized by the tracker when
adaptive timeouts are enabled.  Failures are raised as tagged
AutomationErrors so RetryPolicy can tell transient ones apart.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Sequence

from winqa.engine.errors import AutomationError, FailureKind
from winqa.engine.poller import ConditionPoller
from winqa.engine.protocols import DesktopWindow
from winqa.models import DEFAULT_TIMEOUT_MS

logger = logging.getLogger("winqa.engine.element")

PATH_SEPARATOR = ">"

# ---------------------------------------------------------------------------
# Conditional platform imports
# ---------------------------------------------------------------------------
_HAS_PYWINAUTO = False

try:
    from pywinauto.base_wrapper import ElementNotEnabled, ElementNotVisible  # type: ignore[import-untyped]
    from pywinauto.findwindows import ElementNotFoundError  # type: ignore[import-untyped]
    from pywinauto.timings import TimeoutError as PywinautoTimeoutError  # type: ignore[import-untyped]

    _HAS_PYWINAUTO = True
except ImportError:
    pass

# pywinauto failures that mean "not interactable right now", by tag.
# pywinauto's TimeoutError derives from RuntimeError, not the builtin.
PLATFORM_FAILURE_KINDS: list[tuple[type[BaseException], FailureKind]] = []
if _HAS_PYWINAUTO:
    PLATFORM_FAILURE_KINDS = [
        (ElementNotEnabled, FailureKind.NOT_ENABLED),
        (ElementNotVisible, FailureKind.NOT_CLICKABLE),
        (ElementNotFoundError, FailureKind.UNAVAILABLE),
        (PywinautoTimeoutError, FailureKind.TIMEOUT),
    ]


def tag_platform_failure(exc: BaseException) -> AutomationError | None:
    """Tagged AutomationError for a known pywinauto failure, else None."""
    for exc_type, kind in PLATFORM_FAILURE_KINDS:
        if isinstance(exc, exc_type):
            return AutomationError(kind, f"{type(exc).__name__}: {exc}")
    return None


def effective_timeout(poller: ConditionPoller, base_timeout_ms: int) -> int:
    """*base_timeout_ms*, or the tracker's adaptive timeout when enabled."""
    if poller.tracker is None:
        return base_timeout_ms
    return poller.tracker.resolve_timeout(base_timeout_ms)


# ---------------------------------------------------------------------------
# Name paths
# ---------------------------------------------------------------------------

def parse_name_path(raw_path: str) -> list[str]:
    """``"Main > Toolbar > Save"`` -> ``["Main", "Toolbar", "Save"]``.

    Raises ValueError for a path with no names.
    """
    parts = [part.strip() for part in raw_path.split(PATH_SEPARATOR)]
    parts = [part for part in parts if part]
    if not parts:
        raise ValueError(f"Invalid element name path: {raw_path!r}")
    return parts


def _safe_text(node: Any) -> str:
    try:
        return node.window_text() or ""
    except Exception:
        return ""


def _child_by_name(node: Any, name: str) -> Any | None:
    wanted = name.lower()
    for child in node.children():
        text = _safe_text(child)
        if text and text.lower() == wanted:
            return child
    return None


def find_by_name_path(root: Any, name_path: Sequence[str]) -> Any:
    """Walk *name_path* down from *root*, matching child names case-insensitively.

    Raises AutomationError(UNAVAILABLE) when a name is missing.
    """
    current = root
    for name in name_path:
        child = _child_by_name(current, name)
        if child is None:
            path = f" {PATH_SEPARATOR} ".join(name_path)
            raise AutomationError(
                FailureKind.UNAVAILABLE,
                f"No element named '{name}' while resolving path '{path}'",
            )
        current = child
    return current


def exists_by_name_path(root: Any, name_path: Sequence[str]) -> bool:
    try:
        find_by_name_path(root, name_path)
        return True
    except AutomationError:
        return False


def match_name_pattern(name: str, pattern: str) -> bool:
    """Case-insensitive match with a leading and/or trailing ``*`` wildcard."""
    name_lower = name.lower()
    core = pattern.replace("*", "").lower()
    if pattern.startswith("*") and pattern.endswith("*") and len(pattern) > 1:
        return core in name_lower
    if pattern.startswith("*"):
        return name_lower.endswith(core)
    if pattern.endswith("*"):
        return name_lower.startswith(core)
    return name_lower == pattern.lower()


def find_children_by_pattern(root: Any, parent_path: Sequence[str], pattern: str) -> Iterator[Any]:
    """Children of the element at *parent_path* whose names match *pattern*."""
    parent = find_by_name_path(root, parent_path)
    for child in parent.children():
        text = _safe_text(child)
        if text and match_name_pattern(text, pattern):
            yield child


# ---------------------------------------------------------------------------
# Waits
# ---------------------------------------------------------------------------

def wait_for_element(
    poller: ConditionPoller,
    root: Any,
    name_path: Sequence[str],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> Any | None:
    """Element at *name_path* once it exists, or None on timeout."""
    path = f" {PATH_SEPARATOR} ".join(name_path)
    found: list[Any] = []

    def _lookup() -> bool:
        found[:] = [find_by_name_path(root, name_path)]
        return True

    if poller.poll_until_adaptive(_lookup, effective_timeout(poller, timeout_ms), f"element '{path}'"):
        logger.info("Element found: %s", path)
        return found[0]
    logger.warning("Element not found: %s", path)
    return None


def wait_for_disappear(
    poller: ConditionPoller,
    root: Any,
    name_path: Sequence[str],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> bool:
    path = f" {PATH_SEPARATOR} ".join(name_path)
    return poller.poll_until_adaptive(
        lambda: not exists_by_name_path(root, name_path),
        effective_timeout(poller, timeout_ms),
        f"element '{path}' to disappear",
    )


def wait_for_window_title(
    poller: ConditionPoller,
    window: DesktopWindow,
    title: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> bool:
    """True once *window*'s live title contains *title* (case-insensitive)."""
    wanted = title.lower()

    def _title() -> str:
        if window._ref is not None:
            return window._ref.window_text() or ""
        return window.title

    return poller.poll_until_adaptive(
        lambda: wanted in _title().lower(),
        effective_timeout(poller, timeout_ms),
        f"window '{title}'",
    )


# ---------------------------------------------------------------------------
# ElementWrapper
# ---------------------------------------------------------------------------

class ElementWrapper:
    """Click / type / read an element with implicit waits and logging."""

    def __init__(
        self,
        element: Any,
        poller: ConditionPoller,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        if element is None:
            raise ValueError("element must not be None")
        self._element = element
        self._poller = poller
        self._default_timeout_ms = default_timeout_ms

    @property
    def element(self) -> Any:
        return self._element

    @property
    def name(self) -> str:
        return _safe_text(self._element)

    def _timeout(self, timeout_ms: int | None = None) -> int:
        base = self._default_timeout_ms if timeout_ms is None else timeout_ms
        return effective_timeout(self._poller, base)

    def click(self) -> None:
        """Wait until enabled and on-screen, then click.

        Raises AutomationError(NOT_CLICKABLE) if that never happens.  Known
        pywinauto interaction failures are re-raised tagged as well.
        """
        name = self.name
        logger.info("Click on element: %s", name)
        try:
            timeout = self._timeout()
            if not self._poller.poll_until_adaptive(
                lambda: self._element.is_enabled() and self._element.is_visible(),
                timeout,
                f"element '{name}' clickable",
            ):
                raise AutomationError(
                    FailureKind.NOT_CLICKABLE,
                    f"Element not clickable after {timeout}ms: {name}",
                )
            self._element.click_input()
            logger.debug("Click succeeded on: %s", name)
        except Exception as exc:
            logger.error("Error clicking element: %s", name, exc_info=True)
            tagged = tag_platform_failure(exc)
            if tagged is not None:
                raise tagged from exc
            raise

    def set_text(self, text: str) -> None:
        """Wait until enabled, clear the field and type *text*.

        Raises AutomationError(NOT_ENABLED) if the element stays disabled.
        Known pywinauto interaction failures are re-raised tagged as well.
        """
        name = self.name
        logger.info("Setting text on element: %s - text: '%s'", name, text)
        try:
            timeout = self._timeout()
            if not self._poller.poll_until_adaptive(
                lambda: self._element.is_enabled(),
                timeout,
                f"element '{name}' enabled",
            ):
                raise AutomationError(
                    FailureKind.NOT_ENABLED,
                    f"Element not enabled after {timeout}ms: {name}",
                )
            self._element.set_focus()
            self._element.type_keys("^a{DELETE}")
            if hasattr(self._element, "set_edit_text"):
                self._element.set_edit_text(text)
            else:
                self._element.type_keys(text, with_spaces=True)
            logger.debug("Text set on: %s", name)
        except Exception as exc:
            logger.error("Error setting text on element: %s", name, exc_info=True)
            tagged = tag_platform_failure(exc)
            if tagged is not None:
                raise tagged from exc
            raise

    def get_text(self) -> str:
        """Value pattern text when supported, else the element's name."""
        get_value = getattr(self._element, "get_value", None)
        if callable(get_value):
            value = get_value()
            if value is not None:
                return str(value)
        return _safe_text(self._element)

    def is_enabled(self) -> bool:
        try:
            return bool(self._element.is_enabled())
        except Exception as exc:
            logger.error("Error checking whether element is enabled: %s", exc)
            return False

    def is_visible(self) -> bool:
        try:
            return bool(self._element.is_visible())
        except Exception as exc:
            logger.error("Error checking whether element is visible: %s", exc)
            return False

    def wait_until_exists(self, timeout_ms: int | None = None) -> bool:
        return self._poller.poll_until_adaptive(
            self._is_available,
            self._timeout(timeout_ms),
            f"element '{self.name}' exists",
        )

    def _is_available(self) -> bool:
        exists = getattr(self._element, "exists", None)
        if callable(exists):
            return bool(exists())
        return bool(self._element.is_visible())
