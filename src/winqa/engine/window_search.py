"""Main-window matching strategies for target acquisition.

StrictMatcher accepts only windows owned by the acquired process id.
RelaxedMatcher gives up on the process id (the visible window may belong to
a helper or child process) and matches by title instead: known system and
tooling windows are excluded, known applications must show a known title,
and any other application takes the first remaining window.
"""

from __future__ import annotations

import enum
from typing import Iterable, Mapping, Sequence

from winqa.engine.protocols import DesktopWindow
from winqa.models import STRICT_PHASE_MS

# Title fragments of windows that are never the application under test.
DEFAULT_EXCLUDED_TITLES: tuple[str, ...] = (
    "Barra de tareas",
    "Taskbar",
    "Program Manager",
    "Microsoft Text Input Application",
    "MSCTFIME UI",
    "Cursor",
    "Visual Studio",
    "Visual Studio Code",
)

# Process name -> title fragments its main window is known to carry.
DEFAULT_TITLE_RULES: dict[str, tuple[str, ...]] = {
    "calc": ("Calculadora", "Calculator"),
    "calculator": ("Calculadora", "Calculator"),
    "notepad": ("Notepad", "Bloc de notas"),
}


class SearchPhase(enum.Enum):
    STRICT = "strict"
    RELAXED = "relaxed"


def phase_for(elapsed_ms: float, strict_phase_ms: float = STRICT_PHASE_MS) -> SearchPhase:
    """Strict while *elapsed_ms* is below *strict_phase_ms*, relaxed after."""
    return SearchPhase.STRICT if elapsed_ms < strict_phase_ms else SearchPhase.RELAXED


def _contains_any(title: str, fragments: Iterable[str]) -> bool:
    lowered = title.lower()
    return any(fragment.lower() in lowered for fragment in fragments)


class StrictMatcher:
    """First visible, titled window whose owner is *process_id*."""

    phase = SearchPhase.STRICT

    def __init__(self, process_id: int) -> None:
        self.process_id = process_id

    def match(self, windows: Sequence[DesktopWindow]) -> DesktopWindow | None:
        for window in windows:
            if window.is_searchable and window.process_id == self.process_id:
                return window
        return None


class RelaxedMatcher:
    """Title-based match for applications whose window lives in another process."""

    phase = SearchPhase.RELAXED

    def __init__(
        self,
        process_name: str,
        excluded_titles: Sequence[str] = DEFAULT_EXCLUDED_TITLES,
        title_rules: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self.process_name = process_name
        self.excluded_titles = tuple(excluded_titles)
        rules = DEFAULT_TITLE_RULES if title_rules is None else title_rules
        self.title_rules = {name.lower(): tuple(titles) for name, titles in rules.items()}

    def is_excluded(self, window: DesktopWindow) -> bool:
        return _contains_any(window.title, self.excluded_titles)

    def title_matches(self, window: DesktopWindow) -> bool:
        known_titles = self.title_rules.get(self.process_name.lower())
        if known_titles is None:
            return True
        return _contains_any(window.title, known_titles)

    def match(self, windows: Sequence[DesktopWindow]) -> DesktopWindow | None:
        for window in windows:
            if not window.is_searchable or self.is_excluded(window):
                continue
            if self.title_matches(window):
                return window
        return None
