"""winqa acquire / windows -- Drive window acquisition from the command line.

``acquire`` launches (or attaches to) the configured application and reports
the main window it found; ``windows`` lists the visible top-level windows the
relaxed search would consider, marking the ones the denylist skips.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from winqa.config import WinQAConfig, WinQAConfigError, find_project_dir
from winqa.engine.acquisition import TargetAcquisitionController, process_name_for
from winqa.engine.errors import AcquisitionError
from winqa.engine.protocols import DesktopBackend
from winqa.engine.window_search import DEFAULT_EXCLUDED_TITLES, RelaxedMatcher

console = Console()


def _load_config(dir: Path | None) -> WinQAConfig:
    try:
        return WinQAConfig.load(dir or find_project_dir())
    except WinQAConfigError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Config Error[/red]", border_style="red"))
        raise typer.Exit(code=2)


def _make_backend(config: WinQAConfig) -> DesktopBackend:
    from winqa.engine.desktop_backend import PywinautoBackend

    try:
        return PywinautoBackend(backend=config.backend)
    except RuntimeError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Backend Unavailable[/red]", border_style="red"))
        raise typer.Exit(code=2)


def _make_controller(config: WinQAConfig, backend: DesktopBackend) -> TargetAcquisitionController:
    return TargetAcquisitionController.from_config(config, backend)


def acquire(
    executable: str | None = typer.Argument(
        None,
        help="Executable to launch or attach to (defaults to app_path).",
    ),
    timeout: int | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Acquisition timeout in ms (defaults to acquisition.timeout).",
    ),
    dir: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Path to .winqa/ directory.",
    ),
) -> None:
    """Launch or attach to the application and print its main window."""
    config = _load_config(dir)
    target = executable or config.app_path
    if not target:
        console.print(
            Panel(
                "[red]No executable given and app_path is not configured.[/red]\n\n"
                "To fix: winqa acquire <path-to-exe>  or set app_path in .winqa/config.yaml",
                title="[red]Config Error[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=2)

    controller = _make_controller(config, _make_backend(config))
    limit = config.acquire_timeout if timeout is None else timeout

    console.print(f"[bold]Acquiring[/bold] {target} [dim](timeout {limit}ms)[/dim]")
    try:
        window = controller.acquire(target, limit)
    except AcquisitionError as exc:
        body = (
            f"[red]No main window after {exc.elapsed_ms:.0f}ms[/red] (PID: {exc.process_id})\n\n"
            f"Windows seen ({len(exc.candidates)}):\n"
        )
        body += "\n".join(f"  - {info}" for info in exc.candidates) or "  (none)"
        console.print(Panel(body, title="[red]Acquisition Failed[/red]", border_style="red"))
        raise typer.Exit(code=1)

    state = controller.last_state
    table = Table(title="Main Window", border_style="green", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Title", window.title)
    table.add_row("PID", str(window.process_id))
    table.add_row("Class", window.class_name or "-")
    table.add_row("Mode", state.mode.value if state.mode else "-")
    table.add_row("Search", state.search_phase.value)
    console.print(table)


def windows(
    process: str | None = typer.Option(
        None,
        "--process",
        "-p",
        help="Process name (or exe path) used for title rules; defaults to app_path.",
    ),
    dir: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Path to .winqa/ directory.",
    ),
) -> None:
    """List visible top-level windows, marking denylisted and title-matched ones."""
    config = _load_config(dir)
    backend = _make_backend(config)
    process_name = process_name_for(process or config.app_path)
    matcher = RelaxedMatcher(process_name, DEFAULT_EXCLUDED_TITLES)
    has_rule = process_name.lower() in matcher.title_rules

    table = Table(title="Top-level Windows", border_style="cyan")
    table.add_column("Title")
    table.add_column("PID", justify="right")
    table.add_column("Class", style="dim")
    table.add_column("Search", style="bold")

    shown = 0
    for window in backend.top_level_windows():
        if not window.is_searchable:
            continue
        if matcher.is_excluded(window):
            mark = "[red]excluded[/red]"
        elif has_rule and matcher.title_matches(window):
            mark = "[green]title match[/green]"
        else:
            mark = ""
        table.add_row(window.title, str(window.process_id), window.class_name or "-", mark)
        shown += 1

    console.print()
    console.print(table)
    console.print(f"[dim]{shown} visible window(s)[/dim]\n")
