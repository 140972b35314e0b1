"""winqa config -- View winqa configuration.

Subcommands: show.
"""

from __future__ import annotations

import os
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from winqa.config import CONFIG_FILENAME, WinQAConfig, WinQAConfigError, find_project_dir

console = Console()

config_app = typer.Typer(
    name="config",
    help="View winqa configuration.",
    no_args_is_help=True,
)

_ENV_KEYS = {
    "App Path": "WINQA_APP_PATH",
    "Backend": "WINQA_BACKEND",
    "Default Timeout": "WINQA_DEFAULT_TIMEOUT",
    "Adaptive Timeouts": "WINQA_ADAPTIVE_TIMEOUTS",
    "Acquire Timeout": "WINQA_ACQUIRE_TIMEOUT",
}


def _source(label: str) -> str:
    env_key = _ENV_KEYS.get(label)
    if env_key and os.environ.get(env_key):
        return f"env: {env_key}"
    return "config"


@config_app.command(name="show")
def config_show(
    dir: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Path to .winqa/ directory.",
    ),
) -> None:
    """Show the resolved configuration (config.yaml + WINQA_* env + defaults)."""
    project_dir = dir or find_project_dir()
    config_path = project_dir / CONFIG_FILENAME

    try:
        config = WinQAConfig.load(project_dir)
    except WinQAConfigError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Config Error[/red]", border_style="red"))
        raise typer.Exit(code=2)

    bounds = config.timeout_bounds
    bounds_note = "" if bounds.is_ordered else " [yellow](min <= initial <= max violated)[/yellow]"

    table = Table(title="winqa Configuration", border_style="cyan")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_column("Source", style="dim")

    table.add_row("Project Dir", str(project_dir), "resolved")
    table.add_row("Config File", str(config_path), "exists" if config_path.is_file() else "missing")
    table.add_row("App Path", config.app_path or "[red]NOT SET[/red]", _source("App Path"))
    table.add_row("Backend", config.backend, _source("Backend"))
    table.add_row("Evidence Dir", str(config.evidence_dir), "config")
    table.add_row("Log File", str(config.log_file or "-"), "config")
    table.add_row("", "", "")
    table.add_row("Default Timeout", f"{config.default_timeout}ms", _source("Default Timeout"))
    table.add_row("Adaptive Timeouts", str(config.adaptive_timeouts), _source("Adaptive Timeouts"))
    table.add_row(
        "Timeout Bounds",
        f"min {bounds.minimum}ms / initial {bounds.initial}ms / max {bounds.maximum}ms{bounds_note}",
        "config",
    )
    table.add_row("Latency Window", str(config.response_time_window), "config")
    table.add_row("Acquire Timeout", f"{config.acquire_timeout}ms", _source("Acquire Timeout"))
    table.add_row("Retries", f"{config.max_retries} x {config.retry_delay}ms", "config")

    console.print()
    console.print(table)
    console.print()
