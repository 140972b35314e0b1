"""winqa init -- Create a .winqa/ project directory with a sample config."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from winqa.config import CONFIG_FILENAME, PROJECT_DIR_NAME

console = Console()

_SAMPLE_CONFIG = """\
# winqa configuration -- all durations in milliseconds
app_path: 'C:\\Windows\\System32\\calc.exe'
backend: uia            # uia (UI Automation) or win32 (legacy MSAA/Win32)
default_timeout: 5000
evidence_dir: evidence
log_file: logs/winqa.log
reset_latency_per_test: false

timeouts:
  adaptive: false
  initial: 5000
  min: 2000
  max: 30000
  response_time_window: 10

acquisition:
  timeout: 10000

retry:
  max_retries: 3
  delay: 1000
"""


def init(
    dir: Path = typer.Option(
        Path("."),
        "--dir",
        "-d",
        help="Directory in which to create .winqa/.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing config.yaml.",
    ),
) -> None:
    """Create .winqa/config.yaml and the evidence/ and logs/ directories."""
    project_dir = dir / PROJECT_DIR_NAME
    config_path = project_dir / CONFIG_FILENAME

    if project_dir.exists() and not force:
        console.print(
            Panel(
                f"[yellow]{project_dir} already exists.[/yellow]\n\nTo overwrite: winqa init --force",
                title="[yellow]Already initialized[/yellow]",
                border_style="yellow",
            )
        )
        raise typer.Exit(code=2)

    for sub in ("evidence", "logs"):
        (project_dir / sub).mkdir(parents=True, exist_ok=True)
    config_path.write_text(_SAMPLE_CONFIG, encoding="utf-8")

    console.print(
        Panel(
            f"Created [bold]{config_path}[/bold]\n\n"
            "Next steps:\n"
            "  1. Set app_path to your application's executable\n"
            "  2. winqa acquire",
            title="[green]winqa initialized[/green]",
            border_style="green",
        )
    )
