"""winqa CLI -- Main Typer entry point.

Registers all subcommands and provides --version / --verbose global options.
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console

from winqa import __version__

TAGLINE = "Adaptive waits and resilient window acquisition for desktop acceptance tests."

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print("winqa", style="bold cyan")
        console.print(f"  {TAGLINE}", style="dim")
        console.print(f"  v{__version__}\n", style="bold")
        raise typer.Exit()


app = typer.Typer(
    name="winqa",
    help=TAGLINE,
    rich_markup_mode="rich",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show winqa version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
) -> None:
    """winqa -- drive a desktop application for acceptance tests.

    Launch or attach, find the main window, wait adaptively, retry only what is transient.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(name)s  %(message)s")


# ── Register subcommands ──────────────────────────────────────────────────

from winqa.cli.acquire import acquire, windows  # noqa: E402
from winqa.cli.config_cmd import config_app  # noqa: E402
from winqa.cli.init_cmd import init  # noqa: E402

app.command(name="init", help="Initialize a .winqa/ project directory.")(init)
app.command(name="acquire", help="Launch or attach to the app and find its main window.")(acquire)
app.command(name="windows", help="List visible top-level windows as window search sees them.")(windows)
app.add_typer(config_app, name="config", help="View winqa configuration.")
