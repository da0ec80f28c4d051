"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from pathlib import Path
from typing import Annotated

import typer

from reclaim import __version__
from reclaim.cli.commands import config, inventory, restore, scan, sessions
from reclaim.utils.log import configure_logging

app = typer.Typer(
    name="reclaim",
    help="Find and safely relocate clutter left behind on macOS.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"reclaim version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging on stderr.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only show errors.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            envvar="RECLAIM_CONFIG",
            dir_okay=False,
            help="Configuration file to use instead of ~/.config/reclaim/config.toml.",
        ),
    ] = None,
) -> None:
    """reclaim - Find and safely relocate clutter left behind on macOS.

    Attributes caches, logs, leftovers, launch jobs and binaries to the
    software that owns them, and moves confirmed items into a restorable
    backup session. Nothing is ever deleted.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(verbose=verbose, quiet=quiet, config_path=config_path)
    configure_logging(verbose=verbose, quiet=quiet)


app.add_typer(scan.app, name="scan")
app.command(name="restore")(restore.restore)
app.add_typer(sessions.app, name="sessions")
app.add_typer(inventory.app, name="inventory")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
