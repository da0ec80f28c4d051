"""Configuration commands.

Provides commands to show the effective configuration, write a starter
configuration file and print its location.
"""

import json
from typing import Annotated

import typer

from reclaim.cli.types import OutputFormat, config_path_from, require_settings
from reclaim.core.config import ConfigError, Settings, save_config
from reclaim.inspection import default_modules
from reclaim.utils.formatting import console, create_table, print_error, print_success
from reclaim.utils.sizes import MB, format_size

app = typer.Typer(
    help="Show and initialize the reclaim configuration.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def show(
    ctx: typer.Context,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Show the effective configuration, defaults included."""
    settings = require_settings(ctx)

    if output_format == OutputFormat.JSON:
        data = settings.model_dump(mode="json")
        data["backup_root"] = str(settings.resolved_backup_root())
        console.print_json(json.dumps(data))
        return

    table = create_table(f"Configuration ({config_path_from(ctx)})")
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("backup_root", str(settings.resolved_backup_root()))
    for module in default_modules():
        threshold = settings.threshold_bytes(module.name, module.default_threshold)
        table.add_row(f"threshold.{module.name}", format_size(threshold))
    table.add_row("protected_identifiers", ", ".join(settings.protected_identifiers) or "-")
    table.add_row("leftovers_allowlist", ", ".join(settings.leftovers_allowlist) or "-")
    table.add_row("disk_top_n", str(settings.disk_top_n))

    console.print(table)


@app.command()
def init(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing configuration file."),
    ] = False,
) -> None:
    """Write a configuration file with the default module thresholds."""
    config_path = config_path_from(ctx)
    if config_path.exists() and not force:
        print_error(f"Config already exists: {config_path} (use --force to overwrite)")
        raise typer.Exit(code=1)

    settings = Settings(
        thresholds_mb={
            module.name: module.default_threshold / MB  # type: ignore[misc]
            for module in default_modules()
        },
    )
    try:
        saved = save_config(settings, config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config created: {saved}")


@app.command()
def path(ctx: typer.Context) -> None:
    """Print the configuration file location."""
    typer.echo(str(config_path_from(ctx)))
