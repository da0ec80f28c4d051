"""Console output for the CLI.

Results go to stdout through ``console``; warnings and errors go to
stderr through ``err_console`` so JSON output stays machine-readable.
"""

import sys

from rich.console import Console
from rich.table import Table

from reclaim.core.theme import get_theme


def _make_console(*, stderr: bool) -> Console:
    """Build a themed console, forcing truecolor on a real terminal."""
    stream = sys.stderr if stderr else sys.stdout
    color_system = "truecolor" if stream.isatty() else None
    return Console(theme=get_theme(), stderr=stderr, color_system=color_system)


console = _make_console(stderr=False)
err_console = _make_console(stderr=True)


def create_table(title: str) -> Table:
    """Create an empty table in the shared zebra style.

    Args:
        title: Table title.

    Returns:
        Rich Table; callers add their own columns.
    """
    return Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )


def print_info(message: str) -> None:
    console.print(f"[info]{message}[/]")


def print_success(message: str) -> None:
    console.print(f"[success]{message}[/]")


def print_warning(message: str) -> None:
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    err_console.print(f"[error]Error:[/] {message}")
