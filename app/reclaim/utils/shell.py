"""Subprocess helpers for querying system tools.

reclaim only ever runs read-only queries (``brew list``, ``brew --prefix``,
``launchctl list``); output is captured and never shown to the user.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of a finished command.

    Attributes:
        stdout: Decoded standard output.
        stderr: Decoded standard error.
        returncode: Process exit status.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def lines(self) -> list[str]:
        """Return the non-empty, stripped lines of stdout."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
) -> CommandResult:
    """Run a command to completion and capture its output as text.

    Args:
        args: Executable followed by its arguments. No shell is involved.
        check: Raise when the command exits non-zero.
        timeout: Seconds to wait before giving up. None waits forever.
        cwd: Working directory. Defaults to the current one.

    Returns:
        CommandResult of the finished process.

    Raises:
        subprocess.CalledProcessError: If check is set and the exit status is non-zero.
        subprocess.TimeoutExpired: If the command outlives the timeout.
        FileNotFoundError: If the executable does not exist.
    """
    logger.debug("Running %s", " ".join(args))
    completed = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=check,
        timeout=timeout,
        cwd=cwd,
    )
    if completed.returncode != 0:
        logger.debug("%s exited with %d: %s", args[0], completed.returncode, completed.stderr)
    return CommandResult(
        stdout=completed.stdout,
        stderr=completed.stderr,
        returncode=completed.returncode,
    )


def command_exists(name: str) -> bool:
    """Tell whether an executable named ``name`` is on PATH."""
    return shutil.which(name) is not None
