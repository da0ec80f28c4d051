"""Logging setup for the command line.

Library modules only create loggers; the CLI decides once per
invocation where records go and which level is shown.
"""

import logging
import sys

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False, quiet: bool = False, explain: bool = False) -> None:
    """Route log records to stderr at the level the global options ask for.

    Args:
        verbose: Show debug records.
        quiet: Show errors only.
        explain: Show the per-item reasoning modules log at INFO.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    elif explain:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
