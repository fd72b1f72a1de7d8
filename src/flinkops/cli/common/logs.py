"""Logging setup for the CLI.

Core modules log through the standard `logging` module; the CLI routes
those records to stderr through Rich so they do not interleave with
command output.
"""

import logging

from rich.logging import RichHandler

from flinkops.cli.common.output import err_console


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger once (INFO, or DEBUG when verbose)."""
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger()
    root.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(
            console=err_console,
            show_path=verbose,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
        root.addHandler(handler)

    for h in root.handlers:
        h.setLevel(level)

    # urllib3 connection chatter is noise even in verbose mode
    logging.getLogger("urllib3").setLevel(logging.WARNING)
