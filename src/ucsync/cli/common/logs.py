"""Process-wide logging setup for the CLI."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from ucsync.cli.common.output import console

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def resolve_level(log_level: str, verbose: bool) -> int:
    """Map the --log-level / -v options to a logging level."""
    name = log_level.strip().upper()
    if name not in _LEVELS:
        raise ValueError(f"Invalid log level '{log_level}'. Use one of: {', '.join(_LEVELS)}.")
    level = getattr(logging, name)
    if verbose:
        level = min(level, logging.INFO)
    return level


def configure_logging(level: int) -> None:
    """Route ucsync loggers through a RichHandler on stderr."""
    handler = RichHandler(
        console=console,
        show_path=level <= logging.DEBUG,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root = logging.getLogger("ucsync")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
