"""
Logging setup for Snippet Harness.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "snippet_harness"


def setup_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        verbose: Enable DEBUG level output
        console: Console to log to (defaults to stderr)

    Returns:
        The configured package logger
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the package namespace."""
    if name == _LOGGER_NAME or name.startswith(f"{_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")
