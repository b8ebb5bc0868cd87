"""Logging configuration for architech."""

import logging
import sys
from typing import Optional


class ColorFormatter(logging.Formatter):
    """Colorized log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class StderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Set up logging for the engine and the CLI.

    Args:
        verbose: Enable verbose (DEBUG) logging

    Returns:
        Configured ``architech`` logger
    """
    logger = logging.getLogger('architech')
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    # A second call (e.g. `--verbose` on a subcommand) only adjusts the level
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = StderrHandler()
    handler.setLevel(level)

    if sys.stderr.isatty():
        formatter = ColorFormatter('%(levelname)s: %(message)s')
    else:
        formatter = logging.Formatter('%(levelname)s: %(message)s')

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the ``architech`` namespace.

    Args:
        name: Child logger name (defaults to the root ``architech`` logger)
    """
    if name:
        return logging.getLogger(f'architech.{name}')
    return logging.getLogger('architech')
