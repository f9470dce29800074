"""Logging configuration for the CLI."""

from __future__ import annotations

import logging
import sys

NOISY_LOGGERS = ("httpx", "httpcore")


class _ConsoleNoiseFilter(logging.Filter):
    """Keep tod_batch logs; let third-party records through only when verbose or WARNING+."""

    def __init__(self, verbose: bool) -> None:
        super().__init__()
        self.verbose = verbose

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("tod_batch"):
            return True
        if self.verbose:
            return True
        return record.levelno >= logging.WARNING


def setup_logging(*, verbose: bool = False) -> None:
    """Install a single stderr handler on the root logger. Call once, early."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.addFilter(_ConsoleNoiseFilter(verbose))
    root.addHandler(handler)

    level = logging.DEBUG if verbose else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)
    logging.captureWarnings(True)
