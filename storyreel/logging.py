"""
storyreel.logging - Centralized logging configuration.

All modules log through children of the ``storyreel`` logger.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("storyreel")


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger, e.g. ``storyreel.fill``."""
    return logger.getChild(name)


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the storyreel package.

    Args:
        verbose: If True, enable DEBUG level logging; otherwise WARNING level
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s [%(name)s]: %(message)s",
    )
    logger.setLevel(level)
