"""
utils/logger.py
Simple logging wrapper for NetProbe
"""

import logging
import sys


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (usually module name)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)
    logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)

    # Format: LEVEL - message
    formatter = logging.Formatter(
        '%(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def set_verbose(verbose: bool) -> None:
    """Switch every netprobe logger between DEBUG and INFO."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("netprobe").setLevel(level)
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("netprobe."):
            logging.getLogger(name).setLevel(level)


# Default logger instance
log = get_logger("netprobe")


__all__ = ["get_logger", "set_verbose", "log"]
