"""
Logging configuration for goaltracker.
Provides centralized logging setup.
"""

import logging
import sys
from pathlib import Path

from .config import LOG_LEVEL, LOG_FORMAT, LOG_FILE


def setup_logger(name: str) -> logging.Logger:
    """
    Set up a logger with a console handler and an optional file handler.

    Args:
        name: Name of the logger (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    # File handler - detailed logs, only when a log file is configured
    if LOG_FILE:
        log_path = Path(LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    # Console handler - INFO and above
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    return logger


def log_goal_set_stats(goals, logger: logging.Logger, name: str = "Goals"):
    """Log statistics about a goal set."""
    if not goals:
        logger.debug(f"{name}: empty goal set")
        return

    completed = sum(1 for g in goals if g.status.value == "completed")
    logger.debug(f"{name}: {len(goals)} goals, {completed} completed")
