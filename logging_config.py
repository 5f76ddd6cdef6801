"""Logging configuration for the PyMancer command line."""
import logging
import os
import sys
from typing import Optional


def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """
    Configure logging for the command line.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, logs go to stderr so
            program output on stdout stays clean.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    config = {
        'level': numeric_level,
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'force': True,
    }

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        config['filename'] = log_file
    else:
        config['stream'] = sys.stderr

    logging.basicConfig(**config)

    # pykka logs actor lifecycle at DEBUG
    logging.getLogger("pykka").setLevel(max(numeric_level, logging.INFO))

    logging.debug("Logging initialized at %s level", level.upper())
