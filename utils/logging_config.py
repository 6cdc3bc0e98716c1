"""
Centralized logging configuration.
Modules log through `logging.getLogger(__name__)`; call setup_logging() once at startup.
"""

import logging
import sys
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s [%(name)s] %(levelname)s: %(message)s'

# Top-level packages of the application whose loggers share the handler.
APP_LOGGERS = ("main", "controllers", "dal", "routes", "services", "utils")


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure the application loggers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to INFO
        log_file: Optional file path for log output
    """
    log_level = getattr(logging, (level or 'INFO').upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    for name in APP_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(log_level)
        # Clear existing handlers to avoid duplicates on re-initialization
        logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False
