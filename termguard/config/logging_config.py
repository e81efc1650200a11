"""
Logging configuration.

Usage:
    from termguard.config.logging_config import get_logger
    logger = get_logger(__name__)
"""

import logging
from typing import Optional

_configured = False


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure the root ``termguard`` logger.

    Args:
        level: Log level name, defaults to settings.log_level
        fmt: Log record format, defaults to settings.log_format
    """
    global _configured
    from termguard.config.settings import settings

    level = (level or settings.log_level).upper()
    fmt = fmt or settings.log_format

    root = logging.getLogger("termguard")
    root.setLevel(level)

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(handler)
    else:
        for handler in root.handlers:
            handler.setFormatter(logging.Formatter(fmt))

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a module logger, configuring logging on first use."""
    if not _configured:
        setup_logging()
    return logging.getLogger(name)
