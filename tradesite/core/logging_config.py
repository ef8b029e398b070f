"""Logging configuration for tradesite.

Console logging for the API server and the client-side provider. Remote sync
failures are only visible here, so operators should keep WARNING enabled.
"""

import logging
import sys
from typing import Optional

__all__ = ["setup_logging"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def setup_logging(level: str = "INFO", stream: Optional[object] = None) -> logging.Logger:
    """Configure the ``tradesite`` logger hierarchy once.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
        stream: Output stream, defaults to stderr

    Returns:
        The root ``tradesite`` logger
    """
    global _configured
    logger = logging.getLogger("tradesite")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not _configured:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)
        _configured = True

    return logger
