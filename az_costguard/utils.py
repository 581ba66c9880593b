"""
Logging setup.

Console logging through rich, so CI logs stay readable.
"""

import logging

from rich.logging import RichHandler


def setup_logger(level: int = logging.INFO) -> logging.Logger:
    """Configure the root logger with a RichHandler.

    Safe to call more than once; existing handlers are replaced.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers to prevent duplication if called again
    if logger.hasHandlers():
        logger.handlers.clear()

    rich_handler = RichHandler(rich_tracebacks=True, markup=False, show_path=False)
    rich_handler.setLevel(level)
    logger.addHandler(rich_handler)

    # urllib3 logs every request at DEBUG
    if level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)

    logger.debug("Logger configured: Level=%s", logging.getLevelName(level))
    return logger
