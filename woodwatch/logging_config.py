"""
Logging setup for Woodwatch.

Every module logs through a child of the ``woodwatch`` logger so the daemon
can route peer status lines, transition titles and delivery failures to the
console and, optionally, a rotating log file.
"""

import logging
import logging.handlers
import sys
from typing import TextIO

PACKAGE_LOGGER = "woodwatch"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Configure the ``woodwatch`` logger hierarchy.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a log file rotated at ``max_bytes``
        max_bytes: Size of a log file before it is rotated
        backup_count: Number of rotated log files to keep
        stream: Console stream, stdout when not given

    Returns:
        The configured package logger
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    package_logger.propagate = False
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get the logger for a module (typically called with ``__name__``).

    Names already inside the package are not prefixed twice, so
    ``woodwatch.monitor`` and ``monitor`` both map to ``woodwatch.monitor``.
    """
    name = name.removeprefix(f"{PACKAGE_LOGGER}.")
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
