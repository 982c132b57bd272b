"""
Logging Configuration
Attaches console and file handlers to the 'sdcintegration' logger for
command-line runs. Library code only ever calls `logging.getLogger(__name__)`.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "sdcintegration"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Chatty at DEBUG (JIT compilation, font lookup, file driver)
THIRD_PARTY_LOGGERS = ("numba", "matplotlib", "h5py")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Route records of the package to stdout and optionally to a file.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Logging level of the package (e.g. logging.DEBUG, logging.INFO).
        log_file: Also write the log to this file (overwritten).

    Returns:
        The package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger.debug(f"Logging initialized at level {logging.getLevelName(level)}"
                 + (f", file {log_file}" if log_file else ""))
    return logger
