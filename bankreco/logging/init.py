from __future__ import annotations

import logging
import sys

"""Application logging: ``LABEL message`` lines on stdout.

Every module logs through ``logging.getLogger(__name__)``; those loggers live
under the ``bankreco`` namespace and propagate into the one handler installed
here. Labels: DEBUG, INFO, WARN, ERROR, CRITICAL and the custom SUMMARY level
used for the final run line.
"""

__all__ = [
    "SUMMARY_LEVEL",
    "LOGGER_NAME",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
]

SUMMARY_LEVEL = 25  # INFO(20) と WARNING(30) の間
LOGGER_NAME = "bankreco"

_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
    SUMMARY_LEVEL: "SUMMARY",
}

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """``LABEL message``; an attached traceback follows on the next lines."""

    def format(self, record: logging.LogRecord) -> str:
        text = f"{_LABELS.get(record.levelno, record.levelname)} {record.getMessage()}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def _set_level(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure the application logger once and return it.

    Later calls return the same logger; ``debug=True`` lowers it (and its
    handler) to DEBUG at any point, e.g. after the CLI parsed ``--debug``.
    """
    global _logger

    if _logger is None:
        logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
        logger = logging.getLogger(LOGGER_NAME)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(LabeledFormatter())
        logger.addHandler(handler)
        logger.propagate = False  # root への二重出力防止
        _set_level(logger, logging.INFO)
        _logger = logger

    if debug:
        _set_level(_logger, logging.DEBUG)
    return _logger


def get_logger() -> logging.Logger:
    return setup_logging()


def log_summary(message: str) -> None:
    """Log the final run line at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger so the next setup rebuilds it (tests)."""
    global _logger
    _logger = None
