"""Logging configuration for the savings fund ledger."""
import logging

from savings_fund.config import LOGGER_NAME, DEFAULT_LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = DEFAULT_LOG_LEVEL, logger_name: str = LOGGER_NAME) -> logging.Logger:
    """Install a single console handler on the package logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        logger_name: Name of the logger to configure.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get a logger under the package namespace."""
    if name != LOGGER_NAME and not name.startswith(LOGGER_NAME + "."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)
