"""
Logging for the ``blobtree`` namespace.

Library modules log through ``logging.getLogger(__name__)``.  Importing
:mod:`blobtree` attaches only a :class:`logging.NullHandler` to the package
logger, so nothing is printed unless the application configures logging.
Scripts and examples call :func:`setup_logging` to see the polygonizer
reports (sweep size at INFO, per-slice detail at DEBUG).
"""
import logging
import sys
from typing import List, Optional, TextIO

PACKAGE_LOGGER = "blobtree"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%H:%M:%S'

# marks the handlers installed by setup_logging()
_OWNED = "_blobtree_owned"


def install_null_handler() -> logging.Logger:
    """Attach a single :class:`logging.NullHandler` to the package logger."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
        logger.addHandler(logging.NullHandler())
    return logger


def owned_handlers(logger: Optional[logging.Logger] = None) -> List[logging.Handler]:
    """Handlers on the package logger that :func:`setup_logging` installed."""
    logger = logger or logging.getLogger(PACKAGE_LOGGER)
    return [h for h in logger.handlers if getattr(h, _OWNED, False)]


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Send the ``blobtree`` log records to *stream* and optionally to a file.

    Handlers from a previous call are closed and replaced.  Handlers added
    by the application and the package :class:`~logging.NullHandler` are
    left untouched.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path the log is also written to (overwritten).
        stream: Console stream, ``sys.stdout`` by default.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for h in owned_handlers(logger):
        logger.removeHandler(h)
        h.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: List[logging.Handler] = [
        logging.StreamHandler(stream if stream is not None else sys.stdout)
    ]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))

    for h in handlers:
        h.setLevel(level)
        h.setFormatter(formatter)
        setattr(h, _OWNED, True)
        logger.addHandler(h)

    logger.debug("Logging initialized at %s.", logging.getLevelName(level))
    return logger
