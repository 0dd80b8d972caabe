import logging
from typing import Optional


LOGGER_NAME = "httpcookie"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return the package logger, or a child of it when ``name`` is given.

    A ``NullHandler`` is attached so nothing is emitted unless the
    application configures logging.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    if name:
        return logger.getChild(name)
    return logger
