"""Logger setup shared by the pool, the store and the HTTP layer."""

import logging

__all__ = ["LOGGER_NAME", "setup_logger"]

LOGGER_NAME = "shardurl"


def setup_logger(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a stream handler to the package logger once.

    Module loggers (``shardurl.pool``, ``shardurl.store``, ...) propagate to it.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
