"""Logging configuration for the web app and the render worker."""

import logging


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def configure_logging(level=logging.INFO, handlers=None):
    """Configure the root logger once per process."""
    global _configured

    logger = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    if _configured:
        return logger

    if handlers is None:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        logger.addHandler(stream_handler)
    else:
        for handler in handlers:
            logger.addHandler(handler)

    _configured = True
    return logger


__all__ = ["configure_logging", "DEFAULT_LOG_FORMAT"]
