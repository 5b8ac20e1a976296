"""
Logging helpers

All runtime loggers live under the "agent_runtime" hierarchy so an embedding
application can tune them in one place.
"""
import logging
import sys
from typing import Optional

ROOT_LOGGER = "agent_runtime"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s - %(message)s"

LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger nested under the runtime's root logger"""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def parse_level(level: str) -> int:
    """Map a level name ("info", "WARN", ...) to a logging level"""
    try:
        return LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}")


def configure_logging(level: str = "info", fmt: Optional[str] = None) -> logging.Logger:
    """
    Install a console handler on the runtime's root logger.

    Safe to call more than once: an existing handler is reused and only its
    level and format are updated.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(parse_level(level))

    formatter = logging.Formatter(fmt or DEFAULT_LOG_FORMAT)
    for handler in logger.handlers:
        if getattr(handler, "_agent_runtime_handler", False):
            handler.setFormatter(formatter)
            return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler._agent_runtime_handler = True
    logger.addHandler(handler)
    return logger
