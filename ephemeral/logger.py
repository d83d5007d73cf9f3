# ============================================
#   Ephemeral — Central logger
# ============================================

import os
import logging
from logging.handlers import TimedRotatingFileHandler

from ephemeral.config import LOG_FILE, LOG_LEVEL


# Global app logger name
ROOT_LOGGER_NAME = os.getenv("EPHEMERAL_LOGGER_NAME", "ephemeral")


def _build_handler() -> logging.Handler:
    if not LOG_FILE:
        return logging.StreamHandler()

    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    return TimedRotatingFileHandler(
        LOG_FILE,
        when="midnight",
        backupCount=30,
        encoding="utf-8",
        utc=False,
    )


def _configure_root_logger() -> logging.Logger:
    """
    Configure the root Ephemeral logger once (idempotent).
    Daily rotating file when EPHEMERAL_LOG_FILE is set, stderr otherwise.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    # Prevent duplicate handlers on hot reload / multiple imports
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    handler = _build_handler()
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.propagate = False  # prevent double logging to root

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """
    Return a child logger for a given module name.
    Example: get_logger("rooms") → ephemeral.rooms
    """
    root = _configure_root_logger()
    return root.getChild(module_name)


def log_debug(module: str, message: str):
    get_logger(module).debug(message)


def log_info(module: str, message: str):
    get_logger(module).info(message)


def log_warning(module: str, message: str):
    get_logger(module).warning(message)


def log_error(module: str, message: str):
    get_logger(module).error(message)


def log_exception(module: str, message: str):
    """
    Log an exception with traceback. To be used inside except blocks.
    """
    get_logger(module).exception(message)
