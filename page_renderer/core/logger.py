"""
Centralized logging setup for the Page Renderer service.

Key Functions:
- `setup_logging()`: Configures the root logger from the `logging` section of
                     the YAML configuration (console and rotating file handlers).
- `get_logger(name)`: Returns a module logger, initializing logging with
                      fallbacks if `setup_logging()` has not run yet.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, List, Optional

from page_renderer.core.config import ConfigurationManager

# PROJECT_ROOT: log file paths in the configuration are relative to this directory.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_logging_initialized = False


def _file_handler(settings: Dict[str, Any], formatter: logging.Formatter) -> Optional[logging.Handler]:
    path = os.path.join(PROJECT_ROOT, settings.get("path", "logs/page_renderer.log"))
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handler = RotatingFileHandler(
            filename=path,
            maxBytes=int(settings.get("max_bytes", 10 * 1024 * 1024)),
            backupCount=int(settings.get("backup_count", 5)),
            encoding="utf-8",
        )
    except OSError as e:
        logging.error(f"Logging setup: Failed to configure file logging at '{path}': {e}. File logging disabled.", exc_info=True)
        return None
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Optional[ConfigurationManager] = None) -> None:
    """
    Sets up centralized logging using the `logging` section of the configuration.

    Falls back to `logging.basicConfig` when no configuration is available or
    the section is missing. Safe to call more than once; only the first call
    configures handlers.

    Args:
        config (Optional[ConfigurationManager]): The configuration manager instance.
            If None, the global `config_manager` is used.
    """
    global _logging_initialized
    if _logging_initialized:
        logging.getLogger(__name__).debug("setup_logging: Already initialized.")
        return

    if config is None:
        from page_renderer.core.config import config_manager
        config = config_manager

    log_settings: Optional[Dict[str, Any]] = config.get("logging") if config is not None else None
    if not log_settings:
        logging.basicConfig(level=logging.INFO, format=DEFAULT_FORMAT)
        logging.warning("Logging setup: 'logging' section not found in configuration. Using basicConfig.")
        _logging_initialized = True
        return

    log_level_str = str(log_settings.get("level", "INFO")).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    formatter = logging.Formatter(log_settings.get("format", DEFAULT_FORMAT))
    handler_settings = log_settings.get("handlers", {}) or {}

    handlers: List[logging.Handler] = []
    if handler_settings.get("console", {}).get("enabled", False):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)
    if handler_settings.get("file", {}).get("enabled", False):
        file_handler = _file_handler(handler_settings["file"], formatter)
        if file_handler is not None:
            handlers.append(file_handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(log_level)
    for handler in handlers:
        root_logger.addHandler(handler)

    _logging_initialized = True
    logging.info(f"Logging system initialized. Level: {log_level_str}. Handlers: {len(handlers)}.")


def get_logger(name: str) -> logging.Logger:
    """
    Retrieves a logger instance with the specified name.

    Ensures `setup_logging()` has run at least once so that module-level
    loggers created at import time are usable.

    Args:
        name (str): The name for the logger, typically `__name__` of the calling module.

    Returns:
        logging.Logger: An instance of `logging.Logger`.
    """
    if not _logging_initialized:
        setup_logging()
    return logging.getLogger(name)
