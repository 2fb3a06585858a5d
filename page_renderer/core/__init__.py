from .config import (
    config_manager,
    ConfigurationManager,
    ConfigError,
    ConfigFileNotFoundError,
    InvalidYamlError,
    RenderSettings,
    Timings,
)
from .exceptions import (
    PageRendererError,
    ConfigurationError,
    ComponentError,
    RendererError,
    ErrorKind,
    RenderJobError,
    LoadFailedError,
    CrashedError,
    TimedOutError,
    ReadinessTimeoutError,
    CaptureFailedError,
)
from .logger import setup_logging, get_logger

__all__ = [
    # Config
    "config_manager",
    "ConfigurationManager",
    "ConfigError",
    "ConfigFileNotFoundError",
    "InvalidYamlError",
    "RenderSettings",
    "Timings",
    # Logger
    "setup_logging",
    "get_logger",
    # Exceptions
    "PageRendererError",
    "ConfigurationError",
    "ComponentError",
    "RendererError",
    "ErrorKind",
    "RenderJobError",
    "LoadFailedError",
    "CrashedError",
    "TimedOutError",
    "ReadinessTimeoutError",
    "CaptureFailedError",
]
