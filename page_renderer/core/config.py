"""
Configuration management for the Page Renderer service.

This module provides a singleton `ConfigurationManager` class to load and access
configuration settings from YAML files, and the `RenderSettings` struct that
carries the values the render coordinator needs (default timeout, default
viewport, browser options and settle timings).

Key Features:
- Loads settings from YAML files based on APP_ENV environment variable.
- Defaults to 'development' environment if APP_ENV is not set.
- Supports dot notation for accessing nested keys (e.g., "renderer.timeout_seconds").
- `TIMEOUT`, `WINDOW_WIDTH` and `WINDOW_HEIGHT` environment variables override
  the YAML values when building `RenderSettings`.
"""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from page_renderer.core.exceptions import ConfigurationError

# CONFIG_DIR: Path to the directory containing configuration YAML files.
# page_renderer/core/config.py -> page_renderer/config
CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "config")

# DEFAULT_ENV: The default environment to use if APP_ENV is not set.
DEFAULT_ENV = "development"


class ConfigError(Exception):
    """Base class for all configuration-related errors."""
    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when a specific configuration file (e.g., development.yaml) cannot be found."""
    pass


class InvalidYamlError(ConfigError):
    """Raised when a configuration file contains invalid YAML syntax or is not a dictionary."""
    pass


class ConfigurationManager:
    """
    Manages loading and accessing configuration settings from YAML files.

    This class is implemented as a singleton. The first time an instance is created,
    it loads the configuration. Subsequent instantiations return the existing instance.
    """
    CONFIG_DIR: str = CONFIG_DIR
    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}
    _current_env: str = ""

    def __new__(cls) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super(ConfigurationManager, cls).__new__(cls)
            cls._instance.load_config()
        return cls._instance

    def load_config(self, env: Optional[str] = None) -> None:
        """
        Loads configuration from a YAML file corresponding to the specified environment.

        The environment is determined in the following order of precedence:
        1. The `env` parameter passed to this method.
        2. The `APP_ENV` environment variable.
        3. `DEFAULT_ENV` (if neither of the above is set).

        Args:
            env (Optional[str]): The specific environment name (e.g., "production") to load.

        Raises:
            ConfigFileNotFoundError: If the YAML file for the target environment is not found.
            InvalidYamlError: If the YAML file is malformed or not a dictionary.
        """
        self._current_env = env or os.getenv("APP_ENV", DEFAULT_ENV)
        config_file_path = os.path.join(self.CONFIG_DIR, f"{self._current_env}.yaml")

        try:
            with open(config_file_path, "r") as f:
                self._config = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigFileNotFoundError(
                f"Configuration file not found for environment '{self._current_env}' at '{config_file_path}'. "
                f"Ensure '{self._current_env}.yaml' exists in the '{self.CONFIG_DIR}' directory."
            )
        except yaml.YAMLError as e:
            raise InvalidYamlError(
                f"Error parsing YAML in configuration file '{config_file_path}': {e}"
            )
        if not isinstance(self._config, dict):
            raise InvalidYamlError(
                f"Configuration file '{config_file_path}' does not contain a valid YAML dictionary."
            )

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """
        Retrieves a configuration value for the given key.

        Supports accessing nested values using dot notation (e.g., "renderer.window.width").
        If the key is not found, returns the provided default value.

        Args:
            key (str): The configuration key to retrieve.
            default (Optional[Any]): The value to return if the key is not found.

        Returns:
            Any: The configuration value if found, otherwise the default value.
        """
        value = self._config
        try:
            for k_part in key.split("."):
                if isinstance(value, dict):
                    value = value[k_part]
                else:
                    return default
            return value
        except (KeyError, TypeError):
            return default

    def reload_config(self, env: Optional[str] = None) -> None:
        """
        Reloads the configuration, potentially for a different environment.

        Args:
            env (Optional[str]): The environment to reload. If None, reloads the
                                 currently active environment.
        """
        old_env = self._current_env
        self.load_config(env or old_env)
        # Imported here; logger.py imports this module.
        from page_renderer.core.logger import get_logger
        get_logger(__name__).info(
            f"Configuration reloaded. Previous environment: '{old_env}', active: '{self._current_env}'."
        )

    @property
    def current_environment(self) -> str:
        """Returns the name of the currently loaded configuration environment."""
        return self._current_env


def _env_int(name: str, fallback: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return fallback
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be an integer, got '{raw}'.")


@dataclass(frozen=True)
class Timings:
    """Settle and backoff delays used by readiness and capture, in milliseconds."""
    target_settle_ms: int = 100
    resize_settle_ms: int = 1000
    capture_settle_ms: int = 50
    text_poll_min_backoff_ms: int = 750
    text_poll_max_backoff_ms: int = 1000
    text_poll_factor: float = 1.0


@dataclass(frozen=True)
class RenderSettings:
    """
    Explicit configuration passed to the `JobCoordinator` at construction.

    Attributes:
        timeout_seconds (int): Default deadline for a page to finish loading.
        window_width (int): Default viewport width.
        window_height (int): Default viewport height.
        browser_type (str): Playwright browser launched by the host factory.
        user_agent_suffix (Optional[str]): Appended to the browser's user agent.
        timings (Timings): Settle and backoff delays.
    """
    timeout_seconds: int = 30
    window_width: int = 1024
    window_height: int = 768
    browser_type: str = "chromium"
    user_agent_suffix: Optional[str] = None
    timings: Timings = field(default_factory=Timings)

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ConfigurationError(f"timeout_seconds must be > 0, got {self.timeout_seconds}.")
        if self.window_width <= 0 or self.window_height <= 0:
            raise ConfigurationError(
                f"Window size must be positive, got {self.window_width}x{self.window_height}."
            )

    @classmethod
    def from_config(cls, config: Optional[ConfigurationManager] = None) -> 'RenderSettings':
        """
        Builds settings from the `renderer` section of the configuration, with
        `TIMEOUT`, `WINDOW_WIDTH` and `WINDOW_HEIGHT` environment overrides.

        Args:
            config (Optional[ConfigurationManager]): Source configuration. If None,
                only defaults and environment variables are used.
        """
        def get(key, default):
            return config.get(key, default) if config is not None else default

        defaults = cls()
        timing_defaults = Timings()
        timings = Timings(**{
            name: get(f"renderer.timings.{name}", getattr(timing_defaults, name))
            for name in timing_defaults.__dataclass_fields__
        })
        return cls(
            # 0 selects the default deadline.
            timeout_seconds=(
                _env_int("TIMEOUT", int(get("renderer.timeout_seconds", defaults.timeout_seconds)))
                or defaults.timeout_seconds
            ),
            window_width=_env_int("WINDOW_WIDTH", int(get("renderer.window.width", defaults.window_width))),
            window_height=_env_int("WINDOW_HEIGHT", int(get("renderer.window.height", defaults.window_height))),
            browser_type=get("renderer.browser_type", defaults.browser_type),
            user_agent_suffix=get("renderer.user_agent_suffix", defaults.user_agent_suffix),
            timings=timings,
        )


# Global instance of ConfigurationManager to be used by other modules.
config_manager = ConfigurationManager()

