"""Configuration package for lector."""

from lector.config.app_config import (
    AppConfig,
    ConfigError,
    ExtractionConfig,
    OutputConfig,
    clear_config_cache,
    load_app_config,
    load_app_config_from,
)

__all__ = [
    "AppConfig",
    "ConfigError",
    "ExtractionConfig",
    "OutputConfig",
    "clear_config_cache",
    "load_app_config",
    "load_app_config_from",
]
