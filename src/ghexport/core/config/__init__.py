"""Configuration loading and validation."""

from .models import (
    # Enums
    ExportFormat,
    ExportType,
    # Config models
    AppConfig,
    DiffConfig,
    GitHubConfig,
    LoggingConfig,
)
from .loader import ConfigError, load_app_config, validate_app_config_file

__all__ = [
    # Enums
    "ExportFormat",
    "ExportType",
    # Config models
    "AppConfig",
    "DiffConfig",
    "GitHubConfig",
    "LoggingConfig",
    # Loaders
    "ConfigError",
    "load_app_config",
    "validate_app_config_file",
]
