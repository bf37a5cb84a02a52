"""Configuration module for launchkit.

This module provides YAML configuration parsing and validation for launchkit.yaml.
"""

from launchkit.config.parser import (
    ApplicationConfig,
    DownloadConfig,
    LaunchKitConfig,
    RuntimeConfig,
    ServerConfig,
    load_config,
    parse_config,
    parse_config_data,
)
from launchkit.core.exceptions import ConfigError

__all__ = [
    "ApplicationConfig",
    "ConfigError",
    "DownloadConfig",
    "LaunchKitConfig",
    "RuntimeConfig",
    "ServerConfig",
    "load_config",
    "parse_config",
    "parse_config_data",
]
