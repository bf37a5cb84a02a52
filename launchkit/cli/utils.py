"""
Shared utilities for CLI commands.

Provides the configuration and data-directory loading every command needs,
plus consistent output formatting.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from launchkit.config.parser import LaunchKitConfig, load_config
from launchkit.core.directory import DataLayout

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Management
# ============================================================================


def load_cli_config(args) -> Tuple[LaunchKitConfig, DataLayout]:
    """
    Load configuration and resolve the data directory for a command.

    Args:
        args: Parsed arguments (uses ``config`` and ``data_dir`` if present)

    Returns:
        Tuple of (config, layout)

    Raises:
        ConfigError: If the configuration file is invalid
    """
    config_path: Optional[Path] = getattr(args, "config", None)
    config = load_config(config_path)
    logger.debug(f"Loaded configuration from {config_path or 'defaults'}")

    data_dir = getattr(args, "data_dir", None) or config.data_dir
    layout = DataLayout.create(
        data_dir, runtime_feature_version=config.runtime.feature_version
    )
    logger.debug(f"Data directory: {layout.root}")
    return config, layout


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def format_details(title: str, details: Dict[str, Any], width: int = 60) -> str:
    """
    Format a titled block of key-value pairs.

    Example:
        >>> print(format_details("Info", {"Platform": "linux-x64"}, width=10))
        ==========
        Info
        ==========
        Platform: linux-x64
    """
    lines = ["=" * width, title, "=" * width]
    for key, value in details.items():
        lines.append(f"{key}: {value}")
    return "\n".join(lines)
