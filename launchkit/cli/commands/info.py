"""
Info command implementation.

Shows the resolved platform, the data directory and the configured versions.
"""

import logging

from launchkit.cli.utils import format_details, load_cli_config
from launchkit.core import __version__
from launchkit.core.platform import detect_platform

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the info command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config, layout = load_cli_config(args)
    info = detect_platform()

    jar_path = layout.jars_dir / config.application.artifact_name
    details = {
        "launchkit": __version__,
        "Platform": info.platform_string(),
        "Runtime platform": f"{info.runtime_os}-{info.arch}"
        if info.is_supported
        else "unsupported",
        "Data directory": layout.root,
        "Runtime": f"{config.runtime.feature_version} ({config.runtime.image_type})",
        "Runtime installed": "yes" if layout.runtime_dir.exists() else "no",
        "Server version": config.application.version,
        "Server jar installed": "yes" if jar_path.is_file() else "no",
    }
    print(format_details("launchkit info", details))
    return 0
