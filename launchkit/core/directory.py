"""
Data directory management for launchkit.

Directory Structure (per-user local data directory):
    jvm-<feature>/ : Installed managed runtime
    jars/          : Verified server jars
    server/        : Working directory of the launched server
    lock/          : Cross-process install locks

Default locations:
    Windows : %LOCALAPPDATA%\\launchkit
    macOS   : ~/Library/Application Support/launchkit
    Linux   : $XDG_DATA_HOME/launchkit or ~/.local/share/launchkit
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from launchkit.core.exceptions import LaunchKitError
from launchkit.core.filesystem import safe_rmtree

logger = logging.getLogger(__name__)

APP_DIR_NAME = "launchkit"


class DirectoryError(LaunchKitError):
    """Base exception for directory-related errors."""

    pass


def get_default_data_dir() -> Path:
    """
    Get the platform-specific local data directory.

    Example:
        >>> get_default_data_dir()
        PosixPath('/home/user/.local/share/launchkit')  # on Linux
    """
    if os.name == "nt":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if not local_app_data:
            raise DirectoryError(
                "LOCALAPPDATA environment variable is not set. "
                "Cannot determine data directory."
            )
        return Path(local_app_data) / APP_DIR_NAME

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home) / APP_DIR_NAME
    return Path.home() / ".local" / "share" / APP_DIR_NAME


@dataclass(frozen=True)
class DataLayout:
    """Paths of everything launchkit keeps on disk."""

    root: Path
    runtime_feature_version: int = 25

    @classmethod
    def create(
        cls, root: Optional[Union[str, Path]] = None, runtime_feature_version: int = 25
    ) -> "DataLayout":
        """Build a layout, defaulting to the per-user data directory."""
        root = Path(root).expanduser() if root else get_default_data_dir()
        # The server runs with the run directory as cwd
        root = root.resolve()
        return cls(root=root, runtime_feature_version=runtime_feature_version)

    @property
    def runtime_dir_name(self) -> str:
        return f"jvm-{self.runtime_feature_version}"

    @property
    def runtime_dir(self) -> Path:
        return self.root / self.runtime_dir_name

    @property
    def jars_dir(self) -> Path:
        return self.root / "jars"

    @property
    def run_dir(self) -> Path:
        return self.root / "server"

    @property
    def lock_dir(self) -> Path:
        return self.root / "lock"

    def ensure(self) -> "DataLayout":
        """Create the root, jars and run directories."""
        for path in (self.root, self.jars_dir, self.run_dir):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DirectoryError(f"Failed to create directory {path}: {e}") from e
        return self


def reset_integrated_data(layout: DataLayout) -> List[Path]:
    """
    Delete the installed runtime and all downloaded jars.

    The run directory is kept so server data survives a reset.

    Returns:
        Directories that were removed
    """
    removed = []
    for path in (layout.runtime_dir, layout.jars_dir):
        if path.exists():
            safe_rmtree(path, require_prefix=layout.root)
            logger.info(f"Deleted directory: {path}")
            removed.append(path)
    return removed
