"""
Reset command implementation.

Deletes the managed runtime and downloaded server jars so the next start
installs them from scratch.
"""

import logging

from launchkit.cli.utils import load_cli_config
from launchkit.core.directory import reset_integrated_data
from launchkit.core.locking import LockManager

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the reset command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config, layout = load_cli_config(args)

    locks = LockManager(layout.lock_dir)
    with locks.install_lock(layout.runtime_dir_name):
        with locks.install_lock(config.application.artifact_name):
            removed = reset_integrated_data(layout)

    if removed:
        print(f"Removed {len(removed)} director{'y' if len(removed) == 1 else 'ies'}")
    else:
        print("Nothing to remove")
    return 0
