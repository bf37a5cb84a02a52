"""
Bootstrap pipeline entry point.

BootstrapCoordinator chains runtime acquisition, application acquisition and
the server launch behind a single in-flight guard held in BootstrapState.
"""

from launchkit.bootstrap.coordinator import BootstrapCoordinator, BootstrapResult
from launchkit.bootstrap.state import BootstrapState

__all__ = ["BootstrapCoordinator", "BootstrapResult", "BootstrapState"]
