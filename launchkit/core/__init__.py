"""
Core functionality for launchkit.

This package contains the foundational modules the acquirers, the launcher
and the coordinator depend on.
"""

try:
    from importlib.metadata import version

    __version__ = version("launchkit")
except Exception:
    __version__ = "0.1.0"
