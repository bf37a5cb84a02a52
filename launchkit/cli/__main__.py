"""
Entry point for running launchkit CLI as a module.

Usage: python -m launchkit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
