"""
Entry point for running launchkit CLI as a module.

Usage: python -m launchkit [command] [options]
"""

from launchkit.cli.parser import main

if __name__ == "__main__":
    main()
