"""
launchkit CLI argument parser.

This module implements the command-line interface for launchkit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from launchkit.core import __version__
from launchkit.core.exceptions import LaunchKitError

logger = logging.getLogger(__name__)


class CLI:
    """launchkit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="launchkit",
            description="launchkit - Managed JVM and integrated server bootstrapper",
            epilog='Use "launchkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"launchkit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./launchkit.yaml)",
        )
        parser.add_argument(
            "--data-dir",
            type=Path,
            metavar="PATH",
            help="Data directory (default: per-user data directory)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_start_command(subparsers)
        self._add_reset_command(subparsers)
        self._add_info_command(subparsers)

        return parser

    def _add_start_command(self, subparsers):
        """Add 'start' subcommand."""
        parser = subparsers.add_parser(
            "start",
            help="Install the runtime and server, then start the server",
            description="Download, verify and install the managed runtime and "
            "server jar, start the server and wait until it is ready",
        )
        parser.add_argument(
            "--jvm-arg",
            action="append",
            dest="jvm_args",
            metavar="ARG",
            help="Extra runtime flag, e.g. --jvm-arg=-Xmx2G (can be used multiple times)",
        )

    def _add_reset_command(self, subparsers):
        """Add 'reset' subcommand."""
        subparsers.add_parser(
            "reset",
            help="Delete the installed runtime and server jars",
            description="Delete the managed runtime and every downloaded server jar",
        )

    def _add_info_command(self, subparsers):
        """Add 'info' subcommand."""
        subparsers.add_parser(
            "info",
            help="Show platform, data directory and configured versions",
            description="Show the resolved platform, data directory and versions",
        )

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "start": "launchkit.cli.commands.start",
            "reset": "launchkit.cli.commands.reset",
            "info": "launchkit.cli.commands.info",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except LaunchKitError as e:
            logger.error(f"Error: {e}")
            return 1
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
