"""
Tests for the CLI parser and dispatch.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from launchkit.cli.parser import CLI, main
from launchkit.core.exceptions import DownloadFailed


@pytest.fixture(autouse=True)
def basic_config():
    """Keep CLI.run from replacing the test run's log handlers."""
    with patch("logging.basicConfig") as mock_config:
        yield mock_config


class TestParser:
    """Test argument parsing."""

    def test_start_with_jvm_args(self):
        args = CLI().parse_args(
            ["start", "--jvm-arg=-Xmx2G", "--jvm-arg=-XX:+UseZGC"]
        )

        assert args.command == "start"
        assert args.jvm_args == ["-Xmx2G", "-XX:+UseZGC"]

    def test_start_defaults(self):
        args = CLI().parse_args(["start"])
        assert args.jvm_args is None

    def test_global_options(self):
        args = CLI().parse_args(
            ["-v", "--config", "custom.yaml", "--data-dir", "/tmp/lk", "info"]
        )

        assert args.verbose
        assert args.config == Path("custom.yaml")
        assert args.data_dir == Path("/tmp/lk")

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            CLI().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "launchkit" in capsys.readouterr().out


class TestRun:
    """Test dispatch and error mapping."""

    def test_no_command_prints_help(self, capsys):
        assert CLI().run([]) == 1
        assert "usage:" in capsys.readouterr().out

    def test_dispatches_to_command_module(self):
        with patch("launchkit.cli.commands.info.run", return_value=0) as mock_run:
            assert CLI().run(["info"]) == 0

        assert mock_run.call_args[0][0].command == "info"

    def test_launchkit_error_exit_code(self, caplog):
        with patch(
            "launchkit.cli.commands.start.run",
            side_effect=DownloadFailed("https://x", "HTTP 500", 500),
        ):
            with caplog.at_level(logging.ERROR):
                assert CLI().run(["start"]) == 1

        assert "HTTP 500" in caplog.text

    def test_keyboard_interrupt(self):
        with patch("launchkit.cli.commands.reset.run", side_effect=KeyboardInterrupt):
            assert CLI().run(["reset"]) == 130

    def test_verbose_logging(self, basic_config):
        with patch("launchkit.cli.commands.info.run", return_value=0):
            CLI().run(["--verbose", "info"])

        assert basic_config.call_args[1]["level"] == logging.DEBUG
        assert basic_config.call_args[1]["force"] is True

    def test_quiet_logging(self, basic_config):
        with patch("launchkit.cli.commands.info.run", return_value=0):
            CLI().run(["--quiet", "info"])

        assert basic_config.call_args[1]["level"] == logging.ERROR

    def test_main_exits_with_code(self):
        with patch("sys.argv", ["launchkit"]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
