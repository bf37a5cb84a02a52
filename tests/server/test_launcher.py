"""
Tests for launching and supervising the server.

Process tests run a fake ``bin/java`` (a shell script) that execs a Python
stand-in server, see tests/fixtures/fake_server.py.
"""

import logging
import os
import socket
import time
from pathlib import Path
from unittest.mock import patch

import jwt
import pytest

from launchkit.core.directory import DataLayout
from launchkit.core.exceptions import (
    InvalidSecretKey,
    ProcessExitedEarly,
    ProcessSpawnError,
    ReadinessTimeout,
)
from launchkit.core.platform import PlatformInfo
from launchkit.server.launcher import (
    ManagedProcess,
    ServerLauncher,
    build_command,
    build_environment,
    find_free_port,
    strip_ansi,
)
from tests.fixtures.artifacts import java_launcher_script

FAKE_SECRET = b"s" * 32


def install_fake_runtime(runtime_dir: Path) -> Path:
    java = runtime_dir / "bin" / "java"
    java.parent.mkdir(parents=True)
    java.write_bytes(java_launcher_script())
    java.chmod(0o755)
    (runtime_dir / "lib" / "server").mkdir(parents=True)
    return runtime_dir


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


@pytest.fixture
def runtime_dir(layout):
    return install_fake_runtime(layout.runtime_dir)


@pytest.fixture
def jar_path(layout):
    path = layout.jars_dir / "App-1.0.0.jar"
    path.write_bytes(b"jar")
    return path


@pytest.fixture
def launcher(test_config, layout, linux_x64, log_lines):
    return ServerLauncher(test_config, layout, linux_x64, send_log=log_lines)


class TestHelpers:
    """Test the pure helpers."""

    def test_strip_ansi(self):
        assert strip_ansi("\x1b[1;32mINFO\x1b[0m ready\x1b[K") == "INFO ready"

    def test_strip_ansi_plain(self):
        assert strip_ansi("Finished loading!") == "Finished loading!"

    def test_find_free_port_is_bindable(self):
        port = find_free_port("127.0.0.1")

        assert 0 < port < 65536
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", port))

    def test_port_in_use_is_not_reallocated(self):
        first = find_free_port("127.0.0.1")

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
            listener.bind(("127.0.0.1", first))
            listener.listen()
            second = find_free_port("127.0.0.1")

        assert second != first

    def test_empty_sink_is_kept(self, test_config, layout, linux_x64, log_lines):
        assert len(log_lines) == 0

        launcher = ServerLauncher(test_config, layout, linux_x64, send_log=log_lines)

        assert launcher.send_log is log_lines

    def test_build_command(self):
        command = build_command(
            Path("/jvm/bin/java"),
            ["-Xmx2G", "-Dfoo=bar"],
            "sf.grpc.port",
            40123,
            Path("/data/jars/App-1.0.0.jar"),
        )

        assert command == [
            str(Path("/jvm/bin/java")),
            "-Xmx2G",
            "-Dfoo=bar",
            "-Dsf.grpc.port=40123",
            "-jar",
            str(Path("/data/jars/App-1.0.0.jar")),
        ]

    def test_environment_prepends_library_dirs(self):
        java_home = Path("/data/jvm-25")
        env = build_environment(
            PlatformInfo("linux", "x64"),
            java_home,
            base_env={"LD_LIBRARY_PATH": "/usr/local/lib", "HOME": "/home/u"},
        )

        assert env["LD_LIBRARY_PATH"] == os.pathsep.join(
            [str(java_home / "lib"), str(java_home / "lib" / "server"), "/usr/local/lib"]
        )
        assert env["JAVA_HOME"] == str(java_home)
        assert env["HOME"] == "/home/u"

    def test_environment_without_existing_value(self):
        java_home = Path("/data/jvm-25/Contents/Home")
        env = build_environment(PlatformInfo("mac", "aarch64"), java_home, base_env={})

        assert env["DYLD_LIBRARY_PATH"] == os.pathsep.join(
            [str(java_home / "lib"), str(java_home / "lib" / "server")]
        )
        assert "LD_LIBRARY_PATH" not in env

    def test_environment_windows_uses_path(self):
        java_home = Path("C:/data/jvm-25")
        env = build_environment(
            PlatformInfo("windows", "x64"), java_home, base_env={"PATH": "C:/Windows"}
        )

        assert env["PATH"].startswith(str(java_home / "bin"))
        assert env["PATH"].endswith("C:/Windows")


@pytest.mark.posix_process
class TestServerLauncher:
    """Test spawning the fake server."""

    def test_launch_until_ready(self, launcher, runtime_dir, jar_path, layout, log_lines):
        managed = launcher.launch(runtime_dir, jar_path)
        try:
            assert managed.ready
            assert managed.is_running()
            assert managed.endpoint == f"http://127.0.0.1:{managed.port}"

            claims = jwt.decode(
                managed.credential, FAKE_SECRET, algorithms=["HS256"], audience="api"
            )
            assert claims["sub"] == "00000000-0000-0000-0000-000000000000"

            assert f"INFO Starting on port {managed.port}" in log_lines
            assert f"jar={jar_path}" in log_lines
            assert f"java_home={runtime_dir}" in log_lines
            assert any(
                line.startswith("cwd=")
                and Path(line[len("cwd=") :]).resolve() == layout.run_dir.resolve()
                for line in log_lines
            )
            assert log_lines[-1] == "Server ready"
            assert not any("Finished loading!" in line for line in log_lines)
        finally:
            managed.kill()

        assert not managed.is_running()

    def test_output_drained_after_ready(self, launcher, runtime_dir, jar_path, caplog):
        with caplog.at_level(logging.INFO, logger="launchkit.server.output"):
            managed = launcher.launch(runtime_dir, jar_path)
            try:
                assert wait_for(lambda: "tick" in caplog.messages)
            finally:
                managed.kill()

    def test_kill_is_repeatable(self, launcher, runtime_dir, jar_path):
        managed = launcher.launch(runtime_dir, jar_path)

        first = managed.kill()
        second = managed.kill()

        assert first is not None
        assert second == first
        assert managed.process.stdout.closed
        assert not managed.reader.is_alive()

    def test_exit_before_ready(self, launcher, runtime_dir, jar_path, log_lines):
        with pytest.raises(ProcessExitedEarly) as exc_info:
            launcher.launch(runtime_dir, jar_path, ["-Dfake.mode=exit-early"])

        assert exc_info.value.returncode == 3
        assert "Crashing" in log_lines

    def test_readiness_timeout_kills_child(self, test_config, layout, linux_x64, runtime_dir, jar_path):
        test_config.server.readiness_timeout = 0.5
        launcher = ServerLauncher(test_config, layout, linux_x64)

        with patch.object(
            ManagedProcess, "kill", autospec=True, side_effect=ManagedProcess.kill
        ) as mock_kill:
            with pytest.raises(ReadinessTimeout):
                launcher.launch(runtime_dir, jar_path, ["-Dfake.mode=silent"])

        managed = mock_kill.call_args[0][0]
        assert not managed.is_running()

    def test_missing_secret_key_kills_child(self, launcher, runtime_dir, jar_path):
        with patch.object(
            ManagedProcess, "kill", autospec=True, side_effect=ManagedProcess.kill
        ) as mock_kill:
            with pytest.raises(InvalidSecretKey):
                launcher.launch(runtime_dir, jar_path, ["-Dfake.mode=no-key"])

        managed = mock_kill.call_args[0][0]
        assert not managed.is_running()

    def test_default_jvm_args_from_config(self, test_config, layout, linux_x64, runtime_dir, jar_path):
        test_config.server.jvm_args = ["-Dfake.mode=exit-early"]
        launcher = ServerLauncher(test_config, layout, linux_x64)

        with pytest.raises(ProcessExitedEarly):
            launcher.launch(runtime_dir, jar_path)

    def test_spawn_error(self, launcher, layout, jar_path):
        with pytest.raises(ProcessSpawnError):
            launcher.launch(layout.root / "no-such-runtime", jar_path)

    def test_second_launch_gets_distinct_port(self, launcher, runtime_dir, jar_path):
        first = launcher.launch(runtime_dir, jar_path)
        try:
            second = launcher.launch(runtime_dir, jar_path)
            try:
                assert first.is_running()
                assert second.port != first.port
            finally:
                second.kill()
        finally:
            first.kill()

    def test_relative_data_dir(self, test_config, linux_x64, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        layout = DataLayout.create("rel-data").ensure()
        install_fake_runtime(layout.runtime_dir)
        (layout.jars_dir / "App-1.0.0.jar").write_bytes(b"jar")
        launcher = ServerLauncher(test_config, layout, linux_x64)

        managed = launcher.launch(
            Path("rel-data") / "jvm-25", Path("rel-data") / "jars" / "App-1.0.0.jar"
        )
        try:
            assert managed.ready
            assert managed.credential
        finally:
            managed.kill()
