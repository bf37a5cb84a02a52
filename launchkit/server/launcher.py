"""
Launching and supervising the integrated server.

The server jar runs on the managed runtime as a child process. Its merged
stdout/stderr is drained on a reader thread: every line is forwarded to the
UI log until the readiness sentinel appears, after which output keeps being
drained into the ``launchkit.server.output`` logger so the child never blocks
on a full pipe.

Example:
    launcher = ServerLauncher(config, layout, platform_info, send_log=sink)
    managed = launcher.launch(runtime_dir, jar_path)
    print(managed.endpoint, managed.credential)
    managed.kill()
"""

import logging
import os
import queue
import re
import socket
import subprocess
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from launchkit.config.parser import LaunchKitConfig
from launchkit.core.directory import DataLayout
from launchkit.core.exceptions import (
    NoPortAvailable,
    ProcessExitedEarly,
    ProcessSpawnError,
    ReadinessTimeout,
)
from launchkit.core.platform import PlatformInfo, detect_platform
from launchkit.server.credentials import mint_credential

logger = logging.getLogger(__name__)
output_logger = logging.getLogger("launchkit.server.output")

ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")

_READY = "ready"
_EOF = "eof"


def strip_ansi(text: str) -> str:
    """
    Remove terminal color and cursor escape sequences.

    Example:
        >>> strip_ansi("\\x1b[32mINFO\\x1b[0m started")
        'INFO started'
    """
    return ANSI_ESCAPE_PATTERN.sub("", text)


def find_free_port(host: str = "127.0.0.1") -> int:
    """
    Ask the OS for a free TCP port on host.

    Raises:
        NoPortAvailable: If no port could be bound
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind((host, 0))
            return sock.getsockname()[1]
    except OSError as e:
        raise NoPortAvailable(f"Could not allocate a TCP port on {host}: {e}")


def build_environment(
    platform_info: PlatformInfo,
    java_home: Path,
    base_env: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Build the child environment.

    The runtime's library directories are prepended to each library search
    variable of the platform, and JAVA_HOME points at the runtime home.
    """
    env = dict(os.environ if base_env is None else base_env)
    library_dirs = [str(d) for d in platform_info.library_dirs(java_home)]

    for var in platform_info.capabilities["library_path_vars"]:
        existing = env.get(var)
        env[var] = os.pathsep.join(library_dirs + ([existing] if existing else []))

    env["JAVA_HOME"] = str(java_home)
    return env


def build_command(
    java_executable: Path,
    jvm_args: Sequence[str],
    port_property: str,
    port: int,
    jar_path: Path,
) -> List[str]:
    """
    Build the argument vector.

    Example:
        >>> build_command(Path("java"), ["-Xmx1G"], "sf.grpc.port", 4000, Path("app.jar"))
        ['java', '-Xmx1G', '-Dsf.grpc.port=4000', '-jar', 'app.jar']
    """
    return [
        str(java_executable),
        *jvm_args,
        f"-D{port_property}={port}",
        "-jar",
        str(jar_path),
    ]


class OutputReader(threading.Thread):
    """
    Drains the child's output.

    Puts ``"ready"`` on ``events`` when the sentinel is seen and ``"eof"`` once
    the stream closes.
    """

    def __init__(self, stream, sentinel: str, send_log: Callable[[Any], None]):
        super().__init__(name="launchkit-server-output", daemon=True)
        self.stream = stream
        self.sentinel = sentinel
        self.send_log = send_log
        self.events: "queue.Queue[str]" = queue.Queue()

    def run(self) -> None:
        ready = False
        try:
            for raw_line in self.stream:
                line = strip_ansi(raw_line.rstrip("\r\n"))
                if ready:
                    output_logger.info(line)
                elif self.sentinel in line:
                    ready = True
                    self.send_log("Server ready")
                    self.events.put(_READY)
                else:
                    self.send_log(line)
        except (OSError, ValueError) as e:
            # Stream closed underneath us by kill()
            logger.debug(f"Server output stream closed: {e}")
        finally:
            self.events.put(_EOF)


class ManagedProcess:
    """
    A spawned server.

    Attributes:
        process: Child process handle
        host: Host the server listens on
        port: Port passed to the server
        ready: Whether the readiness sentinel was seen
        credential: Token minted once the server became ready
    """

    def __init__(
        self,
        process: subprocess.Popen,
        host: str,
        port: int,
        reader: Optional[OutputReader] = None,
    ):
        self.process = process
        self.host = host
        self.port = port
        self.reader = reader
        self.ready = False
        self.credential: Optional[str] = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def endpoint(self) -> str:
        return f"http://{self.host}:{self.port}"

    def is_running(self) -> bool:
        return self.process.poll() is None

    def wait(self, timeout: Optional[float] = None) -> int:
        return self.process.wait(timeout=timeout)

    def kill(self, timeout: float = 10.0) -> Optional[int]:
        """
        Kill the child and reap it.

        Returns:
            The exit code, or None if the child could not be reaped in time
        """
        if self.is_running():
            logger.info(f"Killing server process {self.pid}")
            try:
                self.process.kill()
            except ProcessLookupError:
                pass

        try:
            returncode = self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Server process {self.pid} did not exit after kill")
            return None

        if self.reader is not None:
            self.reader.join(timeout=timeout)
        if self.process.stdout is not None and not self.process.stdout.closed:
            self.process.stdout.close()
        return returncode

    def __repr__(self) -> str:
        return f"ManagedProcess(pid={self.pid}, endpoint={self.endpoint!r}, ready={self.ready})"


class ServerLauncher:
    """Spawns the server jar and waits for it to become ready."""

    def __init__(
        self,
        config: LaunchKitConfig,
        layout: DataLayout,
        platform_info: Optional[PlatformInfo] = None,
        send_log: Optional[Callable[[Any], None]] = None,
    ):
        self.config = config
        self.layout = layout
        self.platform_info = platform_info or detect_platform()
        self.send_log = (
            send_log if send_log is not None else (lambda payload: logger.info(payload))
        )

    def launch(
        self,
        runtime_dir: Path,
        jar_path: Path,
        jvm_args: Optional[Sequence[str]] = None,
    ) -> ManagedProcess:
        """
        Start the server and block until it is ready.

        Args:
            runtime_dir: Installed runtime directory
            jar_path: Installed server jar
            jvm_args: Extra runtime flags placed before the port property

        Returns:
            A ready ManagedProcess carrying its credential

        Raises:
            NoPortAvailable: If no port could be allocated
            ProcessSpawnError: If the runtime could not be executed
            ProcessExitedEarly: If the server exits before becoming ready
            ReadinessTimeout: If the server is not ready in time
            InvalidSecretKey: If the secret key file is missing or empty
        """
        server = self.config.server
        if jvm_args is None:
            jvm_args = server.jvm_args

        # The child runs in the run directory, so relative paths would not resolve
        runtime_dir = Path(runtime_dir).resolve()
        jar_path = Path(jar_path).resolve()
        java_home = self.platform_info.java_home(runtime_dir)
        java_exec = self.platform_info.java_executable_path(runtime_dir)

        port = find_free_port(server.host)
        logger.info(f"Integrated server port: {port}")

        command = build_command(java_exec, jvm_args, server.port_property, port, jar_path)
        env = build_environment(self.platform_info, java_home)
        run_dir = self.layout.run_dir
        run_dir.mkdir(parents=True, exist_ok=True)

        self.send_log("Starting server...")
        logger.debug(f"Command: {' '.join(command)}")
        try:
            process = subprocess.Popen(
                command,
                cwd=str(run_dir),
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ProcessSpawnError(f"Failed to start {java_exec}: {e}")

        reader = OutputReader(process.stdout, server.readiness_sentinel, self.send_log)
        managed = ManagedProcess(process, server.host, port, reader)
        reader.start()

        try:
            self._wait_until_ready(managed, server.readiness_timeout)
            managed.credential = mint_credential(run_dir, server.secret_key_file)
        except BaseException:
            managed.kill()
            raise

        logger.info("Integrated server ready for use")
        return managed

    def _wait_until_ready(self, managed: ManagedProcess, timeout: float) -> None:
        try:
            event = managed.reader.events.get(timeout=timeout)
        except queue.Empty:
            self.send_log(f"Server did not become ready within {timeout:g}s")
            raise ReadinessTimeout(timeout)

        if event == _EOF:
            try:
                returncode = managed.wait(timeout=5)
            except subprocess.TimeoutExpired:
                returncode = None
            self.send_log(f"Server exited before it was ready (exit code {returncode})")
            raise ProcessExitedEarly(returncode)

        managed.ready = True
