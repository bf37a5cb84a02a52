"""
Bootstrap coordinator.

Runs the pipeline runtime acquisition -> application acquisition -> launch,
stopping at the first failure, and allows only one bootstrap at a time.

Example:
    state = BootstrapState()
    coordinator = BootstrapCoordinator(config, layout, state, bus=bus)
    result = coordinator.bootstrap(["-Xmx2G"])
    print(result.as_message())   # "http://127.0.0.1:<port>\\n<token>"
    coordinator.kill()
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import requests

from launchkit.artifacts.application import ApplicationAcquirer
from launchkit.artifacts.runtime import RuntimeAcquirer
from launchkit.bootstrap.state import BootstrapState
from launchkit.config.parser import LaunchKitConfig
from launchkit.core.directory import DataLayout
from launchkit.core.download import create_session
from launchkit.core.events import KILL_EVENT, KILLED_EVENT, READY_EVENT, EventBus, LogSink
from launchkit.core.exceptions import AlreadyStarting, LaunchKitError
from launchkit.core.locking import LockManager
from launchkit.core.platform import PlatformInfo, detect_platform
from launchkit.server.launcher import ManagedProcess, ServerLauncher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BootstrapResult:
    """Where the ready server listens and how to authenticate to it."""

    endpoint: str
    credential: str

    def as_message(self) -> str:
        return f"{self.endpoint}\n{self.credential}"


class BootstrapCoordinator:
    """
    Single entry point for starting and stopping the integrated server.

    Attributes:
        config: Complete launchkit configuration
        layout: Data directory layout
        state: Shared bootstrap state
        bus: Event bus the UI listens on (optional)
    """

    def __init__(
        self,
        config: LaunchKitConfig,
        layout: DataLayout,
        state: Optional[BootstrapState] = None,
        bus: Optional[EventBus] = None,
        platform_info: Optional[PlatformInfo] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.layout = layout
        self.state = state or BootstrapState()
        self.bus = bus
        self.platform_info = platform_info or detect_platform()
        self.session = session or create_session()
        self.send_log = LogSink(bus)
        self._kill_subscription: Optional[str] = None

    def _runtime_acquirer(self) -> RuntimeAcquirer:
        return RuntimeAcquirer(
            self.config,
            self.layout,
            send_log=self.send_log,
            session=self.session,
            lock_manager=LockManager(self.layout.lock_dir),
            platform_info=self.platform_info,
        )

    def _application_acquirer(self) -> ApplicationAcquirer:
        return ApplicationAcquirer(
            self.config,
            self.layout,
            send_log=self.send_log,
            session=self.session,
            lock_manager=LockManager(self.layout.lock_dir),
        )

    def _launcher(self) -> ServerLauncher:
        return ServerLauncher(
            self.config, self.layout, self.platform_info, send_log=self.send_log
        )

    def bootstrap(self, jvm_args: Optional[Sequence[str]] = None) -> BootstrapResult:
        """
        Make the runtime and jar present, start the server and wait for it.

        Args:
            jvm_args: Extra runtime flags (default: server.jvm_args from config)

        Returns:
            Endpoint and credential of the ready server

        Raises:
            AlreadyStarting: If another bootstrap is in flight
            LaunchKitError: On the first failing step
        """
        if not self.state.try_begin():
            logger.warning("Integrated server is already starting")
            raise AlreadyStarting()

        try:
            self.layout.ensure()
            runtime_dir = self._runtime_acquirer().ensure()
            jar_path = self._application_acquirer().ensure()
            managed = self._launcher().launch(runtime_dir, jar_path, jvm_args)
            self._store(managed)
        except LaunchKitError as e:
            logger.error(f"Bootstrap failed: {e}")
            raise
        finally:
            self.state.finish()

        result = BootstrapResult(endpoint=managed.endpoint, credential=managed.credential)
        if self.bus is not None:
            self.bus.publish(READY_EVENT, result.as_message())
        return result

    def _store(self, managed: ManagedProcess) -> None:
        previous = self.state.attach_process(managed)
        if previous is not None:
            logger.warning(f"Replacing previous server process {previous.pid}")
            previous.kill()

    def kill(self) -> bool:
        """
        Terminate the running server, if any.

        Safe to call any number of times.

        Returns:
            True if a process was killed
        """
        managed = self.state.take_process()
        if managed is None:
            logger.debug("No integrated server to kill")
            return False

        managed.kill()
        self.state.finish()
        logger.info("Integrated server killed")
        return True

    def attach(self, bus: EventBus) -> None:
        """Listen for kill requests on bus and report back once handled."""
        self.bus = bus
        self.send_log = LogSink(bus)

        def on_kill(_payload) -> None:
            self.kill()
            bus.publish(KILLED_EVENT)

        self._kill_subscription = bus.subscribe(KILL_EVENT, on_kill)

    def detach(self) -> None:
        if self.bus is not None and self._kill_subscription is not None:
            self.bus.unsubscribe(KILL_EVENT, self._kill_subscription)
        self._kill_subscription = None
