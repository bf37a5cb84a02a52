"""
Process-wide bootstrap state.

One BootstrapState is created at startup and handed to the coordinator. It
holds the in-flight flag and the handle of the running server.
"""

import threading
from typing import Optional

from launchkit.server.launcher import ManagedProcess


class BootstrapState:
    """
    In-flight flag plus the current server process.

    The flag and the process are guarded by separate locks: the flag is
    flipped by bootstrap callers, the process is read by kill requests that
    arrive from other threads.
    """

    def __init__(self) -> None:
        self._starting = False
        self._starting_lock = threading.Lock()
        self._process: Optional[ManagedProcess] = None
        self._process_lock = threading.Lock()

    def try_begin(self) -> bool:
        """Set the in-flight flag if it is clear. Returns False if already set."""
        with self._starting_lock:
            if self._starting:
                return False
            self._starting = True
            return True

    def finish(self) -> None:
        with self._starting_lock:
            self._starting = False

    @property
    def is_starting(self) -> bool:
        with self._starting_lock:
            return self._starting

    def attach_process(self, process: ManagedProcess) -> Optional[ManagedProcess]:
        """Store process, returning the one it replaced (if any)."""
        with self._process_lock:
            previous = self._process
            self._process = process
            return previous

    def take_process(self) -> Optional[ManagedProcess]:
        with self._process_lock:
            process = self._process
            self._process = None
            return process

    @property
    def process(self) -> Optional[ManagedProcess]:
        with self._process_lock:
            return self._process
