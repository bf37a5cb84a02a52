"""
Shared download-verify-write steps of the artifact acquirers.

Both acquirers follow the same middle section of their state machines:
DOWNLOAD -> VERIFY_MEMORY -> WRITE_TEMP -> VERIFY_DISK. Subclasses add the
probing before and the installing after.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional

import requests

from launchkit.config.parser import LaunchKitConfig
from launchkit.core.directory import DataLayout
from launchkit.core.download import (
    ProgressReporter,
    create_session,
    download_bytes,
    fetch_json,
)
from launchkit.core.exceptions import InvalidChecksum
from launchkit.core.filesystem import remove_path, write_file_synced
from launchkit.core.locking import LockManager
from launchkit.core.verification import verify_bytes, verify_file
from launchkit.artifacts.metadata import ArtifactSpec

logger = logging.getLogger(__name__)

SendLog = Callable[[Any], None]


class ArtifactAcquirer(ABC):
    """
    Guarantees one verified artifact exists on disk.

    Attributes:
        config: Complete launchkit configuration
        layout: Data directory layout
        send_log: Receives human-readable progress lines
        session: HTTP session shared by every request of this acquirer
        lock_manager: Cross-process install locks
    """

    def __init__(
        self,
        config: LaunchKitConfig,
        layout: DataLayout,
        send_log: Optional[SendLog] = None,
        session: Optional[requests.Session] = None,
        lock_manager: Optional[LockManager] = None,
    ):
        self.config = config
        self.layout = layout
        self.send_log = (
            send_log if send_log is not None else (lambda payload: logger.info(payload))
        )
        self.session = session or create_session()
        self.lock_manager = lock_manager or LockManager(layout.lock_dir)

    @abstractmethod
    def ensure(self) -> Path:
        """Make sure the artifact is installed and return its final path."""

    def _fetch_json(self, url: str) -> Any:
        return fetch_json(url, session=self.session, timeout=self.config.download.timeout)

    def _download(self, spec: ArtifactSpec) -> bytes:
        """DOWNLOAD: stream the artifact into memory, reporting percent progress."""
        reporter = ProgressReporter(spec.label, self.send_log)
        reporter(0, 1)
        result = download_bytes(
            spec.url,
            progress_callback=reporter,
            session=self.session,
            timeout=self.config.download.timeout,
            max_retries=self.config.download.max_retries,
        )
        return result.content

    def _verify_memory(self, content: bytes, spec: ArtifactSpec) -> None:
        """VERIFY_MEMORY: fail fast before anything touches the disk."""
        self.send_log(f"Verifying {spec.label} sha256 checksum...")
        try:
            verify_bytes(content, spec.expected_digest, spec.label)
        except InvalidChecksum:
            self.send_log(f"{spec.label} checksum verification failed")
            raise

    def _write_verified_temp(self, content: bytes, temp_path: Path, spec: ArtifactSpec) -> Path:
        """
        WRITE_TEMP + VERIFY_DISK: persist the bytes and re-read them.

        The temporary file is removed when the write or the verification fails.
        """
        try:
            write_file_synced(temp_path, content)
            self.send_log(f"Verifying {spec.label} sha256 checksum from disk...")
            verify_file(temp_path, spec.expected_digest, spec.label)
        except InvalidChecksum:
            remove_path(temp_path)
            self.send_log(f"{spec.label} checksum verification from disk failed")
            raise
        except OSError:
            remove_path(temp_path)
            raise
        return temp_path
