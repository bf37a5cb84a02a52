"""
Cross-process install locking for launchkit.

Two launcher processes sharing one data directory must never install the same
artifact at the same time. Installs run under a file lock per artifact; the
in-process single-bootstrap guard lives in launchkit.bootstrap.state.

Usage:
    from launchkit.core.locking import LockManager

    lock_manager = LockManager(layout.lock_dir)
    with lock_manager.install_lock("jvm-25"):
        # Re-check, then download and promote
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


class LockManager:
    """
    Manages install locks for launchkit artifacts.

    Uses file-based locking with the `filelock` library for cross-platform
    compatibility and automatic cleanup on process death.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def lock_path(self, artifact_id: str) -> Path:
        safe_id = artifact_id.replace("/", "-").replace("\\", "-").replace(":", "-")
        return self.lock_dir / f"install-{safe_id}.lock"

    @contextmanager
    def install_lock(self, artifact_id: str, timeout: float = 600):
        """
        Acquire the install lock for one artifact.

        Args:
            artifact_id: Artifact identifier (e.g., 'jvm-25', 'App-1.0.0.jar')
            timeout: Maximum wait time in seconds (default: 600 for long downloads)

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        lock_path = self.lock_path(artifact_id)
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired install lock: {lock_path}")
                yield
                logger.debug(f"Released install lock: {lock_path}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire install lock for {artifact_id} after {timeout}s. "
                "Another process may be installing it."
            )
            raise LockTimeout(str(lock_path)) from e


__all__ = ["LockManager", "LockTimeout"]
