"""
File system utilities for the bootstrap pipeline.

This module provides:
- Archive extraction from memory (tar.gz, zip) with path validation
- Durable temporary file writes (write + fsync)
- Atomic promotion of a verified temporary file or directory into its final
  location, with backup and rollback
- Recovery of installs interrupted by a crash
- Best-effort cleanup helpers

The promote sequence never leaves a final path half-written: a crash between
steps leaves either the previous artifact (in its backup) or the new one.
"""

import io
import logging
import os
import shutil
import tarfile
import time
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from launchkit.core.exceptions import (
    ArchiveError,
    InsecureArchiveError,
    InstallError,
    InvalidArchiveType,
    InvalidZipData,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

BACKUP_MARKER = ".bak."
TEMP_MARKER = ".tmp."


def unix_timestamp_millis() -> int:
    """Milliseconds since the epoch, used to name temporary and backup paths."""
    return time.time_ns() // 1_000_000


# ============================================================================
# Archive Extraction
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is under parent directory.

    Example:
        >>> is_relative_to(Path("/data/jvm/bin"), Path("/data"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def _resolve_member_path(name: str, destination: Path) -> Optional[Path]:
    """
    Resolve an archive member name under destination.

    Returns:
        The resolved path, or None if the name is absolute or escapes
        the destination
    """
    if not name or name.startswith(("/", "\\")) or os.path.isabs(name):
        return None
    if len(name) > 1 and name[1] == ":":
        return None

    root = destination.resolve()
    member_path = (root / name).resolve()
    if member_path != root and not is_relative_to(member_path, root):
        return None
    return member_path


def archive_kind(url: str) -> str:
    """
    Determine the container format from a download URL.

    Returns:
        'tar.gz' or 'zip'

    Raises:
        InvalidArchiveType: For any other suffix
    """
    path = url.split("?", 1)[0].split("#", 1)[0].lower()
    if path.endswith((".tar.gz", ".tgz")):
        return "tar.gz"
    if path.endswith(".zip"):
        return "zip"
    raise InvalidArchiveType(url)


def extract_archive_bytes(content: bytes, url: str, destination: Union[str, Path]) -> None:
    """
    Extract an in-memory archive into a directory.

    The format is chosen from the URL suffix. Relative structure is preserved;
    locating the expected root directory is up to the caller.

    Args:
        content: Archive bytes
        url: Download URL (selects the format)
        destination: Directory to extract into (created if missing)

    Raises:
        InvalidArchiveType: If the URL suffix is not .tar.gz/.tgz/.zip
        InvalidZipData: If a zip entry name cannot be safely resolved
        InsecureArchiveError: If a tar member escapes the destination
        ArchiveError: If the archive is corrupt

    Example:
        >>> extract_archive_bytes(data, "https://x/jre.tar.gz", Path("/tmp/jre"))
    """
    kind = archive_kind(url)
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)

    try:
        if kind == "tar.gz":
            _extract_tar_gz(content, destination)
        else:
            _extract_zip(content, destination)
    except (tarfile.ReadError, tarfile.CompressionError, EOFError) as e:
        raise ArchiveError(f"Corrupt tar.gz archive from {url}: {e}") from e
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Corrupt zip archive from {url}: {e}") from e


def _extract_tar_gz(content: bytes, destination: Path) -> None:
    """Extract a .tar.gz archive held in memory."""
    with tarfile.open(fileobj=io.BytesIO(content), mode="r:gz") as tar:
        for member in tar.getmembers():
            if _resolve_member_path(member.name, destination) is None:
                raise InsecureArchiveError(
                    f"Archive member '{member.name}' attempts directory traversal. "
                    "This is a security risk and extraction has been blocked."
                )

        if hasattr(tarfile, "data_filter"):
            try:
                tar.extractall(destination, filter="data")
            except tarfile.FilterError as e:
                raise InsecureArchiveError(f"Archive member rejected: {e}") from e
        else:
            tar.extractall(destination)


def _extract_zip(content: bytes, destination: Path) -> None:
    """Extract a zip archive held in memory, keeping unix permission bits."""
    with zipfile.ZipFile(io.BytesIO(content)) as zf:
        for info in zf.infolist():
            target = _resolve_member_path(info.filename, destination)
            if target is None:
                raise InvalidZipData(
                    f"Zip entry '{info.filename}' cannot be extracted safely"
                )

            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as source, open(target, "wb") as sink:
                shutil.copyfileobj(source, sink)

            mode = (info.external_attr >> 16) & 0o777
            if mode and not IS_WINDOWS:
                os.chmod(target, mode)


# ============================================================================
# Safe File Operations
# ============================================================================


def write_file_synced(file_path: Union[str, Path], content: bytes) -> Path:
    """
    Write bytes to a new file and flush them to stable storage.

    Args:
        file_path: File to create (overwritten if present)
        content: Bytes to write

    Returns:
        The written path
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, "wb") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())

    return file_path


def remove_path(path: Union[str, Path]) -> bool:
    """
    Remove a file or directory tree, best effort.

    Used for temporary and backup paths whose removal must not mask the
    outcome of the operation that created them.

    Returns:
        True if nothing remains at path
    """
    path = Path(path)
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        return True
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False


def safe_rmtree(path: Union[str, Path], require_prefix: Union[str, Path]) -> None:
    """
    Remove a directory tree that must live under require_prefix.

    Raises:
        ValueError: If path is not under require_prefix

    Example:
        >>> safe_rmtree(layout.jars_dir, require_prefix=layout.root)
    """
    path = Path(path).resolve()
    require_prefix = Path(require_prefix).resolve()
    if not is_relative_to(path, require_prefix):
        raise ValueError(
            f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
        )

    if path.exists():
        shutil.rmtree(path)


# ============================================================================
# Atomic Install
# ============================================================================


@dataclass
class InstallTransaction:
    """
    One promotion of a temporary artifact into its final location.

    Attributes:
        temp_path: Fully written and verified temporary file or directory
        final_path: Location readers use
        timestamp: Milliseconds used to name the backup
    """

    temp_path: Path
    final_path: Path
    timestamp: int = field(default_factory=unix_timestamp_millis)

    @property
    def backup_path(self) -> Path:
        return self.final_path.with_name(
            f"{self.final_path.name}{BACKUP_MARKER}{self.timestamp}"
        )

    def promote(self) -> Path:
        """
        Move temp_path to final_path without exposing a missing or partial final path.

        If final_path exists it is first moved to backup_path; after the new
        artifact is in place the backup is deleted. If moving the new artifact
        fails, the backup is moved back and the error propagates.

        Returns:
            final_path

        Raises:
            OSError: If the install failed and the previous artifact was restored
            InstallError: If the install failed and the restore failed too
        """
        temp_path = Path(self.temp_path)
        final_path = Path(self.final_path)

        if not final_path.exists():
            os.rename(temp_path, final_path)
            logger.debug(f"Installed {final_path}")
            return final_path

        backup_path = self.backup_path
        os.rename(final_path, backup_path)
        try:
            os.rename(temp_path, final_path)
        except OSError as e:
            logger.error(f"Could not install {final_path}: {e}; restoring previous version")
            try:
                os.rename(backup_path, final_path)
            except OSError as restore_error:
                raise InstallError(
                    f"Install of {final_path} failed ({e}) and the previous version "
                    f"could not be restored from {backup_path} ({restore_error})"
                ) from e
            raise

        remove_path(backup_path)
        logger.debug(f"Replaced {final_path}")
        return final_path


def promote(temp_path: Union[str, Path], final_path: Union[str, Path]) -> Path:
    """
    Atomically replace final_path with temp_path.

    Example:
        >>> promote(Path("jars/app.jar.tmp.1700000000000"), Path("jars/app.jar"))
    """
    return InstallTransaction(Path(temp_path), Path(final_path)).promote()


def _marker_timestamp(path: Path, marker: str) -> int:
    try:
        return int(path.name.rsplit(marker, 1)[1])
    except (IndexError, ValueError):
        return -1


def find_backups(final_path: Union[str, Path]) -> List[Path]:
    """Backups of final_path left next to it, oldest first."""
    final_path = Path(final_path)
    if not final_path.parent.exists():
        return []
    backups = final_path.parent.glob(f"{final_path.name}{BACKUP_MARKER}*")
    return sorted(backups, key=lambda p: _marker_timestamp(p, BACKUP_MARKER))


def recover_interrupted_install(final_path: Union[str, Path]) -> bool:
    """
    Repair the state left by a crash in the middle of a promote.

    If final_path is missing but a backup exists, the newest backup is moved
    back into place. Remaining backups next to an intact final_path are stale
    and get removed.

    Returns:
        True if a backup was restored
    """
    final_path = Path(final_path)
    backups = find_backups(final_path)
    restored = False

    if backups and not final_path.exists():
        newest = backups.pop()
        logger.warning(f"Restoring {final_path} from interrupted install backup {newest}")
        os.rename(newest, final_path)
        restored = True

    for backup in backups:
        logger.debug(f"Removing stale backup {backup}")
        remove_path(backup)

    return restored


def remove_stale_temporaries(directory: Union[str, Path], stem: str) -> int:
    """
    Remove '<stem>.tmp.<millis>' and '<stem>-<part>.tmp.<millis>' leftovers
    from crashed installs. Paths of other stems sharing the prefix are kept.

    Returns:
        Number of paths removed
    """
    directory = Path(directory)
    if not directory.exists():
        return 0

    removed = 0
    patterns = (f"{stem}{TEMP_MARKER}*", f"{stem}-*{TEMP_MARKER}*")
    leftovers = {path for pattern in patterns for path in directory.glob(pattern)}
    for leftover in sorted(leftovers):
        if _marker_timestamp(leftover, TEMP_MARKER) < 0:
            continue
        logger.debug(f"Removing stale temporary {leftover}")
        if remove_path(leftover):
            removed += 1
    return removed


__all__ = [
    "InstallTransaction",
    "archive_kind",
    "extract_archive_bytes",
    "find_backups",
    "promote",
    "recover_interrupted_install",
    "remove_path",
    "remove_stale_temporaries",
    "safe_rmtree",
    "unix_timestamp_millis",
    "write_file_synced",
]
