"""
SHA-256 verification for downloaded artifacts.

Digests are computed as lowercase hex and compared case-insensitively in
constant time. Every artifact is verified twice: once over the bytes held in
memory right after the download, and once over the temporary file after it has
been written and re-read from disk.
"""

import hashlib
import logging
import secrets
from pathlib import Path
from typing import Optional

from launchkit.core.exceptions import InvalidChecksum

logger = logging.getLogger(__name__)

SHA256_PREFIX = "sha256:"
_CHUNK_SIZE = 65536


def sha256_hex(data: bytes) -> str:
    """
    Compute the SHA-256 digest of a byte buffer.

    Example:
        >>> sha256_hex(b"")
        'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    return hashlib.sha256(data).hexdigest()


def sha256_file_hex(file_path: Path) -> str:
    """
    Compute the SHA-256 digest of a file, reading it from disk in chunks.

    Args:
        file_path: Path to file

    Returns:
        Lowercase hex digest

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            hasher.update(chunk)
    return hasher.hexdigest()


def digests_match(actual: str, expected: str) -> bool:
    """Compare two hex digests case-insensitively in constant time."""
    return secrets.compare_digest(
        actual.strip().lower().encode("utf-8"),
        expected.strip().lower().encode("utf-8"),
    )


def parse_sha256_digest(value: Optional[str]) -> Optional[str]:
    """
    Normalize a published digest, accepting an optional ``sha256:`` prefix.

    Returns:
        The bare hex digest, or None for an empty value

    Example:
        >>> parse_sha256_digest("sha256:ABCD")
        'ABCD'
        >>> parse_sha256_digest("") is None
        True
    """
    if not value:
        return None
    if value.startswith(SHA256_PREFIX):
        value = value[len(SHA256_PREFIX) :]
    return value or None


def verify_bytes(data: bytes, expected: str, artifact: str) -> str:
    """
    Verify in-memory bytes against an expected digest.

    Args:
        data: Downloaded content
        expected: Expected hex digest
        artifact: Human-readable artifact label used in the error

    Returns:
        The computed digest

    Raises:
        InvalidChecksum: If the digest does not match (stage 'memory')
    """
    actual = sha256_hex(data)
    if not digests_match(actual, expected):
        raise InvalidChecksum(artifact, "memory", expected, actual)
    logger.debug(f"{artifact} checksum verified in memory: {actual}")
    return actual


def verify_file(file_path: Path, expected: str, artifact: str) -> str:
    """
    Verify a file on disk against an expected digest.

    Raises:
        InvalidChecksum: If the digest does not match (stage 'disk')
    """
    actual = sha256_file_hex(file_path)
    if not digests_match(actual, expected):
        raise InvalidChecksum(artifact, "disk", expected, actual)
    logger.debug(f"{artifact} checksum verified on disk: {file_path}")
    return actual


__all__ = [
    "SHA256_PREFIX",
    "digests_match",
    "parse_sha256_digest",
    "sha256_file_hex",
    "sha256_hex",
    "verify_bytes",
    "verify_file",
]
