"""
Centralized exception hierarchy for launchkit.

Every failure of the bootstrap pipeline surfaces as a subclass of
LaunchKitError so callers can tell network, metadata, checksum, archive,
process and concurrency failures apart.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class LaunchKitError(Exception):
    """Base exception for all launchkit errors."""

    pass


class ConfigError(LaunchKitError):
    """Configuration parsing or validation error."""

    pass


class UnsupportedPlatformError(LaunchKitError):
    """Raised when the host OS or CPU has no runtime distribution."""

    def __init__(self, os_id: str, arch: str):
        self.os_id = os_id
        self.arch = arch
        super().__init__(f"No managed runtime available for platform {os_id}-{arch}")


# ============================================================================
# Network Exceptions
# ============================================================================


class NetworkError(LaunchKitError):
    """Base exception for HTTP failures."""

    pass


class DownloadFailed(NetworkError):
    """Raised when a GET does not complete with a success status."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Download failed for {url}: {reason}")


class NoContentLengthHeader(NetworkError):
    """Raised when a server omits the Content-Length header."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Server did not send a Content-Length header for {url}")


# ============================================================================
# Metadata Exceptions
# ============================================================================


class MetadataError(LaunchKitError):
    """Base exception for unexpected release metadata."""

    pass


class JsonFieldInvalid(MetadataError):
    """Raised when an expected metadata field is missing or has the wrong type."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Release metadata field is missing or invalid: {field}")


# ============================================================================
# Integrity Exceptions
# ============================================================================


class InvalidChecksum(LaunchKitError):
    """
    Raised when a SHA-256 digest does not match the published one.

    ``stage`` is ``"memory"`` for the downloaded bytes and ``"disk"`` for the
    bytes re-read from the temporary file, so transfer corruption and storage
    corruption are reported distinctly.
    """

    def __init__(self, artifact: str, stage: str, expected: str, actual: str):
        self.artifact = artifact
        self.stage = stage
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{artifact} checksum mismatch ({stage}): "
            f"expected {expected}, got {actual}"
        )


# ============================================================================
# Archive Exceptions
# ============================================================================


class ArchiveError(LaunchKitError):
    """Base exception for archive extraction failures."""

    pass


class InvalidArchiveType(ArchiveError):
    """Raised when the download URL has no supported archive suffix."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            f"Unsupported archive type for {url}. Supported: .tar.gz, .tgz, .zip"
        )


class InvalidZipData(ArchiveError):
    """Raised when a zip entry name cannot be resolved to a safe path."""

    pass


class InsecureArchiveError(ArchiveError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


class ExtractIncomplete(ArchiveError):
    """Raised when the extracted archive does not have the expected layout."""

    pass


class InstallError(LaunchKitError):
    """Raised when a promote failed and the previous install could not be restored."""

    pass


# ============================================================================
# Process Exceptions
# ============================================================================


class ProcessError(LaunchKitError):
    """Base exception for launching and supervising the server process."""

    pass


class NoPortAvailable(ProcessError):
    """Raised when no free local TCP port can be allocated."""

    pass


class ProcessSpawnError(ProcessError):
    """Raised when the server process cannot be started."""

    pass


class ProcessExitedEarly(ProcessError):
    """Raised when the server exits before printing the readiness sentinel."""

    def __init__(self, returncode: Optional[int]):
        self.returncode = returncode
        super().__init__(
            f"Server process exited before it was ready (exit code {returncode})"
        )


class ReadinessTimeout(ProcessError):
    """Raised when the server does not become ready in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Server did not become ready within {timeout:g}s")


class InvalidSecretKey(ProcessError):
    """Raised when the server's secret key file is missing or unusable."""

    pass


# ============================================================================
# Concurrency Exceptions
# ============================================================================


class AlreadyStarting(LaunchKitError):
    """Raised when a bootstrap is requested while another one is in flight."""

    def __init__(self):
        super().__init__("The integrated server is already starting")
