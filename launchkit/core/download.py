"""
Network download manager with progress tracking.

This module provides the HTTP side of the bootstrap pipeline:
- Streaming GET of a complete artifact into memory
- Mandatory Content-Length, used for progress and as a size expectation
- Progress callbacks after every chunk, coalesced to one log line per percent
- JSON metadata fetches with the same status handling
- Optional retry with exponential backoff on transport errors
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests
from requests.exceptions import RequestException

from launchkit.core import __version__
from launchkit.core.exceptions import (
    DownloadFailed,
    MetadataError,
    NoContentLengthHeader,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"launchkit/{__version__}"
CHUNK_SIZE = 65536

ProgressCallback = Callable[[int, Optional[int]], None]


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: Optional[int]

    @property
    def percentage(self) -> int:
        """Whole percent downloaded (0 when the total is unknown)."""
        if not self.total_bytes:
            return 100 if self.total_bytes == 0 else 0
        return min(100, self.bytes_downloaded * 100 // self.total_bytes)

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


@dataclass
class DownloadResult:
    """Body of a completed download."""

    content: bytes
    total_bytes: int


class ProgressReporter:
    """
    Turn per-chunk progress into at most one message per whole percent.

    Example:
        >>> reporter = ProgressReporter("JVM", print)
        >>> reporter(0, 200)
        Downloading JVM... 0%
        >>> reporter(1, 200)
        >>> reporter(2, 200)
        Downloading JVM... 1%
    """

    def __init__(self, label: str, emit: Callable[[str], Any]):
        self.label = label
        self.emit = emit
        self.last_percent: Optional[int] = None

    def __call__(self, downloaded: int, total: Optional[int]) -> None:
        percent = DownloadProgress(downloaded, total).percentage
        if percent == self.last_percent:
            return

        self.last_percent = percent
        self.emit(f"Downloading {self.label}... {percent}%")


def create_session() -> requests.Session:
    """Create an HTTP session identifying itself as launchkit."""
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    return session


def download_bytes(
    url: str,
    progress_callback: Optional[ProgressCallback] = None,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
    max_retries: int = 1,
) -> DownloadResult:
    """
    Download a complete response body into memory.

    Args:
        url: URL to download from
        progress_callback: Optional callback(downloaded, total) after each chunk
        session: HTTP session (a fresh one is created if None)
        timeout: Connect/read timeout in seconds
        max_retries: Attempts on transport errors (1 means no retry)

    Returns:
        DownloadResult with the body and the declared length

    Raises:
        DownloadFailed: On a non-success status, transport error or short body
        NoContentLengthHeader: If the server omits Content-Length
        ValueError: If the URL is empty

    Example:
        >>> result = download_bytes("https://example.com/jre.tar.gz")
        >>> len(result.content) == result.total_bytes
        True
    """
    if not url:
        raise ValueError("URL cannot be empty")

    session = session or create_session()

    for attempt in range(max_retries):
        try:
            return _download_with_progress(url, session, progress_callback, timeout)
        except RequestException as e:
            if attempt >= max_retries - 1:
                raise DownloadFailed(url, str(e)) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)

    raise DownloadFailed(url, "no download attempt was made")


def _download_with_progress(
    url: str,
    session: requests.Session,
    progress_callback: Optional[ProgressCallback],
    timeout: int,
) -> DownloadResult:
    logger.info(f"Downloading from {url}")

    with session.get(url, stream=True, timeout=timeout, allow_redirects=True) as response:
        if not response.ok:
            raise DownloadFailed(
                url, f"HTTP {response.status_code}", status_code=response.status_code
            )

        content_length = response.headers.get("content-length")
        if content_length is None:
            raise NoContentLengthHeader(url)
        try:
            total_size = int(content_length)
        except ValueError:
            raise NoContentLengthHeader(url)

        content = bytearray()
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if not chunk:
                continue
            content.extend(chunk)
            if progress_callback:
                progress_callback(len(content), total_size)

        # Decoded bodies legitimately differ from the encoded length
        encoded = "content-encoding" in response.headers
        if not encoded and len(content) < total_size:
            raise DownloadFailed(
                url, f"truncated body: received {len(content)} of {total_size} bytes"
            )

    logger.debug(f"Download complete: {url} ({len(content)} bytes)")
    return DownloadResult(content=bytes(content), total_bytes=total_size)


def fetch_json(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> Any:
    """
    GET a JSON document.

    Raises:
        DownloadFailed: On a non-success status or transport error
        MetadataError: If the body is not valid JSON
    """
    session = session or create_session()
    logger.debug(f"Fetching metadata from {url}")

    try:
        response = session.get(url, timeout=timeout)
    except RequestException as e:
        raise DownloadFailed(url, str(e)) from e

    if not response.ok:
        raise DownloadFailed(
            url, f"HTTP {response.status_code}", status_code=response.status_code
        )

    try:
        return response.json()
    except ValueError as e:
        raise MetadataError(f"Invalid JSON from {url}: {e}") from e


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> print(format_progress(DownloadProgress(52428800, 104857600)))
        50.0/100.0 MB (50%)
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    if progress.total_bytes:
        mb_total = progress.total_bytes / 1024 / 1024
        return f"{mb_downloaded:.1f}/{mb_total:.1f} MB ({progress.percentage}%)"
    return f"{mb_downloaded:.1f} MB"
