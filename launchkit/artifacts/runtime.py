"""
Managed runtime (JVM) acquisition.

State machine:
    CHECK_EXISTING -> done
    CHECK_EXISTING -> FETCH_METADATA -> DOWNLOAD -> VERIFY_MEMORY -> WRITE_TEMP
        -> VERIFY_DISK -> EXTRACT -> VALIDATE_SHAPE -> INSTALL -> done

CHECK_EXISTING only probes for the runtime directory; an installed runtime is
not re-verified on later runs.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from launchkit.artifacts.base import ArtifactAcquirer
from launchkit.artifacts.metadata import ArtifactKind, ArtifactSpec, RuntimeRelease
from launchkit.core.exceptions import ExtractIncomplete, UnsupportedPlatformError
from launchkit.core.filesystem import (
    extract_archive_bytes,
    promote,
    recover_interrupted_install,
    remove_path,
    remove_stale_temporaries,
    unix_timestamp_millis,
)
from launchkit.core.platform import PlatformInfo, detect_platform

logger = logging.getLogger(__name__)


class RuntimeAcquirer(ArtifactAcquirer):
    """
    Guarantees a verified managed runtime directory exists.

    Example:
        >>> acquirer = RuntimeAcquirer(config, layout, send_log=sink)
        >>> runtime_dir = acquirer.ensure()
        >>> acquirer.java_executable(runtime_dir)
        PosixPath('/home/user/.local/share/launchkit/jvm-25/bin/java')
    """

    def __init__(self, *args, platform_info: Optional[PlatformInfo] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.platform_info = platform_info or detect_platform()

    @property
    def runtime_dir(self) -> Path:
        return self.layout.runtime_dir

    def java_home(self, runtime_dir: Optional[Path] = None) -> Path:
        return self.platform_info.java_home(runtime_dir or self.runtime_dir)

    def java_executable(self, runtime_dir: Optional[Path] = None) -> Path:
        return self.platform_info.java_executable_path(runtime_dir or self.runtime_dir)

    def ensure(self) -> Path:
        """
        Make sure the runtime is installed.

        Returns:
            The runtime directory

        Raises:
            UnsupportedPlatformError: If the host os or arch is unknown
            DownloadFailed, NoContentLengthHeader: On HTTP failures
            JsonFieldInvalid: If the vendor metadata is missing a field
            InvalidChecksum: If the archive digest does not match
            InvalidArchiveType, InvalidZipData, ExtractIncomplete: On archive problems
        """
        if self.runtime_dir.exists():
            self.send_log("JVM detected")
            return self.runtime_dir

        self.layout.root.mkdir(parents=True, exist_ok=True)
        with self.lock_manager.install_lock(self.layout.runtime_dir_name):
            recover_interrupted_install(self.runtime_dir)
            remove_stale_temporaries(self.layout.root, self.layout.runtime_dir_name)

            # Another process may have finished the install while we waited
            if self.runtime_dir.exists():
                self.send_log("JVM detected")
                return self.runtime_dir

            self._install()

        self.send_log("Downloaded JVM")
        return self.runtime_dir

    def _fetch_release(self) -> RuntimeRelease:
        """FETCH_METADATA"""
        if not self.platform_info.is_supported:
            raise UnsupportedPlatformError(self.platform_info.os, self.platform_info.arch)

        url = self.config.runtime.metadata_url_for(
            self.platform_info.runtime_os, self.platform_info.arch
        )
        logger.info(f"JVM URL: {url}")

        self.send_log("Fetching JVM data...")
        release = RuntimeRelease.from_json(self._fetch_json(url))
        logger.info(f"Download URL: {release.link}")
        return release

    def _install(self) -> None:
        release = self._fetch_release()
        spec = ArtifactSpec(
            kind=ArtifactKind.RUNTIME,
            version=str(self.config.runtime.feature_version),
            url=release.link,
            expected_digest=release.checksum,
            final_path=self.runtime_dir,
        )

        content = self._download(spec)
        self._verify_memory(content, spec)

        name = self.layout.runtime_dir_name
        timestamp = unix_timestamp_millis()
        archive_tmp_path = self.layout.root / f"{name}-archive.tmp.{timestamp}"
        extract_tmp_root = self.layout.root / f"{name}-extract.tmp.{timestamp}"
        runtime_tmp_dir = self.layout.root / f"{name}.tmp.{timestamp}"

        try:
            self._write_verified_temp(content, archive_tmp_path, spec)

            self.send_log("Extracting JVM...")
            extract_archive_bytes(content, spec.url, extract_tmp_root)

            extracted_dir = extract_tmp_root / release.archive_root_name(
                self.config.runtime.image_type
            )
            if not extracted_dir.is_dir():
                raise ExtractIncomplete(
                    f"Archive did not contain the expected directory {extracted_dir.name}"
                )

            self.send_log("Validating extracted JVM...")
            java_exec = self.java_executable(extracted_dir)
            if not java_exec.is_file():
                raise ExtractIncomplete(
                    f"Extracted JVM is missing its executable: {java_exec}"
                )

            os.rename(extracted_dir, runtime_tmp_dir)
            promote(runtime_tmp_dir, self.runtime_dir)
        finally:
            remove_path(archive_tmp_path)
            remove_path(extract_tmp_root)
            remove_path(runtime_tmp_dir)
