"""
Server jar acquisition.

State machine:
    FETCH_EXPECTED_DIGEST -> CHECK_EXISTING_AND_VERIFY -> done
    FETCH_EXPECTED_DIGEST -> CHECK_EXISTING_AND_VERIFY -> DOWNLOAD -> VERIFY_MEMORY
        -> WRITE_TEMP -> VERIFY_DISK -> INSTALL -> done

The expected digest is fetched from the release host on every run, so a jar
with the right name but the wrong content is always detected and replaced.
"""

import logging
from pathlib import Path

from launchkit.artifacts.base import ArtifactAcquirer
from launchkit.artifacts.metadata import ApplicationRelease, ArtifactKind, ArtifactSpec
from launchkit.core.filesystem import (
    promote,
    recover_interrupted_install,
    remove_path,
    remove_stale_temporaries,
    unix_timestamp_millis,
)
from launchkit.core.verification import digests_match, sha256_file_hex

logger = logging.getLogger(__name__)


class ApplicationAcquirer(ArtifactAcquirer):
    """Guarantees a verified server jar exists in the jars directory."""

    @property
    def artifact_name(self) -> str:
        return self.config.application.artifact_name

    @property
    def artifact_path(self) -> Path:
        return self.layout.jars_dir / self.artifact_name

    def fetch_expected_digest(self) -> str:
        """FETCH_EXPECTED_DIGEST: read the jar's digest from its release."""
        self.send_log("Fetching server jar checksum metadata...")
        url = self.config.application.release_metadata_url_for()
        release = ApplicationRelease.from_json(self._fetch_json(url))
        return release.sha256_for(self.artifact_name)

    def is_installed(self, expected_digest: str) -> bool:
        """CHECK_EXISTING_AND_VERIFY"""
        if not self.artifact_path.is_file():
            return False

        self.send_log("Verifying existing server jar sha256 checksum...")
        if digests_match(sha256_file_hex(self.artifact_path), expected_digest):
            self.send_log("Server jar already downloaded and verified")
            return True

        self.send_log("Existing server jar is corrupted, re-downloading...")
        return False

    def ensure(self) -> Path:
        """
        Make sure the server jar is installed and matches its published digest.

        Returns:
            Path to the jar

        Raises:
            DownloadFailed, NoContentLengthHeader: On HTTP failures
            JsonFieldInvalid: If the release has no usable digest for the jar
            InvalidChecksum: If the downloaded jar does not match
        """
        self.layout.jars_dir.mkdir(parents=True, exist_ok=True)

        expected_digest = self.fetch_expected_digest()
        if self.is_installed(expected_digest):
            return self.artifact_path

        with self.lock_manager.install_lock(self.artifact_name):
            recover_interrupted_install(self.artifact_path)
            remove_stale_temporaries(self.layout.jars_dir, self.artifact_name)

            if self.artifact_path.is_file() and digests_match(
                sha256_file_hex(self.artifact_path), expected_digest
            ):
                self.send_log("Server jar already downloaded and verified")
                return self.artifact_path

            self._install(expected_digest)

        self.send_log("Downloaded server jar")
        logger.info(f"Server jar: {self.artifact_path}")
        return self.artifact_path

    def _install(self, expected_digest: str) -> None:
        spec = ArtifactSpec(
            kind=ArtifactKind.APPLICATION,
            version=self.config.application.version,
            url=self.config.application.download_url_for(),
            expected_digest=expected_digest,
            final_path=self.artifact_path,
        )

        self.send_log("Fetching server jar...")
        logger.info(f"Server jar URL: {spec.url}")
        content = self._download(spec)
        self._verify_memory(content, spec)

        timestamp = unix_timestamp_millis()
        jar_tmp_path = self.layout.jars_dir / f"{self.artifact_name}.tmp.{timestamp}"

        self.send_log("Saving server jar...")
        self._write_verified_temp(content, jar_tmp_path, spec)
        try:
            promote(jar_tmp_path, self.artifact_path)
        finally:
            remove_path(jar_tmp_path)
