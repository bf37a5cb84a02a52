"""
Typed release metadata.

The runtime vendor and the release host return loosely shaped JSON. It is
parsed once into these records; a missing or mistyped field raises
JsonFieldInvalid naming the field instead of failing somewhere downstream.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

from launchkit.core.exceptions import JsonFieldInvalid
from launchkit.core.verification import parse_sha256_digest


class ArtifactKind(Enum):
    RUNTIME = "runtime"
    APPLICATION = "application"


@dataclass(frozen=True)
class ArtifactSpec:
    """
    What to install and where, for one bootstrap attempt.

    Attributes:
        kind: Runtime or application
        version: Runtime feature version or application version
        url: Download URL
        expected_digest: SHA-256 hex digest (fetched lazily for applications)
        final_path: Location the installed artifact is read from
    """

    kind: ArtifactKind
    version: str
    url: str
    expected_digest: Optional[str]
    final_path: Path

    @property
    def label(self) -> str:
        return "JVM" if self.kind is ArtifactKind.RUNTIME else "server jar"


def _require_str(obj: Any, key: str, field_path: str) -> str:
    value = obj.get(key) if isinstance(obj, dict) else None
    if not isinstance(value, str) or not value:
        raise JsonFieldInvalid(field_path)
    return value


@dataclass(frozen=True)
class RuntimeRelease:
    """Element 0 of the runtime vendor's asset listing."""

    release_name: str
    link: str
    checksum: str

    @classmethod
    def from_json(cls, data: Any) -> "RuntimeRelease":
        """
        Parse the vendor response.

        Example:
            >>> RuntimeRelease.from_json([{
            ...     "release_name": "jdk-25+36",
            ...     "binary": {"package": {"link": "https://x/jre.tar.gz", "checksum": "ab"}},
            ... }]).archive_root_name("jre")
            'jdk-25+36-jre'
        """
        if not isinstance(data, list) or not data:
            raise JsonFieldInvalid("[0]")
        release = data[0]
        if not isinstance(release, dict):
            raise JsonFieldInvalid("[0]")

        binary = release.get("binary")
        package = binary.get("package") if isinstance(binary, dict) else None

        return cls(
            checksum=_require_str(package, "checksum", "binary.package.checksum"),
            link=_require_str(package, "link", "binary.package.link"),
            release_name=_require_str(release, "release_name", "release_name"),
        )

    def archive_root_name(self, image_type: str) -> str:
        """Name of the directory the archive unpacks into."""
        return f"{self.release_name}-{image_type}"


@dataclass(frozen=True)
class ReleaseAsset:
    name: str
    digest: Optional[str]


@dataclass(frozen=True)
class ApplicationRelease:
    """A tagged release with its uploaded assets."""

    assets: List[ReleaseAsset]

    @classmethod
    def from_json(cls, data: Any) -> "ApplicationRelease":
        assets = data.get("assets") if isinstance(data, dict) else None
        if not isinstance(assets, list):
            raise JsonFieldInvalid("assets")

        parsed = []
        for asset in assets:
            if not isinstance(asset, dict) or not isinstance(asset.get("name"), str):
                continue
            digest = asset.get("digest")
            parsed.append(
                ReleaseAsset(
                    name=asset["name"],
                    digest=digest if isinstance(digest, str) else None,
                )
            )
        return cls(assets=parsed)

    def sha256_for(self, artifact_name: str) -> str:
        """
        Get the bare SHA-256 digest of a named asset.

        Raises:
            JsonFieldInvalid: If no asset has that name or its digest is unusable
        """
        for asset in self.assets:
            if asset.name == artifact_name:
                digest = parse_sha256_digest(asset.digest)
                if digest is None:
                    break
                return digest
        raise JsonFieldInvalid("assets[].digest")
