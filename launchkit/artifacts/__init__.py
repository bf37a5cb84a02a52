"""
Artifact acquisition for launchkit.

Two acquirers guarantee their artifact is present, verified and atomically
installed under the data directory:

- RuntimeAcquirer: the managed JVM, unpacked from the vendor's archive
- ApplicationAcquirer: the server jar, checked against its release digest

Example Usage:
-------------
    from launchkit.artifacts import ApplicationAcquirer, RuntimeAcquirer
    from launchkit.config import load_config
    from launchkit.core.directory import DataLayout

    config = load_config()
    layout = DataLayout.create(config.data_dir).ensure()

    runtime_dir = RuntimeAcquirer(config, layout).ensure()
    jar_path = ApplicationAcquirer(config, layout).ensure()
"""

from launchkit.artifacts.application import ApplicationAcquirer
from launchkit.artifacts.base import ArtifactAcquirer
from launchkit.artifacts.metadata import (
    ApplicationRelease,
    ArtifactKind,
    ArtifactSpec,
    ReleaseAsset,
    RuntimeRelease,
)
from launchkit.artifacts.runtime import RuntimeAcquirer

__all__ = [
    "ApplicationAcquirer",
    "ApplicationRelease",
    "ArtifactAcquirer",
    "ArtifactKind",
    "ArtifactSpec",
    "ReleaseAsset",
    "RuntimeAcquirer",
    "RuntimeRelease",
]
