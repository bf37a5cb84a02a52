"""
Pytest configuration and shared fixtures for launchkit tests.
"""

import sys

import pytest

from launchkit.config.parser import (
    ApplicationConfig,
    LaunchKitConfig,
    RuntimeConfig,
    ServerConfig,
)
from launchkit.core.directory import DataLayout
from launchkit.core.platform import PlatformInfo, clear_platform_cache
from tests.fixtures.artifacts import (
    DOWNLOAD_URL,
    RELEASE_METADATA_URL,
    RUNTIME_METADATA_URL,
)


def pytest_collection_modifyitems(config, items):
    """Skip tests that spawn the fake runtime on Windows (it is a shell script)."""
    if sys.platform == "win32":
        skip_posix = pytest.mark.skip(reason="fake runtime is a POSIX shell script")
        for item in items:
            if "posix_process" in item.keywords:
                item.add_marker(skip_posix)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "posix_process: spawns the fake runtime (skipped on Windows)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _fresh_platform_cache():
    """Keep platform detection from leaking between tests."""
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def linux_x64() -> PlatformInfo:
    return PlatformInfo("linux", "x64")


@pytest.fixture
def layout(tmp_path) -> DataLayout:
    """Data directory layout under a temporary root."""
    return DataLayout.create(tmp_path / "data").ensure()


@pytest.fixture
def test_config(layout) -> LaunchKitConfig:
    """Configuration pointing every endpoint at mocked test hosts."""
    return LaunchKitConfig(
        data_dir=layout.root,
        runtime=RuntimeConfig(metadata_url=RUNTIME_METADATA_URL),
        application=ApplicationConfig(
            name="App",
            version="1.0.0",
            release_metadata_url=RELEASE_METADATA_URL,
            download_url=DOWNLOAD_URL,
        ),
        server=ServerConfig(readiness_timeout=20.0),
    )


@pytest.fixture
def log_lines():
    """A send_log callable that records every payload."""

    class Recorder(list):
        def __call__(self, payload):
            self.append(payload)

    return Recorder()
