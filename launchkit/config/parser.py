"""YAML configuration parser for launchkit.

This module provides parsing and validation for launchkit.yaml. Every setting
has a default, so a missing file yields a working configuration.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from launchkit.core.exceptions import ConfigError

DEFAULT_CONFIG_FILE = "launchkit.yaml"

DEFAULT_RUNTIME_METADATA_URL = (
    "https://api.adoptium.net/v3/assets/latest/{feature_version}/hotspot"
    "?architecture={arch}&image_type={image_type}&os={os}&vendor={vendor}"
)
DEFAULT_RELEASE_METADATA_URL = (
    "https://api.github.com/repos/AlexProgrammerDE/SoulFire/releases/tags/{version}"
)
DEFAULT_APPLICATION_DOWNLOAD_URL = (
    "https://github.com/AlexProgrammerDE/SoulFire/releases/download/{version}/{artifact}"
)


@dataclass
class RuntimeConfig:
    """Managed runtime (JVM) to install."""

    feature_version: int = 25
    image_type: str = "jre"  # 'jre', 'jdk'
    vendor: str = "eclipse"
    metadata_url: str = DEFAULT_RUNTIME_METADATA_URL

    def metadata_url_for(self, os_id: str, arch: str) -> str:
        return self.metadata_url.format(
            feature_version=self.feature_version,
            image_type=self.image_type,
            vendor=self.vendor,
            os=os_id,
            arch=arch,
        )


@dataclass
class ApplicationConfig:
    """Server jar to install."""

    name: str = "SoulFireDedicated"
    version: str = "2.0.0"
    release_metadata_url: str = DEFAULT_RELEASE_METADATA_URL
    download_url: str = DEFAULT_APPLICATION_DOWNLOAD_URL

    @property
    def artifact_name(self) -> str:
        return f"{self.name}-{self.version}.jar"

    def release_metadata_url_for(self) -> str:
        return self.release_metadata_url.format(version=self.version)

    def download_url_for(self) -> str:
        return self.download_url.format(
            version=self.version, artifact=self.artifact_name
        )


@dataclass
class ServerConfig:
    """How the server is launched and when it counts as ready."""

    host: str = "127.0.0.1"
    jvm_args: List[str] = field(default_factory=list)
    port_property: str = "sf.grpc.port"
    readiness_sentinel: str = "Finished loading!"
    readiness_timeout: float = 300.0
    secret_key_file: str = "secret-key.bin"


@dataclass
class DownloadConfig:
    """HTTP settings."""

    timeout: int = 30
    max_retries: int = 1


@dataclass
class LaunchKitConfig:
    """Complete launchkit configuration."""

    data_dir: Optional[Path] = None
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    application: ApplicationConfig = field(default_factory=ApplicationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)


_SECTIONS = {"data_dir", "runtime", "application", "server", "download"}


def load_config(config_path: Optional[Path] = None) -> LaunchKitConfig:
    """
    Load configuration, falling back to defaults when the file doesn't exist.

    Args:
        config_path: Path to launchkit.yaml (default: ./launchkit.yaml)
    """
    config_path = Path(config_path) if config_path else Path(DEFAULT_CONFIG_FILE)
    if not config_path.exists():
        return LaunchKitConfig()
    return parse_config(config_path)


def parse_config(config_path: Path) -> LaunchKitConfig:
    """
    Parse launchkit.yaml configuration file.

    Args:
        config_path: Path to launchkit.yaml

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigError: If configuration is invalid
    """
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if data is None:
        return LaunchKitConfig()

    return parse_config_data(data)


def parse_config_data(data: Any) -> LaunchKitConfig:
    """Parse and validate already-loaded configuration data."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    unknown = set(data) - _SECTIONS
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

    data_dir = data.get("data_dir")
    if data_dir is not None and not isinstance(data_dir, str):
        raise ConfigError("data_dir must be a string")

    return LaunchKitConfig(
        data_dir=Path(data_dir).expanduser() if data_dir else None,
        runtime=_parse_runtime(_section(data, "runtime")),
        application=_parse_application(_section(data, "application")),
        server=_parse_server(_section(data, "server")),
        download=_parse_download(_section(data, "download")),
    )


def _section(data: dict, name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{name} must be a mapping")
    return section


def _typed(section: str, data: dict, key: str, expected: type, default: Any) -> Any:
    value = data.get(key, default)
    # bool is an int subclass; reject it for numeric fields
    if isinstance(value, bool) and expected is not bool:
        raise ConfigError(f"{section}.{key} must be {expected.__name__}")
    if expected is float and isinstance(value, int):
        return float(value)
    if not isinstance(value, expected):
        raise ConfigError(f"{section}.{key} must be {expected.__name__}")
    return value


def _parse_runtime(data: dict) -> RuntimeConfig:
    """Parse runtime configuration."""
    defaults = RuntimeConfig()

    valid_image_types = ["jre", "jdk"]
    image_type = _typed("runtime", data, "image_type", str, defaults.image_type)
    if image_type not in valid_image_types:
        raise ConfigError(
            f"Invalid runtime image type: {image_type} (expected one of {valid_image_types})"
        )

    feature_version = _typed(
        "runtime", data, "feature_version", int, defaults.feature_version
    )
    if feature_version < 8:
        raise ConfigError(f"runtime.feature_version too old: {feature_version}")

    return RuntimeConfig(
        feature_version=feature_version,
        image_type=image_type,
        vendor=_typed("runtime", data, "vendor", str, defaults.vendor),
        metadata_url=_typed("runtime", data, "metadata_url", str, defaults.metadata_url),
    )


def _parse_application(data: dict) -> ApplicationConfig:
    """Parse application configuration."""
    defaults = ApplicationConfig()

    # YAML reads unquoted versions like 2.0 as numbers
    version = data.get("version", defaults.version)
    if isinstance(version, (int, float)) and not isinstance(version, bool):
        version = str(version)
    if not isinstance(version, str):
        raise ConfigError("application.version must be str")

    application = ApplicationConfig(
        name=_typed("application", data, "name", str, defaults.name),
        version=version,
        release_metadata_url=_typed(
            "application",
            data,
            "release_metadata_url",
            str,
            defaults.release_metadata_url,
        ),
        download_url=_typed(
            "application", data, "download_url", str, defaults.download_url
        ),
    )

    if not application.name or not application.version:
        raise ConfigError("application.name and application.version must not be empty")

    return application


def _parse_server(data: dict) -> ServerConfig:
    """Parse server launch configuration."""
    defaults = ServerConfig()

    jvm_args = data.get("jvm_args", [])
    if not isinstance(jvm_args, list) or not all(isinstance(a, str) for a in jvm_args):
        raise ConfigError("server.jvm_args must be a list of strings")

    readiness_timeout = _typed(
        "server", data, "readiness_timeout", float, defaults.readiness_timeout
    )
    if readiness_timeout <= 0:
        raise ConfigError("server.readiness_timeout must be positive")

    sentinel = _typed(
        "server", data, "readiness_sentinel", str, defaults.readiness_sentinel
    )
    if not sentinel:
        raise ConfigError("server.readiness_sentinel must not be empty")

    return ServerConfig(
        host=_typed("server", data, "host", str, defaults.host),
        jvm_args=list(jvm_args),
        port_property=_typed("server", data, "port_property", str, defaults.port_property),
        readiness_sentinel=sentinel,
        readiness_timeout=readiness_timeout,
        secret_key_file=_typed(
            "server", data, "secret_key_file", str, defaults.secret_key_file
        ),
    )


def _parse_download(data: dict) -> DownloadConfig:
    """Parse download configuration."""
    defaults = DownloadConfig()

    timeout = _typed("download", data, "timeout", int, defaults.timeout)
    max_retries = _typed("download", data, "max_retries", int, defaults.max_retries)
    if timeout <= 0:
        raise ConfigError("download.timeout must be positive")
    if max_retries < 1:
        raise ConfigError("download.max_retries must be at least 1")

    return DownloadConfig(timeout=timeout, max_retries=max_retries)
