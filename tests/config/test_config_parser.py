"""
Unit tests for launchkit.yaml parsing.
"""

from pathlib import Path

import pytest

from launchkit.config import (
    ConfigError,
    LaunchKitConfig,
    load_config,
    parse_config,
    parse_config_data,
)


class TestLoadConfig:
    """Test loading from disk."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "launchkit.yaml")
        assert config == LaunchKitConfig()

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "launchkit.yaml"
        path.write_text("")
        assert parse_config(path) == LaunchKitConfig()

    def test_parse_config_requires_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            parse_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "launchkit.yaml"
        path.write_text("runtime: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            parse_config(path)

    def test_full_file(self, tmp_path):
        path = tmp_path / "launchkit.yaml"
        path.write_text(
            """
data_dir: ~/launchkit-data
runtime:
  feature_version: 21
  image_type: jdk
application:
  name: App
  version: 1.5
server:
  jvm_args: ["-Xmx2G"]
  readiness_timeout: 60
download:
  timeout: 10
  max_retries: 3
"""
        )

        config = parse_config(path)

        assert config.data_dir == Path("~/launchkit-data").expanduser()
        assert config.runtime.feature_version == 21
        assert config.runtime.image_type == "jdk"
        assert config.application.version == "1.5"
        assert config.application.artifact_name == "App-1.5.jar"
        assert config.server.jvm_args == ["-Xmx2G"]
        assert config.server.readiness_timeout == 60.0
        assert config.download.max_retries == 3


class TestDefaults:
    """Test default values and URL templates."""

    def test_default_values(self):
        config = LaunchKitConfig()

        assert config.runtime.feature_version == 25
        assert config.server.readiness_sentinel == "Finished loading!"
        assert config.server.secret_key_file == "secret-key.bin"
        assert config.server.port_property == "sf.grpc.port"
        assert config.download.max_retries == 1

    def test_runtime_metadata_url(self):
        url = LaunchKitConfig().runtime.metadata_url_for("alpine-linux", "x64")

        assert url.startswith("https://api.adoptium.net/v3/assets/latest/25/hotspot?")
        assert "os=alpine-linux" in url
        assert "architecture=x64" in url
        assert "image_type=jre" in url

    def test_application_urls(self):
        application = parse_config_data(
            {"application": {"name": "App", "version": "1.0.0"}}
        ).application

        assert application.artifact_name == "App-1.0.0.jar"
        assert application.release_metadata_url_for().endswith("/releases/tags/1.0.0")
        assert application.download_url_for().endswith("/download/1.0.0/App-1.0.0.jar")


class TestValidation:
    """Test rejection of invalid configuration."""

    @pytest.mark.parametrize(
        "data,message",
        [
            ([], "must be a mapping"),
            ({"plugins": {}}, "Unknown configuration sections"),
            ({"runtime": "25"}, "runtime must be a mapping"),
            ({"runtime": {"image_type": "jmods"}}, "Invalid runtime image type"),
            ({"runtime": {"feature_version": "25"}}, "feature_version must be int"),
            ({"runtime": {"feature_version": True}}, "feature_version must be int"),
            ({"application": {"version": ["1"]}}, "application.version must be str"),
            ({"application": {"name": ""}}, "must not be empty"),
            ({"server": {"jvm_args": "-Xmx1G"}}, "jvm_args must be a list"),
            ({"server": {"readiness_timeout": 0}}, "must be positive"),
            ({"server": {"readiness_sentinel": ""}}, "must not be empty"),
            ({"download": {"max_retries": 0}}, "at least 1"),
            ({"data_dir": 5}, "data_dir must be a string"),
        ],
    )
    def test_invalid(self, data, message):
        with pytest.raises(ConfigError, match=message):
            parse_config_data(data)
