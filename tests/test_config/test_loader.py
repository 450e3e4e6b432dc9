"""Tests for configuration loader."""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from downscaler.config.loader import ConfigLoadError, ConfigLoader
from downscaler.config.models import DownscalerConfig


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_load_from_dict(self):
        """Test loading from dictionary."""
        data = {
            "runtime": {"timeAnnotation": "example.com/deployed-at", "logLevel": "debug"},
            "scope": {"default-uptime": "Mon-Fri 07:00-19:00 Europe/Berlin"},
        }
        config = ConfigLoader.load_from_dict(data)
        assert isinstance(config, DownscalerConfig)
        assert config.runtime.time_annotation == "example.com/deployed-at"
        assert config.runtime.log_level == "DEBUG"
        assert config.scope["default-uptime"] == "Mon-Fri 07:00-19:00 Europe/Berlin"

    def test_load_from_yaml_string(self):
        """Test loading from YAML string."""
        yaml_content = """
runtime:
  logFormat: json
scope:
  downtime-replicas: 1
  scale-children: true
  grace-period: 30m
"""
        config = ConfigLoader.load_from_yaml_string(yaml_content)
        assert config.runtime.log_format == "json"
        assert config.scope == {
            "downtime-replicas": "1",
            "scale-children": "true",
            "grace-period": "30m",
        }

    def test_load_empty_yaml_string(self):
        """Test that an empty document is an empty configuration."""
        config = ConfigLoader.load_from_yaml_string("")
        assert config.scope == {}
        assert config.runtime.log_level == "INFO"

    def test_load_invalid_yaml_string(self):
        """Test loading invalid YAML."""
        with pytest.raises(ConfigLoadError):
            ConfigLoader.load_from_yaml_string("scope: [unclosed")

    def test_load_non_mapping(self):
        """Test loading a YAML list."""
        with pytest.raises(ConfigLoadError):
            ConfigLoader.load_from_yaml_string("- a\n- b\n")

    def test_load_invalid_config(self):
        """Test that unknown scope keys are rejected."""
        with pytest.raises(ValidationError):
            ConfigLoader.load_from_yaml_string("scope:\n  default-sometime: always\n")

    def test_load_from_file(self):
        """Test loading from file."""
        yaml_content = """
runtime:
  timeAnnotation: example.com/deployed-at
scope:
  explicit-include: "true"
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            temp_path = f.name

        try:
            config = ConfigLoader.load_from_file(temp_path)
            assert config.runtime.time_annotation == "example.com/deployed-at"
            assert config.scope == {"explicit-include": "true"}
        finally:
            Path(temp_path).unlink()

    def test_load_from_nonexistent_file(self):
        """Test loading from a missing file."""
        with pytest.raises(ConfigLoadError) as exc_info:
            ConfigLoader.load_from_file("/nonexistent/downscaler.yaml")
        assert "not found" in str(exc_info.value)

    def test_load_from_directory(self):
        """Test loading from a directory path."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ConfigLoadError) as exc_info:
                ConfigLoader.load_from_file(tmpdir)
            assert "not a file" in str(exc_info.value)

    def test_load_empty_file(self):
        """Test that an empty file is an empty configuration."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir, "empty.yaml")
            path.write_text("")
            config = ConfigLoader.load_from_file(path)
            assert config == DownscalerConfig()
