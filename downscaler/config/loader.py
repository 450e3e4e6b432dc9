"""Configuration loader for the downscaler."""

import logging
from pathlib import Path
from typing import Union

import yaml
from pydantic import ValidationError

from downscaler.config.models import DownscalerConfig

logger = logging.getLogger(__name__)


class ConfigLoadError(Exception):
    """Raised when configuration loading fails."""

    pass


class ConfigLoader:
    """Load and parse downscaler configuration files."""

    @staticmethod
    def load_from_file(file_path: Union[str, Path]) -> DownscalerConfig:
        """
        Load a DownscalerConfig from a YAML file.

        Args:
            file_path: Path to the YAML configuration file

        Returns:
            Validated DownscalerConfig instance

        Raises:
            ConfigLoadError: If file cannot be read or parsed
            ValidationError: If configuration is invalid
        """
        path = Path(file_path)

        if not path.exists():
            raise ConfigLoadError(f"Configuration file not found: {path}")

        if not path.is_file():
            raise ConfigLoadError(f"Path is not a file: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML file {path}: {e}") from e
        except OSError as e:
            raise ConfigLoadError(f"Failed to read file {path}: {e}") from e

        # an empty file is an empty configuration
        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ConfigLoadError(f"Configuration file must contain a YAML object, got {type(data).__name__}")

        try:
            return DownscalerConfig.model_validate(data)
        except ValidationError as e:
            logger.error(f"Validation error in {path}: {e}")
            raise

    @staticmethod
    def load_from_dict(data: dict) -> DownscalerConfig:
        """
        Load a DownscalerConfig from a dictionary.

        Raises:
            ValidationError: If configuration is invalid
        """
        return DownscalerConfig.model_validate(data)

    @staticmethod
    def load_from_yaml_string(yaml_str: str) -> DownscalerConfig:
        """
        Load a DownscalerConfig from a YAML string.

        Args:
            yaml_str: YAML configuration as string

        Returns:
            Validated DownscalerConfig instance

        Raises:
            ConfigLoadError: If YAML cannot be parsed
            ValidationError: If configuration is invalid
        """
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML string: {e}") from e

        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise ConfigLoadError(f"Configuration must be a YAML object, got {type(data).__name__}")

        return DownscalerConfig.model_validate(data)
