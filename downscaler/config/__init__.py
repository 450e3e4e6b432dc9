"""Configuration management for the downscaler."""

from downscaler.config.loader import ConfigLoadError, ConfigLoader
from downscaler.config.models import DownscalerConfig, RuntimeConfiguration
from downscaler.config.parser import (
    ANNOTATION_FIELDS,
    ENV_FIELDS,
    FLAG_FIELDS,
    build_scope,
    scope_from_annotations,
    scope_from_env,
    scope_from_flags,
)
from downscaler.config.validator import ConfigValidator, ValidationResult

__all__ = [
    "ANNOTATION_FIELDS",
    "ConfigLoadError",
    "ConfigLoader",
    "ConfigValidator",
    "DownscalerConfig",
    "ENV_FIELDS",
    "FLAG_FIELDS",
    "RuntimeConfiguration",
    "ValidationResult",
    "build_scope",
    "scope_from_annotations",
    "scope_from_env",
    "scope_from_flags",
]
