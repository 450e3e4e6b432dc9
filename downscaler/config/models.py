"""Pydantic models for downscaler configuration files."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from downscaler.config.parser import FLAG_FIELDS


class RuntimeConfiguration(BaseModel):
    """Settings for the process itself, as opposed to scheduling values."""

    time_annotation: Optional[str] = Field(
        default=None,
        alias="timeAnnotation",
        description="Annotation holding an RFC3339 timestamp used instead of creation time for the grace period",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="logLevel",
        description="Logging level",
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        alias="logFormat",
        description="Log output format",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.upper()
        return v

    model_config = {"populate_by_name": True}


class DownscalerConfig(BaseModel):
    """Root model for a downscaler configuration file."""

    runtime: RuntimeConfiguration = Field(
        default_factory=RuntimeConfiguration,
        description="Process settings",
    )
    scope: dict[str, str] = Field(
        default_factory=dict,
        description="Command line scope values by flag name, e.g. 'default-downtime'",
    )

    @field_validator("scope", mode="before")
    @classmethod
    def stringify_scope_values(cls, v):
        """YAML turns 'true' and '2' into bool and int; scope values are parsed from strings."""
        if not isinstance(v, dict):
            return v
        result = {}
        for key, value in v.items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif value is not None and not isinstance(value, str):
                value = str(value)
            result[key] = value
        return result

    @field_validator("scope")
    @classmethod
    def validate_scope_keys(cls, v: dict[str, str]) -> dict[str, str]:
        """Validate that only known scope flags are configured."""
        unknown = sorted(set(v) - set(FLAG_FIELDS))
        if unknown:
            raise ValueError(
                f"Unknown scope keys: {', '.join(unknown)}. "
                f"Valid keys are: {', '.join(sorted(FLAG_FIELDS))}"
            )
        return v
