"""Startup validation of the process-wide scopes."""

import logging
from typing import Optional

from downscaler.values.errors import IncompatibleFieldsError, UndefinedDefaultError
from downscaler.values.scope import Scope, ScopeID, Scopes
from downscaler.values.timespan import RelativeTimeSpan, TimeSpanSet

logger = logging.getLogger(__name__)

TIMESPAN_FIELDS = (
    "downscale_period",
    "down_time",
    "upscale_period",
    "up_time",
    "exclude",
    "force_uptime",
    "force_downtime",
)


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, valid: bool, errors: Optional[list[str]] = None, warnings: Optional[list[str]] = None):
        """
        Initialize validation result.

        Args:
            valid: Whether the configuration is valid
            errors: List of validation errors
            warnings: List of validation warnings
        """
        self.valid = valid
        self.errors = errors or []
        self.warnings = warnings or []

    def __bool__(self) -> bool:
        """Return validation status."""
        return self.valid

    def __str__(self) -> str:
        """Return human-readable validation result."""
        lines = []
        if self.valid:
            lines.append("✓ Configuration is valid")
        else:
            lines.append("✗ Configuration is invalid")

        if self.errors:
            lines.append("\nErrors:")
            for error in self.errors:
                lines.append(f"  - {error}")

        if self.warnings:
            lines.append("\nWarnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines)


def _relative_spans(scope: Scope) -> list[tuple[str, RelativeTimeSpan]]:
    spans = []
    for field in TIMESPAN_FIELDS:
        value: Optional[TimeSpanSet] = getattr(scope, field)
        if value is None:
            continue
        spans.extend((field, span) for span in value if isinstance(span, RelativeTimeSpan))
    return spans


class ConfigValidator:
    """Validate the scopes built once at startup."""

    @staticmethod
    def validate_scopes(default: Scope, cli: Scope, environment: Scope) -> ValidationResult:
        """
        Validate the default, command line and environment scopes.

        The default scope is the fallback for every workload, so it must define
        downscale replicas and a scaling baseline.

        Args:
            default: The default scope
            cli: The command line scope
            environment: The environment scope

        Returns:
            ValidationResult with any errors or warnings
        """
        errors: list[str] = []
        warnings: list[str] = []

        named_scopes = [
            (ScopeID.CLI, cli),
            (ScopeID.ENVIRONMENT, environment),
            (ScopeID.DEFAULT, default),
        ]

        for scope_id, scope in named_scopes:
            try:
                scope.check_for_incompatible_fields()
            except IncompatibleFieldsError as e:
                errors.append(f"{scope_id.name} scope: {e}")

        if default.downscale_replicas is None:
            errors.append("DEFAULT scope does not define downscale replicas")

        if not default.defines_scaling():
            errors.append("DEFAULT scope does not define a scaling baseline")

        for scope_id, scope in named_scopes:
            if scope.defines_forced_scaling():
                warnings.append(
                    f"{scope_id.name} scope defines forced scaling. "
                    "Workloads without their own force annotations will not follow their schedules."
                )

        startup_scopes = Scopes(Scope(), Scope(), cli, environment, default)

        try:
            startup_scopes.resolve_timezone()
            has_default_timezone = True
        except UndefinedDefaultError:
            has_default_timezone = False

        try:
            startup_scopes.resolve_week_frame()
            has_default_week_frame = True
        except UndefinedDefaultError:
            has_default_week_frame = False

        for scope_id, scope in named_scopes:
            for field, span in _relative_spans(scope):
                if span.timezone is None and not has_default_timezone:
                    errors.append(
                        f"{scope_id.name} scope: {field} '{span}' has no timezone and no DEFAULT_TIMEZONE is set"
                    )
                if span.weekday_from is None and not has_default_week_frame:
                    errors.append(
                        f"{scope_id.name} scope: {field} '{span}' has no weekdays and no DEFAULT_WEEKFRAME is set"
                    )

        if not has_default_timezone:
            warnings.append(
                "No default timezone is set. Annotations with relative timespans must name their timezone."
            )

        valid = len(errors) == 0
        return ValidationResult(valid=valid, errors=errors, warnings=warnings)

    @staticmethod
    def quick_validate(default: Scope, cli: Scope, environment: Scope) -> bool:
        """
        Quickly validate the startup scopes (only checks for errors, not warnings).

        Returns:
            True if valid, False otherwise
        """
        return ConfigValidator.validate_scopes(default, cli, environment).valid
