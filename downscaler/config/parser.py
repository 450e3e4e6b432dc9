"""Build scopes from annotations, environment variables and command line flags."""

import logging
import os
from datetime import datetime, timedelta, tzinfo
from typing import Any, Callable, Mapping, Optional

from downscaler.utils.resource_logger import ResourceLogger
from downscaler.utils.time_utils import (
    WeekFrame,
    get_timezone,
    parse_bool,
    parse_duration,
    parse_rfc3339,
)
from downscaler.values.errors import IncompatibleFieldsError, ParseError
from downscaler.values.replicas import parse_replicas
from downscaler.values.scope import Scope
from downscaler.values.timespan import TimeSpanSet

logger = logging.getLogger(__name__)

ANNOTATION_DOWNSCALE_PERIOD = "downscaler/downscale-period"
ANNOTATION_DOWNTIME = "downscaler/downtime"
ANNOTATION_UPSCALE_PERIOD = "downscaler/upscale-period"
ANNOTATION_UPTIME = "downscaler/uptime"
ANNOTATION_EXCLUDE = "downscaler/exclude"
ANNOTATION_EXCLUDE_UNTIL = "downscaler/exclude-until"
ANNOTATION_FORCE_UPTIME = "downscaler/force-uptime"
ANNOTATION_FORCE_DOWNTIME = "downscaler/force-downtime"
ANNOTATION_DOWNSCALE_REPLICAS = "downscaler/downscale-replicas"
ANNOTATION_GRACE_PERIOD = "downscaler/grace-period"
ANNOTATION_SCALE_CHILDREN = "downscaler/scale-children"
ANNOTATION_UPSCALE_EXCLUDED = "downscaler/upscale-excluded"

ANNOTATION_FIELDS = {
    ANNOTATION_DOWNSCALE_PERIOD: "downscale_period",
    ANNOTATION_DOWNTIME: "down_time",
    ANNOTATION_UPSCALE_PERIOD: "upscale_period",
    ANNOTATION_UPTIME: "up_time",
    ANNOTATION_EXCLUDE: "exclude",
    ANNOTATION_EXCLUDE_UNTIL: "exclude_until",
    ANNOTATION_FORCE_UPTIME: "force_uptime",
    ANNOTATION_FORCE_DOWNTIME: "force_downtime",
    ANNOTATION_DOWNSCALE_REPLICAS: "downscale_replicas",
    ANNOTATION_GRACE_PERIOD: "grace_period",
    ANNOTATION_SCALE_CHILDREN: "scale_children",
    ANNOTATION_UPSCALE_EXCLUDED: "upscale_excluded",
}

ENV_FIELDS = {
    "UPSCALE_PERIOD": "upscale_period",
    "DEFAULT_UPTIME": "up_time",
    "DOWNSCALE_PERIOD": "downscale_period",
    "DEFAULT_DOWNTIME": "down_time",
    "DEFAULT_TIMEZONE": "default_timezone",
    "DEFAULT_WEEKFRAME": "default_week_frame",
}

FLAG_FIELDS = {
    "downscale-period": "downscale_period",
    "default-downtime": "down_time",
    "force-downtime": "force_downtime",
    "upscale-period": "upscale_period",
    "default-uptime": "up_time",
    "force-uptime": "force_uptime",
    "explicit-include": "exclude",
    "downtime-replicas": "downscale_replicas",
    "grace-period": "grace_period",
    "scale-children": "scale_children",
    "upscale-excluded": "upscale_excluded",
}


def _parse_timestamp(value: str) -> datetime:
    try:
        return parse_rfc3339(value)
    except ValueError as e:
        raise ParseError("invalid rfc3339 timestamp", value) from e


def _parse_duration(value: str) -> timedelta:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise ParseError("invalid duration", value) from e


def _parse_bool(value: str) -> bool:
    try:
        return parse_bool(value)
    except ValueError as e:
        raise ParseError("invalid boolean", value) from e


def _parse_timezone(value: str) -> tzinfo:
    try:
        return get_timezone(value.strip())
    except ValueError as e:
        raise ParseError("unknown timezone", value) from e


def _parse_week_frame(value: str) -> WeekFrame:
    try:
        return WeekFrame.parse(value)
    except ValueError as e:
        raise ParseError("invalid weekframe", value) from e


FIELD_PARSERS: dict[str, Callable[[str], Any]] = {
    "downscale_period": TimeSpanSet.parse,
    "down_time": TimeSpanSet.parse,
    "upscale_period": TimeSpanSet.parse,
    "up_time": TimeSpanSet.parse,
    "exclude": TimeSpanSet.parse,
    "exclude_until": _parse_timestamp,
    "force_uptime": TimeSpanSet.parse,
    "force_downtime": TimeSpanSet.parse,
    "downscale_replicas": parse_replicas,
    "grace_period": _parse_duration,
    "scale_children": _parse_bool,
    "upscale_excluded": _parse_bool,
    "default_timezone": _parse_timezone,
    "default_week_frame": _parse_week_frame,
}


def build_scope(values: Mapping[str, str], key_fields: Mapping[str, str]) -> Scope:
    """
    Parse the configured keys into a validated scope.

    Args:
        values: Raw values by configuration key; keys not in key_fields are ignored
        key_fields: Maps configuration keys to scope field names

    Returns:
        Scope with every present key parsed and every other field unset

    Raises:
        ParseError: Naming the key whose value failed to parse
        IncompatibleFieldsError: Naming the two conflicting keys
    """
    fields = {}
    for key, field in key_fields.items():
        if key not in values:
            continue
        try:
            fields[field] = FIELD_PARSERS[field](values[key])
        except ParseError as e:
            raise e.with_key(key, values[key]) from e

    scope = Scope(**fields)

    try:
        scope.check_for_incompatible_fields()
    except IncompatibleFieldsError as e:
        field_keys = {field: key for key, field in key_fields.items()}
        first, second = (field_keys.get(field, field) for field in e.fields)
        raise IncompatibleFieldsError(first, second) from e

    return scope


def scope_from_annotations(annotations: Mapping[str, str], resource_logger: ResourceLogger) -> Scope:
    """
    Build the scope of a workload or namespace from its annotations.

    Problems are reported to the resource logger before they are raised.

    Raises:
        ParseError: If an annotation value is invalid
        IncompatibleFieldsError: If mutually exclusive annotations are set
    """
    try:
        return build_scope(annotations, ANNOTATION_FIELDS)
    except ParseError as e:
        resource_logger.record_invalid_annotation(e.key, str(e))
        raise
    except IncompatibleFieldsError as e:
        resource_logger.record_incompatible_fields(str(e))
        raise


def scope_from_env(environ: Optional[Mapping[str, str]] = None) -> Scope:
    """
    Build the environment scope.

    Args:
        environ: Environment to read (defaults to os.environ)
    """
    if environ is None:
        environ = os.environ
    return build_scope(environ, ENV_FIELDS)


def scope_from_flags(flags: Mapping[str, Optional[str]]) -> Scope:
    """
    Build the command line scope.

    Args:
        flags: Flag values by flag name without leading dashes, None for flags
            that were not given
    """
    return build_scope({key: value for key, value in flags.items() if value is not None}, FLAG_FIELDS)
