"""Utilities for the downscaler."""

from downscaler.utils.logger import setup_logging
from downscaler.utils.resource_logger import LoggingResourceLogger, ResourceLogger
from downscaler.utils.time_utils import (
    WeekFrame,
    get_current_datetime,
    get_timezone,
    parse_bool,
    parse_duration,
    parse_rfc3339,
)

__all__ = [
    "setup_logging",
    "LoggingResourceLogger",
    "ResourceLogger",
    "WeekFrame",
    "get_current_datetime",
    "get_timezone",
    "parse_bool",
    "parse_duration",
    "parse_rfc3339",
]
