"""Time utilities for the downscaler."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from functools import lru_cache

import pytz

logger = logging.getLogger(__name__)

WEEKDAYS = {
    "mon": 0,
    "tue": 1,
    "wed": 2,
    "thu": 3,
    "fri": 4,
    "sat": 5,
    "sun": 6,
}

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

TRUE_STRINGS = {"1", "t", "T", "TRUE", "true", "True"}
FALSE_STRINGS = {"0", "f", "F", "FALSE", "false", "False"}

MINUTES_PER_DAY = 24 * 60

_RFC3339_REGEX = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$"
)

# seconds per unit
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION_REGEX = re.compile(rf"^([+-])?((?:{_DURATION_PART})+)$")
_DURATION_PART_REGEX = re.compile(_DURATION_PART)


@lru_cache(maxsize=None)
def get_timezone(name: str) -> tzinfo:
    """
    Look up an IANA timezone.

    Results are cached process-wide, so concurrent evaluations share one
    read-only tzinfo instance per name.

    Args:
        name: IANA timezone name (e.g., 'UTC', 'Europe/Berlin')

    Returns:
        The pytz timezone

    Raises:
        ValueError: If timezone is invalid
    """
    try:
        return pytz.timezone(name)
    except pytz.exceptions.UnknownTimeZoneError as e:
        raise ValueError(f"Invalid timezone: {name}") from e


def get_current_datetime(timezone: str = "UTC") -> datetime:
    """
    Get current datetime in specified timezone.

    Args:
        timezone: IANA timezone name (e.g., 'UTC', 'America/New_York')

    Returns:
        Current datetime in specified timezone

    Raises:
        ValueError: If timezone is invalid
    """
    return datetime.now(get_timezone(timezone))


def ensure_aware(instant: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if instant.tzinfo is None or instant.tzinfo.utcoffset(instant) is None:
        return pytz.UTC.localize(instant)
    return instant


def minute_of_day(instant: datetime) -> int:
    """Minutes passed since midnight in the instant's own timezone."""
    return instant.hour * 60 + instant.minute


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC3339 timestamp.

    Args:
        value: Timestamp such as '2024-01-01T00:00:00Z' or '2024-01-01T08:00:00+02:00'

    Returns:
        Timezone aware datetime

    Raises:
        ValueError: If the value is not a valid RFC3339 timestamp
    """
    match = _RFC3339_REGEX.match(value.strip())
    if match is None:
        raise ValueError(f"not an RFC3339 timestamp: {value!r}")

    year, month, day, hour, minute, second, fraction, zulu, sign, off_h, off_m = match.groups()

    if zulu:
        tz: tzinfo = pytz.UTC
    else:
        offset = int(off_h) * 60 + int(off_m)
        if offset >= MINUTES_PER_DAY:
            raise ValueError(f"timezone offset out of range: {value!r}")
        tz = pytz.FixedOffset(-offset if sign == "-" else offset)

    microsecond = int((fraction or "0")[:6].ljust(6, "0"))

    try:
        return datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second), microsecond,
            tzinfo=tz,
        )
    except ValueError as e:
        raise ValueError(f"invalid RFC3339 timestamp {value!r}: {e}") from e


def format_rfc3339(dt: datetime) -> str:
    """Format a datetime as RFC3339, using 'Z' for UTC."""
    dt = ensure_aware(dt)
    text = dt.isoformat()
    if dt.utcoffset() == timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration.

    Plain integers are seconds. Otherwise Go-style durations are accepted,
    a sequence of decimal numbers with unit suffixes, e.g. '15m', '1h30m', '1.5h'.

    Raises:
        ValueError: If the value is neither an integer nor a duration string
    """
    value = value.strip()
    try:
        return timedelta(seconds=int(value))
    except ValueError:
        pass

    match = _DURATION_REGEX.match(value)
    if match is None:
        raise ValueError(f"invalid duration: {value!r}")

    total = timedelta(
        seconds=sum(
            float(number) * _DURATION_UNITS[unit]
            for number, unit in _DURATION_PART_REGEX.findall(match.group(2))
        )
    )

    if match.group(1) == "-":
        return -total
    return total


def parse_bool(value: str) -> bool:
    """
    Parse a boolean the way Kubernetes tooling usually writes them.

    Raises:
        ValueError: If the value is not a recognized boolean
    """
    if value in TRUE_STRINGS:
        return True
    if value in FALSE_STRINGS:
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


def parse_weekday(value: str) -> int:
    """
    Parse a three letter weekday abbreviation (case-insensitive).

    Returns:
        Weekday number, Monday is 0 and Sunday is 6

    Raises:
        ValueError: If the weekday is unknown
    """
    try:
        return WEEKDAYS[value.lower()]
    except KeyError:
        raise ValueError(f"invalid weekday: {value!r}") from None


def is_weekday_in_range(weekday: int, weekday_from: int, weekday_to: int) -> bool:
    """Check weekday against an inclusive range that may wrap across the week."""
    if weekday_from <= weekday_to:
        return weekday_from <= weekday <= weekday_to
    return weekday >= weekday_from or weekday <= weekday_to


def is_minute_in_range(minute: int, time_from: int, time_to: int) -> bool:
    """Check minute-of-day against a half-open range that may wrap past midnight."""
    if time_from <= time_to:
        return time_from <= minute < time_to
    return minute >= time_from or minute < time_to


@dataclass(frozen=True)
class WeekFrame:
    """Default weekday range for relative timespans that omit one."""

    weekday_from: int
    weekday_to: int

    @classmethod
    def parse(cls, value: str) -> "WeekFrame":
        """
        Parse a week frame such as 'Mon-Fri'.

        Raises:
            ValueError: If the value is not two valid weekdays joined by '-'
        """
        parts = value.strip().split("-")
        if len(parts) != 2:
            raise ValueError(f"invalid weekframe, expected weekdayFrom-weekdayTo: {value!r}")
        return cls(parse_weekday(parts[0]), parse_weekday(parts[1]))

    def contains(self, weekday: int) -> bool:
        return is_weekday_in_range(weekday, self.weekday_from, self.weekday_to)

    def __str__(self) -> str:
        return f"{WEEKDAY_NAMES[self.weekday_from]}-{WEEKDAY_NAMES[self.weekday_to]}"


def format_datetime(dt: datetime) -> str:
    """
    Format datetime for logging.

    Args:
        dt: Datetime to format

    Returns:
        Formatted datetime string
    """
    return dt.strftime("%Y-%m-%d %H:%M:%S %Z")


def format_minute_of_day(minute: int) -> str:
    """Format minute-of-day as HH:MM, 1440 becomes '24:00'."""
    hours, minutes = divmod(minute, 60)
    return f"{hours:02d}:{minutes:02d}"
