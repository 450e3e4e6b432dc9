"""Timespans: the windows during which downtime, uptime, exclusion or forcing holds."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import TYPE_CHECKING, Iterable, Iterator, Optional, Union

from downscaler.utils.time_utils import (
    WEEKDAY_NAMES,
    WeekFrame,
    ensure_aware,
    format_minute_of_day,
    format_rfc3339,
    get_timezone,
    is_minute_in_range,
    minute_of_day,
    parse_rfc3339,
    parse_weekday,
)
from downscaler.values.errors import ParseError, UndefinedDefaultError

if TYPE_CHECKING:
    from downscaler.values.scope import Scopes

logger = logging.getLogger(__name__)

ALWAYS_STRINGS = {"always", "true"}
NEVER_STRINGS = {"never", "false"}

_RFC3339_PATTERN = r"(.+Z|.+[+-]\d{2}:\d{2})"
ABSOLUTE_TIMESPAN_REGEX = re.compile(rf"^{_RFC3339_PATTERN} *- *{_RFC3339_PATTERN}$", re.IGNORECASE)


@dataclass(frozen=True)
class BooleanTimeSpan:
    """A timespan that is either always or never active."""

    active: bool

    def is_active_at(self, instant: datetime, defaults: Optional["Scopes"] = None) -> bool:
        return self.active

    def __str__(self) -> str:
        return "always" if self.active else "never"


@dataclass(frozen=True)
class AbsoluteTimeSpan:
    """A fixed window between two timestamps, start inclusive and end exclusive."""

    start: datetime
    end: datetime

    def is_active_at(self, instant: datetime, defaults: Optional["Scopes"] = None) -> bool:
        instant = ensure_aware(instant)
        return self.start <= instant < self.end

    def __str__(self) -> str:
        return f"{format_rfc3339(self.start)} - {format_rfc3339(self.end)}"


@dataclass(frozen=True)
class RelativeTimeSpan:
    """
    A weekly recurring window.

    time_from and time_to are minutes of the day; time_to may be 1440 to mark
    the end of the day. The weekday range is inclusive on both ends, the time
    range includes time_from and excludes time_to. Either range wraps around
    when its start is greater than its end.

    weekday_from/weekday_to and timezone may be None when the span was written
    without them, they are then taken from the scopes' defaults on evaluation.
    """

    time_from: int
    time_to: int
    weekday_from: Optional[int] = None
    weekday_to: Optional[int] = None
    timezone: Optional[tzinfo] = None

    def resolve_timezone(self, defaults: Optional["Scopes"]) -> tzinfo:
        if self.timezone is not None:
            return self.timezone
        if defaults is None:
            raise UndefinedDefaultError("default_timezone")
        return defaults.resolve_timezone()

    def resolve_week_frame(self, defaults: Optional["Scopes"]) -> WeekFrame:
        if self.weekday_from is not None and self.weekday_to is not None:
            return WeekFrame(self.weekday_from, self.weekday_to)
        if defaults is None:
            raise UndefinedDefaultError("default_week_frame")
        return defaults.resolve_week_frame()

    def is_active_at(self, instant: datetime, defaults: Optional["Scopes"] = None) -> bool:
        """
        Check if the instant falls into this span.

        Raises:
            UndefinedDefaultError: If the span omits its timezone or weekdays and
                no scope defines a default for them
        """
        local = ensure_aware(instant).astimezone(self.resolve_timezone(defaults))
        week_frame = self.resolve_week_frame(defaults)
        return (
            is_minute_in_range(minute_of_day(local), self.time_from, self.time_to)
            and week_frame.contains(local.weekday())
        )

    def __str__(self) -> str:
        parts = []
        if self.weekday_from is not None and self.weekday_to is not None:
            parts.append(f"{WEEKDAY_NAMES[self.weekday_from]}-{WEEKDAY_NAMES[self.weekday_to]}")
        parts.append(f"{format_minute_of_day(self.time_from)}-{format_minute_of_day(self.time_to)}")
        if self.timezone is not None:
            parts.append(str(self.timezone))
        return " ".join(parts)


TimeSpan = Union[BooleanTimeSpan, AbsoluteTimeSpan, RelativeTimeSpan]


def is_absolute_timespan(text: str) -> bool:
    """Check if the text has the shape of two RFC3339 timestamps joined by '-'."""
    return ABSOLUTE_TIMESPAN_REGEX.match(text) is not None


def parse_absolute_timespan(text: str) -> AbsoluteTimeSpan:
    """
    Parse an absolute timespan such as '2024-01-01T00:00:00Z - 2024-01-02T00:00:00Z'.

    Raises:
        ParseError: If the text is not absolute or either side is not RFC3339
    """
    match = ABSOLUTE_TIMESPAN_REGEX.match(text)
    if match is None:
        raise ParseError("not an absolute timespan", text)

    timestamps = {}
    for side, raw in zip(("from", "to"), match.groups()):
        try:
            timestamps[side] = parse_rfc3339(raw)
        except ValueError as e:
            raise ParseError(f"invalid rfc3339 timestamp on the {side!r} side ({e})", raw) from e

    return AbsoluteTimeSpan(start=timestamps["from"], end=timestamps["to"])


def parse_day_time(text: str, is_end: bool = False) -> int:
    """
    Parse HH:MM into minutes of the day.

    Hours range from 0 to 24, minutes from 0 to 59. 24:00 is only valid as the
    end of a range.

    Raises:
        ParseError: If the text is malformed or out of range
    """
    parts = text.split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ParseError("invalid time of day, expected HH:MM", text)

    hour, minute = int(parts[0]), int(parts[1])
    if hour > 24 or minute > 59:
        raise ParseError("the time of day has fields that are out of range", text)
    if hour == 24 and (minute != 0 or not is_end):
        raise ParseError("24:00 is only allowed as the end of a time range", text)

    return hour * 60 + minute


def parse_relative_timespan(text: str) -> RelativeTimeSpan:
    """
    Parse a relative timespan.

    Accepted shapes:
        'Mon-Fri 07:00-16:00 Europe/Berlin'
        '07:00-16:00 Europe/Berlin'
        'Mon-Fri 07:00-16:00'
        '07:00-16:00'

    Raises:
        ParseError: Naming the token that failed
    """
    tokens = text.split()
    weekdays_token = time_token = timezone_token = None

    if len(tokens) == 3:
        weekdays_token, time_token, timezone_token = tokens
    elif len(tokens) == 2 and ":" in tokens[0]:
        time_token, timezone_token = tokens
    elif len(tokens) == 2:
        weekdays_token, time_token = tokens
    elif len(tokens) == 1:
        time_token = tokens[0]
    else:
        raise ParseError("relative timespan is invalid, expected '<weekdays> <HH:MM-HH:MM> <timezone>'", text)

    times = time_token.split("-")
    if len(times) != 2:
        raise ParseError("invalid time of day range, expected HH:MM-HH:MM", time_token)
    time_from = parse_day_time(times[0])
    time_to = parse_day_time(times[1], is_end=True)

    weekday_from = weekday_to = None
    if weekdays_token is not None:
        weekdays = weekdays_token.split("-")
        if len(weekdays) != 2:
            raise ParseError("invalid weekday range, expected e.g. Mon-Fri", weekdays_token)
        try:
            weekday_from = parse_weekday(weekdays[0])
            weekday_to = parse_weekday(weekdays[1])
        except ValueError as e:
            raise ParseError("specified weekday is invalid", weekdays_token) from e

    timezone = None
    if timezone_token is not None:
        try:
            timezone = get_timezone(timezone_token)
        except ValueError as e:
            raise ParseError("unknown timezone", timezone_token) from e

    return RelativeTimeSpan(
        time_from=time_from,
        time_to=time_to,
        weekday_from=weekday_from,
        weekday_to=weekday_to,
        timezone=timezone,
    )


def parse_timespan(text: str) -> TimeSpan:
    """Classify and parse one trimmed timespan element."""
    lowered = text.lower()
    if lowered in ALWAYS_STRINGS:
        return BooleanTimeSpan(True)
    if lowered in NEVER_STRINGS:
        return BooleanTimeSpan(False)
    if is_absolute_timespan(text):
        return parse_absolute_timespan(text)
    return parse_relative_timespan(text)


class TimeSpanSet:
    """Ordered collection of timespans, active when any member is active."""

    def __init__(self, spans: Iterable[TimeSpan] = ()):
        self._spans = tuple(spans)

    @classmethod
    def parse(cls, text: str) -> "TimeSpanSet":
        """
        Parse a comma separated list of timespans.

        Raises:
            ParseError: If any element is invalid
        """
        return cls(parse_timespan(part.strip()) for part in text.split(","))

    @classmethod
    def always(cls) -> "TimeSpanSet":
        return cls([BooleanTimeSpan(True)])

    @classmethod
    def never(cls) -> "TimeSpanSet":
        return cls([BooleanTimeSpan(False)])

    def contains(self, instant: datetime, defaults: Optional["Scopes"] = None) -> bool:
        """
        Check if any span is active at the instant.

        Raises:
            UndefinedDefaultError: If a relative span cannot resolve its defaults
        """
        return any(span.is_active_at(instant, defaults) for span in self._spans)

    def __iter__(self) -> Iterator[TimeSpan]:
        return iter(self._spans)

    def __len__(self) -> int:
        return len(self._spans)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeSpanSet):
            return NotImplemented
        return self._spans == other._spans

    def __hash__(self) -> int:
        return hash(self._spans)

    def __str__(self) -> str:
        return ", ".join(str(span) for span in self._spans)

    def __repr__(self) -> str:
        return f"TimeSpanSet({str(self)!r})"
