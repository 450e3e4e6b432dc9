"""Configuration scopes and the precedence rules that merge them into one verdict."""

import logging
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Any, Callable, Mapping, NamedTuple, Optional

from pydantic import BaseModel

from downscaler.utils.resource_logger import ResourceLogger
from downscaler.utils.time_utils import WeekFrame, ensure_aware, parse_rfc3339
from downscaler.values.errors import (
    IncompatibleFieldsError,
    ParseError,
    UndefinedDefaultError,
    ValueNotSetError,
)
from downscaler.values.replicas import AbsoluteReplicas, Replicas
from downscaler.values.timespan import TimeSpanSet

logger = logging.getLogger(__name__)


class Scaling(str, Enum):
    """Scaling verdict for a workload."""

    NONE = "none"  # no scope defines scaling
    IGNORE = "ignore"  # leave the workload as it is
    DOWN = "down"
    UP = "up"
    MULTIPLE = "multiple"  # conflicting windows are active at once
    INCOMPLETE = "incomplete"  # a timespan could not be evaluated


class ScopeID(int, Enum):
    """Position of a scope, from most to least specific."""

    WORKLOAD = 0
    NAMESPACE = 1
    CLI = 2
    ENVIRONMENT = 3
    DEFAULT = 4


class Scope(BaseModel):
    """
    One configuration layer.

    Fields that were not configured for this layer are None, so the resolver
    can tell "not set" apart from "set to never/false".
    """

    downscale_period: Optional[TimeSpanSet] = None
    down_time: Optional[TimeSpanSet] = None
    upscale_period: Optional[TimeSpanSet] = None
    up_time: Optional[TimeSpanSet] = None
    exclude: Optional[TimeSpanSet] = None
    exclude_until: Optional[datetime] = None
    force_uptime: Optional[TimeSpanSet] = None
    force_downtime: Optional[TimeSpanSet] = None
    downscale_replicas: Optional[Replicas] = None
    grace_period: Optional[timedelta] = None
    scale_children: Optional[bool] = None
    upscale_excluded: Optional[bool] = None
    default_timezone: Optional[tzinfo] = None
    default_week_frame: Optional[WeekFrame] = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    def check_for_incompatible_fields(self) -> None:
        """
        Check that no mutually exclusive fields are set.

        Uptime and downtime exclude each other, and neither may be combined with
        an upscale or downscale period. Whether the spans are active is irrelevant.

        Raises:
            IncompatibleFieldsError: Naming the two conflicting fields
        """
        if self.up_time is not None and self.down_time is not None:
            raise IncompatibleFieldsError("up_time", "down_time")

        for time_field in ("up_time", "down_time"):
            if getattr(self, time_field) is None:
                continue
            for period_field in ("upscale_period", "downscale_period"):
                if getattr(self, period_field) is not None:
                    raise IncompatibleFieldsError(time_field, period_field)

    def defines_forced_scaling(self) -> bool:
        return self.force_uptime is not None or self.force_downtime is not None

    def defines_scaling(self) -> bool:
        return any(
            field is not None
            for field in (self.down_time, self.up_time, self.downscale_period, self.upscale_period)
        )


def get_default_scope() -> Scope:
    """
    Get the process-wide default scope.

    Every other scope falls back to it. The force fields stay unset: a scope
    defining them decides the force question for all scopes below it.
    """
    return DEFAULT_SCOPE


DEFAULT_SCOPE = Scope(
    downscale_period=TimeSpanSet.never(),
    upscale_period=TimeSpanSet.never(),
    exclude=TimeSpanSet.never(),
    downscale_replicas=AbsoluteReplicas(value=0),
    grace_period=timedelta(minutes=15),
    scale_children=False,
    upscale_excluded=False,
)


class Scopes(NamedTuple):
    """The five scopes of one evaluation, ordered from most to least specific."""

    workload: Scope
    namespace: Scope
    cli: Scope
    environment: Scope
    default: Scope = DEFAULT_SCOPE

    def first(self, attribute: str) -> Optional[Any]:
        """Get the attribute from the first scope that sets it."""
        return next(
            (value for value in (getattr(scope, attribute) for scope in self) if value is not None),
            None,
        )

    def _first_scope(self, predicate: Callable[[Scope], bool]) -> Optional[Scope]:
        return next((scope for scope in self if predicate(scope)), None)

    def resolve_timezone(self) -> tzinfo:
        """
        Get the default timezone for relative timespans.

        Raises:
            UndefinedDefaultError: If no scope defines one
        """
        timezone = self.first("default_timezone")
        if timezone is None:
            raise UndefinedDefaultError("default_timezone")
        return timezone

    def resolve_week_frame(self) -> WeekFrame:
        """
        Get the default weekday range for relative timespans.

        Raises:
            UndefinedDefaultError: If no scope defines one
        """
        week_frame = self.first("default_week_frame")
        if week_frame is None:
            raise UndefinedDefaultError("default_week_frame")
        return week_frame

    def _contains(self, spans: Optional[TimeSpanSet], now: datetime) -> bool:
        return spans is not None and spans.contains(now, self)

    def get_current_scaling(self, now: datetime) -> Scaling:
        """
        Get the current scaling.

        The first scope defining a force field decides the force question; if
        neither of its force spans is active the result is IGNORE and windowed
        scaling is not consulted. Otherwise the first scope defining a time or
        period field decides.

        Args:
            now: The instant to evaluate at, shared by every span

        Returns:
            The scaling verdict
        """
        try:
            forcing = self._first_scope(Scope.defines_forced_scaling)
            if forcing is not None:
                return self._forced_scaling(forcing, now)

            scheduling = self._first_scope(Scope.defines_scaling)
            if scheduling is not None:
                return self._scheduled_scaling(scheduling, now)
        except UndefinedDefaultError as e:
            logger.debug(f"Could not evaluate timespans: {e}")
            return Scaling.INCOMPLETE

        return Scaling.NONE

    def _forced_scaling(self, scope: Scope, now: datetime) -> Scaling:
        down = self._contains(scope.force_downtime, now)
        up = self._contains(scope.force_uptime, now)
        if down and up:
            return Scaling.MULTIPLE
        if down:
            return Scaling.DOWN
        if up:
            return Scaling.UP
        return Scaling.IGNORE

    def _scheduled_scaling(self, scope: Scope, now: datetime) -> Scaling:
        if scope.down_time is not None:
            return Scaling.DOWN if scope.down_time.contains(now, self) else Scaling.UP

        if scope.up_time is not None:
            return Scaling.UP if scope.up_time.contains(now, self) else Scaling.DOWN

        down = self._contains(scope.downscale_period, now)
        up = self._contains(scope.upscale_period, now)
        if down and up:
            return Scaling.MULTIPLE
        if down:
            return Scaling.DOWN
        if up:
            return Scaling.UP
        return Scaling.IGNORE

    def get_downscale_replicas(self) -> Replicas:
        """
        Get the downscale replicas of the first scope that sets them.

        Raises:
            ValueNotSetError: If no scope sets downscale replicas
        """
        replicas = self.first("downscale_replicas")
        if replicas is None:
            raise ValueNotSetError("downscale_replicas")
        return replicas

    def get_excluded(self, now: datetime) -> bool:
        """
        Check if scaling is excluded.

        The first scope with an exclude timespan and the first scope with an
        exclude-until deadline are consulted independently; either one can
        exclude the workload. An exclude timespan that cannot be evaluated
        because its defaults are undefined counts as excluding.
        """
        exclude = self.first("exclude")
        try:
            if exclude is not None and exclude.contains(now, self):
                return True
        except UndefinedDefaultError as e:
            logger.debug(f"Could not evaluate exclude timespans, excluding: {e}")
            return True

        exclude_until = self.first("exclude_until")
        return exclude_until is not None and ensure_aware(now) < exclude_until

    def get_scale_children(self) -> bool:
        return bool(self.first("scale_children"))

    def get_upscale_excluded(self) -> bool:
        return bool(self.first("upscale_excluded"))

    def is_in_grace_period(
        self,
        time_annotation: Optional[str],
        workload_annotations: Mapping[str, str],
        creation_time: datetime,
        now: datetime,
        resource_logger: ResourceLogger,
    ) -> bool:
        """
        Check if the workload is still within the grace period after its creation.

        Args:
            time_annotation: Annotation holding an RFC3339 timestamp used instead of
                the creation time, if present on the workload
            workload_annotations: The workload's annotations
            creation_time: The workload's creation timestamp
            now: The instant to evaluate at
            resource_logger: Receives invalid annotation reports

        Returns:
            True if the grace period has not passed yet

        Raises:
            ParseError: If the time annotation is present but not RFC3339
        """
        grace_period = self.first("grace_period")
        if grace_period is None:
            return False

        created = get_workload_creation_time(
            time_annotation, workload_annotations, creation_time, resource_logger
        )
        return ensure_aware(now) < created + grace_period

    def __str__(self) -> str:
        return "[" + " ".join(f"{ScopeID(i).name}:{scope!r}" for i, scope in enumerate(self)) + "]"


def get_workload_creation_time(
    time_annotation: Optional[str],
    workload_annotations: Mapping[str, str],
    creation_time: datetime,
    resource_logger: ResourceLogger,
) -> datetime:
    """
    Get the time a workload counts as created.

    Raises:
        ParseError: If the time annotation is present but not RFC3339
    """
    if not time_annotation or time_annotation not in workload_annotations:
        return ensure_aware(creation_time)

    raw = workload_annotations[time_annotation]
    try:
        return parse_rfc3339(raw)
    except ValueError as e:
        error = ParseError("invalid rfc3339 timestamp", raw, time_annotation)
        resource_logger.record_invalid_annotation(time_annotation, str(error))
        raise error from e
