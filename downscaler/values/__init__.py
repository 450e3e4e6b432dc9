"""Scheduling values: timespans, replicas, scopes and their resolution."""

from downscaler.values.errors import (
    DownscalerError,
    IncompatibleFieldsError,
    InvalidReplicasError,
    ParseError,
    UndefinedDefaultError,
    ValueNotSetError,
)
from downscaler.values.replicas import (
    AbsoluteReplicas,
    PercentageReplicas,
    Replicas,
    parse_replicas,
)
from downscaler.values.scope import (
    DEFAULT_SCOPE,
    Scaling,
    Scope,
    ScopeID,
    Scopes,
    get_default_scope,
)
from downscaler.values.timespan import (
    AbsoluteTimeSpan,
    BooleanTimeSpan,
    RelativeTimeSpan,
    TimeSpan,
    TimeSpanSet,
)

__all__ = [
    "AbsoluteReplicas",
    "AbsoluteTimeSpan",
    "BooleanTimeSpan",
    "DEFAULT_SCOPE",
    "DownscalerError",
    "IncompatibleFieldsError",
    "InvalidReplicasError",
    "ParseError",
    "PercentageReplicas",
    "RelativeTimeSpan",
    "Replicas",
    "Scaling",
    "Scope",
    "ScopeID",
    "Scopes",
    "TimeSpan",
    "TimeSpanSet",
    "UndefinedDefaultError",
    "ValueNotSetError",
    "get_default_scope",
    "parse_replicas",
]
