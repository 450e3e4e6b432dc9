"""Errors raised while parsing and resolving scope values."""

from typing import Any, Optional


class DownscalerError(Exception):
    """Base class for all downscaler errors."""

    pass


class ParseError(DownscalerError):
    """Raised when a configuration value cannot be parsed."""

    def __init__(
        self,
        message: str,
        value: Any = None,
        key: Optional[str] = None,
        raw: Optional[str] = None,
    ):
        """
        Initialize parse error.

        Args:
            message: What is wrong with the value
            value: The part of the value that failed to parse
            key: The annotation, environment variable or flag the value came from
            raw: The complete configured value, when it differs from value
        """
        self.message = message
        self.value = value
        self.key = key
        self.raw = raw
        super().__init__(str(self))

    def with_key(self, key: str, raw: Optional[str] = None) -> "ParseError":
        """Return a copy of this error attributed to a configuration key and its full value."""
        return type(self)(self.message, self.value, key, raw)

    def __str__(self) -> str:
        text = f"{self.message}: {self.value!r}"
        if not self.key:
            return text
        if self.raw is not None and self.raw != self.value:
            return f"failed to parse {self.key!r} ({self.raw!r}): {text}"
        return f"failed to parse {self.key!r}: {text}"


class InvalidReplicasError(ParseError):
    """Raised when a replica count or percentage is out of range."""

    pass


class IncompatibleFieldsError(DownscalerError):
    """Raised when mutually exclusive fields are set within one scope."""

    def __init__(self, first: str, second: str):
        self.fields = (first, second)
        super().__init__(f"found incompatible fields: both {first!r} and {second!r} are defined")


class ValueNotSetError(DownscalerError):
    """Raised when no scope implements a required value."""

    def __init__(self, value_name: str):
        self.value_name = value_name
        super().__init__(f"no scope implements this value: {value_name}")


class UndefinedDefaultError(ValueNotSetError):
    """Raised when a relative timespan needs a default that no scope defines."""

    pass
