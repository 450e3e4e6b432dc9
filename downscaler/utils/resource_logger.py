"""Reporting seam for configuration problems found on a resource."""

import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class ResourceLogger(Protocol):
    """Receives configuration errors found while evaluating one resource."""

    def record_invalid_annotation(self, key: str, message: str) -> None:
        """Report an annotation whose value could not be parsed."""
        ...

    def record_incompatible_fields(self, message: str) -> None:
        """Report mutually exclusive fields set on the same resource."""
        ...


class LoggingResourceLogger:
    """ResourceLogger that writes reports to the standard logging module."""

    def __init__(
        self,
        name: str,
        namespace: Optional[str] = None,
        kind: str = "Workload",
        log: Optional[logging.Logger] = None,
    ):
        """
        Initialize resource logger.

        Args:
            name: Resource name
            namespace: Resource namespace, None for cluster scoped resources
            kind: Resource kind
            log: Logger to write to (defaults to this module's logger)
        """
        self.name = name
        self.namespace = namespace
        self.kind = kind
        self.log = log or logger

    @property
    def resource(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"

    def record_invalid_annotation(self, key: str, message: str) -> None:
        self.log.warning(f"Invalid annotation {key!r} on {self.resource}: {message}")

    def record_incompatible_fields(self, message: str) -> None:
        self.log.warning(f"Incompatible fields on {self.resource}: {message}")
