"""Per-workload evaluation of the scope layers."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

from kubernetes.client import V1ObjectMeta

from downscaler.config.parser import scope_from_annotations
from downscaler.utils.resource_logger import LoggingResourceLogger, ResourceLogger
from downscaler.utils.time_utils import ensure_aware, format_datetime, get_current_datetime
from downscaler.values.replicas import Replicas
from downscaler.values.scope import DEFAULT_SCOPE, Scaling, Scope, Scopes

logger = logging.getLogger(__name__)


@dataclass
class ScalingDecision:
    """Result of evaluating one workload."""

    scaling: Scaling
    replicas: Replicas
    excluded: bool
    in_grace_period: bool
    scale_children: bool
    upscale_excluded: bool
    evaluation_time: datetime

    @property
    def action(self) -> Scaling:
        """
        The scaling to apply.

        Workloads in their grace period are left alone. Excluded workloads are
        left alone, or scaled up when upscale-excluded is set. MULTIPLE, NONE and
        INCOMPLETE verdicts do nothing this cycle.
        """
        if self.in_grace_period:
            return Scaling.IGNORE
        if self.excluded:
            return Scaling.UP if self.upscale_excluded else Scaling.IGNORE
        if self.scaling in (Scaling.DOWN, Scaling.UP):
            return self.scaling
        return Scaling.IGNORE

    @property
    def reason(self) -> str:
        if self.in_grace_period:
            return "Workload is in its grace period"
        if self.excluded and self.upscale_excluded:
            return "Workload is excluded, upscaling it"
        if self.excluded:
            return "Workload is excluded"
        return f"Current scaling is {self.scaling.value}"


class WorkloadEvaluator:
    """Merge the scope layers of one workload into a scaling decision."""

    def __init__(
        self,
        cli_scope: Scope,
        env_scope: Scope,
        default_scope: Scope = DEFAULT_SCOPE,
        time_annotation: Optional[str] = None,
    ):
        """
        Initialize WorkloadEvaluator.

        Args:
            cli_scope: Scope built from command line flags
            env_scope: Scope built from environment variables
            default_scope: Fallback scope
            time_annotation: Annotation used instead of the creation time for the grace period
        """
        self.cli_scope = cli_scope
        self.env_scope = env_scope
        self.default_scope = default_scope
        self.time_annotation = time_annotation

    def build_scopes(
        self,
        workload_annotations: Mapping[str, str],
        namespace_annotations: Mapping[str, str],
        resource_logger: ResourceLogger,
    ) -> Scopes:
        """
        Build the five scopes for one workload.

        Raises:
            ParseError: If an annotation is invalid
            IncompatibleFieldsError: If incompatible annotations are set
        """
        return Scopes(
            workload=scope_from_annotations(workload_annotations, resource_logger),
            namespace=scope_from_annotations(namespace_annotations, resource_logger),
            cli=self.cli_scope,
            environment=self.env_scope,
            default=self.default_scope,
        )

    def evaluate(
        self,
        workload_annotations: Mapping[str, str],
        creation_time: datetime,
        namespace_annotations: Optional[Mapping[str, str]] = None,
        resource_logger: Optional[ResourceLogger] = None,
        now: Optional[datetime] = None,
    ) -> ScalingDecision:
        """
        Evaluate one workload.

        The current time is sampled once and shared by every query.

        Args:
            workload_annotations: The workload's annotations
            creation_time: The workload's creation timestamp
            namespace_annotations: Annotations of the workload's namespace
            resource_logger: Receives configuration problems (defaults to logging)
            now: Time to evaluate at (defaults to now)

        Returns:
            ScalingDecision for the workload

        Raises:
            ParseError: If an annotation is invalid
            IncompatibleFieldsError: If incompatible annotations are set
            ValueNotSetError: If no scope defines downscale replicas
        """
        if now is None:
            now = get_current_datetime("UTC")
        now = ensure_aware(now)

        if resource_logger is None:
            resource_logger = LoggingResourceLogger(name="unknown")

        scopes = self.build_scopes(workload_annotations, namespace_annotations or {}, resource_logger)
        logger.debug(f"Evaluating scopes {scopes} at {format_datetime(now)}")

        decision = ScalingDecision(
            scaling=scopes.get_current_scaling(now),
            replicas=scopes.get_downscale_replicas(),
            excluded=scopes.get_excluded(now),
            in_grace_period=scopes.is_in_grace_period(
                self.time_annotation, workload_annotations, creation_time, now, resource_logger
            ),
            scale_children=scopes.get_scale_children(),
            upscale_excluded=scopes.get_upscale_excluded(),
            evaluation_time=now,
        )

        if decision.scaling == Scaling.MULTIPLE:
            logger.warning("Multiple scaling windows are active at once, leaving workload unchanged")
        elif decision.scaling == Scaling.INCOMPLETE:
            logger.warning("Timespans could not be evaluated, leaving workload unchanged")

        logger.debug(f"Decision: {decision.action.value} ({decision.reason})")
        return decision

    def evaluate_metadata(
        self,
        workload: V1ObjectMeta,
        namespace: Optional[V1ObjectMeta] = None,
        kind: str = "Workload",
        now: Optional[datetime] = None,
    ) -> ScalingDecision:
        """
        Evaluate a workload from its Kubernetes object metadata.

        Objects that are not persisted yet (admission of a create request) have
        no creation timestamp and count as created now.

        Args:
            workload: Metadata of the workload
            namespace: Metadata of the workload's namespace
            kind: Workload kind, used when reporting problems
            now: Time to evaluate at (defaults to now)
        """
        if now is None:
            now = get_current_datetime("UTC")

        resource_logger = LoggingResourceLogger(
            name=workload.name or workload.generate_name or "unknown",
            namespace=workload.namespace,
            kind=kind,
        )

        return self.evaluate(
            workload_annotations=workload.annotations or {},
            creation_time=workload.creation_timestamp or now,
            namespace_annotations=(namespace.annotations or {}) if namespace is not None else {},
            resource_logger=resource_logger,
            now=now,
        )
