"""Tests for the workload evaluator."""

from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest
import pytz
from kubernetes.client import V1ObjectMeta

from downscaler.config.parser import scope_from_env, scope_from_flags
from downscaler.controller.evaluator import ScalingDecision, WorkloadEvaluator
from downscaler.values.errors import IncompatibleFieldsError, ParseError
from downscaler.values.replicas import AbsoluteReplicas, PercentageReplicas
from downscaler.values.scope import Scaling, Scope

# Saturday noon
SATURDAY = datetime(2024, 1, 6, 12, 0, tzinfo=pytz.UTC)
# Monday noon
MONDAY = datetime(2024, 1, 8, 12, 0, tzinfo=pytz.UTC)
CREATED = datetime(2023, 12, 1, tzinfo=pytz.UTC)


@pytest.fixture
def evaluator():
    """Create an evaluator with a weekend downtime."""
    return WorkloadEvaluator(
        cli_scope=scope_from_flags({"default-downtime": "Sat-Sun 00:00-24:00 UTC"}),
        env_scope=scope_from_env({}),
    )


@pytest.fixture
def resource_logger():
    """Create a mock resource logger."""
    return Mock()


def make_decision(**overrides):
    values = {
        "scaling": Scaling.DOWN,
        "replicas": AbsoluteReplicas(value=0),
        "excluded": False,
        "in_grace_period": False,
        "scale_children": False,
        "upscale_excluded": False,
        "evaluation_time": MONDAY,
    }
    values.update(overrides)
    return ScalingDecision(**values)


class TestScalingDecision:
    """Tests for ScalingDecision."""

    def test_scaling_applied(self):
        """Test that up and down verdicts are applied."""
        assert make_decision().action == Scaling.DOWN
        assert make_decision(scaling=Scaling.UP).action == Scaling.UP

    @pytest.mark.parametrize("scaling", [Scaling.NONE, Scaling.IGNORE, Scaling.MULTIPLE, Scaling.INCOMPLETE])
    def test_other_verdicts_ignored(self, scaling):
        """Test that undecided verdicts leave the workload alone."""
        assert make_decision(scaling=scaling).action == Scaling.IGNORE

    def test_grace_period_wins(self):
        """Test that workloads in their grace period are left alone."""
        decision = make_decision(in_grace_period=True, excluded=True, upscale_excluded=True)
        assert decision.action == Scaling.IGNORE
        assert "grace period" in decision.reason

    def test_excluded(self):
        """Test excluded workloads."""
        assert make_decision(excluded=True).action == Scaling.IGNORE
        assert make_decision(excluded=True, upscale_excluded=True).action == Scaling.UP


class TestWorkloadEvaluator:
    """Tests for WorkloadEvaluator."""

    def test_weekend_downtime(self, evaluator, resource_logger):
        """Test the command line downtime on a weekend."""
        decision = evaluator.evaluate({}, CREATED, resource_logger=resource_logger, now=SATURDAY)
        assert decision.scaling == Scaling.DOWN
        assert decision.action == Scaling.DOWN
        assert decision.replicas == AbsoluteReplicas(value=0)
        assert decision.evaluation_time == SATURDAY

    def test_weekday_uptime(self, evaluator, resource_logger):
        """Test the command line downtime on a weekday."""
        decision = evaluator.evaluate({}, CREATED, resource_logger=resource_logger, now=MONDAY)
        assert decision.action == Scaling.UP

    def test_workload_annotations_override(self, evaluator, resource_logger):
        """Test that workload annotations beat the command line."""
        annotations = {
            "downscaler/uptime": "Sat-Sun 00:00-24:00 UTC",
            "downscaler/downscale-replicas": "50%",
        }
        decision = evaluator.evaluate(annotations, CREATED, resource_logger=resource_logger, now=SATURDAY)
        assert decision.action == Scaling.UP
        assert decision.replicas == PercentageReplicas(value=50)

    def test_namespace_exclusion(self, evaluator, resource_logger):
        """Test that namespaces can exclude their workloads."""
        decision = evaluator.evaluate(
            {},
            CREATED,
            namespace_annotations={"downscaler/exclude": "true"},
            resource_logger=resource_logger,
            now=SATURDAY,
        )
        assert decision.excluded is True
        assert decision.action == Scaling.IGNORE

    def test_grace_period(self, evaluator, resource_logger):
        """Test that new workloads are left alone."""
        decision = evaluator.evaluate(
            {}, SATURDAY - timedelta(minutes=5), resource_logger=resource_logger, now=SATURDAY
        )
        assert decision.in_grace_period is True
        assert decision.action == Scaling.IGNORE

    def test_time_annotation(self, resource_logger):
        """Test that the configured time annotation is used for the grace period."""
        evaluator = WorkloadEvaluator(
            cli_scope=Scope(),
            env_scope=Scope(),
            time_annotation="example.com/deployed-at",
        )
        annotations = {"example.com/deployed-at": "2024-01-06T11:50:00Z"}
        decision = evaluator.evaluate(annotations, CREATED, resource_logger=resource_logger, now=SATURDAY)
        assert decision.in_grace_period is True

    def test_invalid_annotation_raises(self, evaluator, resource_logger):
        """Test that invalid annotations are reported and raised."""
        with pytest.raises(ParseError):
            evaluator.evaluate(
                {"downscaler/grace-period": "soon"}, CREATED, resource_logger=resource_logger, now=SATURDAY
            )
        resource_logger.record_invalid_annotation.assert_called_once()

    def test_incompatible_namespace_annotations(self, evaluator, resource_logger):
        """Test that conflicting namespace annotations are raised."""
        with pytest.raises(IncompatibleFieldsError):
            evaluator.evaluate(
                {},
                CREATED,
                namespace_annotations={"downscaler/uptime": "always", "downscaler/downtime": "never"},
                resource_logger=resource_logger,
                now=SATURDAY,
            )
        resource_logger.record_incompatible_fields.assert_called_once()

    def test_defaults_from_environment(self, resource_logger):
        """Test relative spans that rely on environment defaults."""
        evaluator = WorkloadEvaluator(
            cli_scope=Scope(),
            env_scope=scope_from_env({"DEFAULT_TIMEZONE": "UTC", "DEFAULT_WEEKFRAME": "Mon-Fri"}),
        )
        annotations = {"downscaler/downtime": "10:00-14:00"}
        monday = evaluator.evaluate(annotations, CREATED, resource_logger=resource_logger, now=MONDAY)
        saturday = evaluator.evaluate(annotations, CREATED, resource_logger=resource_logger, now=SATURDAY)
        assert monday.action == Scaling.DOWN
        assert saturday.action == Scaling.UP

    def test_incomplete_without_defaults(self, resource_logger):
        """Test relative spans without any defaults."""
        evaluator = WorkloadEvaluator(cli_scope=Scope(), env_scope=Scope())
        decision = evaluator.evaluate(
            {"downscaler/downtime": "10:00-14:00"}, CREATED, resource_logger=resource_logger, now=MONDAY
        )
        assert decision.scaling == Scaling.INCOMPLETE
        assert decision.action == Scaling.IGNORE

    def test_exclude_without_defaults(self, resource_logger):
        """Test that an exclude span missing its defaults leaves the workload alone."""
        evaluator = WorkloadEvaluator(cli_scope=Scope(), env_scope=Scope())
        decision = evaluator.evaluate(
            {"downscaler/exclude": "08:00-09:00"}, CREATED, resource_logger=resource_logger, now=MONDAY
        )
        assert decision.excluded is True
        assert decision.action == Scaling.IGNORE

    def test_evaluate_metadata(self, evaluator):
        """Test evaluating Kubernetes object metadata."""
        workload = V1ObjectMeta(
            name="app",
            namespace="default",
            annotations={"downscaler/downscale-replicas": "2"},
            creation_timestamp=CREATED,
        )
        namespace = V1ObjectMeta(name="default", annotations={"downscaler/scale-children": "true"})
        decision = evaluator.evaluate_metadata(workload, namespace, kind="Deployment", now=SATURDAY)
        assert decision.action == Scaling.DOWN
        assert decision.replicas == AbsoluteReplicas(value=2)
        assert decision.scale_children is True

    def test_evaluate_metadata_without_creation_timestamp(self, evaluator):
        """Test that unpersisted objects count as just created."""
        workload = V1ObjectMeta(generate_name="app-", namespace="default")
        decision = evaluator.evaluate_metadata(workload, now=SATURDAY)
        assert decision.in_grace_period is True
