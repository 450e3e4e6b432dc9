"""Controller components for the downscaler."""

from downscaler.controller.evaluator import ScalingDecision, WorkloadEvaluator

__all__ = [
    "ScalingDecision",
    "WorkloadEvaluator",
]
