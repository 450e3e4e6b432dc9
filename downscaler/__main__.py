"""Command line entry point: evaluate the scaling of one workload."""

import argparse
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from downscaler import __version__
from downscaler.config.loader import ConfigLoadError, ConfigLoader
from downscaler.config.models import DownscalerConfig
from downscaler.config.parser import FLAG_FIELDS, scope_from_env, scope_from_flags
from downscaler.config.validator import ConfigValidator
from downscaler.controller.evaluator import ScalingDecision, WorkloadEvaluator
from downscaler.utils.logger import setup_logging
from downscaler.utils.resource_logger import LoggingResourceLogger
from downscaler.utils.time_utils import get_current_datetime, parse_rfc3339
from downscaler.values.errors import DownscalerError
from downscaler.values.scope import DEFAULT_SCOPE

logger = logging.getLogger(__name__)

FLAG_HELP = {
    "downscale-period": "Timespans during which workloads are scaled down",
    "default-downtime": "Timespans during which workloads are down, up otherwise",
    "force-downtime": "Timespans during which workloads are forced down",
    "upscale-period": "Timespans during which workloads are scaled up",
    "default-uptime": "Timespans during which workloads are up, down otherwise",
    "force-uptime": "Timespans during which workloads are forced up",
    "explicit-include": "Exclude workloads unless they opt in ('true' excludes always)",
    "downtime-replicas": "Replicas while downscaled, a count or a percentage such as '50%%'",
    "grace-period": "Time after creation during which a workload is left alone (e.g. '15m')",
    "scale-children": "Scale workloads owned by the evaluated workload",
    "upscale-excluded": "Scale excluded workloads up instead of ignoring them",
}

SWITCH_FLAGS = {"explicit-include", "scale-children", "upscale-excluded"}


def parse_args(argv: Optional[list[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Downscaler - evaluate the scaling of a Kubernetes workload",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Evaluate a workload with a weekday uptime
  python -m downscaler --default-uptime "Mon-Fri 07:00-19:00 Europe/Berlin" \\
      --workload-annotation downscaler/downscale-replicas=1

  # Evaluate at a fixed time with settings from a file
  python -m downscaler --config downscaler.yaml --now 2024-01-06T12:00:00Z

  # Let the namespace exclude its workloads
  python -m downscaler --namespace-annotation downscaler/exclude=true
        """,
    )

    parser.add_argument(
        "--config",
        type=str,
        help="YAML file with runtime settings and command line scope values",
    )

    parser.add_argument(
        "--time-annotation",
        type=str,
        help="Annotation holding an RFC3339 timestamp used instead of the creation time",
    )

    parser.add_argument(
        "--workload-annotation",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Annotation on the workload (repeatable)",
    )

    parser.add_argument(
        "--namespace-annotation",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Annotation on the workload's namespace (repeatable)",
    )

    parser.add_argument(
        "--creation-time",
        type=str,
        help="RFC3339 creation timestamp of the workload (default: now)",
    )

    parser.add_argument(
        "--now",
        type=str,
        help="RFC3339 timestamp to evaluate at (default: now)",
    )

    for flag, help_text in FLAG_HELP.items():
        if flag in SWITCH_FLAGS:
            # bare switch means "true", an explicit value is still accepted
            parser.add_argument(f"--{flag}", type=str, nargs="?", const="true", help=help_text)
        else:
            parser.add_argument(f"--{flag}", type=str, help=help_text)

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        type=str,
        choices=["text", "json"],
        help="Log output format (default: text)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Downscaler {__version__}",
    )

    return parser.parse_args(argv)


def parse_annotations(pairs: list[str]) -> dict[str, str]:
    """
    Parse KEY=VALUE pairs into a dict.

    Raises:
        ValueError: If a pair has no '='
    """
    annotations = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid annotation {pair!r}, expected KEY=VALUE")
        annotations[key] = value
    return annotations


def collect_flags(args, config: DownscalerConfig) -> dict[str, str]:
    """Merge the config file's scope section with the flags, flags win."""
    flags = dict(config.scope)
    for flag in FLAG_FIELDS:
        value = getattr(args, flag.replace("-", "_"))
        if value is not None:
            flags[flag] = value
    return flags


def print_decision(decision: ScalingDecision) -> None:
    print(f"Action: {decision.action.value}")
    print(f"Reason: {decision.reason}")
    print(f"Scaling: {decision.scaling.value}")
    print(f"Downscale replicas: {decision.replicas}")
    print(f"Excluded: {decision.excluded}")
    print(f"In grace period: {decision.in_grace_period}")
    print(f"Scale children: {decision.scale_children}")
    print(f"Upscale excluded: {decision.upscale_excluded}")


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = ConfigLoader.load_from_file(args.config) if args.config else DownscalerConfig()
    except (ConfigLoadError, ValidationError) as e:
        setup_logging()
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    setup_logging(
        level=args.log_level or config.runtime.log_level,
        format_type=args.log_format or config.runtime.log_format,
    )

    time_annotation = args.time_annotation or config.runtime.time_annotation

    try:
        cli_scope = scope_from_flags(collect_flags(args, config))
        env_scope = scope_from_env()
    except DownscalerError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    result = ConfigValidator.validate_scopes(DEFAULT_SCOPE, cli_scope, env_scope)
    for warning in result.warnings:
        logger.warning(warning)
    if not result:
        for error in result.errors:
            logger.error(error)
        sys.exit(1)

    try:
        workload_annotations = parse_annotations(args.workload_annotation)
        namespace_annotations = parse_annotations(args.namespace_annotation)
        now = parse_rfc3339(args.now) if args.now else get_current_datetime("UTC")
        creation_time = parse_rfc3339(args.creation_time) if args.creation_time else now
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    evaluator = WorkloadEvaluator(
        cli_scope=cli_scope,
        env_scope=env_scope,
        default_scope=DEFAULT_SCOPE,
        time_annotation=time_annotation,
    )

    try:
        decision = evaluator.evaluate(
            workload_annotations=workload_annotations,
            creation_time=creation_time,
            namespace_annotations=namespace_annotations,
            resource_logger=LoggingResourceLogger(name="cli"),
            now=now,
        )
    except DownscalerError as e:
        logger.error(f"Failed to evaluate workload: {e}")
        sys.exit(1)

    print_decision(decision)


if __name__ == "__main__":
    main()
