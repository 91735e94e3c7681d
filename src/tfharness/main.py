"""Command-line entrypoint running the lifecycle once and reporting the result."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, TextIO

import structlog

from tfharness.config import Settings, get_settings
from tfharness.domain.models.lifecycle import LifecycleError, LifecycleRun
from tfharness.domain.ports.services import ProcessRunner
from tfharness.domain.services.lifecycle_service import LifecycleDriver
from tfharness.infrastructure.observability.logging import setup_logging
from tfharness.infrastructure.process.runner import AsyncProcessRunner
from tfharness.infrastructure.terraform.executor import TerraformCli


logger = structlog.get_logger(__name__)


def build_driver(settings: Settings, runner: ProcessRunner | None = None) -> LifecycleDriver:
    """Wire a lifecycle driver from settings."""
    tf = settings.terraform
    terraform = TerraformCli(
        runner=runner or AsyncProcessRunner(),
        config_root=tf.resolved_config_root,
        var_file=tf.var_file,
        binary=tf.binary,
    )
    return LifecycleDriver(
        terraform,
        output_names=tf.output_names,
        deadline_seconds=tf.deadline_seconds,
    )


def format_report(run: LifecycleRun) -> dict[str, Any]:
    """Format a lifecycle run for JSON output."""
    return {
        **run.model_dump(mode="json"),
        "reached": run.reached.value,
        "passed": run.passed,
    }


async def run(
    settings: Settings,
    runner: ProcessRunner | None = None,
    out: TextIO | None = None,
) -> int:
    """Run the lifecycle, write the report and return the exit code."""
    driver = build_driver(settings, runner)
    try:
        await driver.run()
    except LifecycleError as e:
        # Already recorded on the run; the report carries it.
        logger.debug("lifecycle_error_reported", step=e.step)

    report = format_report(driver.run_record)
    print(json.dumps(report, indent=2), file=out or sys.stdout)
    return 0 if driver.run_record.passed else 1


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with command-line flags applied on top."""
    overrides: dict[str, Any] = {}
    if args.config_root is not None:
        overrides["config_root"] = args.config_root
    if args.var_file is not None:
        overrides["var_file"] = args.var_file
    if args.binary is not None:
        overrides["binary"] = args.binary
    if args.deadline_seconds is not None:
        overrides["deadline_seconds"] = args.deadline_seconds
    if args.output:
        overrides["output_names"] = list(args.output)

    observability = settings.observability
    if args.log_level is not None:
        observability = observability.model_copy(update={"log_level": args.log_level})

    terraform = settings.terraform.model_validate(
        {**settings.terraform.model_dump(), **overrides}
    )
    return settings.model_copy(
        update={"terraform": terraform, "observability": observability}
    )


def positive_seconds(value: str) -> float:
    """argparse type for a deadline given in seconds."""
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number of seconds: {value!r}") from None
    if not seconds > 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return seconds


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run terraform init/apply/output/destroy and verify the outputs"
    )
    parser.add_argument(
        "--config-root",
        type=Path,
        help="Terraform configuration root (default: parent of the current directory)",
    )
    parser.add_argument(
        "--var-file",
        help="Variable definitions file, relative to the configuration root",
    )
    parser.add_argument("--binary", help="Terraform executable to invoke")
    parser.add_argument(
        "--deadline-seconds",
        type=positive_seconds,
        help="Overall deadline for the whole lifecycle",
    )
    parser.add_argument(
        "--output",
        action="append",
        help="Output name to verify; repeat for several (default: the S3 bucket outputs)",
    )
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = parse_args(argv)
    settings = apply_overrides(get_settings(), args)
    setup_logging(
        settings.observability.log_level,
        json_logs=settings.observability.json_logs,
        stream=sys.stderr,
    )

    exit_code = asyncio.run(run(settings))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
