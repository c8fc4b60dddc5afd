"""
Argument parsing for the prefix balancer CLI.
"""

from __future__ import annotations

import argparse
from pathlib import Path

import config as config_module


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def add_location_arguments(parser: argparse.ArgumentParser) -> None:
    """Add bucket and prefix arguments."""
    parser.add_argument("-B", "--bucket", required=True, help="S3 bucket name.")
    parser.add_argument(
        "-p", "--source-prefix", required=True, help="Source S3 prefix to copy from."
    )
    parser.add_argument(
        "-t",
        "--target-prefix",
        default=config_module.DEFAULT_TARGET_ROOT_PREFIX,
        help=f"Target prefix to copy to (default: {config_module.DEFAULT_TARGET_ROOT_PREFIX}).",
    )
    parser.add_argument(
        "-n",
        "--prefix-count",
        type=_non_negative_int,
        default=config_module.DEFAULT_PREFIX_COUNT,
        help="Target number of prefixes (default: auto-determine from object count).",
    )


def add_execution_arguments(parser: argparse.ArgumentParser) -> None:
    """Add concurrency, reporting and action arguments."""
    parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=config_module.DEFAULT_CONCURRENCY_LIMIT,
        help=f"Number of parallel jobs (default: {config_module.DEFAULT_CONCURRENCY_LIMIT}).",
    )
    parser.add_argument(
        "-s",
        "--batch-size",
        type=_positive_int,
        default=config_module.DEFAULT_REPORTING_BATCH_SIZE,
        help=(
            "Objects between progress reports "
            f"(default: {config_module.DEFAULT_REPORTING_BATCH_SIZE})."
        ),
    )
    parser.add_argument(
        "-a", "--analyze-only", action="store_true", help="Analyze only, don't perform balancing."
    )
    parser.add_argument(
        "-d",
        "--delete-source",
        action="store_true",
        help="Delete source files after copying (default: keep them).",
    )


def add_environment_arguments(parser: argparse.ArgumentParser) -> None:
    """Add logging and AWS environment arguments."""
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=Path(config_module.DEFAULT_LOG_DIR),
        help="Directory for the run log, ledger and verification report.",
    )
    parser.add_argument("--env-file", help="Path to a .env file holding AWS credentials.")
    parser.add_argument("--region", help="AWS region of the bucket.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI parser."""
    parser = argparse.ArgumentParser(
        description=(
            "Copy objects from one S3 prefix into evenly sized sibling prefixes "
            "to avoid hot partitions during parallel ingest."
        ),
    )
    add_location_arguments(parser)
    add_execution_arguments(parser)
    add_environment_arguments(parser)
    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments for the prefix balancer."""
    return build_parser().parse_args(argv)


__all__ = ["build_parser", "parse_args"]
