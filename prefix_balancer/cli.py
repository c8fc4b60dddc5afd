"""
Command-line interface and main entry point for the prefix balancer.

Sets up logging, builds the S3 store and runs the balancer. Exit status is 0
whenever the run completes, including runs with per-object failures.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

import config as config_module

from .args_parser import parse_args
from .aws_client import create_s3_client
from .common import BalancerError, format_duration
from .runner import BalanceResult, BalanceSettings, PrefixBalancer, RunStatus
from .store import S3ObjectStore

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CANCELLED = 130


def build_log_base(log_dir: Path, now: datetime | None = None) -> Path:
    """Timestamped base path shared by the log file and the ledger."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return log_dir / f"{config_module.LOG_FILE_STEM}_{stamp}"


def configure_logging(log_file: Path, verbose: bool) -> None:
    """Log to stderr and to the run's log file."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(), logging.FileHandler(log_file, encoding="utf-8")],
    )
    # Per-request botocore chatter drowns out progress lines.
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)


def settings_from_args(args: argparse.Namespace, ledger_base: Path | None) -> BalanceSettings:
    """Translate parsed flags into run settings."""
    return BalanceSettings(
        bucket=args.bucket,
        source_prefix=args.source_prefix,
        target_root_prefix=args.target_prefix,
        prefix_count=args.prefix_count,
        concurrency_limit=args.jobs,
        reporting_batch_size=args.batch_size,
        delete_source_after_copy=args.delete_source,
        analyze_only=args.analyze_only,
        ledger_base=ledger_base,
    )


def _install_interrupt_handler(balancer: PrefixBalancer):
    """First Ctrl+C stops dispatch; a second one interrupts immediately."""
    previous = signal.getsignal(signal.SIGINT)

    def _handler(_signum, _frame):
        balancer.cancel()
        print("\nInterrupt received: finishing in-flight transfers (Ctrl+C again to abort)...")
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handler)
    return previous


def print_result(result: BalanceResult, settings: BalanceSettings) -> None:
    """Print the final banner."""
    print("=" * 70)
    if result.status is RunStatus.NOTHING_TO_DO:
        print("NOTHING TO DO: no objects found")
        print(f"Source: s3://{settings.bucket}/{settings.source_prefix}")
        print("=" * 70)
        return
    if result.status is RunStatus.ANALYZED:
        print("ANALYSIS COMPLETE")
        print("=" * 70)
        print(f"Objects:              {result.object_count:,}")
        print(f"Target prefix count:  {result.prefix_count}")
        print("=" * 70)
        return
    stats = result.stats
    title = "BALANCING CANCELLED" if result.status is RunStatus.CANCELLED else "BALANCING COMPLETE"
    print(title)
    print("=" * 70)
    print(f"Source:          s3://{settings.bucket}/{settings.source_prefix}")
    print(f"Target:          s3://{settings.bucket}/{settings.target_root_prefix}")
    print(f"Prefixes:        {result.prefix_count}")
    print(f"Processed:       {stats.processed:,} / {result.object_count:,}")
    print(f"  Succeeded:     {stats.succeeded:,}")
    print(f"  Failed:        {stats.failed:,}")
    if stats.residual_duplicates:
        print(f"  Left at both locations (delete failed): {stats.residual_duplicates:,}")
    if stats.not_attempted:
        print(f"  Not attempted: {stats.not_attempted:,}")
    print(f"Elapsed:         {format_duration(result.elapsed)}")
    for path in result.ledger_paths:
        print(f"Ledger:          {path}")
    if result.report_path is not None:
        print(f"Verification:    {result.report_path}")
    print("=" * 70)


def print_failure(exc: BalancerError, settings: BalanceSettings) -> None:
    """Print the banner for a run stopped by a fatal error."""
    processed = getattr(exc, "processed", 0)
    print("=" * 70)
    print("BALANCING FAILED")
    print("=" * 70)
    print(f"Source:          s3://{settings.bucket}/{settings.source_prefix}")
    print(f"Processed:       {processed:,}")
    print(f"Cause:           {exc}")
    print("=" * 70)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the prefix balancer CLI."""
    args = parse_args(argv if argv is not None else sys.argv[1:])
    log_base = build_log_base(args.log_dir)
    configure_logging(log_base.with_name(f"{log_base.name}.log"), args.verbose)

    settings = settings_from_args(args, ledger_base=log_base)
    s3 = create_s3_client(max_pool_connections=args.jobs, region=args.region, env_path=args.env_file)
    balancer = PrefixBalancer(S3ObjectStore(s3), settings)

    previous_handler = _install_interrupt_handler(balancer)
    try:
        result = balancer.run()
    except BalancerError as exc:
        logging.error("%s", exc)
        print_failure(exc, settings)
        return EXIT_FATAL
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print_result(result, settings)
    if result.status is RunStatus.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_OK


__all__ = ["main"]
