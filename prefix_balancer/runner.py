"""Run orchestration: list -> plan -> execute/aggregate -> verify."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import config as config_module

from .aggregator import OutcomeChannel, ProgressAggregator, start_aggregation
from .common import AggregationError, BalancerConfigError, ListError, format_bytes, format_clock
from .executor import TransferExecutor
from .ledger import ResultLedger
from .lister import InventoryLister, InventorySummary, summarize_inventory
from .models import RunStats, TransferPhase
from .planner import build_plan, normalize_root_prefix, resolve_prefix_count
from .verification import VerificationReport, format_verification_report, verify_distribution


@dataclass(frozen=True)
class BalanceSettings:  # pylint: disable=too-many-instance-attributes
    """Options recognized by a balancing run."""

    bucket: str
    source_prefix: str
    target_root_prefix: str = config_module.DEFAULT_TARGET_ROOT_PREFIX
    prefix_count: int = config_module.DEFAULT_PREFIX_COUNT
    concurrency_limit: int = config_module.DEFAULT_CONCURRENCY_LIMIT
    reporting_batch_size: int = config_module.DEFAULT_REPORTING_BATCH_SIZE
    delete_source_after_copy: bool = False
    analyze_only: bool = False
    ledger_base: Optional[Path] = None

    def validate(self) -> None:
        """Raise BalancerConfigError describing the first invalid option."""
        if not self.bucket:
            raise BalancerConfigError("A bucket is required")
        if not self.source_prefix:
            raise BalancerConfigError("A source prefix is required")
        if self.prefix_count < 0:
            raise BalancerConfigError(f"Prefix count must be >= 0, got {self.prefix_count}")
        if self.concurrency_limit < 1:
            raise BalancerConfigError(
                f"Concurrency limit must be >= 1, got {self.concurrency_limit}"
            )
        if self.reporting_batch_size < 1:
            raise BalancerConfigError(
                f"Reporting batch size must be >= 1, got {self.reporting_batch_size}"
            )


class RunStatus(Enum):
    """How a run ended (all of these exit successfully)."""

    NOTHING_TO_DO = "nothing_to_do"
    ANALYZED = "analyzed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class BalanceResult:  # pylint: disable=too-many-instance-attributes
    """Everything a caller needs to report on a finished run."""

    status: RunStatus
    object_count: int = 0
    prefix_count: int = 0
    summary: Optional[InventorySummary] = None
    stats: Optional[RunStats] = None
    verification: Optional[VerificationReport] = None
    ledger_paths: list[Path] = field(default_factory=list)
    report_path: Optional[Path] = None
    elapsed: float = 0.0


def _log_summary(summary: InventorySummary) -> None:
    logging.info("Found %d objects in S3", summary.total_objects)
    logging.info(
        "Total size of all objects: %d bytes (%s, average %s)",
        summary.total_bytes,
        format_bytes(summary.total_bytes),
        format_bytes(int(summary.average_size)),
    )
    if summary.direct_objects:
        logging.info(
            "  Objects directly under source prefix: %d (%s)",
            summary.direct_objects,
            format_bytes(summary.direct_bytes),
        )
    for usage in summary.largest_sub_prefixes():
        logging.info(
            "  Sub-prefix %s: %d objects, %s",
            usage.name,
            usage.object_count,
            format_bytes(usage.total_bytes),
        )


class PrefixBalancer:
    """Redistributes one prefix into balanced sibling prefixes."""

    def __init__(self, store, settings: BalanceSettings):
        self.store = store
        self.settings = settings
        self.lister = InventoryLister(store)
        self.executor = TransferExecutor(
            store,
            settings.bucket,
            concurrency_limit=max(1, settings.concurrency_limit),
            delete_source_after_copy=settings.delete_source_after_copy,
        )

    def cancel(self) -> None:
        """Stop dispatching new transfers; in-flight transfers finish."""
        self.executor.cancel()

    def run(self) -> BalanceResult:
        """Execute the whole run.

        Raises:
            BalancerConfigError: Invalid settings.
            ListError: The source listing failed.
            PlanError: The plan could not be built.
            AggregationError: Outcomes could no longer be recorded.
        """
        settings = self.settings
        settings.validate()
        start = time.time()
        logging.info("Starting S3 prefix balancing")
        logging.info("Source: s3://%s/%s", settings.bucket, settings.source_prefix)
        logging.info("Target: s3://%s/%s", settings.bucket, settings.target_root_prefix)
        logging.info("Using %d parallel jobs", settings.concurrency_limit)

        logging.info(
            "Listing objects in S3 bucket: %s with prefix: %s",
            settings.bucket,
            settings.source_prefix,
        )
        inventory = list(self.lister.list(settings.bucket, settings.source_prefix))
        if not inventory:
            logging.info("No objects found. Exiting.")
            return BalanceResult(RunStatus.NOTHING_TO_DO, elapsed=time.time() - start)

        logging.info("Analyzing current distribution...")
        summary = summarize_inventory(inventory, settings.source_prefix)
        _log_summary(summary)

        prefix_count = resolve_prefix_count(len(inventory), settings.prefix_count)
        if settings.prefix_count == 0:
            logging.info("Auto-determined target prefix count: %d", prefix_count)
        else:
            logging.info("Using specified target prefix count: %d", prefix_count)

        if settings.analyze_only:
            logging.info("Analysis completed. Exiting.")
            return BalanceResult(
                RunStatus.ANALYZED,
                object_count=len(inventory),
                prefix_count=prefix_count,
                summary=summary,
                elapsed=time.time() - start,
            )

        logging.info("Creating balanced distribution plan...")
        plan = build_plan(
            inventory,
            prefix_count,
            settings.target_root_prefix,
            settings.source_prefix,
            reporting_batch_size=settings.reporting_batch_size,
        )
        del inventory
        for sub_prefix, count in plan.counts_by_prefix(settings.target_root_prefix).items():
            logging.info("  Planned %s: %d objects", sub_prefix, count)

        logging.info("Executing balanced distribution plan...")
        ledger = ResultLedger(settings.ledger_base) if settings.ledger_base else None
        aggregator = ProgressAggregator(
            total=len(plan), reporting_batch_size=settings.reporting_batch_size, ledger=ledger
        )
        channel = OutcomeChannel()
        task = start_aggregation(aggregator, channel)
        # Outcomes that cannot be recorded must not keep moving objects.
        task.on_failure(self.executor.cancel)
        try:
            for outcome in self.executor.execute(plan):
                channel.put(outcome)
        finally:
            channel.close()
            try:
                stats = task.join()
            except Exception as e:
                logging.warning(
                    "Stopped dispatch: %d dispatched outcome(s) were not recorded",
                    self.executor.dispatched - aggregator.stats.processed,
                )
                raise AggregationError(e, aggregator.stats.processed) from e
            finally:
                if ledger is not None:
                    ledger.close()

        result = BalanceResult(
            RunStatus.CANCELLED if self.executor.cancelled else RunStatus.COMPLETED,
            object_count=len(plan),
            prefix_count=plan.prefix_count,
            summary=summary,
            stats=stats,
            ledger_paths=ledger.written_paths() if ledger is not None else [],
        )
        self._log_run_summary(result, time.time() - start)

        result.verification = self._verify()
        if result.verification is not None and settings.ledger_base is not None:
            result.report_path = self._write_report(result.verification)
        result.elapsed = time.time() - start
        logging.info("Balancing operation completed.")
        return result

    def _log_run_summary(self, result: BalanceResult, elapsed: float) -> None:
        stats = result.stats
        logging.info("S3 prefix balancing completed")
        logging.info("-" * 40)
        logging.info("Total time: %s", format_clock(elapsed))
        logging.info("Total objects processed: %d", stats.processed)
        logging.info("Successfully balanced: %d", stats.succeeded)
        logging.info("Failed to balance: %d", stats.failed)
        for phase in TransferPhase:
            if stats.phase_counts.get(phase):
                logging.info("  %s: %d", phase.value, stats.phase_counts[phase])
        if stats.residual_duplicates:
            logging.warning(
                "%d object(s) were copied but their source could not be deleted;"
                " they now exist at both locations",
                stats.residual_duplicates,
            )
        if stats.not_attempted:
            logging.warning("%d object(s) were not attempted", stats.not_attempted)
        for path in result.ledger_paths:
            logging.info("Ledger written: %s", path)
        logging.info("-" * 40)

    def _verify(self) -> Optional[VerificationReport]:
        logging.info("Verifying new prefix distribution...")
        root = normalize_root_prefix(self.settings.target_root_prefix)
        try:
            report = verify_distribution(self.store, self.settings.bucket, root)
        except ListError as exc:
            logging.warning("Verification skipped: %s", exc)
            return None
        for line in format_verification_report(report):
            if line.startswith("Warning: "):
                logging.warning(line[len("Warning: ") :])
            else:
                logging.info(line)
        return report

    def _write_report(self, report: VerificationReport) -> Path:
        base = Path(self.settings.ledger_base)
        path = base.with_name(f"{base.name}_verification.txt")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(format_verification_report(report)) + "\n", encoding="utf-8")
        return path


__all__ = ["BalanceResult", "BalanceSettings", "PrefixBalancer", "RunStatus"]
