"""
Progress aggregation over the executor's outcome stream.

The aggregator is the only writer of RunStats (and of the result ledger).
Producers hand outcomes over through an OutcomeChannel; the aggregator
runs as a joinable task that finishes once the channel is closed.
"""

from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, Iterator, Optional

import config as config_module

from .models import RunStats, TransferOutcome, TransferPhase

_STREAM_CLOSED = object()


class OutcomeChannel:
    """Multi-producer, single-consumer outcome stream with an explicit close signal."""

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._closed = False

    def put(self, outcome: TransferOutcome) -> None:
        """Hand one outcome to the consumer."""
        if self._closed:
            raise RuntimeError("Cannot put an outcome on a closed channel")
        self._queue.put(outcome)

    def close(self) -> None:
        """Signal that no more outcomes will arrive."""
        if not self._closed:
            self._closed = True
            self._queue.put(_STREAM_CLOSED)

    def __iter__(self) -> Iterator[TransferOutcome]:
        while True:
            item = self._queue.get()
            if item is _STREAM_CLOSED:
                return
            yield item


class ProgressAggregator:
    """Counts outcomes exactly once and emits periodic status lines."""

    def __init__(
        self,
        total: int,
        reporting_batch_size: int = config_module.DEFAULT_REPORTING_BATCH_SIZE,
        ledger=None,
        clock: Callable[[], float] = time.time,
    ):
        if reporting_batch_size < 1:
            raise ValueError(f"reporting_batch_size must be >= 1, got {reporting_batch_size}")
        self.reporting_batch_size = reporting_batch_size
        self.ledger = ledger
        self.clock = clock
        now = clock()
        self.stats = RunStats(total=total, start_time=now, last_update_time=now)
        self.status_lines: list[str] = []
        self._last_reported = -1

    def record(self, outcome: TransferOutcome) -> None:
        """Write one outcome to the ledger, then apply it to the counters."""
        if self.ledger is not None:
            self.ledger.record(outcome)
        stats = self.stats
        if outcome.phase.succeeded:
            stats.succeeded += 1
        else:
            stats.failed += 1
        if outcome.phase is TransferPhase.DELETE_FAILED:
            stats.residual_duplicates += 1
        stats.phase_counts[outcome.phase] = stats.phase_counts.get(outcome.phase, 0) + 1
        stats.last_update_time = self.clock()

    def status_line(self) -> str:
        """Processed count, percentage, rate and success/failure split."""
        stats = self.stats
        processed = stats.processed
        elapsed = stats.last_update_time - stats.start_time
        rate = f"{processed / elapsed:.2f}" if elapsed >= 1 else "N/A"
        percent = processed * 100 // stats.total if stats.total else 100
        return (
            f"Progress: {percent}% ({processed}/{stats.total}) - Rate: {rate} objects/sec"
            f" - Success: {stats.succeeded} - Failed: {stats.failed}"
        )

    def _emit_status(self) -> None:
        line = self.status_line()
        self.status_lines.append(line)
        self._last_reported = self.stats.processed
        logging.info(line)

    def observe(self, outcomes: Iterable[TransferOutcome]) -> RunStats:
        """Consume the whole stream in arrival order and return the final stats."""
        for outcome in outcomes:
            self.record(outcome)
            processed = self.stats.processed
            if processed % self.reporting_batch_size == 0 or processed == self.stats.total:
                self._emit_status()
        if self._last_reported != self.stats.processed:
            self._emit_status()
        return self.stats


class AggregationTask:
    """Handle on an aggregator consuming a channel in its own thread."""

    def __init__(self, future: Future, pool: ThreadPoolExecutor):
        self._future = future
        self._pool = pool

    @property
    def failed(self) -> bool:
        """True once the aggregator has stopped with an exception."""
        return self._future.done() and self._future.exception() is not None

    def on_failure(self, callback: Callable[[], None]) -> None:
        """Call callback (from the aggregator thread) if the aggregator dies."""

        def _check(future: Future) -> None:
            if future.exception() is not None:
                callback()

        self._future.add_done_callback(_check)

    def join(self, timeout: Optional[float] = None) -> RunStats:
        """Wait for the aggregator to drain the closed channel and return its stats."""
        try:
            return self._future.result(timeout=timeout)
        finally:
            self._pool.shutdown(wait=False)


def start_aggregation(aggregator: ProgressAggregator, channel: OutcomeChannel) -> AggregationTask:
    """Run aggregator.observe(channel) as a joinable background task."""
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="aggregator")
    return AggregationTask(pool.submit(aggregator.observe, channel), pool)


__all__ = [
    "AggregationTask",
    "OutcomeChannel",
    "ProgressAggregator",
    "start_aggregation",
]
