"""
Bounded-concurrency execution of a distribution plan.

Entries are dispatched in plan order to a fixed-size thread pool; outcomes
are yielded in completion order. At most ``concurrency_limit`` entries are
in flight at any instant. Per-object errors become outcomes and never
propagate out of the executor.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from threading import Event
from typing import Iterator, Sequence

from botocore.exceptions import BotoCoreError, ClientError

import config as config_module

from .models import DistributionPlan, PlanEntry, TransferOutcome, TransferPhase

STORE_ERRORS = (ClientError, BotoCoreError)


def describe_store_error(exc: Exception) -> str:
    """Short, structured description of a store failure."""
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "Unknown")
        message = error.get("Message", "")
        return f"{code}: {message}" if message else code
    return f"{type(exc).__name__}: {exc}"


def chunk_entries(entries: Sequence[PlanEntry], threshold: int, chunk_size: int):
    """Split large plans into fixed-size chunks; small plans stay whole."""
    if len(entries) <= threshold:
        yield entries
        return
    for start in range(0, len(entries), chunk_size):
        yield entries[start : start + chunk_size]


class TransferExecutor:
    """Copies (and optionally deletes) every plan entry through a worker pool."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store,
        bucket: str,
        concurrency_limit: int = config_module.DEFAULT_CONCURRENCY_LIMIT,
        delete_source_after_copy: bool = False,
        *,
        large_plan_threshold: int = config_module.LARGE_PLAN_THRESHOLD,
        chunk_size: int = config_module.PLAN_CHUNK_SIZE,
    ):
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {concurrency_limit}")
        self.store = store
        self.bucket = bucket
        self.concurrency_limit = concurrency_limit
        self.delete_source_after_copy = delete_source_after_copy
        self.large_plan_threshold = large_plan_threshold
        self.chunk_size = chunk_size
        self._cancel_event = Event()
        self.dispatched = 0

    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Stop dispatching new entries; in-flight copy/delete pairs still finish."""
        self._cancel_event.set()

    def transfer(self, entry: PlanEntry) -> TransferOutcome:
        """Copy one entry, then delete its source if requested.

        Never checks for cancellation between the copy and its paired delete.
        """
        try:
            self.store.copy_object(self.bucket, entry.source_key, entry.target_key)
        except STORE_ERRORS as exc:
            return TransferOutcome(entry, TransferPhase.COPY_FAILED, describe_store_error(exc))
        if not self.delete_source_after_copy:
            return TransferOutcome(entry, TransferPhase.COPIED)
        try:
            self.store.delete_object(self.bucket, entry.source_key)
        except STORE_ERRORS as exc:
            logging.debug("Delete failed after copy for %s: %s", entry.source_key, exc)
            return TransferOutcome(entry, TransferPhase.DELETE_FAILED, describe_store_error(exc))
        return TransferOutcome(entry, TransferPhase.DELETED)

    def _run_chunk(
        self, pool: ThreadPoolExecutor, entries: Sequence[PlanEntry]
    ) -> Iterator[TransferOutcome]:
        pending: set[Future] = set()
        remaining = iter(entries)
        exhausted = False
        while True:
            while not exhausted and not self.cancelled and len(pending) < self.concurrency_limit:
                entry = next(remaining, None)
                if entry is None:
                    exhausted = True
                    break
                pending.add(pool.submit(self.transfer, entry))
                self.dispatched += 1
            if not pending:
                return
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                yield future.result()

    def execute(self, plan: DistributionPlan) -> Iterator[TransferOutcome]:
        """Yield one TransferOutcome per dispatched plan entry."""
        entries = plan.entries
        if len(entries) > self.large_plan_threshold:
            logging.info("Large object count detected, processing in batches...")
        with ThreadPoolExecutor(
            max_workers=self.concurrency_limit, thread_name_prefix="transfer"
        ) as pool:
            for chunk in chunk_entries(entries, self.large_plan_threshold, self.chunk_size):
                if self.cancelled:
                    break
                yield from self._run_chunk(pool, chunk)
        if self.cancelled:
            logging.warning(
                "Dispatch cancelled: %d of %d entries were not attempted",
                len(entries) - self.dispatched,
                len(entries),
            )


__all__ = ["TransferExecutor", "chunk_entries", "describe_store_error"]
