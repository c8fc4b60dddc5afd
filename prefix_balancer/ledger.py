"""Append-only success/failure ledger of per-object transfer outcomes."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Optional

from .models import TransferOutcome

LEDGER_FIELDS = ["source_key", "target_key", "phase", "error"]


def read_ledger(path: Path) -> list[dict[str, str]]:
    """Load ledger rows; a missing file means no rows were recorded."""
    if not path.exists():
        return []
    with path.open(newline="", encoding="utf-8") as handle:
        return list(csv.DictReader(handle))


class _LedgerFile:
    """CSV file opened on the first row written."""

    def __init__(self, path: Path):
        self.path = path
        self.rows = 0
        self._handle = None
        self._writer: Optional[csv.DictWriter] = None

    def write(self, row: dict[str, str]) -> None:
        if self._writer is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            is_new = not self.path.exists() or self.path.stat().st_size == 0
            # pylint: disable=consider-using-with
            self._handle = self.path.open("a", newline="", encoding="utf-8")
            self._writer = csv.DictWriter(self._handle, fieldnames=LEDGER_FIELDS)
            if is_new:
                self._writer.writeheader()
        self._writer.writerow(row)
        self.rows += 1

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            self._writer = None


class ResultLedger:
    """Records each outcome in ``<base>_success.csv`` or ``<base>_failed.csv``.

    Not thread-safe: only the progress aggregator writes to it.
    """

    def __init__(self, base_path: Path):
        base_path = Path(base_path)
        self.success = _LedgerFile(base_path.with_name(f"{base_path.name}_success.csv"))
        self.failure = _LedgerFile(base_path.with_name(f"{base_path.name}_failed.csv"))

    @property
    def success_path(self) -> Path:
        """Path of the success list."""
        return self.success.path

    @property
    def failure_path(self) -> Path:
        """Path of the failure list."""
        return self.failure.path

    def record(self, outcome: TransferOutcome) -> None:
        """Append one outcome to the matching list."""
        row = {
            "source_key": outcome.entry.source_key,
            "target_key": outcome.entry.target_key,
            "phase": outcome.phase.value,
            "error": outcome.error or "",
        }
        target = self.success if outcome.phase.succeeded else self.failure
        target.write(row)

    def written_paths(self) -> list[Path]:
        """Ledger files that received at least one row."""
        return [f.path for f in (self.success, self.failure) if f.rows]

    def close(self) -> None:
        """Flush and close both lists."""
        self.success.close()
        self.failure.close()

    def __enter__(self) -> "ResultLedger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["LEDGER_FIELDS", "ResultLedger", "read_ledger"]
