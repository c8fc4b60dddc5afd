"""Value types shared by the lister, planner, executor and aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ObjectRecord:
    """One object from the source listing, in listing order."""

    key: str
    size_bytes: int


@dataclass(frozen=True)
class PlanEntry:
    """A single source key and the key it will be copied to."""

    source_key: str
    target_key: str


@dataclass(frozen=True)
class DistributionPlan:
    """Full mapping of every inventory object onto the generated target prefixes."""

    prefix_count: int
    target_prefixes: tuple[str, ...]
    entries: tuple[PlanEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def counts_by_prefix(self, target_root_prefix: str) -> dict[str, int]:
        """Return how many entries each target prefix receives."""
        counts = dict.fromkeys(self.target_prefixes, 0)
        root = target_root_prefix.strip("/") + "/"
        for entry in self.entries:
            sub_prefix = entry.target_key[len(root) :].split("/", 1)[0]
            counts[sub_prefix] = counts.get(sub_prefix, 0) + 1
        return counts


class TransferPhase(Enum):
    """Final state reached for one plan entry."""

    COPIED = "copied"
    COPY_FAILED = "copy_failed"
    DELETED = "deleted"
    DELETE_FAILED = "delete_failed"

    @property
    def succeeded(self) -> bool:
        """True for phases that count toward the success tally."""
        return self in (TransferPhase.COPIED, TransferPhase.DELETED)


@dataclass(frozen=True)
class TransferOutcome:
    """Result of one executor attempt; consumed exactly once by the aggregator."""

    entry: PlanEntry
    phase: TransferPhase
    error: Optional[str] = None


@dataclass
class RunStats:  # pylint: disable=too-many-instance-attributes
    """Counters owned by the progress aggregator for one run."""

    total: int
    start_time: float
    last_update_time: float
    succeeded: int = 0
    failed: int = 0
    residual_duplicates: int = 0
    phase_counts: dict[TransferPhase, int] = field(default_factory=dict)

    @property
    def processed(self) -> int:
        """Number of outcomes observed so far."""
        return self.succeeded + self.failed

    @property
    def not_attempted(self) -> int:
        """Plan entries that never produced an outcome (cancelled runs)."""
        return max(0, self.total - self.processed)


@dataclass(frozen=True)
class PrefixStats:
    """Object count found under one generated prefix during verification."""

    prefix: str
    object_count: int


__all__ = [
    "DistributionPlan",
    "ObjectRecord",
    "PlanEntry",
    "PrefixStats",
    "RunStats",
    "TransferOutcome",
    "TransferPhase",
]
