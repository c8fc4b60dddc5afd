"""
Post-run verification of the target distribution.

Re-lists the target root and counts objects per immediate sub-prefix. This
reads the store's actual state and is independent of the executor's
outcome stream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

import config as config_module

from .common import KEY_SEPARATOR
from .lister import InventoryLister
from .models import ObjectRecord, PrefixStats

INSUFFICIENT_DATA = "insufficient data"


@dataclass(frozen=True)
class VerificationReport:
    """Per-prefix counts plus the derived imbalance metrics."""

    target_root_prefix: str
    prefix_stats: tuple[PrefixStats, ...]
    unbucketed_objects: int = 0
    anomalies: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total_objects(self) -> int:
        """Objects found under generated sub-prefixes."""
        return sum(s.object_count for s in self.prefix_stats)

    @property
    def insufficient_data(self) -> bool:
        """True when fewer than two prefixes were found."""
        return len(self.prefix_stats) < 2

    @property
    def max_count(self) -> int:
        """Largest per-prefix count (0 when nothing was found)."""
        return max((s.object_count for s in self.prefix_stats), default=0)

    @property
    def min_count(self) -> int:
        """Smallest per-prefix count (0 when nothing was found)."""
        return min((s.object_count for s in self.prefix_stats), default=0)

    @property
    def imbalance_ratio(self) -> Optional[float]:
        """max/min count, or None with fewer than two prefixes."""
        if self.insufficient_data:
            return None
        return self.max_count / self.min_count

    @property
    def imbalance_percentage(self) -> Optional[float]:
        """(max - min) * 100 / max, or None with fewer than two prefixes."""
        if self.insufficient_data:
            return None
        return (self.max_count - self.min_count) * 100 / self.max_count


def bucket_by_sub_prefix(
    records: Iterable[ObjectRecord], target_root_prefix: str
) -> tuple[dict[str, int], int]:
    """Count records per path segment directly under the root.

    Returns (counts, unbucketed) where unbucketed counts keys with no
    sub-prefix segment.
    """
    root = target_root_prefix.strip(KEY_SEPARATOR) + KEY_SEPARATOR
    counts: dict[str, int] = {}
    unbucketed = 0
    for record in records:
        if not record.key.startswith(root):
            unbucketed += 1
            continue
        remainder = record.key[len(root) :]
        sub_prefix, sep, name = remainder.partition(KEY_SEPARATOR)
        if not sep or not sub_prefix or not name:
            unbucketed += 1
            continue
        counts[sub_prefix] = counts.get(sub_prefix, 0) + 1
    return counts, unbucketed


def build_report(
    counts: dict[str, int],
    target_root_prefix: str,
    unbucketed: int = 0,
    spread_tolerance: int = config_module.IMBALANCE_SPREAD_TOLERANCE,
) -> VerificationReport:
    """Order the counts and collect anomalies."""
    stats = tuple(
        PrefixStats(prefix=name, object_count=count)
        for name, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    )
    anomalies: list[str] = []
    if len(stats) < 2:
        anomalies.append(
            f"Only {len(stats)} prefix(es) found under {target_root_prefix}; {INSUFFICIENT_DATA}"
        )
    else:
        spread = stats[0].object_count - stats[-1].object_count
        if spread > spread_tolerance:
            anomalies.append(
                f"Prefix counts differ by {spread} objects (tolerance {spread_tolerance})"
            )
    if unbucketed:
        anomalies.append(f"{unbucketed} object(s) found outside any generated sub-prefix")
    return VerificationReport(
        target_root_prefix=target_root_prefix,
        prefix_stats=stats,
        unbucketed_objects=unbucketed,
        anomalies=tuple(anomalies),
    )


def verify_distribution(store, bucket: str, target_root_prefix: str) -> VerificationReport:
    """Re-list the target root and measure the resulting distribution.

    Raises:
        ListError: If the target listing fails.
    """
    root = target_root_prefix.strip(KEY_SEPARATOR) + KEY_SEPARATOR
    records = InventoryLister(store).list(bucket, root)
    counts, unbucketed = bucket_by_sub_prefix(records, target_root_prefix)
    return build_report(counts, target_root_prefix, unbucketed)


def format_verification_report(report: VerificationReport) -> list[str]:
    """Human-readable lines for logs and the report file."""
    total = report.total_objects
    lines = [f"Found {total} objects in target prefix {report.target_root_prefix}"]
    lines.append("New prefix distribution:")
    for stat in report.prefix_stats:
        share = stat.object_count * 100 / total if total else 0.0
        lines.append(f"  Prefix: {stat.prefix} - Count: {stat.object_count} - Percentage: {share:.2f}%")
    if report.insufficient_data:
        lines.append(f"Imbalance ratio: {INSUFFICIENT_DATA}")
        lines.append(f"Imbalance percentage: {INSUFFICIENT_DATA}")
    else:
        lines.append("New distribution statistics:")
        lines.append(f"  Number of prefixes: {len(report.prefix_stats)}")
        lines.append(f"  Maximum objects in a prefix: {report.max_count}")
        lines.append(f"  Minimum objects in a prefix: {report.min_count}")
        lines.append(f"  Imbalance ratio: {report.imbalance_ratio:.2f}:1")
        lines.append(f"  Imbalance percentage: {report.imbalance_percentage:.2f}%")
    for anomaly in report.anomalies:
        lines.append(f"Warning: {anomaly}")
    return lines


__all__ = [
    "INSUFFICIENT_DATA",
    "VerificationReport",
    "bucket_by_sub_prefix",
    "build_report",
    "format_verification_report",
    "verify_distribution",
]
