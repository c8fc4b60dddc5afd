"""Shared error types and formatting helpers for the prefix balancer."""

from __future__ import annotations

from typing import Optional

# Constants for time conversions
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

KEY_SEPARATOR = "/"


class BalancerError(RuntimeError):
    """Base class for errors that abort a balancing run."""


class ListError(BalancerError):
    """Raised when the source (or target) listing cannot be obtained."""

    def __init__(self, bucket: str, prefix: str, cause: str) -> None:
        super().__init__(f"Cannot list s3://{bucket}/{prefix}: {cause}")
        self.bucket = bucket
        self.prefix = prefix
        self.cause = cause


class PlanError(BalancerError):
    """Raised when a distribution plan cannot be built."""


class BalancerConfigError(BalancerError):
    """Raised when run settings are invalid."""


class AggregationError(BalancerError):
    """Raised when outcomes can no longer be recorded; dispatch stops."""

    def __init__(self, cause: Exception, processed: int) -> None:
        super().__init__(f"Progress aggregation failed after {processed} outcome(s): {cause}")
        self.cause = cause
        self.processed = processed


def format_duration(seconds: float) -> str:
    """Format seconds to human readable duration"""
    if seconds < SECONDS_PER_MINUTE:
        return f"{int(seconds)}s"
    if seconds < SECONDS_PER_HOUR:
        minutes = int(seconds / SECONDS_PER_MINUTE)
        secs = int(seconds % SECONDS_PER_MINUTE)
        return f"{minutes}m {secs}s"
    if seconds < SECONDS_PER_DAY:
        hours = int(seconds / SECONDS_PER_HOUR)
        minutes = int((seconds % SECONDS_PER_HOUR) / SECONDS_PER_MINUTE)
        return f"{hours}h {minutes}m"
    days = int(seconds / SECONDS_PER_DAY)
    hours = int((seconds % SECONDS_PER_DAY) / SECONDS_PER_HOUR)
    return f"{days}d {hours}h"


def format_clock(seconds: float) -> str:
    """Format seconds as HH:MM:SS."""
    total = int(seconds)
    hours = total // SECONDS_PER_HOUR
    minutes = (total % SECONDS_PER_HOUR) // SECONDS_PER_MINUTE
    return f"{hours:02d}:{minutes:02d}:{total % SECONDS_PER_MINUTE:02d}"


def format_bytes(num_bytes: Optional[int], decimal_places: int = 2) -> str:
    """
    Format byte count as human-readable string with binary units.

    Examples:
        >>> format_bytes(1024)
        '1.00 KiB'
        >>> format_bytes(None)
        'n/a'
    """
    if num_bytes is None:
        return "n/a"
    units = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]
    value = float(num_bytes)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            return f"{value:.{decimal_places}f} {unit}"
        value /= 1024
    return f"{value:.{decimal_places}f} PiB"


__all__ = [
    "KEY_SEPARATOR",
    "AggregationError",
    "BalancerError",
    "BalancerConfigError",
    "ListError",
    "PlanError",
    "format_bytes",
    "format_clock",
    "format_duration",
]
