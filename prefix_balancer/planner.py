"""
Distribution planning.

Maps every inventory object onto one of N generated sibling prefixes by
strict round-robin over listing order. Planning does no I/O: the same
inventory order, prefix count and prefixes always produce the same plan.
"""

from __future__ import annotations

import logging
from typing import Sequence

import config as config_module

from .common import KEY_SEPARATOR, PlanError
from .models import DistributionPlan, ObjectRecord, PlanEntry


def resolve_prefix_count(object_count: int, requested_prefix_count: int = 0) -> int:
    """Return the requested count, or pick one from the object count when it is 0."""
    if requested_prefix_count < 0:
        raise PlanError(f"Prefix count must be >= 0, got {requested_prefix_count}")
    if requested_prefix_count > 0:
        return requested_prefix_count
    for upper_bound, prefix_count in config_module.AUTO_PREFIX_BREAKPOINTS:
        if object_count < upper_bound:
            return prefix_count
    return config_module.AUTO_PREFIX_MAX


def generate_target_prefixes(prefix_count: int) -> tuple[str, ...]:
    """Zero-padded names so lexicographic order matches numeric order."""
    if prefix_count < 1:
        raise PlanError(f"Prefix count must be >= 1, got {prefix_count}")
    width = max(config_module.TARGET_PREFIX_MIN_WIDTH, len(str(prefix_count - 1)))
    stem = config_module.TARGET_PREFIX_STEM
    return tuple(f"{stem}{index:0{width}d}" for index in range(prefix_count))


def normalize_root_prefix(target_root_prefix: str) -> str:
    """Strip surrounding separators and reject empty or malformed roots."""
    root = (target_root_prefix or "").strip(KEY_SEPARATOR)
    if not root:
        raise PlanError("Target root prefix must not be empty")
    if "" in root.split(KEY_SEPARATOR):
        raise PlanError(f"Target root prefix has an empty path segment: {target_root_prefix!r}")
    return root


def derive_relative_name(source_key: str, source_prefix: str) -> str:
    """Key with the source prefix and one leading separator removed.

    Keys outside the source prefix are kept whole. A key equal to the source
    prefix keeps its last path segment so the target never ends in a separator.
    """
    if not source_prefix or not source_key.startswith(source_prefix):
        return source_key
    relative = source_key[len(source_prefix) :]
    if relative.startswith(KEY_SEPARATOR):
        relative = relative[1:]
    if not relative:
        return source_key.rsplit(KEY_SEPARATOR, 1)[-1]
    return relative


def build_plan(  # pylint: disable=too-many-arguments
    inventory: Sequence[ObjectRecord],
    requested_prefix_count: int,
    target_root_prefix: str,
    source_prefix: str,
    *,
    reporting_batch_size: int = config_module.DEFAULT_REPORTING_BATCH_SIZE,
) -> DistributionPlan:
    """Build the full round-robin plan or raise PlanError."""
    root = normalize_root_prefix(target_root_prefix)
    prefix_count = resolve_prefix_count(len(inventory), requested_prefix_count)
    target_prefixes = generate_target_prefixes(prefix_count)
    logging.info("Generated %d new prefixes", prefix_count)

    total = len(inventory)
    entries: list[PlanEntry] = []
    for index, record in enumerate(inventory):
        sub_prefix = target_prefixes[index % prefix_count]
        relative_name = derive_relative_name(record.key, source_prefix)
        target_key = KEY_SEPARATOR.join((root, sub_prefix, relative_name))
        entries.append(PlanEntry(source_key=record.key, target_key=target_key))
        planned = index + 1
        if reporting_batch_size > 0 and planned % reporting_batch_size == 0:
            logging.info("  Planned %d/%d objects...", planned, total)

    logging.info("Balanced plan created for %d objects", len(entries))
    return DistributionPlan(
        prefix_count=prefix_count,
        target_prefixes=target_prefixes,
        entries=tuple(entries),
    )


__all__ = [
    "build_plan",
    "derive_relative_name",
    "generate_target_prefixes",
    "normalize_root_prefix",
    "resolve_prefix_count",
]
