"""Inventory listing of the source prefix and a summary of its current layout."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from botocore.exceptions import BotoCoreError, ClientError

from .common import KEY_SEPARATOR, ListError
from .models import ObjectRecord

LISTING_PROGRESS_INTERVAL = 100_000


def _describe_client_error(exc: ClientError) -> str:
    error = exc.response.get("Error", {})
    code = error.get("Code", "Unknown")
    if code == "NoSuchBucket":
        return "bucket does not exist"
    if code in ("AccessDenied", "403"):
        return "access denied"
    message = error.get("Message") or str(exc)
    return f"{code}: {message}"


class InventoryLister:  # pylint: disable=too-few-public-methods
    """Lists the source prefix into ObjectRecords."""

    def __init__(self, store):
        self.store = store

    def list(self, bucket: str, source_prefix: str) -> Iterator[ObjectRecord]:
        """Lazily yield every object under source_prefix.

        Raises:
            ListError: If the store is unreachable, the bucket is missing or
                the listing is inconsistent. A fresh call re-lists from the start.
        """
        listed = 0
        try:
            for record in self.store.list_objects(bucket, source_prefix):
                if record.key.endswith(KEY_SEPARATOR):
                    logging.debug("Skipping folder placeholder %s", record.key)
                    continue
                listed += 1
                if listed % LISTING_PROGRESS_INTERVAL == 0:
                    logging.info("  Listed %s objects...", f"{listed:,}")
                yield record
        except ClientError as exc:
            raise ListError(bucket, source_prefix, _describe_client_error(exc)) from exc
        except BotoCoreError as exc:
            raise ListError(bucket, source_prefix, f"store unreachable ({exc})") from exc
        except RuntimeError as exc:
            raise ListError(bucket, source_prefix, str(exc)) from exc


@dataclass
class SubPrefixUsage:
    """Object count and bytes under one top-level sub-prefix of the source."""

    name: str
    object_count: int = 0
    total_bytes: int = 0


@dataclass
class InventorySummary:
    """Shape of the source listing before balancing."""

    total_objects: int = 0
    total_bytes: int = 0
    direct_objects: int = 0
    direct_bytes: int = 0
    sub_prefixes: dict[str, SubPrefixUsage] = field(default_factory=dict)

    @property
    def average_size(self) -> float:
        """Mean object size in bytes."""
        if self.total_objects == 0:
            return 0.0
        return self.total_bytes / self.total_objects

    def largest_sub_prefixes(self, limit: int = 10) -> list[SubPrefixUsage]:
        """Sub-prefixes ordered by object count, heaviest first."""
        ordered = sorted(self.sub_prefixes.values(), key=lambda u: (-u.object_count, u.name))
        return ordered[:limit]


def _relative_to_prefix(key: str, source_prefix: str) -> str:
    if source_prefix and key.startswith(source_prefix):
        key = key[len(source_prefix) :]
    return key.lstrip(KEY_SEPARATOR)


def summarize_inventory(records: Iterable[ObjectRecord], source_prefix: str) -> InventorySummary:
    """Count objects and bytes, overall and per top-level sub-prefix."""
    summary = InventorySummary()
    for record in records:
        summary.total_objects += 1
        summary.total_bytes += record.size_bytes
        relative = _relative_to_prefix(record.key, source_prefix)
        if KEY_SEPARATOR not in relative:
            summary.direct_objects += 1
            summary.direct_bytes += record.size_bytes
            continue
        name = relative.split(KEY_SEPARATOR, 1)[0] + KEY_SEPARATOR
        usage = summary.sub_prefixes.get(name)
        if usage is None:
            usage = summary.sub_prefixes[name] = SubPrefixUsage(name)
        usage.object_count += 1
        usage.total_bytes += record.size_bytes
    return summary


__all__ = ["InventoryLister", "InventorySummary", "SubPrefixUsage", "summarize_inventory"]
