"""S3-backed object store used by the lister, executor and verification pass."""

from __future__ import annotations

from typing import Iterator, Optional

from boto3.s3.transfer import TransferConfig

import config as config_module

from .models import ObjectRecord


def default_transfer_config(max_concurrency: int = 10) -> TransferConfig:
    """Transfer settings for managed server-side copies."""
    return TransferConfig(
        multipart_threshold=config_module.MULTIPART_THRESHOLD,
        multipart_chunksize=config_module.MULTIPART_CHUNKSIZE,
        max_concurrency=max_concurrency,
        use_threads=True,
    )


class S3ObjectStore:
    """Thin typed wrapper over a boto3 S3 client.

    The client (and its connection pool) is shared by every transfer worker;
    boto3 clients are safe to use from multiple threads.
    """

    def __init__(self, s3, transfer_config: Optional[TransferConfig] = None):
        self.s3 = s3
        # One worker already maps to one object, so per-copy threads stay low.
        self.transfer_config = transfer_config or default_transfer_config(max_concurrency=1)

    @staticmethod
    def _get_page_contents(bucket: str, prefix: str, page: dict) -> list[dict]:
        """Extract object listings from a paginator page, validating key counts."""
        contents = page.get("Contents")
        key_count = page.get("KeyCount")
        if contents is None:
            if key_count not in (None, 0):
                raise RuntimeError(
                    f"list_objects_v2 missing Contents while reporting {key_count} keys"
                    f" for s3://{bucket}/{prefix}"
                )
            return []
        return contents

    def list_objects(self, bucket: str, prefix: str) -> Iterator[ObjectRecord]:
        """Yield every object under prefix in the order S3 returns them."""
        paginator = self.s3.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            for obj in self._get_page_contents(bucket, prefix, page):
                yield ObjectRecord(key=obj["Key"], size_bytes=int(obj.get("Size", 0)))

    def copy_object(self, bucket: str, source_key: str, target_key: str) -> None:
        """Server-side copy within the bucket (multipart for large objects)."""
        self.s3.copy(
            {"Bucket": bucket, "Key": source_key},
            bucket,
            target_key,
            Config=self.transfer_config,
        )

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete one object."""
        self.s3.delete_object(Bucket=bucket, Key=key)


__all__ = ["S3ObjectStore", "default_transfer_config"]
