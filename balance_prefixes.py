#!/usr/bin/env python3
"""
Copy objects from one S3 prefix into evenly sized sibling prefixes.

Used ahead of parallel ingest so no single prefix becomes a hot partition.

This is a thin wrapper around the prefix_balancer package.
"""
from __future__ import annotations

from prefix_balancer.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
