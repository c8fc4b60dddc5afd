"""
Configuration for the S3 prefix balancer.

Defaults for every option the balancer recognizes. Command-line flags
override the run-level values; the engine-level values (chunking,
breakpoints, naming) are read directly by the modules that use them.
"""

# Target layout
DEFAULT_TARGET_ROOT_PREFIX: str = "balance_prefix"
DEFAULT_PREFIX_COUNT: int = 0  # 0 = auto-determine from object count
TARGET_PREFIX_STEM: str = "prefix"
TARGET_PREFIX_MIN_WIDTH: int = 3  # prefix000, prefix001, ...

# Auto-sizing breakpoints: (exclusive upper object count, prefix count)
AUTO_PREFIX_BREAKPOINTS: tuple[tuple[int, int], ...] = (
    (10_000, 4),
    (100_000, 8),
    (1_000_000, 16),
)
AUTO_PREFIX_MAX: int = 32

# Transfer execution
DEFAULT_CONCURRENCY_LIMIT: int = 32
LARGE_PLAN_THRESHOLD: int = 100_000  # Plans above this are processed in chunks
PLAN_CHUNK_SIZE: int = 10_000

# S3 managed copy (objects above 5 GiB need multipart copy)
MULTIPART_THRESHOLD: int = 64 * 1024 * 1024
MULTIPART_CHUNKSIZE: int = 64 * 1024 * 1024

# Progress reporting
DEFAULT_REPORTING_BATCH_SIZE: int = 10_000

# Verification
IMBALANCE_SPREAD_TOLERANCE: int = 1  # Round-robin never differs by more than one object

# Logs and result ledger
DEFAULT_LOG_DIR: str = "."
LOG_FILE_STEM: str = "s3_prefix_balancer"
