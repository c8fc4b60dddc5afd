"""Pytest configuration and shared fixtures for the S3 prefix balancer."""

# pylint: disable=wrong-import-position

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from prefix_balancer.runner import BalanceSettings


@pytest.fixture(autouse=True)
def mock_aws_env_file(tmp_path, monkeypatch):
    """Point AWS_ENV_FILE at a throwaway .env with mock credentials.

    Keeps tests from reading a developer's real ~/.env.
    """
    env_file = tmp_path / ".env"
    env_file.write_text("AWS_ACCESS_KEY_ID=test_key\nAWS_SECRET_ACCESS_KEY=test_secret\n")
    monkeypatch.setenv("AWS_ENV_FILE", str(env_file))
    yield str(env_file)


@pytest.fixture(name="balance_settings")
def fixture_balance_settings(tmp_path):
    """Settings for a small run writing its ledger under tmp_path."""
    return BalanceSettings(
        bucket="test-bucket",
        source_prefix="data/",
        target_root_prefix="balance_prefix",
        prefix_count=3,
        concurrency_limit=4,
        reporting_batch_size=5,
        ledger_base=tmp_path / "logs" / "run",
    )
