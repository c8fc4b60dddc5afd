"""Shared pytest fixtures for test files."""

from __future__ import annotations

from unittest import mock

import pytest

from tests.object_store_test_utils import FakeObjectStore, numbered_objects


@pytest.fixture(name="s3_mock")
def fixture_s3_mock():
    """Mock boto3 S3 client."""
    return mock.Mock()


@pytest.fixture(name="fake_store")
def fixture_fake_store():
    """In-memory store holding ten flat objects under data/."""
    return FakeObjectStore(numbered_objects(10))


@pytest.fixture(autouse=True)
def stub_boto3_client(monkeypatch):
    """Replace boto3.client so tests never build a real AWS client."""
    fake_client = mock.Mock(name="boto3.client")
    monkeypatch.setattr("boto3.client", fake_client)
    return fake_client
