"""Pytest configuration and fixtures."""

import pytest

from core.services.latest_value_cache import LatestValueCache
from core.services.sample_buffer import SampleBuffer
from fakes import JLP_ID, SOL_ID, FakeSampleRepository, FakeSnapshotRepository, RecordingSleep


@pytest.fixture
def tracked():
    """The tracked symbol -> token id map used across tests."""
    return {"JLP": JLP_ID, "SOL": SOL_ID}


@pytest.fixture
def buffer():
    return SampleBuffer()


@pytest.fixture
def cache():
    return LatestValueCache()


@pytest.fixture
def sample_repo():
    return FakeSampleRepository()


@pytest.fixture
def snapshot_repo():
    return FakeSnapshotRepository()


@pytest.fixture
def sleep():
    return RecordingSleep()
