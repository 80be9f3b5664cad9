"""Shared fixtures for the health store tests."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Fixed "now" used by every clock-dependent test: Tuesday 2026-03-10 20:00 UTC
NOW = datetime(2026, 3, 10, 20, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_data_dir():
    """Create a temporary directory for file store testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "data"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    """A clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
def memory_store():
    from healthstore.store.kv import MemoryKeyValueStore

    return MemoryKeyValueStore()


@pytest.fixture
def file_store(temp_data_dir):
    from healthstore.store.kv import FileKeyValueStore

    return FileKeyValueStore(data_dir=temp_data_dir)
