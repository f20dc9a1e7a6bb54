"""Shared pytest fixtures for Yinyang tests."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from helpers import IMAGE_HOST, FakeFetcher, image_url, make_document

from yinyang.core.config import YinyangConfig
from yinyang.core.record_store import SQLiteRecordStore

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> YinyangConfig:
    """Create a test configuration rooted in the temporary directory."""
    return YinyangConfig(
        _env_file=None,
        data_dir=temp_dir / "data",
        image_host=IMAGE_HOST,
        chain_policy="raw",
        fetch_workers=4,
        fetch_timeout=5.0,
        allowed_origins=["https://admin.example.test"],
    )


@pytest.fixture
def record_store(test_config: YinyangConfig) -> SQLiteRecordStore:
    """Create an empty SQLite record store in the temporary directory."""
    return SQLiteRecordStore(test_config.database_path)


@pytest.fixture
def lineage_store(record_store: SQLiteRecordStore) -> SQLiteRecordStore:
    """Record store seeded with a small lineage.

    - ``A``: upload with no input URL (root)
    - ``B``: made from A's good output
    - ``C``: made from B's bad output
    - ``D``: made from an image on an unrelated host (root)
    - ``E``: made from the output of ``GONE``, which is not stored (root)
    """
    record_store.put_record(make_document("A"))
    record_store.put_record(make_document("B", image_url("A", "good")))
    record_store.put_record(make_document("C", image_url("B", "bad", "jpg")))
    record_store.put_record(make_document("D", "https://elsewhere.example.com/cat.png"))
    record_store.put_record(make_document("E", image_url("GONE", "good")))
    return record_store


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """FakeFetcher holding the A -> B -> C lineage."""
    fetcher = FakeFetcher()
    fetcher.add("A")
    fetcher.add("B", image_url("A", "good"))
    fetcher.add("C", image_url("B", "bad"))
    return fetcher
