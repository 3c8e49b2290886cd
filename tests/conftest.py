"""Shared test fixtures for the candlestick pattern store."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from candlestore.config import EngineSettings, MatchSettings
from candlestore.store.node_store import BinaryNodeStore


@pytest.fixture
def store_paths(tmp_path: Path) -> tuple[str, str]:
    """Index and data file paths inside a per-test directory."""
    return str(tmp_path / "TEST.idx"), str(tmp_path / "TEST.bin")


@pytest.fixture
def store(store_paths: tuple[str, str]) -> Iterator[BinaryNodeStore]:
    """Open node store on empty files, closed after the test."""
    index_path, data_path = store_paths
    with BinaryNodeStore(index_path, data_path) as opened:
        yield opened


@pytest.fixture
def match_settings() -> MatchSettings:
    """Default scorer settings."""
    return MatchSettings()


@pytest.fixture
def engine_settings() -> EngineSettings:
    """Default engine settings (record mode, legacy percent change)."""
    return EngineSettings()
