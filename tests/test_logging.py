"""Tests for session-scoped log context."""

import pytest
import structlog

from candlestore.logging import session_context


class TestSessionContext:
    def test_binds_symbol_and_store_files(self) -> None:
        with session_context("MSFT", "data/MSFT.idx", "data/MSFT.bin"):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {
                "symbol": "MSFT",
                "index_path": "data/MSFT.idx",
                "data_path": "data/MSFT.bin",
            }
        assert structlog.contextvars.get_contextvars() == {}

    def test_replaces_stale_context(self) -> None:
        structlog.contextvars.bind_contextvars(symbol="AAPL", stale=True)
        with session_context("MSFT", "a.idx", "a.bin"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["symbol"] == "MSFT"
            assert "stale" not in bound

    def test_cleared_on_error(self) -> None:
        with pytest.raises(RuntimeError):
            with session_context("MSFT", "a.idx", "a.bin"):
                raise RuntimeError("boom")
        assert structlog.contextvars.get_contextvars() == {}
