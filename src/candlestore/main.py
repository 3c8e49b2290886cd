"""Entry point for the candlestick pattern recorder.

Wires the components together and feeds the pattern engine from either a
recorded candle log (FEED_REPLAY_PATH) or raw feed messages on stdin, one
transport message per line.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. BinaryNodeStore (per-symbol index/data files)
4. PatternEngine (traversal state machine)
5. CandleLog (optional, when FEED_LOG_CANDLES=true)
6. FeedRunner (collaborator boundary)
"""

import sys
from typing import Any

from candlestore.config import AppSettings
from candlestore.engine.pattern_engine import PatternEngine
from candlestore.feed.candle_log import CandleLog
from candlestore.logging import get_logger, session_context, setup_logging
from candlestore.runner import FeedRunner
from candlestore.store.node_store import BinaryNodeStore


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    The store is created but not opened; run() opens it under a context
    manager so its file handles are released on every exit path.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    symbol = settings.feed.symbol
    index_path, data_path = settings.store.resolve_paths(symbol)

    store = BinaryNodeStore(
        index_path,
        data_path,
        fsync=settings.store.fsync,
        memory_index=settings.store.memory_index,
    )
    engine = PatternEngine(store, settings.engine, settings.match)

    candle_log = None
    if settings.feed.log_candles:
        candle_log = CandleLog(settings.feed.candle_log_path, symbol)

    runner = FeedRunner(engine, symbol, candle_log)

    return {
        "store": store,
        "engine": engine,
        "candle_log": candle_log,
        "runner": runner,
    }


def run(settings: AppSettings | None = None) -> dict:
    """Run one recording session and return the runner summary."""
    settings = settings or AppSettings()
    setup_logging(settings.log_level)
    logger = get_logger("candlestore.main")

    symbol = settings.feed.symbol
    index_path, data_path = settings.store.resolve_paths(symbol)
    components = _build_components(settings)
    runner: FeedRunner = components["runner"]

    with session_context(symbol, index_path, data_path), components["store"] as store:
        logger.info(
            "session_started",
            mode=settings.engine.mode,
            nodes=store.node_count,
        )

        if settings.feed.replay_path:
            replay_log = CandleLog(settings.feed.replay_path, symbol)
            runner.replay(replay_log.read())
        else:
            for line in sys.stdin:
                if line.strip():
                    runner.handle_message(line.rstrip("\r\n"))
            runner.finish()

        summary = runner.summary()
        logger.info("replay_finished", **summary, **store.stats())

    return summary


def main() -> None:
    """Synchronous entry point."""
    run()


if __name__ == "__main__":
    main()
