"""Feed runner connecting raw chart-feed messages to the pattern engine.

Plays the collaborator role at the engine's ``submit`` boundary: it turns
transport messages into candles, keeps only the final update of each
period, optionally records completed candles to a candle log, and submits
them in timestamp order.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from candlestore.exceptions import FrameParseError
from candlestore.feed.collapser import PeriodCollapser
from candlestore.feed.frames import extract_candle, is_heartbeat, parse_frames
from candlestore.logging import get_logger

if TYPE_CHECKING:
    from candlestore.engine.models import StepResult
    from candlestore.engine.pattern_engine import PatternEngine
    from candlestore.feed.candle_log import CandleLog
    from candlestore.models import CandlestickRecord

logger = get_logger(__name__)


class FeedRunner:
    """Drives a PatternEngine from feed messages or a recorded candle stream.

    Args:
        engine: Pattern engine to submit completed candles to.
        symbol: Symbol stamped on candles parsed from messages.
        candle_log: Optional log that every completed candle is appended to.
    """

    def __init__(
        self,
        engine: PatternEngine,
        symbol: str,
        candle_log: CandleLog | None = None,
    ) -> None:
        self._engine = engine
        self._symbol = symbol
        self._candle_log = candle_log
        self._collapser = PeriodCollapser()
        self.submitted = 0
        self.created = 0
        self.matched = 0
        self.dropped = 0

    def handle_message(self, raw: str) -> StepResult | None:
        """Process one transport message.

        Heartbeats and non-data messages are ignored. A data update only
        reaches the engine once the next period's first update arrives.
        """
        try:
            payloads = parse_frames(raw)
        except FrameParseError as exc:
            logger.warning("malformed_message", error=str(exc))
            return None
        if payloads and all(is_heartbeat(p) for p in payloads):
            return None

        try:
            candle = extract_candle(raw, self._symbol)
        except FrameParseError as exc:
            logger.debug("message_skipped", reason=str(exc))
            return None

        completed = self._collapser.push(candle)
        if completed is None:
            return None
        return self.submit(completed)

    def finish(self) -> StepResult | None:
        """Submit the last pending period at end of stream."""
        pending = self._collapser.flush()
        if pending is None:
            return None
        return self.submit(pending)

    def replay(self, records: Iterable[CandlestickRecord]) -> None:
        """Submit already-completed candles in order."""
        for record in records:
            self.submit(record)

    def submit(self, record: CandlestickRecord) -> StepResult | None:
        if self._candle_log is not None:
            try:
                self._candle_log.append(record)
            except OSError as exc:
                logger.warning(
                    "candle_log_write_failed",
                    symbol=record.symbol,
                    timestamp=str(record.timestamp),
                    error=str(exc),
                )

        result = self._engine.submit(record)
        self.submitted += 1
        if result is None:
            self.dropped += 1
        elif result.created:
            self.created += 1
        elif result.matched:
            self.matched += 1
        return result

    def summary(self) -> dict:
        return {
            "submitted": self.submitted,
            "created": self.created,
            "matched": self.matched,
            "dropped": self.dropped,
        }
