"""Tab-separated candle log used for recording and replaying a feed.

One line per completed period:
    YYYY-MM-DD HH:MM:SS<TAB>open<TAB>high<TAB>low<TAB>close<TAB>volume
Timestamps are UTC.
"""

import os
from collections.abc import Iterator
from datetime import datetime, timezone

from candlestore.exceptions import RecordParseError
from candlestore.logging import get_logger
from candlestore.models import CandlestickRecord

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_line(record: CandlestickRecord) -> str:
    timestamp = ""
    if record.timestamp is not None:
        timestamp = record.timestamp.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
    values = (record.open, record.high, record.low, record.close, record.volume)
    return "\t".join([timestamp, *(str(v) for v in values)])


def parse_line(line: str, symbol: str) -> CandlestickRecord:
    """Parse one log line. Raises RecordParseError on malformed input."""
    parts = line.rstrip("\r\n").split("\t")
    if len(parts) != 6:
        raise RecordParseError(f"Expected 6 tab-separated fields, got {len(parts)}")

    timestamp = None
    if parts[0]:
        try:
            timestamp = datetime.strptime(parts[0], TIMESTAMP_FORMAT).replace(
                tzinfo=timezone.utc
            )
        except ValueError as exc:
            raise RecordParseError(f"Invalid timestamp {parts[0]!r}") from exc

    return CandlestickRecord.from_raw(symbol, timestamp, *parts[1:])


class CandleLog:
    """Append-only candle log file for one symbol."""

    def __init__(self, path: str, symbol: str) -> None:
        self._path = path
        self._symbol = symbol

    @property
    def path(self) -> str:
        return self._path

    def append(self, record: CandlestickRecord) -> None:
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as handle:
            handle.write(format_line(record) + "\n")

    def read(self) -> Iterator[CandlestickRecord]:
        """Yield the logged candles in file order, skipping malformed lines."""
        with open(self._path, encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    yield parse_line(line, self._symbol)
                except RecordParseError as exc:
                    logger.warning(
                        "candle_log_line_skipped",
                        path=self._path,
                        line=line_number,
                        error=str(exc),
                    )
