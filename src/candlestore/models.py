"""Shared data models for the candlestick pattern store.

CRITICAL: All prices, volumes and derived values use Decimal in memory.
Doubles only exist inside the on-disk codec.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from candlestore.exceptions import RecordParseError

#: Numeric node fields in persisted order.
NODE_FIELDS: tuple[str, ...] = (
    "open",
    "high",
    "low",
    "close",
    "volume",
    "top_wick",
    "bottom_wick",
    "delta",
    "percent_change",
)


def to_decimal(value: object, field_name: str = "value") -> Decimal:
    """Parse a feed or stored value into a finite Decimal.

    Raises RecordParseError for None, non-numeric strings, NaN and infinities.
    """
    if value is None:
        raise RecordParseError(f"Missing required field: {field_name}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise RecordParseError(
                f"Field {field_name} is not numeric: {value!r}"
            ) from exc
    if not result.is_finite():
        raise RecordParseError(f"Field {field_name} is not finite: {value!r}")
    return result


@dataclass
class CandlestickRecord:
    """A single period's OHLCV values plus fields derived from history.

    ``delta`` and ``percent_change`` stay None until the pattern engine
    derives them against the previous record.
    """

    symbol: str
    timestamp: datetime | None
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    delta: Decimal | None = None
    percent_change: Decimal | None = None

    @classmethod
    def from_raw(
        cls,
        symbol: str,
        timestamp: datetime | None,
        open: object,
        high: object,
        low: object,
        close: object,
        volume: object,
    ) -> "CandlestickRecord":
        """Build a record from raw (usually string) feed values."""
        return cls(
            symbol=symbol,
            timestamp=timestamp,
            open=to_decimal(open, "open"),
            high=to_decimal(high, "high"),
            low=to_decimal(low, "low"),
            close=to_decimal(close, "close"),
            volume=to_decimal(volume, "volume"),
        )

    @property
    def top_wick(self) -> Decimal:
        """high - max(open, close)"""
        return self.high - max(self.open, self.close)

    @property
    def bottom_wick(self) -> Decimal:
        """min(open, close) - low"""
        return min(self.open, self.close) - self.low

    @property
    def is_complete(self) -> bool:
        """True once both derived fields are present."""
        return self.delta is not None and self.percent_change is not None


@dataclass
class NodeRecord:
    """A persisted pattern node.

    ``offset`` is the byte position in the data file; it is assigned at
    append time and is not itself part of the record bytes.
    """

    key: str
    frequency: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    top_wick: Decimal
    bottom_wick: Decimal
    delta: Decimal
    percent_change: Decimal
    offset: int = -1


@dataclass
class IndexEntry:
    """Index file entry linking a node key to its data offset and parent."""

    key: str
    data_offset: int
    parent_key: str = ""  # blank = root

    @property
    def is_root(self) -> bool:
        return self.parent_key == ""


@dataclass
class MatchResult:
    """Similarity scorer output for one incoming/candidate comparison.

    ``match_percentage`` is 0-100; the component scores are 0-1.
    ``override`` is True when the psychology score alone decided the match.
    """

    is_match: bool
    match_percentage: Decimal
    price_shape_score: Decimal = Decimal("0")
    psychology_score: Decimal = Decimal("0")
    total_score: Decimal = Decimal("0")
    override: bool = False
