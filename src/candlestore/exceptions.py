"""Custom exceptions for the candlestick pattern store.

Store, codec, engine and feed exceptions all live here to avoid
circular imports between modules.
"""


class CandleStoreError(Exception):
    """Base exception for all pattern store errors."""


class RecordParseError(CandleStoreError):
    """Raised when a candlestick field is missing or not numeric."""


class FrameParseError(RecordParseError):
    """Raised when a feed frame carries no usable candle payload."""


class StoreIOError(CandleStoreError):
    """Raised when the node or index file cannot be read or written."""


class OffsetOutOfRangeError(StoreIOError):
    """Raised when a data offset falls outside the data file."""

    def __init__(self, offset: int, data_length: int) -> None:
        super().__init__(
            f"Offset {offset} out of range for data file of {data_length} bytes"
        )
        self.offset = offset
        self.data_length = data_length


class UnknownNodeError(StoreIOError):
    """Raised when a node key has no index entry."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No index entry for node key {key!r}")
        self.key = key
