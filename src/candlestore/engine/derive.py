"""Derived candlestick fields computed against the previous record.

Two percent-change formulas are supported:
- "legacy": close / (previous_close - 1), the formula existing stores
  were built with
- "standard": (close - previous_close) / previous_close
"""

from decimal import Decimal, DivisionByZero, InvalidOperation

from candlestore.exceptions import RecordParseError
from candlestore.models import CandlestickRecord, to_decimal

_ONE = Decimal("1")
_ZERO = Decimal("0")


def compute_delta(close: Decimal, previous_close: Decimal) -> Decimal:
    """close - previous_close"""
    return close - previous_close


def compute_percent_change(
    close: Decimal, previous_close: Decimal, formula: str = "legacy"
) -> Decimal:
    """Percent change of ``close`` relative to ``previous_close``.

    Raises RecordParseError if the denominator is zero.
    """
    try:
        if formula == "standard":
            return (close - previous_close) / previous_close
        return close / (previous_close - _ONE)
    except (DivisionByZero, InvalidOperation) as exc:
        raise RecordParseError(
            f"Cannot compute percent change from previous close {previous_close}"
        ) from exc


def derive_fields(
    record: CandlestickRecord,
    previous: CandlestickRecord | None,
    formula: str = "legacy",
) -> CandlestickRecord:
    """Fill ``delta`` and ``percent_change`` in place and return the record.

    Raw OHLCV fields are parsed to Decimal first, so a record that fails
    here never reaches history. The first record of a session has no
    previous close; both fields are 0.
    """
    for name in ("open", "high", "low", "close", "volume"):
        setattr(record, name, to_decimal(getattr(record, name), name))

    if previous is None:
        record.delta = _ZERO
        record.percent_change = _ZERO
        return record

    percent_change = compute_percent_change(record.close, previous.close, formula)
    record.delta = compute_delta(record.close, previous.close)
    record.percent_change = percent_change
    return record
