"""Parser for the length-prefixed chart feed framing.

A transport message carries one or more frames of the form
``~m~<length>~m~<payload>``. Payloads are either JSON objects or
heartbeats (``~h~<n>``). Data updates are JSON objects with
``"m": "du"`` whose series block holds ``[ts, open, high, low, close, volume]``.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

from candlestore.exceptions import FrameParseError, RecordParseError
from candlestore.models import CandlestickRecord

_MARKER = "~m~"
_HEARTBEAT = "~h~"
_SERIES_ID = "sds_1"


def parse_frames(raw: str) -> list[str]:
    """Split a transport message into its frame payloads.

    Raises FrameParseError if the framing is malformed.
    """
    payloads: list[str] = []
    position = 0
    while position < len(raw):
        if not raw.startswith(_MARKER, position):
            raise FrameParseError(f"Expected frame marker at position {position}")
        length_start = position + len(_MARKER)
        length_end = raw.find(_MARKER, length_start)
        if length_end == -1:
            raise FrameParseError("Unterminated frame length")
        length_text = raw[length_start:length_end]
        if not length_text.isdigit():
            raise FrameParseError(f"Invalid frame length {length_text!r}")

        payload_start = length_end + len(_MARKER)
        payload_end = payload_start + int(length_text)
        if payload_end > len(raw):
            raise FrameParseError("Frame payload shorter than declared length")
        payloads.append(raw[payload_start:payload_end])
        position = payload_end
    return payloads


def is_heartbeat(payload: str) -> bool:
    """True for ``~h~<n>`` heartbeat payloads, which the client echoes back."""
    return payload.startswith(_HEARTBEAT)


def encode_frame(payload: str) -> str:
    return f"{_MARKER}{len(payload)}{_MARKER}{payload}"


def _parse_timestamp(value: object) -> datetime:
    """Unix seconds (possibly "1752672600.0") to an aware UTC datetime."""
    try:
        seconds = int(Decimal(str(value)))
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (ArithmeticError, ValueError, OSError) as exc:
        raise FrameParseError(f"Invalid unix timestamp {value!r}") from exc


def _bar_values(message: dict) -> list | None:
    """Walk p[1].sds_1.s[0].v of a data update; None if the shape is wrong."""
    params = message.get("p")
    if not isinstance(params, list) or len(params) != 2:
        return None
    container = params[1]
    if not isinstance(container, dict):
        return None
    series = container.get(_SERIES_ID)
    if not isinstance(series, dict):
        return None
    bars = series.get("s")
    if not isinstance(bars, list) or not bars or not isinstance(bars[0], dict):
        return None
    values = bars[0].get("v")
    if not isinstance(values, list) or len(values) < 6:
        return None
    return values


def extract_candle(raw: str, symbol: str) -> CandlestickRecord:
    """Return the candle carried by the first data-update frame of a message.

    Raises FrameParseError if no frame carries a usable series bar.
    """
    for payload in parse_frames(raw):
        if not payload.lstrip().startswith("{"):
            continue
        try:
            message = json.loads(payload, parse_float=Decimal)
        except json.JSONDecodeError:
            continue
        if not isinstance(message, dict) or message.get("m") != "du":
            continue

        values = _bar_values(message)
        if values is None:
            continue

        try:
            return CandlestickRecord.from_raw(
                symbol,
                _parse_timestamp(values[0]),
                values[1],
                values[2],
                values[3],
                values[4],
                values[5],
            )
        except RecordParseError as exc:
            raise FrameParseError(f"Invalid bar values: {exc}") from exc

    raise FrameParseError(f"No valid {_SERIES_ID} data block found in message")
