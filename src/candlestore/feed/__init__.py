"""Feed adapters that turn chart-feed messages into completed candles.

Provides the frame parser, the per-period collapser and the TSV candle log
used for replay.
"""

from candlestore.feed.candle_log import CandleLog, format_line, parse_line
from candlestore.feed.collapser import PeriodCollapser
from candlestore.feed.frames import encode_frame, extract_candle, is_heartbeat, parse_frames

__all__ = [
    "CandleLog",
    "PeriodCollapser",
    "encode_frame",
    "extract_candle",
    "format_line",
    "is_heartbeat",
    "parse_frames",
    "parse_line",
]
