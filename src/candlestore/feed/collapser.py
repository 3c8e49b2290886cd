"""Collapse intra-period updates into one record per completed period.

The feed sends many updates for the bar that is still forming. Only the
last update of a period is final, and it is only known to be final once an
update for the next period arrives.
"""

from candlestore.logging import get_logger
from candlestore.models import CandlestickRecord

logger = get_logger(__name__)


class PeriodCollapser:
    """Hold the latest update of the current period until the period closes."""

    def __init__(self) -> None:
        self._pending: CandlestickRecord | None = None

    @property
    def pending(self) -> CandlestickRecord | None:
        return self._pending

    def push(self, record: CandlestickRecord) -> CandlestickRecord | None:
        """Accept an update; return the completed previous period, if any.

        Updates older than the pending period are ignored.
        """
        pending = self._pending
        if pending is None or record.timestamp == pending.timestamp:
            self._pending = record
            return None

        if (
            record.timestamp is not None
            and pending.timestamp is not None
            and record.timestamp < pending.timestamp
        ):
            logger.warning(
                "stale_update_ignored",
                symbol=record.symbol,
                timestamp=str(record.timestamp),
                pending=str(pending.timestamp),
            )
            return None

        self._pending = record
        return pending

    def flush(self) -> CandlestickRecord | None:
        """Return the pending record (end of stream) and clear it."""
        pending, self._pending = self._pending, None
        return pending
