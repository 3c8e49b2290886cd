"""Pattern engine: records incoming candles as paths through the node store.

For each submitted candle the engine:
1. Derives delta and percent change against the previous candle in history
2. Picks candidates: root nodes when no path is active, otherwise the
   children of the current node
3. Scores the candle against each candidate in file order; the first one
   that clears the match rule wins (first-fit, not best-fit)
4. On a match moves onto that node and increments its frequency; on a
   miss appends a new node under the current one and moves onto it

A path ends after ``max_path_length`` nodes, after which the next candle
starts a new root search. ``reset_path()`` ends one early.

Failure handling: a parse or I/O error drops the candle from pattern
processing, is logged, and never propagates out of ``submit()``.

Not thread-safe. A concurrent host must serialize calls.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from typing import TYPE_CHECKING

from candlestore.config import EngineSettings, MatchSettings
from candlestore.engine.derive import derive_fields
from candlestore.engine.models import AtNode, NoActivePath, PathState, StepResult
from candlestore.exceptions import CandleStoreError
from candlestore.logging import get_logger
from candlestore.models import CandlestickRecord, NodeRecord
from candlestore.scoring.similarity import score

if TYPE_CHECKING:
    from candlestore.store.node_store import BinaryNodeStore

logger = get_logger(__name__)

_NO_PATH = NoActivePath()


class PatternEngine:
    """Traversal state machine over a BinaryNodeStore.

    Args:
        store: Open node store. The engine only handles keys; every read
            and write goes through the store.
        engine_settings: History size, path-reset policy and mode.
        match_settings: Scorer weights and thresholds.
    """

    def __init__(
        self,
        store: BinaryNodeStore,
        engine_settings: EngineSettings | None = None,
        match_settings: MatchSettings | None = None,
    ) -> None:
        self._store = store
        self._settings = engine_settings or EngineSettings()
        self._match_settings = match_settings or MatchSettings()
        self._history: deque[CandlestickRecord] = deque(
            maxlen=self._settings.history_size
        )
        self._state: PathState = _NO_PATH

    @property
    def state(self) -> PathState:
        return self._state

    @property
    def history(self) -> tuple[CandlestickRecord, ...]:
        return tuple(self._history)

    def reset_path(self) -> None:
        """End the current path; the next candle starts a root search."""
        if isinstance(self._state, AtNode):
            logger.debug("path_reset", key=self._state.key, depth=self._state.depth)
        self._state = _NO_PATH

    def submit(self, record: CandlestickRecord) -> StepResult | None:
        """Process one completed-period candle.

        Returns:
            StepResult describing the node the engine moved to, or None if
            the candle was dropped because of a parse or I/O error.
        """
        previous = self._history[-1] if self._history else None
        try:
            derive_fields(record, previous, self._settings.percent_change_formula)
        except CandleStoreError as exc:
            logger.warning(
                "record_dropped",
                stage="derive",
                symbol=record.symbol,
                timestamp=str(record.timestamp),
                error=str(exc),
            )
            return None

        self._history.append(record)
        history_depth = len(self._history) - 1

        try:
            return self._step(record, history_depth)
        except CandleStoreError as exc:
            logger.warning(
                "record_dropped",
                stage="match",
                symbol=record.symbol,
                timestamp=str(record.timestamp),
                error=str(exc),
            )
            return None

    def _step(self, record: CandlestickRecord, history_depth: int) -> StepResult:
        """Advance the traversal state by one candle."""
        self._apply_reset_policy()

        candidates: Iterator[NodeRecord]
        if isinstance(self._state, AtNode):
            parent_key: str | None = self._state.key
            depth = self._state.depth + 1
            candidates = self._store.enumerate_children(self._state.key)
        else:
            parent_key = None
            depth = 1
            candidates = self._store.enumerate_roots()

        for candidate in candidates:
            match = score(record, candidate, history_depth, self._match_settings)
            if not match.is_match:
                continue

            frequency = candidate.frequency
            if self._settings.mode == "record":
                frequency = self._store.increment_frequency(candidate.key).frequency
            self._state = AtNode(candidate.key, depth)

            logger.debug(
                "node_matched",
                key=candidate.key,
                parent_key=parent_key,
                depth=depth,
                match_percentage=str(match.match_percentage),
                override=match.override,
                frequency=frequency,
            )
            return StepResult(
                key=candidate.key,
                created=False,
                matched=True,
                depth=depth,
                match_percentage=match.match_percentage,
                frequency=frequency,
            )

        if self._settings.mode == "lookup":
            logger.debug("lookup_miss", parent_key=parent_key, depth=depth)
            self._state = _NO_PATH
            return StepResult(key=None, created=False, matched=False, depth=depth)

        key = self._store.append_node(record, parent_key)
        self._state = AtNode(key, depth)
        logger.info("node_created", key=key, parent_key=parent_key, depth=depth)
        return StepResult(key=key, created=True, matched=False, depth=depth)

    def _apply_reset_policy(self) -> None:
        limit = self._settings.max_path_length
        if limit and isinstance(self._state, AtNode) and self._state.depth >= limit:
            self.reset_path()
