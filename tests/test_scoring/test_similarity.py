"""Tests for the similarity scorer.

Tests verify:
- identical records always match at >= 89%
- score(a, b) and score(b, a) agree
- the psychology override boundary at exactly 0.85
- price divergence does not block a behavioral match
- unparseable input is a no-match at 0%
"""

from decimal import Decimal

import pytest

from candlestore.config import MatchSettings
from candlestore.models import CandlestickRecord
from candlestore.scoring.similarity import (
    compute_similarities,
    price_shape_score,
    psychology_score,
    score,
)


def _make_record(
    open: str = "100",
    high: str = "101",
    low: str = "99",
    close: str = "100.5",
    volume: str = "1000",
    delta: str | None = "0.5",
    percent_change: str | None = "0.01",
) -> CandlestickRecord:
    """Create a fully derived candlestick with controllable fields."""
    return CandlestickRecord(
        symbol="TEST",
        timestamp=None,
        open=Decimal(open),
        high=Decimal(high),
        low=Decimal(low),
        close=Decimal(close),
        volume=Decimal(volume),
        delta=Decimal(delta) if delta is not None else None,
        percent_change=Decimal(percent_change) if percent_change is not None else None,
    )


class TestIdenticalRecords:
    """score(a, a) is never rejected."""

    def test_identical_full_history(self) -> None:
        record = _make_record()
        result = score(record, record)
        assert result.is_match is True
        assert result.match_percentage == Decimal("100.0000")

    def test_identical_with_forced_distance(self) -> None:
        """Forced 0.3 delta/percent distance still reports at least 89%."""
        record = _make_record()
        result = score(record, record, history_depth=0)
        # psychology = (1 + 0.7 + 0.7 + 1 + 1) / 5 = 0.88
        # total = 0.6 * 1 + 0.4 * 0.88 = 0.952
        assert result.is_match is True
        assert result.psychology_score == Decimal("0.880000")
        assert result.match_percentage == Decimal("95.2000")
        assert result.match_percentage >= Decimal("89")

    @pytest.mark.parametrize("history_depth", [None, 0, 1, 2, 10])
    def test_always_at_least_threshold(self, history_depth: int | None) -> None:
        record = _make_record(close="100.9", volume="1234.5", delta="-3.1")
        result = score(record, record, history_depth=history_depth)
        assert result.is_match is True
        assert result.match_percentage >= Decimal("89")


class TestSymmetry:
    """Normalization formulas are symmetric in their inputs."""

    @pytest.mark.parametrize("history_depth", [None, 1])
    def test_swapped_arguments_same_percentage(self, history_depth: int | None) -> None:
        a = _make_record()
        b = _make_record(
            open="100.3", high="102", low="98.7", close="101.4",
            volume="1375", delta="0.9", percent_change="0.0089",
        )
        forward = score(a, b, history_depth=history_depth)
        backward = score(b, a, history_depth=history_depth)
        assert forward.match_percentage == backward.match_percentage
        assert forward.is_match == backward.is_match


class TestPsychologyOverrideBoundary:
    """Records differing only in volume around psychology = 0.85."""

    def test_exactly_at_override_matches_via_override(self) -> None:
        a = _make_record(volume="1000")
        b = _make_record(volume="850")
        result = score(a, b, history_depth=0)
        # psychology = (0.85 + 0.7 + 0.7 + 1 + 1) / 5 = 0.85
        assert result.psychology_score == Decimal("0.850000")
        assert result.override is True
        assert result.is_match is True
        # total = 0.6 + 0.4 * 0.85 = 0.94, the larger of the two is reported
        assert result.match_percentage == Decimal("94.0000")

    def test_just_below_override_uses_blended_threshold(self) -> None:
        a = _make_record(volume="1000")
        b = _make_record(volume="800")
        result = score(a, b, history_depth=0)
        # psychology = (0.8 + 0.7 + 0.7 + 1 + 1) / 5 = 0.84
        assert result.psychology_score == Decimal("0.840000")
        assert result.override is False
        # total = 0.6 + 0.4 * 0.84 = 0.936 >= 0.89
        assert result.total_score == Decimal("0.936000")
        assert result.is_match is True
        assert result.match_percentage == Decimal("93.6000")

    def test_fractionally_below_override_is_not_rounded_up(self) -> None:
        """psychology = (0.249998 + 4) / 5 = 0.8499996, reported as 0.850000."""
        a = _make_record(open="100", high="101", low="99", close="100.5", volume="1000")
        b = _make_record(
            open="200", high="201", low="199", close="200.5", volume="249.998"
        )
        result = score(a, b)
        assert result.override is False
        assert result.is_match is False
        assert result.total_score < Decimal("0.89")
        assert result.match_percentage < Decimal("89")

    def test_custom_override_threshold(self) -> None:
        settings = MatchSettings(psychology_override=Decimal("0.95"))
        a = _make_record(volume="1000")
        b = _make_record(volume="850")
        result = score(a, b, history_depth=0, settings=settings)
        assert result.override is False
        assert result.is_match is True


class TestDecisionRule:
    """Blended threshold and behavioral override."""

    def test_behavior_overrides_price_divergence(self) -> None:
        """Same wicks, volume and momentum at double the price level still match."""
        a = _make_record(open="100", high="101", low="99", close="100.5")
        b = _make_record(open="200", high="201", low="199", close="200.5")
        result = score(a, b)
        assert result.psychology_score == Decimal("1.000000")
        assert result.override is True
        assert result.is_match is True
        assert result.total_score < Decimal("0.89")
        assert result.match_percentage == Decimal("100.0000")

    def test_one_percent_close_jump_is_not_a_match(self) -> None:
        """A 100 -> 101 close move with forced momentum distance stays below 0.89."""
        first = _make_record(
            open="100", high="100.5", low="99.5", close="100",
            volume="1000", delta="0", percent_change="0",
        )
        second = _make_record(
            open="100", high="101.2", low="99.9", close="101",
            volume="1200", delta="1", percent_change="1.0202",
        )
        result = score(second, first, history_depth=1)
        assert result.override is False
        assert result.total_score < Decimal("0.89")
        assert result.is_match is False

    def test_forced_distance_ignores_momentum_fields(self) -> None:
        a = _make_record(delta="5", percent_change="3")
        b = _make_record(delta="-5", percent_change="0")
        forced = score(a, b, history_depth=1)
        assert forced.psychology_score == Decimal("0.880000")

        unforced = score(a, b, history_depth=2)
        # delta and percent change similarities both drop to 0
        assert unforced.psychology_score == Decimal("0.600000")


class TestUnparseableInput:
    """Records that cannot be read as numbers never match."""

    def test_missing_derived_field(self) -> None:
        a = _make_record()
        b = _make_record(delta=None)
        result = score(a, b)
        assert result.is_match is False
        assert result.match_percentage == Decimal("0")

    def test_non_numeric_field(self) -> None:
        a = _make_record()
        b = _make_record()
        b.volume = "n/a"  # type: ignore[assignment]
        result = score(a, b)
        assert result.is_match is False
        assert result.match_percentage == Decimal("0")

    def test_object_without_fields(self) -> None:
        result = score(_make_record(), object())
        assert result.is_match is False


class TestCompositeScores:
    """Tests for the composite score helpers."""

    def test_close_weighted_double(self) -> None:
        similarities = {
            "open": Decimal("1"),
            "high": Decimal("1"),
            "low": Decimal("1"),
            "close": Decimal("0.5"),
        }
        # (1 + 1 + 1 + 2 * 0.5) / 5 = 0.8
        assert price_shape_score(similarities, Decimal("2")) == Decimal("0.800000")

    def test_psychology_mean(self) -> None:
        similarities = {
            "volume": Decimal("1"),
            "delta": Decimal("0.5"),
            "percent_change": Decimal("0.5"),
            "top_wick": Decimal("0"),
            "bottom_wick": Decimal("1"),
        }
        assert psychology_score(similarities) == Decimal("0.600000")

    def test_similarities_cover_all_fields(self) -> None:
        record = _make_record()
        fields = {
            name: getattr(record, name)
            for name in (
                "open", "high", "low", "close", "volume",
                "top_wick", "bottom_wick", "delta", "percent_change",
            )
        }
        similarities = compute_similarities(fields, fields)
        assert len(similarities) == 9
        assert all(s == Decimal("1") for s in similarities.values())
