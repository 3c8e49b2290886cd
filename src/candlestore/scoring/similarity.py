"""Fuzzy similarity scoring between an incoming candle and a stored node.

The score is built from two composites:
- price shape: open, high, low and (double-weighted) close
- psychology: volume, delta, percent change and both wicks

Behavioral similarity is treated as the stronger identity signal: a
psychology score at or above the override threshold is a match no matter
how far apart the price levels are. Otherwise the blended total has to
clear the match threshold.

CRITICAL: All computations use Decimal. Never use float for scores.
"""

from decimal import Decimal

from candlestore.config import MatchSettings
from candlestore.exceptions import RecordParseError
from candlestore.models import NODE_FIELDS, MatchResult, to_decimal
from candlestore.scoring.distance import (
    price_distance,
    raw_distance,
    to_similarity,
    volume_distance,
)

#: Quantization for composite scores (6 decimal places).
_SCORE_QUANTIZE = Decimal("0.000001")
_PERCENT_QUANTIZE = Decimal("0.0001")
_HUNDRED = Decimal("100")
_PSYCHOLOGY_FIELDS = 5

_DEFAULT_SETTINGS = MatchSettings()


def _numeric_fields(record: object) -> dict[str, Decimal]:
    """Read the nine scored fields from a record as Decimals."""
    return {
        name: to_decimal(getattr(record, name, None), name) for name in NODE_FIELDS
    }


def compute_similarities(
    incoming: dict[str, Decimal],
    candidate: dict[str, Decimal],
    history_depth: int | None = None,
    settings: MatchSettings = _DEFAULT_SETTINGS,
) -> dict[str, Decimal]:
    """Compute the per-field similarity of two parsed records.

    Args:
        incoming: Field name to value for the incoming record.
        candidate: Field name to value for the stored candidate.
        history_depth: Number of records that preceded the incoming one.
            Below ``settings.min_history`` the delta and percent-change
            distances are forced to ``settings.forced_distance``. None means
            the history is deep enough.
        settings: Scorer weights and thresholds.

    Returns:
        Dict of field name to similarity in [0, 1].
    """
    distances: dict[str, Decimal] = {}
    for name in ("open", "high", "low", "close", "top_wick", "bottom_wick"):
        distances[name] = price_distance(incoming[name], candidate[name])

    distances["volume"] = volume_distance(incoming["volume"], candidate["volume"])

    if history_depth is not None and history_depth < settings.min_history:
        distances["delta"] = settings.forced_distance
        distances["percent_change"] = settings.forced_distance
    else:
        distances["delta"] = raw_distance(incoming["delta"], candidate["delta"])
        distances["percent_change"] = raw_distance(
            incoming["percent_change"], candidate["percent_change"]
        )

    return {name: to_similarity(d) for name, d in distances.items()}


def price_shape_score(similarities: dict[str, Decimal], close_weight: Decimal) -> Decimal:
    """(s_open + s_high + s_low + w * s_close) / (3 + w)"""
    total = (
        similarities["open"]
        + similarities["high"]
        + similarities["low"]
        + close_weight * similarities["close"]
    )
    return total / (Decimal("3") + close_weight)


def psychology_score(similarities: dict[str, Decimal]) -> Decimal:
    """Mean of volume, delta, percent change, top wick and bottom wick similarity."""
    total = (
        similarities["volume"]
        + similarities["delta"]
        + similarities["percent_change"]
        + similarities["top_wick"]
        + similarities["bottom_wick"]
    )
    return total / Decimal(_PSYCHOLOGY_FIELDS)


def score(
    incoming: object,
    candidate: object,
    history_depth: int | None = None,
    settings: MatchSettings = _DEFAULT_SETTINGS,
) -> MatchResult:
    """Score an incoming record against a stored candidate.

    Both arguments only need the nine numeric node attributes
    (CandlestickRecord and NodeRecord both qualify). If either side cannot
    be parsed to numbers the result is a no-match at 0%.

    On the override path the reported percentage is the larger of the
    psychology score and the blended total, so identical records always
    report at least the blended threshold.

    Returns:
        MatchResult with the decision and the component scores.
    """
    try:
        left = _numeric_fields(incoming)
        right = _numeric_fields(candidate)
    except RecordParseError:
        return MatchResult(is_match=False, match_percentage=Decimal("0"))

    similarities = compute_similarities(left, right, history_depth, settings)
    price = price_shape_score(similarities, settings.close_weight)
    psychology = psychology_score(similarities)
    total = settings.price_weight * price + settings.psychology_weight * psychology

    # Thresholds compare unrounded scores; only reported values are quantized.
    override = psychology >= settings.psychology_override
    if override:
        is_match = True
        reported = max(psychology, total)
    else:
        is_match = total >= settings.match_threshold
        reported = total

    return MatchResult(
        is_match=is_match,
        match_percentage=(reported * _HUNDRED).quantize(_PERCENT_QUANTIZE),
        price_shape_score=price.quantize(_SCORE_QUANTIZE),
        psychology_score=psychology.quantize(_SCORE_QUANTIZE),
        total_score=total.quantize(_SCORE_QUANTIZE),
        override=override,
    )
