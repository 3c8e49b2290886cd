"""Per-field normalized distances between two candlestick values.

Every distance is symmetric in its inputs, so scoring A against B gives
the same result as B against A.

CRITICAL: All computations use Decimal. Never use float for distances.
"""

from decimal import Decimal

_ZERO = Decimal("0")
_ONE = Decimal("1")
_TWO = Decimal("2")


def price_distance(x: Decimal, y: Decimal) -> Decimal:
    """Symmetric relative difference for price-like fields.

    Formula: |x - y| / ((x + y) / 2)

    Equal values are distance 0. Unequal values whose mean is zero have no
    meaningful relative difference and get the maximum distance of 1.
    """
    if x == y:
        return _ZERO
    mean = abs((x + y) / _TWO)
    if mean == _ZERO:
        return _ONE
    return abs(x - y) / mean


def volume_distance(x: Decimal, y: Decimal) -> Decimal:
    """Relative difference against the larger volume.

    Formula: |x - y| / max(x, y)
    """
    if x == y:
        return _ZERO
    largest = max(abs(x), abs(y))
    return abs(x - y) / largest


def raw_distance(x: Decimal, y: Decimal) -> Decimal:
    """Plain absolute difference, for fields that are already ratios or deltas."""
    return abs(x - y)


def to_similarity(distance: Decimal) -> Decimal:
    """Convert a distance to a similarity in [0, 1]: max(0, 1 - d)."""
    return max(_ZERO, _ONE - distance)
