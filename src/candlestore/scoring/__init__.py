"""Similarity scoring between incoming candles and stored pattern nodes.

Provides per-field distance functions, the two composite scores (price
shape and psychology) and the two-tier match decision.
"""

from candlestore.scoring.distance import (
    price_distance,
    raw_distance,
    to_similarity,
    volume_distance,
)
from candlestore.scoring.similarity import (
    compute_similarities,
    price_shape_score,
    psychology_score,
    score,
)

__all__ = [
    "compute_similarities",
    "price_distance",
    "price_shape_score",
    "psychology_score",
    "raw_distance",
    "score",
    "to_similarity",
    "volume_distance",
]
