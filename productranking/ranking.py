"""Score and order a user's candidate items."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .model import ALSModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Query:
    user: str
    items: Sequence[str]


@dataclass(frozen=True)
class ItemScore:
    item: str
    score: float


@dataclass(frozen=True)
class PredictedResult:
    item_scores: List[ItemScore]
    # True when scoring was impossible and the input order is echoed back
    is_original: bool


def score_vectors(user_vector: np.ndarray, item_vectors: np.ndarray) -> np.ndarray:
    """Dot-product affinity of one user against each row, floored at 0."""
    return np.maximum(item_vectors @ user_vector, 0.0)


def _not_ranked(query: Query) -> PredictedResult:
    return PredictedResult(
        item_scores=[ItemScore(item, 0.0) for item in query.items],
        is_original=True
    )


def predict(model: ALSModel, query: Query) -> PredictedResult:
    user_vector = model.user_feature(query.user)
    if user_vector is None:
        logger.info(f"No userFeature found for user {query.user}.")
        return _not_ranked(query)

    features: List[Optional[np.ndarray]] = [model.item_feature(item) for item in query.items]
    known = [pos for pos, f in enumerate(features) if f is not None]

    if not known:
        logger.info(f"No productFeature for all items {list(query.items)}.")
        return _not_ranked(query)

    # Items without a vector are unscored, which ranks them as 0
    scores = np.zeros(len(features))
    scores[known] = score_vectors(user_vector, np.array([features[pos] for pos in known]))

    # sorted() is stable: equal scores keep their input order
    ranked = sorted(
        (ItemScore(item, float(score)) for item, score in zip(query.items, scores)),
        key=lambda s: -s.score
    )
    return PredictedResult(item_scores=ranked, is_original=False)
