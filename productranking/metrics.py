"""Ranking-quality metrics for a trained model."""

import logging
from typing import Dict, List, Optional, Sequence, Set

import numpy as np

from .data import Interaction
from .model import ALSModel
from .ranking import score_vectors

logger = logging.getLogger(__name__)


def precision_at_k(recommendations: Sequence[int], relevant_items: Set[int], k: int) -> float:
    """Relevant hits in the first k, divided by k (not by the list length)."""
    if len(relevant_items) == 0:
        return 0.0
    hits = sum(1 for item in recommendations[:k] if item in relevant_items)
    return hits / k


def average_precision(recommendations: Sequence[int], relevant_items: Set[int]) -> float:
    if len(relevant_items) == 0:
        return 0.0

    hits = 0
    precision_sum = 0.0
    for i, item in enumerate(recommendations):
        if item in relevant_items:
            hits += 1
            precision_sum += hits / (i + 1)
    return precision_sum / len(relevant_items)


def ndcg_at_k(recommendations: Sequence[int], relevant_items: Set[int], k: int) -> float:
    """Normalised DCG at k with binary relevance."""
    if len(relevant_items) == 0:
        return 0.0

    n = min(max(len(recommendations), len(relevant_items)), k)
    dcg = 0.0
    ideal_dcg = 0.0
    for i in range(n):
        gain = 1.0 / np.log(i + 2)
        if i < len(recommendations) and recommendations[i] in relevant_items:
            dcg += gain
        if i < len(relevant_items):
            ideal_dcg += gain

    return dcg / ideal_dcg


def evaluate_ranking(
    model: ALSModel,
    interactions: Sequence[Interaction],
    k: int = 10,
    relevance_threshold: float = 2.5
) -> Dict[str, float]:
    """
    Compare each user's top-k items against the items they interacted with.

    An interaction is relevant when its weight is above `relevance_threshold`.
    Every user that has interactions and a latent vector counts, including
    users with no relevant item (they score 0).
    """
    item_indices = np.array(sorted(model.product_features), dtype=np.int64)
    item_matrix = np.array([model.product_features[i] for i in item_indices])

    relevant_by_user: Dict[int, Set[int]] = {}
    for record in interactions:
        relevant = relevant_by_user.setdefault(record.user_index, set())
        if record.weight > relevance_threshold:
            relevant.add(record.item_index)

    results: Dict[str, List[float]] = {
        name: [] for name in (
            'precision_at_1', 'precision_at_5', 'precision_at_10',
            'map', 'ndcg_at_1', 'ndcg_at_5', 'ndcg_at_10'
        )
    }

    for user_idx in sorted(relevant_by_user):
        user_vector = model.user_features.get(user_idx)
        if user_vector is None:
            continue

        scores = score_vectors(user_vector, item_matrix)
        top_k = item_indices[np.argsort(-scores, kind='stable')[:k]].tolist()
        relevant = relevant_by_user[user_idx]

        for cutoff in (1, 5, 10):
            results[f'precision_at_{cutoff}'].append(precision_at_k(top_k, relevant, cutoff))
            results[f'ndcg_at_{cutoff}'].append(ndcg_at_k(top_k, relevant, cutoff))
        results['map'].append(average_precision(top_k, relevant))

    if not results['map']:
        raise ValueError("No user with both interactions and a latent vector to evaluate")

    return {name: float(np.mean(values)) for name, values in results.items()}


def evaluate_model_safely(
    model: ALSModel,
    interactions: Sequence[Interaction],
    **kwargs
) -> Optional[Dict[str, float]]:
    """Run `evaluate_ranking`, logging instead of raising on failure."""
    try:
        return evaluate_ranking(model, interactions, **kwargs)
    except Exception:
        logger.exception("Failed to compute ranking metrics")
        return None
