import logging

import numpy as np
import pytest

from productranking import (
    Interaction,
    average_precision,
    evaluate_model_safely,
    evaluate_ranking,
    ndcg_at_k,
    precision_at_k
)


def test_precision_divides_by_k():
    assert precision_at_k([1, 2, 3], {1, 3}, k=2) == 0.5
    assert precision_at_k([1, 2, 3], {1, 3}, k=5) == pytest.approx(0.4)


def test_average_precision():
    assert average_precision([1, 2, 3], {1, 3}) == pytest.approx((1 + 2 / 3) / 2)
    # Relevant items never recommended still count in the denominator
    assert average_precision([1], {1, 9}) == pytest.approx(0.5)


def test_ndcg():
    assert ndcg_at_k([1, 2], {1, 2}, k=2) == pytest.approx(1.0)
    assert ndcg_at_k([2, 1], {1}, k=2) == pytest.approx(np.log(2) / np.log(3))
    assert ndcg_at_k([5, 6], {1}, k=2) == 0.0


def test_empty_relevant_set_scores_zero():
    assert precision_at_k([1, 2], set(), k=1) == 0.0
    assert average_precision([1, 2], set()) == 0.0
    assert ndcg_at_k([1, 2], set(), k=2) == 0.0


def test_evaluate_ranking(hand_model):
    # u3 (index 2): i3 (index 2) viewed 3 times is relevant, i2 once is not
    interactions = [
        Interaction(2, 2, 3),
        Interaction(2, 1, 1),
        # u5 has no vector and is skipped
        Interaction(4, 0, 5),
    ]

    results = evaluate_ranking(hand_model, interactions)

    assert results["precision_at_1"] == 1.0
    assert results["precision_at_5"] == pytest.approx(0.2)
    assert results["precision_at_10"] == pytest.approx(0.1)
    assert results["map"] == 1.0
    assert results["ndcg_at_1"] == 1.0
    assert results["ndcg_at_10"] == pytest.approx(1.0)


def test_users_without_relevant_items_average_in_as_zero(hand_model):
    interactions = [Interaction(2, 2, 3), Interaction(0, 0, 1)]
    results = evaluate_ranking(hand_model, interactions)
    assert results["precision_at_1"] == 0.5
    assert results["map"] == 0.5


def test_evaluate_model_safely_logs_failures(hand_model, caplog):
    with caplog.at_level(logging.ERROR, logger="productranking.metrics"):
        assert evaluate_model_safely(hand_model, []) is None
    assert "Failed to compute ranking metrics" in caplog.text


def test_evaluate_model_safely_passes_results_through(hand_model):
    results = evaluate_model_safely(hand_model, [Interaction(2, 2, 3)])
    assert results["map"] == 1.0
