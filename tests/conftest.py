import numpy as np
import pytest

from productranking import ALSModel, BiMap, PreparedData, ViewEvent


@pytest.fixture
def clustered_data() -> PreparedData:
    """Two groups of users, each viewing its own group of items."""
    events = []
    for user in ("a1", "a2", "a3"):
        for item in ("x1", "x2", "x3"):
            events.extend([ViewEvent(user, item)] * 3)
    for user in ("b1", "b2"):
        for item in ("y1", "y2"):
            events.extend([ViewEvent(user, item)] * 2)
    # Noise that must be ignored
    events.append(ViewEvent("ghost", "x1"))
    events.append(ViewEvent("a1", "missing"))

    return PreparedData(
        users={u: {} for u in ("a1", "a2", "a3", "b1", "b2", "idle")},
        items={i: {} for i in ("x1", "x2", "x3", "y1", "y2", "unviewed")},
        view_events=events
    )


@pytest.fixture
def hand_model() -> ALSModel:
    """Rank-2 model with hand-picked vectors.

    u5 is a known user without a vector; i_cold is a known item without one.
    """
    users = BiMap({"u1": 0, "u2": 1, "u3": 2, "u4": 3, "u5": 4})
    items = BiMap({
        "i1": 0, "i2": 1, "i3": 2, "i4": 3, "i5": 4,
        "i6": 5, "i7": 6, "i8": 7, "i9": 8, "i10": 9, "i_cold": 10
    })
    user_features = {
        0: np.array([0.0, 1.0]),
        1: np.array([1.0, 1.0]),
        2: np.array([1.0, 0.0]),
        3: np.array([0.5, 0.5]),
    }
    product_features = {
        0: np.array([0.0, 3.0]),
        1: np.array([0.5, 0.0]),
        2: np.array([2.0, 0.0]),
        3: np.array([0.3, 0.3]),
        4: np.array([0.3, 0.3]),
        5: np.array([-1.0, -1.0]),
        6: np.array([0.1, 0.0]),
        7: np.array([0.0, 0.2]),
        8: np.array([-1.0, 0.0]),
        9: np.array([1.0, 1.0]),
    }
    return ALSModel(
        rank=2,
        user_features=user_features,
        product_features=product_features,
        user_string_int_map=users,
        item_string_int_map=items
    )
