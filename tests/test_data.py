import logging

import pytest

from productranking import (
    BiMap,
    ConfigurationError,
    Interaction,
    PreparedData,
    ViewEvent,
    aggregate_view_events,
    create_sparse_matrix,
    load_prepared_data,
    train_test_split_by_user
)


@pytest.fixture
def maps():
    return BiMap.string_int(["u1", "u2"]), BiMap.string_int(["i1", "i2", "i3"])


def test_repeated_views_add_up(maps):
    user_map, item_map = maps
    events = [ViewEvent("u1", "i1"), ViewEvent("u1", "i1"), ViewEvent("u2", "i3")]

    interactions = aggregate_view_events(events, user_map, item_map)

    assert Interaction(0, 0, 2) in interactions
    assert Interaction(1, 2, 1) in interactions
    assert len(interactions) == 2


def test_unknown_ids_are_dropped_and_logged(maps, caplog):
    user_map, item_map = maps
    events = [ViewEvent("u1", "i2"), ViewEvent("u1", "nope"), ViewEvent("who", "i1")]

    with caplog.at_level(logging.INFO, logger="productranking.data"):
        interactions = aggregate_view_events(events, user_map, item_map)

    assert interactions == [Interaction(0, 1, 1)]
    assert "nonexistent item ID nope" in caplog.text
    assert "nonexistent user ID who" in caplog.text


def test_weights_are_ints(maps):
    user_map, item_map = maps
    interactions = aggregate_view_events([ViewEvent("u2", "i2")] * 3, user_map, item_map)
    assert isinstance(interactions[0].weight, int)
    assert interactions[0].weight == 3


def test_nothing_left_after_filtering_is_fatal(maps):
    user_map, item_map = maps
    with pytest.raises(ConfigurationError):
        aggregate_view_events([ViewEvent("x", "y")], user_map, item_map)


@pytest.mark.parametrize("field", ["users", "items", "view_events"])
def test_validate_rejects_empty_inputs(field):
    data = PreparedData(users={"u": {}}, items={"i": {}}, view_events=[ViewEvent("u", "i")])
    setattr(data, field, {} if field != "view_events" else [])
    with pytest.raises(ConfigurationError, match=field):
        data.validate()


def test_create_sparse_matrix():
    R = create_sparse_matrix([Interaction(0, 2, 4), Interaction(1, 0, 1)], n_users=3, n_items=4)
    assert R.shape == (3, 4)
    assert R[0, 2] == 4
    assert R[1, 0] == 1
    assert R.nnz == 2


def test_train_test_split_by_user():
    heavy = [Interaction(0, i, 1) for i in range(10)]
    light = [Interaction(1, i, 1) for i in range(3)]

    train, test = train_test_split_by_user(heavy + light, test_ratio=0.2, random_state=0)

    assert len(test) == 2
    assert all(r.user_index == 0 for r in test)
    assert set(train) | set(test) == set(heavy + light)
    assert not set(train) & set(test)


def test_load_prepared_data(tmp_path):
    events = tmp_path / "events.csv"
    events.write_text("user,item\nu1,10\nu1,10\nu2,20\n")
    items = tmp_path / "items.csv"
    items.write_text("id,category\n10,books\n20,games\n30,music\n")

    data = load_prepared_data(str(events), items_path=str(items))

    assert set(data.users) == {"u1", "u2"}
    assert set(data.items) == {"10", "20", "30"}
    assert data.items["30"] == {"category": "music"}
    assert data.view_events[0] == ViewEvent("u1", "10")
    assert len(data.view_events) == 3


def test_blank_id_cells_are_skipped(tmp_path, caplog):
    events = tmp_path / "events.csv"
    events.write_text("user,item\nu1,i1\nu1,i2\n,i1\nu2,\nu2,i2\n")
    users = tmp_path / "users.csv"
    users.write_text("id,age\nu1,30\n,41\nu2,25\n")

    with caplog.at_level(logging.INFO, logger="productranking.data"):
        data = load_prepared_data(str(events), users_path=str(users))

    assert set(data.users) == {"u1", "u2"}
    assert set(data.items) == {"i1", "i2"}
    assert data.view_events == [ViewEvent("u1", "i1"), ViewEvent("u1", "i2"), ViewEvent("u2", "i2")]
    assert "Dropped 2 rows with a missing user/item" in caplog.text
    assert "Dropped 1 rows with a missing id" in caplog.text
