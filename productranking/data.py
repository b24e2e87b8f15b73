"""Prepared training data, view-event aggregation and loading."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.sparse import csr_matrix

from .errors import ConfigurationError
from .index import BiMap

logger = logging.getLogger(__name__)


class ViewEvent(NamedTuple):
    user: str
    item: str


class Interaction(NamedTuple):
    user_index: int
    item_index: int
    weight: int


@dataclass
class PreparedData:
    """Users and items keyed by string ID, plus the raw view events."""
    users: Dict[str, Any] = field(default_factory=dict)
    items: Dict[str, Any] = field(default_factory=dict)
    view_events: Sequence[ViewEvent] = field(default_factory=list)

    def validate(self) -> None:
        hint = (" Please check that the data source produces users, items"
                " and view events correctly.")
        if len(self.view_events) == 0:
            raise ConfigurationError("view_events in PreparedData cannot be empty." + hint)
        if len(self.users) == 0:
            raise ConfigurationError("users in PreparedData cannot be empty." + hint)
        if len(self.items) == 0:
            raise ConfigurationError("items in PreparedData cannot be empty." + hint)


def aggregate_view_events(
    events: Sequence[ViewEvent],
    user_map: BiMap,
    item_map: BiMap
) -> List[Interaction]:
    """
    Map view events to matrix indices and count repeats per user-item pair.

    Events with an unknown user or item are logged and dropped.
    """
    df = pd.DataFrame(list(events), columns=['user', 'item'])
    df['u'] = df['user'].map(user_map.to_dict())
    df['i'] = df['item'].map(item_map.to_dict())

    for uid in df.loc[df['u'].isna(), 'user']:
        logger.info(f"Couldn't convert nonexistent user ID {uid} to Int index.")
    for iid in df.loc[df['i'].isna(), 'item']:
        logger.info(f"Couldn't convert nonexistent item ID {iid} to Int index.")

    valid = df.dropna(subset=['u', 'i'])
    counts = valid.groupby(['u', 'i']).size()

    interactions = [
        Interaction(int(u), int(i), int(n))
        for (u, i), n in counts.items()
    ]

    if not interactions:
        raise ConfigurationError(
            "Aggregated interactions cannot be empty."
            " Please check if your events contain valid user and item ID."
        )

    logger.info(
        f"Aggregated {len(df):,} view events into {len(interactions):,} interactions "
        f"({len(df) - len(valid):,} events dropped)"
    )
    return interactions


def create_sparse_matrix(
    interactions: Sequence[Interaction],
    n_users: int,
    n_items: int
) -> csr_matrix:
    """Build the (n_users, n_items) weight matrix from aggregated interactions."""
    rows = np.array([r.user_index for r in interactions], dtype=np.int64)
    cols = np.array([r.item_index for r in interactions], dtype=np.int64)
    data = np.array([r.weight for r in interactions], dtype=np.float64)

    return csr_matrix((data, (rows, cols)), shape=(n_users, n_items))


def train_test_split_by_user(
    interactions: Sequence[Interaction],
    test_ratio: float = 0.2,
    random_state: int = 42
) -> Tuple[List[Interaction], List[Interaction]]:
    """Split interactions per user to preserve user structure in test set."""
    rng = np.random.RandomState(random_state)

    by_user: Dict[int, List[Interaction]] = {}
    for record in interactions:
        by_user.setdefault(record.user_index, []).append(record)

    train_data: List[Interaction] = []
    test_data: List[Interaction] = []

    for user_idx in sorted(by_user):
        user_records = by_user[user_idx]

        if len(user_records) < 5:
            train_data.extend(user_records)
            continue

        n_test = max(1, int(len(user_records) * test_ratio))
        test_positions = set(rng.choice(len(user_records), n_test, replace=False))

        for pos, record in enumerate(user_records):
            if pos in test_positions:
                test_data.append(record)
            else:
                train_data.append(record)

    return train_data, test_data


def _drop_missing(df: pd.DataFrame, columns: List[str], path: str) -> pd.DataFrame:
    """Drop rows with a blank ID cell; one bad row must not abort loading."""
    clean = df.dropna(subset=columns)
    if len(clean) < len(df):
        logger.info(f"Dropped {len(df) - len(clean):,} rows with a missing {'/'.join(columns)} in {path}")
    return clean


def load_prepared_data(
    events_path: str,
    users_path: Optional[str] = None,
    items_path: Optional[str] = None
) -> PreparedData:
    """
    Load view events from CSV (columns: user, item).

    User and item files need an `id` column; remaining columns are kept as
    opaque attributes. Without them the ID sets come from the events file.
    """
    events_df = _drop_missing(
        pd.read_csv(events_path, dtype={'user': str, 'item': str}), ['user', 'item'], events_path
    )
    events = [ViewEvent(u, i) for u, i in events_df[['user', 'item']].itertuples(index=False)]

    def load_entities(path: Optional[str], column: str) -> Dict[str, Any]:
        if path is None:
            return {eid: {} for eid in events_df[column].unique()}
        df = _drop_missing(pd.read_csv(path, dtype={'id': str}), ['id'], path)
        return {
            row['id']: {k: v for k, v in row.items() if k != 'id'}
            for row in df.to_dict(orient='records')
        }

    data = PreparedData(
        users=load_entities(users_path, 'user'),
        items=load_entities(items_path, 'item'),
        view_events=events
    )
    logger.info(
        f"Loaded {len(data.users):,} users, {len(data.items):,} items, "
        f"{len(events):,} view events"
    )
    return data
