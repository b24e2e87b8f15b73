"""Trained latent-factor model and its published snapshot holder."""

import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import numpy as np

from .index import BiMap


def _freeze(features: Mapping[int, np.ndarray]) -> Mapping[int, np.ndarray]:
    frozen = {}
    for idx, vec in features.items():
        vec = np.array(vec, dtype=np.float64)
        vec.setflags(write=False)
        frozen[int(idx)] = vec
    return MappingProxyType(frozen)


@dataclass(frozen=True, eq=False)
class ALSModel:
    rank: int
    user_features: Mapping[int, np.ndarray]
    product_features: Mapping[int, np.ndarray]
    user_string_int_map: BiMap
    item_string_int_map: BiMap

    def __post_init__(self):
        # Own read-only copies so no caller can change a published model
        object.__setattr__(self, 'user_features', _freeze(self.user_features))
        object.__setattr__(self, 'product_features', _freeze(self.product_features))

    def user_feature(self, user_id: str) -> Optional[np.ndarray]:
        """Latent vector for a user ID, or None if the ID or its vector is unknown."""
        index = self.user_string_int_map.lookup(user_id)
        if index is None:
            return None
        return self.user_features.get(index)

    def item_feature(self, item_id: str) -> Optional[np.ndarray]:
        index = self.item_string_int_map.lookup(item_id)
        if index is None:
            return None
        return self.product_features.get(index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rank': self.rank,
            'user_features': {k: v.tolist() for k, v in self.user_features.items()},
            'product_features': {k: v.tolist() for k, v in self.product_features.items()},
            'user_string_int_map': self.user_string_int_map.to_dict(),
            'item_string_int_map': self.item_string_int_map.to_dict(),
        }

    def save(self, filepath: str) -> None:
        user_idx = np.array(sorted(self.user_features), dtype=np.int64)
        item_idx = np.array(sorted(self.product_features), dtype=np.int64)
        user_ids = sorted(self.user_string_int_map.keys(), key=self.user_string_int_map.lookup)
        item_ids = sorted(self.item_string_int_map.keys(), key=self.item_string_int_map.lookup)
        user_id_indices = [self.user_string_int_map.lookup(uid) for uid in user_ids]
        item_id_indices = [self.item_string_int_map.lookup(iid) for iid in item_ids]

        np.savez(
            filepath,
            rank=self.rank,
            user_indices=user_idx,
            user_factors=np.array([self.user_features[i] for i in user_idx]).reshape(-1, self.rank),
            item_indices=item_idx,
            item_factors=np.array([self.product_features[i] for i in item_idx]).reshape(-1, self.rank),
            user_ids=np.array(user_ids, dtype=str),
            user_id_indices=np.array(user_id_indices, dtype=np.int64),
            item_ids=np.array(item_ids, dtype=str),
            item_id_indices=np.array(item_id_indices, dtype=np.int64)
        )

    @classmethod
    def load(cls, filepath: str) -> 'ALSModel':
        with np.load(filepath) as data:
            return cls._from_arrays(data)

    @classmethod
    def _from_arrays(cls, data) -> 'ALSModel':
        return cls(
            rank=int(data['rank']),
            user_features={
                int(i): vec for i, vec in zip(data['user_indices'], data['user_factors'])
            },
            product_features={
                int(i): vec for i, vec in zip(data['item_indices'], data['item_factors'])
            },
            user_string_int_map=BiMap({
                str(uid): int(idx) for uid, idx in zip(data['user_ids'], data['user_id_indices'])
            }),
            item_string_int_map=BiMap({
                str(iid): int(idx) for iid, idx in zip(data['item_ids'], data['item_id_indices'])
            })
        )

    def __str__(self) -> str:
        return (
            f"rank: {self.rank} "
            f"userFeatures: [{len(self.user_features)}] "
            f"productFeatures: [{len(self.product_features)}] "
            f"userStringIntMap: {self.user_string_int_map!r} "
            f"itemStringIntMap: {self.item_string_int_map!r}"
        )


class ModelStore:
    """
    Holds the currently served model.

    Readers take one reference with `current()` and use it for the whole
    request, so a concurrent `publish()` is never observed half-applied.
    """

    def __init__(self, model: Optional[ALSModel] = None):
        self._model = model
        self._publish_lock = threading.Lock()

    def publish(self, model: ALSModel) -> Optional[ALSModel]:
        with self._publish_lock:
            previous = self._model
            self._model = model
        return previous

    def current(self) -> Optional[ALSModel]:
        return self._model
