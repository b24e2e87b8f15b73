"""Bidirectional mapping between string IDs and dense matrix indices."""

from typing import Dict, Generic, Hashable, Iterable, Iterator, Optional, TypeVar

K = TypeVar('K', bound=Hashable)
V = TypeVar('V', bound=Hashable)


class BiMap(Generic[K, V]):
    """
    Immutable one-to-one mapping.
    
    Lookups never raise: unknown keys come back as None and the caller
    decides whether that is an error.
    """
    
    def __init__(self, forward: Dict[K, V]):
        reverse = {v: k for k, v in forward.items()}
        if len(reverse) != len(forward):
            raise ValueError("BiMap values must be unique")
        self._forward = dict(forward)
        self._reverse = reverse
    
    @classmethod
    def string_int(cls, ids: Iterable[str]) -> 'BiMap[str, int]':
        # Sorted so the same ID set always gets the same numbering
        unique_ids = sorted(set(ids))
        return cls({uid: idx for idx, uid in enumerate(unique_ids)})
    
    def lookup(self, key: K) -> Optional[V]:
        return self._forward.get(key)
    
    def reverse_lookup(self, value: V) -> Optional[K]:
        return self._reverse.get(value)
    
    def inverse(self) -> 'BiMap[V, K]':
        return BiMap(self._reverse)
    
    def keys(self) -> Iterator[K]:
        return iter(self._forward.keys())
    
    def to_dict(self) -> Dict[K, V]:
        return dict(self._forward)
    
    def __contains__(self, key: object) -> bool:
        return key in self._forward
    
    def __len__(self) -> int:
        return len(self._forward)
    
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BiMap):
            return NotImplemented
        return self._forward == other._forward
    
    def __repr__(self) -> str:
        head = list(self._forward.items())[:2]
        return f"BiMap([{len(self)}] {head}...)"
