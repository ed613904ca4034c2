"""Bounded LRU map used for credential-scoped server reuse.

Wraps :class:`cachetools.LRUCache` behind a small typed surface so callers
never depend on cachetools directly.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Callable, Generic, Optional, Tuple, TypeVar

from cachetools import LRUCache  # type: ignore[import-untyped]

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

EvictCallback = Callable[[K, V], None]


class _EvictingLRU(LRUCache):
    """LRUCache that reports entries dropped to make room."""

    def __init__(self, maxsize: int, on_evict: Optional[EvictCallback]) -> None:
        super().__init__(maxsize=maxsize)
        self._on_evict = on_evict

    def popitem(self) -> Tuple[K, V]:
        key, value = super().popitem()
        if self._on_evict is not None:
            self._on_evict(key, value)
        return key, value


class Cache(Generic[K, V]):
    """Typed LRU map.

    Parameters
    ----------
    maxsize: int
        Capacity. Inserting beyond it drops the entry read or written least
        recently.
    on_evict: callable, optional
        Called with ``(key, value)`` for every entry that leaves the map,
        whether evicted for capacity, popped or cleared.
    """

    def __init__(
        self, maxsize: int = 1024, on_evict: Optional[EvictCallback] = None
    ) -> None:
        self._on_evict = on_evict
        self._entries: LRUCache[K, V] = _EvictingLRU(maxsize, on_evict)

    def get(self, key: K) -> Optional[V]:
        """Look up `key`, refreshing its recency; None when absent."""
        return self._entries.get(key)

    def set(self, key: K, value: V) -> None:
        self._entries[key] = value

    def pop(self, key: K) -> Optional[V]:
        """Remove `key` and return its value, or None if absent."""
        value = self._entries.pop(key, None)
        if value is not None and self._on_evict is not None:
            self._on_evict(key, value)
        return value

    def clear(self) -> None:
        """Remove every entry, oldest first."""
        while self._entries:
            self._entries.popitem()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
