"""
Dependent LRU cache.

Detection hot paths remember already-checked content fingerprints here. The
cache's shape follows configuration: capacity tracks lru.max_size, and the
content-compare settings decide when the entries are no longer valid.
"""

import threading
from collections import OrderedDict
from typing import Hashable, Optional

from shared.common_utils.logger import logger


class LRUCache:
    """Thread-safe capacity-bounded LRU map of fingerprint -> short string."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._store: "OrderedDict[Hashable, str]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[str]:
        with self._lock:
            if key not in self._store:
                return None
            self._store.move_to_end(key)
            return self._store[key]

    def put(self, key: Hashable, value: str) -> None:
        with self._lock:
            if self.capacity <= 0:
                return
            if key in self._store:
                self._store.move_to_end(key)
            self._store[key] = value
            while len(self._store) > self.capacity:
                self._store.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class DependentCacheManager:
    """Owns the shared LRU cache and rebuilds it when its capacity changes."""

    def __init__(self, capacity: int = 1024) -> None:
        self._cache = LRUCache(capacity)

    @property
    def cache(self) -> LRUCache:
        return self._cache

    def capacity(self) -> int:
        return self._cache.capacity

    def recreate(self, capacity: int) -> bool:
        """
        Replace the cache with an empty one of the given capacity.

        Returns False, leaving the entries alone, when the capacity is unchanged.
        """
        if capacity == self._cache.capacity:
            return False
        old = self._cache
        self._cache = LRUCache(capacity)
        old.clear()
        logger.info(f"LRU cache recreated with capacity {capacity} (was {old.capacity})")
        return True

    def clear(self) -> None:
        self._cache.clear()
        logger.info("LRU cache cleared")

    def get(self, key: Hashable) -> Optional[str]:
        return self._cache.get(key)

    def put(self, key: Hashable, value: str) -> None:
        self._cache.put(key, value)

    def __len__(self) -> int:
        return len(self._cache)
