"""Bounded in-memory cache."""
from typing import Any, Hashable


class BoundedCache:
    """
    Fixed-capacity cache backed by a ring buffer.
    
    Slots are reused in insertion order, so the oldest entry is evicted
    first once the buffer is full. A key index gives O(1) lookup.
    """
    
    def __init__(self, max_size: int = 100):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._slots: list[tuple[Hashable, Any] | None] = [None] * max_size
        self._index: dict[Hashable, int] = {}
        self._cursor = 0
    
    def get(self, key: Hashable, default: Any = None) -> Any:
        slot = self._index.get(key)
        if slot is None:
            return default
        return self._slots[slot][1]
    
    def set(self, key: Hashable, value: Any) -> None:
        slot = self._index.get(key)
        if slot is not None:
            # Overwrite in place, keeps eviction order
            self._slots[slot] = (key, value)
            return
        
        evicted = self._slots[self._cursor]
        if evicted is not None:
            del self._index[evicted[0]]
        
        self._slots[self._cursor] = (key, value)
        self._index[key] = self._cursor
        self._cursor = (self._cursor + 1) % self.max_size
    
    def has(self, key: Hashable) -> bool:
        return key in self._index
    
    def clear(self) -> None:
        self._slots = [None] * self.max_size
        self._index.clear()
        self._cursor = 0
    
    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)
    
    def __len__(self) -> int:
        return len(self._index)
