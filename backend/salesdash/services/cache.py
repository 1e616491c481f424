"""
Remote data cache.

Process-wide mapping from cache key to the last fetched record set. Entries
expire by TTL and the mapping is bounded: once ``capacity`` is reached the
least recently used entry is evicted.
"""
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Sequence


@dataclass(frozen=True)
class CacheEntry:
    records: Sequence
    timestamp: float
    ttl: float

    def is_fresh(self, now: float, ttl: Optional[float] = None) -> bool:
        return now - self.timestamp < (self.ttl if ttl is None else ttl)


class RecordCache:

    def __init__(self, capacity: int = 256, clock: Callable[[], float] = time.time):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def get(self, key: str, ttl: Optional[float] = None) -> Optional[CacheEntry]:
        """Return the entry for ``key`` if it is younger than ``ttl``.

        ``ttl`` defaults to the TTL the entry was stored with. Entries past
        their own TTL are dropped.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self.clock()
        if not entry.is_fresh(now):
            del self._entries[key]
            return None
        if not entry.is_fresh(now, ttl):
            return None
        self._entries.move_to_end(key)
        return entry

    def set(self, key: str, records: Sequence, ttl: float) -> CacheEntry:
        entry = CacheEntry(records=records, timestamp=self.clock(), ttl=ttl)
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)
        return entry

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def prune(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self.clock()
        expired = [k for k, e in self._entries.items() if not e.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
