"""
Cache manager for collaborator signals
Mined affinity rules and velocity snapshots are expensive to gather
and change slowly, so they are cached between requests.
"""
import time
from typing import Optional, Dict, Any, Iterable
from collections import OrderedDict
from dataclasses import dataclass

from menu_reco.core.config import settings


@dataclass
class CacheEntry:
    """Cache entry with metadata"""
    data: Any
    timestamp: float
    ttl: int
    hits: int = 0

    def is_expired(self) -> bool:
        """Check if entry is expired"""
        return time.time() - self.timestamp > self.ttl

    def touch(self):
        """Update hit count"""
        self.hits += 1


class SignalCache:
    """
    LRU cache with TTL support

    Lives in the service layer only; the scoring core never reads it.
    """

    def __init__(self, max_size: int = 1000, default_ttl: int = 3600):
        """
        Initialize cache

        Args:
            max_size: Maximum number of entries
            default_ttl: Default time-to-live in seconds
        """
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
            "expirations": 0
        }

    @staticmethod
    def make_key(prefix: str, *parts: Any, ids: Optional[Iterable[str]] = None) -> str:
        """
        Build a cache key; id collections are sorted so order does not matter
        """
        key = ":".join([prefix, *(str(p) for p in parts)])
        if ids is not None:
            key += ":" + ",".join(sorted(str(i) for i in ids))
        return key

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired
        """
        if key not in self._cache:
            self._stats["misses"] += 1
            return None

        entry = self._cache[key]

        if entry.is_expired():
            self._stats["expirations"] += 1
            self._stats["misses"] += 1
            del self._cache[key]
            return None

        # Move to end (most recently used)
        self._cache.move_to_end(key)
        entry.touch()
        self._stats["hits"] += 1

        return entry.data

    def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (uses default if None)
        """
        if len(self._cache) >= self.max_size and key not in self._cache:
            self._evict_oldest()

        self._cache[key] = CacheEntry(
            data=value,
            timestamp=time.time(),
            ttl=ttl if ttl is not None else self.default_ttl
        )
        self._cache.move_to_end(key)

    def delete(self, key: str) -> bool:
        """
        Delete key from cache

        Returns:
            True if deleted, False if not found
        """
        if key in self._cache:
            del self._cache[key]
            return True
        return False

    def clear(self):
        """Clear all cache entries"""
        self._stats["evictions"] += len(self._cache)
        self._cache.clear()

    def _evict_oldest(self):
        """Evict the least recently used entry"""
        if self._cache:
            self._cache.popitem(last=False)
            self._stats["evictions"] += 1

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries

        Returns:
            Number of entries removed
        """
        expired_keys = [
            key for key, entry in self._cache.items()
            if entry.is_expired()
        ]

        for key in expired_keys:
            del self._cache[key]

        self._stats["expirations"] += len(expired_keys)
        return len(expired_keys)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        total_requests = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total_requests if total_requests > 0 else 0

        return {
            "size": len(self._cache),
            "max_size": self.max_size,
            "utilization": len(self._cache) / self.max_size if self.max_size > 0 else 0,
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "hit_rate": round(hit_rate, 4),
            "evictions": self._stats["evictions"],
            "expirations": self._stats["expirations"],
            "total_requests": total_requests
        }


_cache_instance = SignalCache(
    max_size=settings.SIGNAL_CACHE_MAX_SIZE,
    default_ttl=settings.AFFINITY_CACHE_TTL
)


def get_cache() -> SignalCache:
    """Get the shared signal cache"""
    return _cache_instance
