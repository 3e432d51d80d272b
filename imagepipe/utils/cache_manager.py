# imagepipe/utils/cache_manager.py

"""
Cache Manager - In-memory memoization of processed image results.

Stores fingerprint -> ProcessedResult with a fixed TTL and a maximum entry
count. Expiry is lazy: an entry past its TTL is only removed when it is looked
up (or when purge_expired() is called explicitly). There is no background
sweep.

Capacity eviction removes the entry with the oldest insertion time. Reads
never refresh that time, so this is oldest-insertion eviction rather than LRU.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional

from ..constants import DEFAULT_CACHE_MAX_SIZE, DEFAULT_CACHE_TTL_SECONDS
from ..enums import LogEmoji, LoggerName, LogSource
from ..models.processed_result_model import ProcessedResult
from ..services.logger import get_service_logger

logger = get_service_logger(LoggerName.RESULT_CACHE, LogSource.CACHE)


class CacheEntry:
    """Individual cache entry. Owned by ResultCache, never handed out."""

    def __init__(self, fingerprint: str, result: ProcessedResult, created_at: float):
        self.fingerprint = fingerprint
        self.result = result
        self.created_at = created_at

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """Check if cache entry has outlived the TTL."""
        return now - self.created_at > ttl_seconds

    def get_age_seconds(self, now: float) -> float:
        """Get age of cache entry in seconds."""
        return now - self.created_at


class ResultCache:
    """
    Capacity-bounded TTL cache for processed results.

    All access is serialized through an asyncio.Lock; the internal map is
    only mutated by this class.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_MAX_SIZE,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_size: Maximum number of entries (must be positive)
            ttl_seconds: Seconds an entry stays valid after insertion
            clock: Monotonic time source, injectable for tests
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._cache

    async def get(self, fingerprint: str) -> Optional[ProcessedResult]:
        """
        Get a cached result if present and not expired.

        Expired entries are deleted on the spot and reported as a miss.

        Args:
            fingerprint: Cache key

        Returns:
            Cached result or None
        """
        async with self._lock:
            entry = self._cache.get(fingerprint)
            if entry is None:
                self._misses += 1
                logger.debug(f"Cache miss: {fingerprint[:16]}", emoji=LogEmoji.MISS)
                return None

            now = self._clock()
            if entry.is_expired(now, self.ttl_seconds):
                del self._cache[fingerprint]
                self._expirations += 1
                self._misses += 1
                logger.debug(
                    f"Cache expired and removed: {fingerprint[:16]}",
                    emoji=LogEmoji.EXPIRED,
                )
                return None

            self._hits += 1
            logger.debug(
                f"Cache hit: {fingerprint[:16]} (age: {entry.get_age_seconds(now):.1f}s)",
                emoji=LogEmoji.HIT,
            )
            return entry.result

    async def set(self, fingerprint: str, result: ProcessedResult) -> None:
        """
        Store a result.

        Inserting a new key into a full cache first evicts exactly one entry,
        the one with the oldest insertion time. Overwriting an existing key
        replaces it in place without evicting anything.
        """
        async with self._lock:
            if fingerprint not in self._cache and len(self._cache) >= self.max_size:
                self._remove_oldest_entry()

            self._cache[fingerprint] = CacheEntry(fingerprint, result, self._clock())
            logger.debug(
                f"Cached: {fingerprint[:16]} (entries: {len(self._cache)}/{self.max_size})",
                emoji=LogEmoji.STORE,
            )

    def _remove_oldest_entry(self) -> None:
        """Linear scan for the smallest created_at. Caller holds the lock."""
        oldest_key: Optional[str] = None
        oldest_time: Optional[float] = None

        for key, entry in self._cache.items():
            if oldest_time is None or entry.created_at < oldest_time:
                oldest_time = entry.created_at
                oldest_key = key

        if oldest_key is not None:
            del self._cache[oldest_key]
            self._evictions += 1
            logger.debug(f"Evicted oldest entry: {oldest_key[:16]}")

    async def delete(self, fingerprint: str) -> bool:
        """Delete a specific entry. Returns True if it existed."""
        async with self._lock:
            if fingerprint in self._cache:
                del self._cache[fingerprint]
                return True
        return False

    async def clear(self) -> None:
        """Clear all cache entries."""
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            logger.info(f"Cache cleared: {count} entries removed", emoji=LogEmoji.CLEANUP)

    async def purge_expired(self) -> int:
        """
        Remove every expired entry now.

        Only runs when called; nothing schedules it.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [
                key
                for key, entry in self._cache.items()
                if entry.is_expired(now, self.ttl_seconds)
            ]
            for key in expired_keys:
                del self._cache[key]

            self._expirations += len(expired_keys)
            if expired_keys:
                logger.debug(
                    f"Removed {len(expired_keys)} expired cache entries",
                    emoji=LogEmoji.EXPIRED,
                )
            return len(expired_keys)

    async def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        async with self._lock:
            now = self._clock()
            ages = [entry.get_age_seconds(now) for entry in self._cache.values()]
            lookups = self._hits + self._misses
            return {
                "total_entries": len(self._cache),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hit_ratio": (self._hits / lookups) if lookups else 0.0,
                "evictions": self._evictions,
                "expirations": self._expirations,
                "oldest_entry_age": max(ages) if ages else None,
                "newest_entry_age": min(ages) if ages else None,
            }
