"""
In-memory cache for live flight views.

Provides a time-aware cache for assembled live views, enabling:
- Cheap repeated reads of an in-progress flight (share links, profile pages)
- Automatic expiration of stale entries
- Thread-safe operations for concurrent access

Building a live view reads the flight's whole telemetry series; entries
live for a few seconds. Finalize and delete invalidate the entry
immediately, so a completed flight is never served from here.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional, Dict

from logbook.config import config

logger = logging.getLogger(__name__)


@dataclass
class CachedView:
    """An assembled view plus cache metadata."""
    flight_id: int
    view: dict
    cached_at: float = field(default_factory=time.time)


class LiveViewCache:
    """
    Thread-safe TTL cache of live flight views keyed by flight id.
    """

    def __init__(
        self,
        ttl_seconds: int = None,
        max_entries: int = None,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.cache.ttl_seconds
        self.max_entries = max_entries or config.cache.max_entries

        self._cache: Dict[int, CachedView] = {}
        self._lock = threading.RLock()

        # Statistics
        self._hits = 0
        self._misses = 0

    def get(self, flight_id: int) -> Optional[dict]:
        """
        Get a cached view.

        Returns None if not cached or expired.
        """
        with self._lock:
            entry = self._cache.get(flight_id)
            if entry is not None:
                if time.time() - entry.cached_at < self.ttl_seconds:
                    self._hits += 1
                    return entry.view
                del self._cache[flight_id]
            self._misses += 1
        return None

    def put(self, flight_id: int, view: dict) -> None:
        """Cache a freshly assembled view."""
        with self._lock:
            self._cache[flight_id] = CachedView(flight_id, view)

            if len(self._cache) > self.max_entries:
                self._evict_oldest()

    def _evict_oldest(self) -> None:
        """Remove oldest entries when over capacity."""
        entries = sorted(self._cache.items(), key=lambda x: x[1].cached_at)
        # Remove oldest 10%
        to_remove = max(1, len(entries) // 10)
        for flight_id, _ in entries[:to_remove]:
            del self._cache[flight_id]
        logger.debug(f'Evicted {to_remove} live views')

    def invalidate(self, flight_id: int) -> None:
        """Remove specific entry from cache."""
        with self._lock:
            self._cache.pop(flight_id, None)

    def clear(self) -> None:
        """Clear entire cache."""
        with self._lock:
            self._cache.clear()

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                'entries': len(self._cache),
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / lookups if lookups > 0 else 0,
            }


# Singleton instance
live_view_cache = LiveViewCache()
