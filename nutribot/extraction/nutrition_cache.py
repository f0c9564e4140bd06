"""In-memory caching for validated nutrition extractions.

Cache stores: normalized (food description, weight) → valid ValidationOutcome

DESIGN DECISIONS:
- In-memory only; entries do not survive a restart (the cache saves
  model calls, it is not needed for correctness)
- Key is lowercase(trim(name)) + ":" + weight, readable for debugging
- Only valid outcomes are stored; failures always go back to the model
- Expiry is checked lazily on read; cleanup_expired() sweeps the rest
- A single lock guards the map, so concurrent readers see either the
  old or the new entry, never a partial one
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from nutribot.data_layer.models import ValidationOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Cached extraction result.

    Attributes:
        key: Normalized cache key
        outcome: Valid outcome as produced by the model
        expires_at: Absolute expiry time on the cache clock
    """
    key: str
    outcome: ValidationOutcome
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class CacheStats:
    """Counters for observability."""
    hits: int
    misses: int
    size: int

    def to_dict(self) -> Dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "size": self.size}


def make_cache_key(food_name: str, weight_grams: float) -> str:
    """Build the cache key for a (food, weight) pair.

    Case- and surrounding-whitespace-insensitive on the name, exact on
    the weight: 100 and 100.0 share a key, 100 and 100.5 do not.
    """
    normalized = (food_name or "").strip().lower()
    weight = float(weight_grams)
    weight_str = str(int(weight)) if weight.is_integer() else repr(weight)
    return f"{normalized}:{weight_str}"


class NutritionCache:
    """Thread-safe TTL cache for validated nutrition outcomes.

    Usage:
        cache = NutritionCache(ttl_seconds=86400)

        cache.set("grilled chicken breast", 200, outcome)
        cached = cache.get("Grilled Chicken Breast ", 200)  # same entry

        removed = cache.cleanup_expired()
    """

    DEFAULT_TTL_SECONDS = 86400

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize cache.

        Args:
            ttl_seconds: Lifetime of each entry in seconds
            clock: Time source in seconds (injectable for tests)
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, food_name: str, weight_grams: float) -> Optional[ValidationOutcome]:
        """Return the cached outcome, or None on miss or expiry.

        An expired entry is evicted as a side effect of the read.
        """
        key = make_cache_key(food_name, weight_grams)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                return None

            self._hits += 1
            return entry.outcome

    def set(self, food_name: str, weight_grams: float, outcome: ValidationOutcome) -> None:
        """Store a valid outcome, replacing any existing entry for the key.

        Raises:
            ValueError: If the outcome is not valid
        """
        if not outcome.is_valid:
            raise ValueError("Only valid outcomes can be cached")

        key = make_cache_key(food_name, weight_grams)
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                outcome=outcome,
                expires_at=self._clock() + self.ttl_seconds
            )
            size = len(self._entries)

        logger.debug("Nutrition data cached: key=%s ttl=%ss size=%d", key, self.ttl_seconds, size)

    def invalidate(self, food_name: str, weight_grams: float) -> None:
        """Remove one entry if present."""
        key = make_cache_key(food_name, weight_grams)
        with self._lock:
            self._entries.pop(key, None)
        logger.debug("Cache entry invalidated: key=%s", key)

    def clear(self) -> None:
        """Remove every entry. Counters are kept."""
        with self._lock:
            previous_size = len(self._entries)
            self._entries.clear()
        logger.info("Nutrition cache cleared (%d entries)", previous_size)

    def cleanup_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            size = len(self._entries)

        if expired:
            logger.debug("Expired cache entries cleaned: removed=%d size=%d", len(expired), size)
        return len(expired)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


async def run_periodic_cleanup(cache: NutritionCache, interval_seconds: float) -> None:
    """Sweep expired entries every interval until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        cache.cleanup_expired()
