"""
In-Process TTL Cache.

Caches consensus results keyed by input fingerprint:
- Lazy expiry: an expired entry is deleted on the read that finds it
- FIFO eviction: when full, the earliest-inserted entry goes (reads never refresh)
- Periodic sweep: removes all expired entries in small locked batches

No persistence. The cache is empty after every restart.
"""

import hashlib
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL = 300           # 5 minutes
SWEEP_BATCH_SIZE = 50       # Keys deleted per lock hold during a sweep


@dataclass
class CacheEntry:
    key: str
    value: Any
    inserted_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """
    Bounded TTL cache, safe to share across concurrent requests.

    All mutations happen under one lock. The sweep re-acquires the lock per
    batch so it never holds it for more than SWEEP_BATCH_SIZE deletions.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                logger.debug("cache_expired", key=key)
                return None
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Insert or replace a value. Evicts the earliest insertion when full."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        with self._lock:
            now = self._clock()
            # Replacing a key keeps its original insertion slot.
            if key not in self._entries and len(self._entries) >= self.max_size:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("cache_evicted", key=evicted_key)
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                inserted_at=now,
                expires_at=now + ttl,
            )

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove every expired entry. Returns count removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]

        removed = 0
        for start in range(0, len(expired), SWEEP_BATCH_SIZE):
            batch = expired[start:start + SWEEP_BATCH_SIZE]
            with self._lock:
                now = self._clock()
                for key in batch:
                    entry = self._entries.get(key)
                    # Skip keys re-set since the snapshot was taken
                    if entry is not None and entry.is_expired(now):
                        del self._entries[key]
                        removed += 1
        if removed:
            with self._lock:
                self._expirations += removed
            logger.info("cache_swept", removed=removed, remaining=len(self))
        return removed

    def stats(self) -> dict:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


# ── Cache key builders ───────────────────────────────────────────────────

FINGERPRINT_WINDOW = 10


def prediction_cache_key(series: Sequence[float], strategy: str) -> str:
    """Fingerprint of the last 10 observations plus strategy."""
    recent = [float(v) for v in series[-FINGERPRINT_WINDOW:]]
    digest = hashlib.sha256(
        json.dumps(recent, separators=(",", ":")).encode("utf-8")
    ).hexdigest()[:32]
    return f"predict:{strategy}:{digest}"
