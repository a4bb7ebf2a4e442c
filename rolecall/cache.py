"""Bounded in-memory response cache with time-based expiry."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_TTL = 3600.0
DEFAULT_MAX_ENTRIES = 50


@dataclass(slots=True)
class _CacheEntry:
    value: Any
    stored_at: float


class TTLCache(Generic[V]):
    """Memoize values by key for ``ttl`` seconds, keeping at most ``max_entries``.

    An expired entry is reported as a miss but stays in place until it is
    overwritten or evicted. Eviction removes the oldest entries first.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, _CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache miss: {key}")
            return None
        if self._clock() - entry.stored_at >= self.ttl:
            logger.debug(f"Cache expired: {key}")
            return None
        logger.debug(f"Cache hit: {key}")
        return entry.value

    def put(self, key: Hashable, value: V) -> None:
        # Re-inserting moves the key to the end so ties on timestamp still
        # evict in insertion order.
        self._entries.pop(key, None)
        self._entries[key] = _CacheEntry(value=value, stored_at=self._clock())
        self._evict()

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[Any]:
        return list(self._entries)

    def _evict(self) -> None:
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries.items(), key=lambda item: item[1].stored_at)[:overflow]
        for key, _ in oldest:
            del self._entries[key]
            logger.debug(f"Cache evicted: {key}")
