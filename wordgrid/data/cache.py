"""In-memory probability cache.

Completion requests are the only slow, billable operation in the engine, so
every fetched probability is kept here for a short while and served to both
the suggestion list and the heatmap recompute.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Generic, Hashable, Optional, Sequence, Tuple, TypeVar

from ..core.constants import CACHE_KEY_SEPARATOR, CONTEXT_SEPARATOR
from ..utils.clock import Clock, MonotonicClock
from ..utils.logger import get_logger
from .normalization import normalize_word


LOGGER = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def context_fingerprint(words: Sequence[str]) -> str:
    """Serialize context words into the fingerprint used in cache keys."""

    return CONTEXT_SEPARATOR.join(words)


def make_cache_key(context_words: Sequence[str], word: str) -> str:
    """Build ``"<fingerprint>::<normalized word>"`` from raw context words."""

    return _key(context_fingerprint(context_words), word)


def _key(fingerprint: str, word: str) -> str:
    return f"{fingerprint}{CACHE_KEY_SEPARATOR}{normalize_word(word)}"


class ExpiringLRUCache(Generic[K, V]):
    """Bounded mapping with least-recently-used eviction and a fixed TTL.

    Eviction strategy
    -----------------
    * count: inserting beyond ``capacity`` drops the least recently used entry;
    * age: every entry expires ``ttl_seconds`` after it was written, whatever
      its access pattern.

    Both limits are enforced lazily inside :meth:`get` and :meth:`put`; there
    is no background sweep. Each operation holds the lock for its whole
    duration so entry counts stay consistent under concurrent callers.
    """

    def __init__(
        self,
        capacity: int,
        ttl_seconds: float,
        clock: Optional[Clock] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self.clock: Clock = clock or MonotonicClock()
        self._entries: "OrderedDict[K, Tuple[V, float]]" = OrderedDict()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self.clock.now() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def put(self, key: K, value: V) -> None:
        with self._lock:
            now = self.clock.now()
            self._entries[key] = (value, now + self.ttl_seconds)
            self._entries.move_to_end(key)
            self._purge_expired(now)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                LOGGER.debug("Cache evicted %s", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _purge_expired(self, now: float) -> None:
        # Reads reorder entries, so LRU order is not expiry order.
        expired = [
            key for key, (_, expires_at) in self._entries.items() if expires_at <= now
        ]
        for key in expired:
            del self._entries[key]


class ProbabilityCache:
    """Maps (context fingerprint, candidate word) to a probability."""

    def __init__(
        self,
        capacity: int = 1000,
        ttl_seconds: float = 300.0,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store: ExpiringLRUCache[str, float] = ExpiringLRUCache(
            capacity, ttl_seconds, clock
        )

    def get(self, fingerprint: str, word: str) -> Optional[float]:
        value = self._store.get(_key(fingerprint, word))
        if value is None:
            LOGGER.debug("Probability cache miss: %s / %s", fingerprint, word)
        return value

    def put(self, fingerprint: str, word: str, probability: float) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"Probability out of range: {probability}")
        self._store.put(_key(fingerprint, word), probability)

    def clear(self) -> None:
        self._store.clear()

    def size(self) -> int:
        return self._store.size()

    def __len__(self) -> int:
        return self.size()
