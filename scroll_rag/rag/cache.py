from __future__ import annotations

"""Bounded, time-expiring cache of answers keyed by question and language."""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_CAPACITY = 100
DEFAULT_EVICT_BATCH = 20


@dataclass(frozen=True)
class CacheEntry:
    """Cached answer with its creation time."""
    answer: str
    timestamp: float


def cache_key(question: str, language: str) -> str:
    """Build the cache key from the language and normalized question."""
    return f"{language}:{question.strip().lower()}"


@dataclass
class ResponseCache:
    """Answer memo with TTL expiry and batched oldest-first eviction.

    Expired entries are dropped when read. When a write pushes the size past
    ``capacity``, the ``evict_batch`` oldest entries are removed in one pass.
    """
    ttl_seconds: float = DEFAULT_TTL_SECONDS
    capacity: int = DEFAULT_CAPACITY
    evict_batch: int = DEFAULT_EVICT_BATCH
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, CacheEntry] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    counters: dict[str, int] = field(
        default_factory=lambda: {"hits": 0, "misses": 0, "expired": 0, "evicted": 0}
    )

    def get(self, question: str, language: str) -> str | None:
        """Return a fresh cached answer, or None on a miss."""
        key = cache_key(question, language)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.counters["misses"] += 1
                return None
            if self.clock() - entry.timestamp < self.ttl_seconds:
                self.counters["hits"] += 1
                return entry.answer
            del self._entries[key]
            self.counters["expired"] += 1
            self.counters["misses"] += 1
            return None

    def put(self, question: str, language: str, answer: str) -> None:
        """Store an answer, evicting the oldest entries when over capacity."""
        key = cache_key(question, language)
        with self._lock:
            self._entries[key] = CacheEntry(answer=answer, timestamp=self.clock())
            if len(self._entries) <= self.capacity:
                return
            oldest = sorted(self._entries.items(), key=lambda item: item[1].timestamp)
            # Drop at least enough to get back under capacity.
            batch = max(self.evict_batch, len(self._entries) - self.capacity)
            for stale_key, _ in oldest[:batch]:
                del self._entries[stale_key]
            self.counters["evicted"] += min(batch, len(oldest))

    def clear(self) -> int:
        """Remove every entry and return how many were dropped."""
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            return dropped

    def snapshot(self) -> dict[str, int]:
        """Return the entry count and lookup counters."""
        with self._lock:
            return {"entries": len(self._entries), **self.counters}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
