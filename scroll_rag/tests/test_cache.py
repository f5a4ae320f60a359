from __future__ import annotations

import threading

from scroll_rag.rag.cache import ResponseCache, cache_key


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_cache_key_normalizes_question() -> None:
    assert cache_key("  Что ТАКОЕ обгон? ", "ru") == "ru:что такое обгон?"


def test_put_then_get_returns_answer() -> None:
    cache = ResponseCache(clock=FakeClock())
    cache.put("What is a stop?", "ru", "An answer")

    assert cache.get("  what is a STOP?", "ru") == "An answer"
    assert cache.get("What is a stop?", "kz") is None


def test_expired_entry_is_dropped() -> None:
    clock = FakeClock()
    cache = ResponseCache(ttl_seconds=300, clock=clock)
    cache.put("question", "ru", "answer")

    clock.now += 299
    assert cache.get("question", "ru") == "answer"
    clock.now += 1
    assert cache.get("question", "ru") is None
    assert len(cache) == 0
    assert cache.counters["expired"] == 1
    assert cache.snapshot() == {"entries": 0, "hits": 1, "misses": 1, "expired": 1, "evicted": 0}


def test_capacity_evicts_oldest_batch() -> None:
    clock = FakeClock()
    cache = ResponseCache(capacity=100, evict_batch=20, clock=clock)
    for idx in range(101):
        clock.now += 1
        cache.put(f"question {idx}", "ru", f"answer {idx}")

    assert len(cache) == 81
    assert all(cache.get(f"question {idx}", "ru") is None for idx in range(20))
    assert all(cache.get(f"question {idx}", "ru") == f"answer {idx}" for idx in range(20, 101))


def test_cache_never_exceeds_capacity() -> None:
    clock = FakeClock()
    cache = ResponseCache(capacity=100, evict_batch=20, clock=clock)
    for idx in range(537):
        clock.now += 0.5
        cache.put(f"q{idx % 250}", "ru" if idx % 2 else "kz", "a")
        assert len(cache) <= 100


def test_overwrite_refreshes_timestamp() -> None:
    clock = FakeClock()
    cache = ResponseCache(ttl_seconds=10, clock=clock)
    cache.put("q", "ru", "old")
    clock.now += 8
    cache.put("q", "ru", "new")
    clock.now += 8

    assert cache.get("q", "ru") == "new"


def test_concurrent_puts_stay_bounded() -> None:
    cache = ResponseCache(capacity=50, evict_batch=10)

    def writer(offset: int) -> None:
        for idx in range(200):
            cache.put(f"{offset}-{idx}", "ru", "a")
            cache.get(f"{offset}-{idx}", "ru")

    threads = [threading.Thread(target=writer, args=(offset,)) for offset in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) <= 50
