import threading
import unittest

from wordgrid.data.cache import (ExpiringLRUCache, ProbabilityCache,
                                 context_fingerprint, make_cache_key)
from wordgrid.utils.clock import VirtualClock


class CacheKeyTests(unittest.TestCase):
    def test_key_joins_context_and_normalized_word(self) -> None:
        self.assertEqual(make_cache_key(["the", "quick"], "  Brown "), "the|quick::brown")
        self.assertEqual(context_fingerprint([]), "")


class ProbabilityCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = VirtualClock()

    def test_round_trip_before_expiry(self) -> None:
        cache = ProbabilityCache(capacity=10, ttl_seconds=300, clock=self.clock)
        cache.put("the|quick", "Brown", 0.4)
        self.assertEqual(cache.get("the|quick", "brown"), 0.4)
        self.assertEqual(cache.size(), 1)

    def test_entries_expire_after_ttl_regardless_of_reads(self) -> None:
        cache = ProbabilityCache(capacity=10, ttl_seconds=300, clock=self.clock)
        cache.put("sun", "rises", 0.5)
        self.clock.advance(200)
        self.assertEqual(cache.get("sun", "rises"), 0.5)
        self.clock.advance(100)
        self.assertIsNone(cache.get("sun", "rises"))
        self.assertEqual(cache.size(), 0)

    def test_capacity_evicts_least_recently_used(self) -> None:
        cache = ProbabilityCache(capacity=3, ttl_seconds=300, clock=self.clock)
        for index in range(4):
            cache.put("ctx", f"word{index}", 0.1)
        self.assertEqual(cache.size(), 3)
        self.assertIsNone(cache.get("ctx", "word0"))
        self.assertEqual(cache.get("ctx", "word3"), 0.1)

    def test_reads_refresh_recency(self) -> None:
        cache = ProbabilityCache(capacity=2, ttl_seconds=300, clock=self.clock)
        cache.put("ctx", "a", 0.1)
        cache.put("ctx", "b", 0.2)
        cache.get("ctx", "a")
        cache.put("ctx", "c", 0.3)
        self.assertEqual(cache.get("ctx", "a"), 0.1)
        self.assertIsNone(cache.get("ctx", "b"))

    def test_clear_and_validation(self) -> None:
        cache = ProbabilityCache(capacity=2, ttl_seconds=300, clock=self.clock)
        cache.put("ctx", "a", 1.0)
        cache.clear()
        self.assertEqual(len(cache), 0)
        with self.assertRaises(ValueError):
            cache.put("ctx", "a", 1.5)


class ExpiringLRUCacheTests(unittest.TestCase):
    def test_rejects_invalid_limits(self) -> None:
        with self.assertRaises(ValueError):
            ExpiringLRUCache(0, 10)
        with self.assertRaises(ValueError):
            ExpiringLRUCache(10, 0)

    def test_insert_purges_expired_entries(self) -> None:
        clock = VirtualClock()
        cache: ExpiringLRUCache[str, int] = ExpiringLRUCache(5, 10, clock)
        cache.put("old", 1)
        clock.advance(11)
        cache.put("new", 2)
        self.assertEqual(cache.size(), 1)
        self.assertIn("new", cache)
        self.assertNotIn("old", cache)

    def test_concurrent_writers_respect_capacity(self) -> None:
        cache: ExpiringLRUCache[str, int] = ExpiringLRUCache(50, 300)

        def writer(prefix: str) -> None:
            for index in range(200):
                cache.put(f"{prefix}-{index}", index)
                cache.get(f"{prefix}-{index // 2}")

        threads = [threading.Thread(target=writer, args=(str(n),)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(cache.size(), 50)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
