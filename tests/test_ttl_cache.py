import unittest

from services.ttl_cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTTLCache(unittest.TestCase):
    def test_hit_before_expiry_miss_after(self):
        clock = FakeClock()
        cache = TTLCache(300, clock=clock)
        cache.set("AAPL", 190.5)

        clock.now += 299
        self.assertEqual(cache.get("AAPL"), 190.5)

        clock.now += 1
        self.assertIsNone(cache.get("AAPL"))
        self.assertEqual(len(cache), 0)

    def test_set_refreshes_timestamp(self):
        clock = FakeClock()
        cache = TTLCache(10, clock=clock)
        cache.set("k", 1)
        clock.now += 8
        cache.set("k", 2)
        clock.now += 8
        self.assertEqual(cache.get("k"), 2)

    def test_invalidate_and_clear(self):
        cache = TTLCache(60, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        self.assertNotIn("a", cache)
        self.assertIn("b", cache)
        cache.clear()
        self.assertEqual(len(cache), 0)

    def test_write_sweeps_expired_entries(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)
        for i in range(500):
            cache.set(f"query-{i}", i)
        self.assertEqual(cache.stored, 500)

        clock.now += 61
        cache.set("fresh", 1)
        self.assertEqual(cache.stored, 1)
        self.assertEqual(cache.get("fresh"), 1)

    def test_maxsize_evicts_oldest_write(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock, maxsize=2)
        cache.set("a", 1)
        clock.now += 1
        cache.set("b", 2)
        clock.now += 1
        cache.set("a", 3)  # rewrite moves "a" to the back
        cache.set("c", 4)

        self.assertIsNone(cache.get("b"))
        self.assertEqual(cache.get("a"), 3)
        self.assertEqual(cache.get("c"), 4)
        self.assertEqual(cache.stored, 2)

    def test_bad_maxsize_rejected(self):
        with self.assertRaises(ValueError):
            TTLCache(10, maxsize=0)

    def test_negative_ttl_rejected(self):
        with self.assertRaises(ValueError):
            TTLCache(-1)


if __name__ == "__main__":
    unittest.main()
