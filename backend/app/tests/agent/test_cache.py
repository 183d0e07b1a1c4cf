import unittest

from app.agent.cache import LRUCache, cached_call, make_key


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestLRUCache(unittest.TestCase):
    def test_rejects_non_positive_size(self):
        with self.assertRaises(ValueError):
            LRUCache(max_size=0)

    def test_evicts_least_recently_used(self):
        cache = LRUCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        self.assertEqual(cache.get("a"), 1)  # "b" is now the oldest
        cache.set("c", 3)

        self.assertNotIn("b", cache)
        self.assertIn("a", cache)
        self.assertIn("c", cache)
        self.assertEqual(cache.stats()["evictions"], 1)

    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        cache = LRUCache(max_size=4, ttl_seconds=10, clock=clock)
        cache.set("a", "value")

        clock.now = 9.9
        self.assertEqual(cache.get("a"), "value")
        clock.now = 10.0
        self.assertIsNone(cache.get("a"))
        self.assertEqual(len(cache), 0)

    def test_get_or_compute_only_computes_once(self):
        cache = LRUCache(max_size=4)
        calls = []

        def compute():
            calls.append(1)
            return {"answer": 42}

        first = cache.get_or_compute("ns", ("x", 1), compute)
        second = cache.get_or_compute("ns", ("x", 1), compute)

        self.assertIs(first, second)
        self.assertEqual(len(calls), 1)
        self.assertEqual(cache.stats(), {"hits": 1, "misses": 1, "evictions": 0, "size": 1, "max_size": 4})

    def test_delete_and_clear(self):
        cache = LRUCache()
        cache.set("a", 1)
        cache.set("b", 2)
        self.assertTrue(cache.delete("a"))
        self.assertFalse(cache.delete("a"))
        cache.clear()
        self.assertEqual(len(cache), 0)

    def test_cached_value_can_be_falsy(self):
        cache = LRUCache()
        calls = []
        cache.get_or_compute("ns", (), lambda: calls.append(1))
        cache.get_or_compute("ns", (), lambda: calls.append(1))
        self.assertEqual(len(calls), 1)


class TestKeys(unittest.TestCase):
    def test_key_is_stable_across_dict_ordering(self):
        self.assertEqual(make_key("ns", {"a": 1, "b": 2}), make_key("ns", {"b": 2, "a": 1}))

    def test_namespaces_do_not_collide(self):
        self.assertNotEqual(make_key("svg.validate", "<svg/>"), make_key("svg.repair", "<svg/>"))

    def test_cached_call_without_cache_always_computes(self):
        calls = []
        cached_call(None, "ns", (), lambda: calls.append(1))
        cached_call(None, "ns", (), lambda: calls.append(1))
        self.assertEqual(len(calls), 2)


if __name__ == "__main__":
    unittest.main()
