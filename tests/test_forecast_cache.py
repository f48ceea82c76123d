import json
import unittest

from suncal.forecast_cache import (
    InMemoryForecastCache,
    RedisForecastCache,
    cache_url,
    decode_payload,
)
from suncal.models import ForecastRequestKey

KEY = ForecastRequestKey("30.480", "-97.7", "800")
PAYLOAD = [
    {"uv": 0.1, "uv_time": "2024-06-01T06:00:00.000Z"},
    {"uv": 4.7, "uv_time": "2024-06-01T12:00:00.000Z", "sun_position": {"azimuth": 1.2}},
]


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.expires = {}

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.expires[key] = ttl

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        self.store.pop(key, None)
        self.expires.pop(key, None)

    def scan_iter(self, pattern):
        prefix = pattern.rstrip("*")
        return [k for k in list(self.store.keys()) if k.startswith(prefix)]


class BrokenRedis(FakeRedis):
    def setex(self, key, ttl, value):
        raise ConnectionError("redis down")


class TestCacheKey(unittest.TestCase):
    def test_cache_url_percent_encodes_raw_strings(self):
        url = cache_url(ForecastRequestKey("30.48", "-97.7", "8 00"))
        self.assertEqual(url, "https://cache.sun-cal/uv?lat=30.48&lng=-97.7&alt=8%2000")

    def test_textually_different_numbers_are_distinct_keys(self):
        self.assertNotEqual(
            cache_url(ForecastRequestKey("30.480", "-97.7", "800")),
            cache_url(ForecastRequestKey("30.48", "-97.7", "800")),
        )


class TestDecodePayload(unittest.TestCase):
    def test_accepts_plain_array(self):
        self.assertEqual(decode_payload(json.dumps(PAYLOAD)), PAYLOAD)

    def test_accepts_result_envelope(self):
        raw = json.dumps({"result": PAYLOAD, "status": "ok"}).encode("utf-8")
        self.assertEqual(decode_payload(raw), PAYLOAD)

    def test_rejects_other_shapes(self):
        self.assertIsNone(decode_payload(b'{"items": []}'))
        self.assertIsNone(decode_payload(b"42"))
        self.assertIsNone(decode_payload(b"not json"))


class TestInMemoryForecastCache(unittest.TestCase):
    def test_round_trip_preserves_payload(self):
        cache = InMemoryForecastCache()
        self.assertIsNone(cache.get(KEY))
        cache.put(KEY, PAYLOAD)
        self.assertEqual(cache.get(KEY), PAYLOAD)

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = InMemoryForecastCache(ttl_seconds=1800, clock=clock)
        cache.put(KEY, PAYLOAD)

        clock.now += 1799
        self.assertIsNotNone(cache.get(KEY))
        clock.now += 1
        self.assertIsNone(cache.get(KEY))

    def test_last_write_wins(self):
        cache = InMemoryForecastCache()
        cache.put(KEY, PAYLOAD)
        cache.put(KEY, PAYLOAD[:1])
        self.assertEqual(cache.get(KEY), PAYLOAD[:1])


class TestRedisForecastCache(unittest.TestCase):
    def test_put_uses_prefixed_key_and_ttl(self):
        client = FakeRedis()
        cache = RedisForecastCache(client, ttl_seconds=1800, prefix="sun-cal:uv:")
        cache.put(KEY, PAYLOAD)

        expected_key = "sun-cal:uv:https://cache.sun-cal/uv?lat=30.480&lng=-97.7&alt=800"
        self.assertIn(expected_key, client.store)
        self.assertEqual(client.expires[expected_key], 1800)
        self.assertEqual(json.loads(client.store[expected_key]), PAYLOAD)
        self.assertEqual(cache.get(KEY), PAYLOAD)

    def test_reads_legacy_envelope_entries(self):
        client = FakeRedis()
        cache = RedisForecastCache(client)
        client.store[cache._key(KEY)] = json.dumps({"result": PAYLOAD}).encode("utf-8")
        self.assertEqual(cache.get(KEY), PAYLOAD)

    def test_write_failure_is_swallowed(self):
        cache = RedisForecastCache(BrokenRedis())
        cache.put(KEY, PAYLOAD)  # must not raise
        self.assertIsNone(cache.get(KEY))

    def test_clear_only_touches_prefix(self):
        client = FakeRedis()
        client.store["other:key"] = b"[]"
        cache = RedisForecastCache(client, prefix="sun-cal:uv:")
        cache.put(KEY, PAYLOAD)
        cache.clear()
        self.assertEqual(list(client.store), ["other:key"])


if __name__ == "__main__":
    unittest.main()
