from menu_reco.services.recommendations.cache import SignalCache


def test_get_and_set():
    cache = SignalCache(max_size=10, default_ttl=60)
    cache.set("k", {"a": 1.0})
    assert cache.get("k") == {"a": 1.0}
    assert cache.get("missing") is None

    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 0.5


def test_expired_entries_are_dropped():
    cache = SignalCache()
    cache.set("old", 1, ttl=-1)
    assert cache.get("old") is None
    assert cache.get_stats()["expirations"] == 1


def test_cleanup_expired():
    cache = SignalCache()
    cache.set("old", 1, ttl=-1)
    cache.set("fresh", 2)
    assert cache.cleanup_expired() == 1
    assert cache.get("fresh") == 2


def test_least_recently_used_is_evicted():
    cache = SignalCache(max_size=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get_stats()["evictions"] == 1


def test_make_key_ignores_id_order():
    assert SignalCache.make_key("affinity", ids=["b", "a"]) == "affinity:a,b"
    assert SignalCache.make_key("velocity", 24, ids=["x"]) == "velocity:24:x"


def test_delete_and_clear():
    cache = SignalCache()
    cache.set("a", 1)
    assert cache.delete("a") is True
    assert cache.delete("a") is False
    cache.set("b", 2)
    cache.clear()
    assert cache.get_stats()["size"] == 0
