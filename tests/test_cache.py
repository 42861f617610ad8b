import threading

import pytest

from pocket.core.cache import IntentCache, cache_key
from pocket.core.models import ContentType, Convert, Intent, Send


def test_cache_key_normalises_command():
    assert cache_key("  Send   this to John! ", ContentType.DOCUMENT) == "send this to john_document"
    assert cache_key("send this to john", "image") == "send this to john_image"


def test_lru_eviction_and_recency():
    cache = IntentCache(capacity=2)
    a, b, c = (Intent(action=Send(target=n)) for n in ("A", "B", "C"))
    cache.put("a", a)
    cache.put("b", b)
    assert cache.get("a") is a  # a becomes most recent
    cache.put("c", c)
    assert "b" not in cache
    assert cache.get("a") is a
    assert cache.get("c") is c
    assert len(cache) == 2


def test_first_resolution_wins():
    cache = IntentCache()
    first = Intent(action=Convert(format="pdf"), confidence=0.9)
    cache.put("k", first)
    cache.put("k", Intent(action=Convert(format="png"), confidence=0.9))
    assert cache.get("k") is first


def test_hit_miss_counters_and_clear():
    cache = IntentCache()
    assert cache.get("missing") is None
    cache.put("k", Intent.hold())
    cache.get("k")
    assert (cache.hits, cache.misses) == (1, 1)
    cache.clear()
    assert len(cache) == 0
    assert (cache.hits, cache.misses) == (0, 0)


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        IntentCache(capacity=0)


def test_concurrent_puts_stay_bounded():
    cache = IntentCache(capacity=50)

    def worker(offset: int) -> None:
        for i in range(200):
            cache.put(f"{offset}-{i}", Intent.hold())
            cache.get(f"{offset}-{i // 2}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(cache) == 50
