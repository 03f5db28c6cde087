from __future__ import annotations

from sieve.config import Entry
from sieve.engine import Cache, cache_key
from sieve.engine.cache import MAX_TTL_SECONDS, RESPONSE_PREFIX, RESULT_PREFIX
from sieve.infra import MemoryStore


def test_put_then_get_roundtrip(cache: Cache) -> None:
    entry = Entry(url="http://example.com/a")
    cache.put(entry, "hello")
    assert cache.get(entry) == "hello"
    assert cache.get(entry, full_result=True) is None


def test_records_expire_after_entry_ttl(cache: Cache, clock) -> None:
    entry = Entry(url="http://example.com/a", cache=30)
    cache.put(entry, "hello")
    clock.advance(29)
    assert cache.get(entry) == "hello"
    clock.advance(1)
    assert cache.get(entry) is None


def test_default_ttl_is_one_day(clock) -> None:
    store = MemoryStore(clock=clock)
    cache = Cache(store)
    entry = Entry(url="http://example.com/a")
    cache.put(entry, "hello")
    clock.advance(60 * 60 * 24 - 1)
    assert cache.get(entry) == "hello"
    clock.advance(1)
    assert cache.get(entry) is None


def test_ttl_is_clamped_to_timer_maximum(clock) -> None:
    store = MemoryStore(clock=clock)
    cache = Cache(store)
    entry = Entry(url="http://example.com/a", cache=10**12)
    key = cache.put(entry, "hello")
    assert store._records[key].expires_at == clock.now + MAX_TTL_SECONDS


def test_response_key_ignores_post_processing() -> None:
    plain = Entry(url="http://example.com/a", headers={"Accept": "text/html"})
    selected = Entry(
        url="http://example.com/a",
        headers={"Accept": "text/html"},
        selector=".title",
        then={"url": "http://example.com/{{value}}"},
    )
    assert cache_key(plain) == cache_key(selected)
    assert cache_key(plain, full_result=True) != cache_key(selected, full_result=True)


def test_response_key_tracks_http_shape() -> None:
    base = Entry(url="http://example.com/a")
    assert cache_key(base) != cache_key(Entry(url="http://example.com/b"))
    assert cache_key(base) != cache_key(Entry(url="http://example.com/a", method="POST"))
    assert cache_key(base) != cache_key(Entry(url="http://example.com/a", cache=5))


def test_key_is_independent_of_header_order() -> None:
    first = Entry(url="http://example.com", headers={"A": "1", "B": "2"})
    second = Entry(url="http://example.com", headers={"B": "2", "A": "1"})
    assert cache_key(first) == cache_key(second)


def test_tiers_are_namespaced() -> None:
    entry = Entry(url="http://example.com")
    assert cache_key(entry).startswith(RESPONSE_PREFIX)
    assert cache_key(entry, full_result=True).startswith(RESULT_PREFIX)


def test_result_values_are_copied(cache: Cache) -> None:
    entry = Entry(url="http://example.com")
    record = {"value": "hello", "selection": None}
    cache.put(entry, record, full_result=True)
    record["value"] = "mutated"
    fetched = cache.get(entry, full_result=True)
    fetched["cached"] = "result"
    assert cache.get(entry, full_result=True) == {"value": "hello", "selection": None}


def test_clear_drops_everything(cache: Cache) -> None:
    entry = Entry(url="http://example.com")
    cache.put(entry, "raw")
    cache.put(entry, {"value": "raw"}, full_result=True)
    cache.clear()
    assert cache.get(entry) is None
    assert cache.get(entry, full_result=True) is None
