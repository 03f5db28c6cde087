"""Two-tier request cache keyed by content hashes of entries."""

from __future__ import annotations

import copy
import hashlib
import json
from typing import Any

import structlog

from ..config import Entry
from ..config.models import ONE_DAY
from ..infra import KeyValueStore, MemoryStore

# Largest delay a 32-bit signed millisecond timer can hold
MAX_TTL_SECONDS = 2147483647 / 1000

RESPONSE_PREFIX = "response-"
RESULT_PREFIX = "result-"


def cache_key(entry: Entry, full_result: bool = False) -> str:
    """Return the namespaced cache key for ``entry``.

    The result tier hashes the whole entry, since a finished result depends on
    its selector and ``then`` chain. The response tier hashes only the fields
    that shape the HTTP request, so entries that differ only in
    post-processing share one raw response.
    """

    if full_result:
        payload = entry.model_dump(mode="json")
    else:
        payload = entry.request_fields()
    serialized = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    prefix = RESULT_PREFIX if full_result else RESPONSE_PREFIX
    return prefix + digest


def clamp_ttl(seconds: float) -> float:
    return min(seconds, MAX_TTL_SECONDS)


class Cache:
    """Time-bounded cache shared by every request using the same store."""

    def __init__(self, store: KeyValueStore | None = None, default_ttl: float = ONE_DAY) -> None:
        self.store = store if store is not None else MemoryStore()
        self.default_ttl = default_ttl
        self.logger = structlog.get_logger("sieve.cache")

    def get(self, entry: Entry, full_result: bool = False) -> Any | None:
        key = cache_key(entry, full_result)
        value = self.store.get(key)
        if value is None:
            return None
        self.logger.debug("cache_hit", key=key, url=entry.url)
        # Callers annotate results; keep stored copies pristine
        return copy.deepcopy(value) if full_result else value

    def put(self, entry: Entry, value: Any, full_result: bool = False, ttl: float | None = None) -> str:
        key = cache_key(entry, full_result)
        if ttl is None:
            ttl = entry.cache if entry.cache is not None else self.default_ttl
        stored = copy.deepcopy(value) if full_result else value
        self.store.put(key, stored, clamp_ttl(ttl))
        return key

    def clear(self) -> None:
        self.store.clear()


_default_cache: Cache | None = None


def default_cache() -> Cache:
    """Return the process-wide cache used when none is injected."""

    global _default_cache
    if _default_cache is None:
        _default_cache = Cache()
    return _default_cache


def set_default_cache(cache: Cache | None) -> None:
    global _default_cache
    _default_cache = cache


__all__ = [
    "Cache",
    "MAX_TTL_SECONDS",
    "RESPONSE_PREFIX",
    "RESULT_PREFIX",
    "cache_key",
    "clamp_ttl",
    "default_cache",
    "set_default_cache",
]
