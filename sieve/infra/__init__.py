"""Infra layer utilities (cache storage backends)."""

from .storage import CacheRecord, KeyValueStore, MemoryStore, SQLiteManager, SQLiteStore

__all__ = ["CacheRecord", "KeyValueStore", "MemoryStore", "SQLiteManager", "SQLiteStore"]
