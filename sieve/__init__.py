"""Declarative fetch, extract and chain engine."""

from .config import Entry, SieveOptions
from .engine import Cache, default_cache, extract
from .errors import (
    ChainConfigError,
    ExtractionError,
    FetchError,
    FetchTimeoutError,
    MissingURLError,
    ParseError,
    RetryExhaustedError,
    SieveError,
    ValidationError,
)
from .orchestrator import Sieve, fetch, fetch_sync

__all__ = [
    "Cache",
    "ChainConfigError",
    "Entry",
    "ExtractionError",
    "FetchError",
    "FetchTimeoutError",
    "MissingURLError",
    "ParseError",
    "RetryExhaustedError",
    "Sieve",
    "SieveError",
    "SieveOptions",
    "ValidationError",
    "default_cache",
    "extract",
    "fetch",
    "fetch_sync",
]
