"""Engine components orchestrating cache → fetch → extract → accumulate."""

from .accumulator import Accumulator, chain_declaration
from .cache import Cache, cache_key, default_cache, set_default_cache
from .fetcher import FetchResponse, Fetcher
from .parser import Parser, extract
from .template import expand, parse_declaration, validate_declaration

__all__ = [
    "Accumulator",
    "Cache",
    "FetchResponse",
    "Fetcher",
    "Parser",
    "cache_key",
    "chain_declaration",
    "default_cache",
    "expand",
    "extract",
    "parse_declaration",
    "set_default_cache",
    "validate_declaration",
]
