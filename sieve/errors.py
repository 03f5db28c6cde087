"""Exception hierarchy for sieve requests.

Every error is terminal for the entry that raised it. The orchestrator logs
it and reports it once on the originating call; sibling entries keep running.
"""

from __future__ import annotations

from typing import Iterable


class SieveError(Exception):
    """Base exception for sieve."""


class ParseError(SieveError):
    """Raised when a serialized declaration cannot be decoded."""


class ValidationError(SieveError):
    """Raised when a declaration does not match the entry schema."""

    def __init__(self, message: str, fields: Iterable[str] = ()) -> None:
        self.fields = list(fields)
        if self.fields:
            message = f"{message} (fields: {', '.join(self.fields)})"
        super().__init__(message)


class MissingURLError(SieveError):
    """Raised when an entry has no usable URL."""


class RetryExhaustedError(SieveError):
    """Raised once an entry has used up its attempt budget."""

    def __init__(self, url: str, tries: int, redirects: int = 0) -> None:
        self.url = url
        self.tries = tries
        self.redirects = redirects
        super().__init__(
            f"Tried {tries} times, but got no response from {url}. "
            "It's possible that we're stuck in a redirect loop, or are being blocked."
        )


class FetchTimeoutError(SieveError):
    """Raised when a single HTTP request exceeds the configured timeout."""


class FetchError(SieveError):
    """Raised on transport failures and unusable responses."""


class ChainConfigError(SieveError):
    """Raised when a ``then`` declaration is malformed."""


class ExtractionError(SieveError):
    """Raised when a selector cannot be applied to a document."""


__all__ = [
    "ChainConfigError",
    "ExtractionError",
    "FetchError",
    "FetchTimeoutError",
    "MissingURLError",
    "ParseError",
    "RetryExhaustedError",
    "SieveError",
    "ValidationError",
]
