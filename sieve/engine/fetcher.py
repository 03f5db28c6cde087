"""HTTP fetching with redirect chasing and bounded retries."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urljoin

import httpx
import structlog

from ..config import Entry, SieveOptions
from ..errors import FetchError, FetchTimeoutError, MissingURLError, RetryExhaustedError
from ..scheduler import Stagger
from .cache import Cache

REDIRECT_CODES = frozenset({301, 302})


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    tries: int = 0
    redirects: int = 0


class Fetcher:
    """Issue one request per attempt until a non-empty body arrives.

    Redirects and empty-body retries draw from the same ``tries`` budget.
    Transport failures and timeouts are reported immediately.
    """

    def __init__(
        self,
        options: SieveOptions,
        cache: Cache,
        client: httpx.AsyncClient,
        stagger: Stagger | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.options = options
        self.cache = cache
        self.stagger = stagger or Stagger(options)
        self.logger = logger or structlog.get_logger("sieve.fetcher")
        # The client must not follow redirects; they count against the budget
        self._client = client

    async def fetch(self, entry: Entry, pos: int | None = None, tries: int = 0) -> FetchResponse:
        url = entry.url
        redirects = 0
        log = self.logger.info if self.options.verbose else self.logger.debug
        while True:
            if tries > self.options.tries:
                raise RetryExhaustedError(url, self.options.tries, redirects)
            request = self.build_request(entry, url)
            log("fetch_start", url=url, pos=pos, attempt=tries)
            response = await self._send(request, url)

            if response.status_code in REDIRECT_CODES:
                location = response.headers.get("location", "").strip()
                if not location:
                    raise FetchError(
                        f"Got a redirect from {url}, but couldn't find a URL to redirect to"
                    )
                target = urljoin(url, location)
                self.logger.debug(
                    "fetch_redirect", url=url, location=target, status=response.status_code
                )
                url = target
                tries += 1
                redirects += 1
                continue

            body = response.text
            if body == "":
                self.logger.debug("fetch_empty_body", url=url, pos=pos, attempt=tries)
                await self.stagger.backoff(entry)
                tries += 1
                continue

            ttl = entry.cache if entry.cache is not None else self.options.cache
            self.cache.put(entry, body, ttl=ttl)
            return FetchResponse(
                url=url,
                status_code=response.status_code,
                text=body,
                tries=tries,
                redirects=redirects,
            )

    def build_request(self, entry: Entry, url: str) -> httpx.Request:
        """Build the outgoing request; entry headers override the defaults."""

        try:
            target = httpx.URL(url)
        except httpx.InvalidURL as exc:
            raise MissingURLError(f"Malformed URL specified: {url!r}") from exc
        if target.scheme not in ("http", "https") or not target.host:
            raise MissingURLError(f"No URL specified: {url!r}")
        if target.port is None and target.scheme == "http" and self.options.port != 80:
            target = target.copy_with(port=self.options.port)
        headers = httpx.Headers(self.options.headers)
        headers.update(entry.headers)
        method = entry.method or self.options.method
        return self._client.build_request(
            method, target, headers=headers, timeout=self.options.timeout
        )

    async def _send(self, request: httpx.Request, url: str) -> httpx.Response:
        try:
            return await self._client.send(request)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"Request timed out: {url}") from exc
        except httpx.TransportError as exc:
            raise FetchError(f"Request to {url} failed: {exc}") from exc


__all__ = ["Fetcher", "FetchResponse", "REDIRECT_CODES"]
