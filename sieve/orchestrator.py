"""Request orchestrator wiring together expansion, cache, fetch and accumulation."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping

import httpx
import structlog

from .config import Entry, SieveOptions
from .engine import Accumulator, Cache, Fetcher, default_cache
from .engine.parser import Extractor
from .engine.template import expand, parse_declaration, validate_declaration
from .scheduler import Sleeper, Stagger

Errback = Callable[[BaseException], None]


def _resolve_options(options: SieveOptions | Mapping[str, Any] | None) -> SieveOptions:
    if isinstance(options, SieveOptions):
        return options
    return SieveOptions().merged(options)


class Sieve:
    """Fetch, extract and chain one declaration into a single ordered result.

    Parsing and validation happen in the constructor and raise immediately.
    ``run()`` drives the fetches; it returns the ordered list of
    ``{value, selection}`` records for a batch, or one record for a singular
    request, and fires ``callback`` once with the same value.

    A failing entry is terminal for that entry only. Its error is logged,
    passed to ``errback`` once, and re-raised by ``run()`` after the other
    entries have settled; ``callback`` never fires in that case.
    """

    def __init__(
        self,
        declaration: Any,
        callback: Callable[[Any], None] | None = None,
        options: SieveOptions | Mapping[str, Any] | None = None,
        *,
        cache: Cache | None = None,
        client: httpx.AsyncClient | None = None,
        extractor: Extractor | None = None,
        errback: Errback | None = None,
        sleep: Sleeper | None = None,
        depth: int = 0,
    ) -> None:
        self.callback = callback
        self.errback = errback
        self.options = _resolve_options(options)
        self.cache = cache if cache is not None else default_cache()
        self.client = client
        self.extractor = extractor
        self.sleep = sleep
        self.depth = depth
        self.logger = structlog.get_logger("sieve").bind(component="orchestrator", depth=depth)

        data = parse_declaration(declaration)
        self.declaration = validate_declaration(data)
        self.entries: Entry | list[Entry] = expand(self.declaration)
        self.expected = len(self.entries) if isinstance(self.entries, list) else 1

        self.accumulator: Accumulator | None = None
        self.stagger = Stagger(self.options, sleep)
        self._fetcher: Fetcher | None = None
        self._started = False
        # Errors raised by nested requests, already logged at their own depth
        self._chain_failures: list[BaseException] = []

    # ------------------------------------------------------------------
    async def run(self) -> Any:
        if self._started:
            raise RuntimeError("Sieve.run() may only be called once per instance")
        self._started = True

        owns_client = self.client is None
        if owns_client:
            self.client = httpx.AsyncClient(follow_redirects=False)
        self._fetcher = Fetcher(
            self.options, self.cache, client=self.client, stagger=self.stagger, logger=self.logger
        )
        self.accumulator = Accumulator(
            self.expected,
            self.cache,
            self.options,
            chain=self._chain,
            extractor=self.extractor,
            logger=self.logger,
        )

        tasks: list[asyncio.Task[None]] = []
        try:
            if isinstance(self.entries, list):
                if not self.entries:
                    self.accumulator.finish([])
                for pos, entry in enumerate(self.entries):
                    tasks.append(asyncio.create_task(self.get(entry, pos)))
            else:
                tasks.append(asyncio.create_task(self.get(self.entries, None)))

            try:
                result = await self.accumulator.future
            except Exception:
                # Siblings are not cancelled; let them settle and fill the cache
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        finally:
            if owns_client:
                await asyncio.gather(*tasks, return_exceptions=True)
                await self.client.aclose()

        if self.callback is not None:
            self.callback(result)
        return result

    async def get(self, entry: Entry, pos: int | None) -> None:
        """Resolve one entry from cache or network into the accumulator."""

        try:
            record = self.cache.get(entry, full_result=True)
            if record is not None:
                if entry.debug:
                    record["cached"] = "result"
                self.logger.debug("result_cache_hit", url=entry.url, pos=pos)
                self.accumulator.add(record, pos)
                return

            cached: str | None = None
            raw = self.cache.get(entry)
            if raw is not None:
                cached = "response"
                self.logger.debug("response_cache_hit", url=entry.url, pos=pos)
            else:
                await self.stagger.wait_turn(entry, pos)
                response = await self._fetcher.fetch(entry, pos)
                raw = response.text
            await self.accumulator.accumulate(entry, raw, pos, cached=cached)
        except Exception as exc:  # noqa: BLE001
            self._report(exc, entry, pos)

    def _report(self, exc: BaseException, entry: Entry, pos: int | None) -> None:
        if not any(exc is failure for failure in self._chain_failures):
            self.logger.error(
                "entry_failed",
                url=entry.url,
                pos=pos,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        if self.accumulator.fail(exc):
            if self.errback is not None:
                self.errback(exc)
        else:
            self.logger.debug("error_after_settlement", url=entry.url, pos=pos)

    async def _chain(self, declaration: Any) -> Any:
        nested = Sieve(
            declaration,
            options=self.options,
            cache=self.cache,
            client=self.client,
            extractor=self.extractor,
            sleep=self.sleep,
            depth=self.depth + 1,
        )
        try:
            return await nested.run()
        except Exception as exc:
            self._chain_failures.append(exc)
            raise


async def fetch(
    declaration: Any,
    options: SieveOptions | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> Any:
    """Run ``declaration`` and return its result."""

    return await Sieve(declaration, options=options, **kwargs).run()


def fetch_sync(
    declaration: Any,
    options: SieveOptions | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> Any:
    """Blocking wrapper around :func:`fetch` for non-async callers."""

    return asyncio.run(fetch(declaration, options, **kwargs))


__all__ = ["Sieve", "fetch", "fetch_sync"]
