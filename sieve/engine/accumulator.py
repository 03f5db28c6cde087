"""Order-preserving accumulation of per-entry results."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Mapping

import structlog

from ..config import Entry, SieveOptions
from ..errors import ChainConfigError
from .cache import Cache
from .parser import Extractor, extract

Chain = Callable[[Any], Awaitable[Any]]


def chain_declaration(then: Any, selected: Any) -> Any:
    """Build the declaration for a chained request.

    Keyed selections are injected as template ``data``; the entry's own
    ``then`` value is left untouched.
    """

    items = then if isinstance(then, list) else [then]
    if not items:
        raise ChainConfigError('Specified a "then" command, but it is empty.')
    for item in items:
        if not isinstance(item, Mapping) or not item.get("url"):
            raise ChainConfigError(
                'Specified a "then" command, but didn\'t provide a template or a URL.'
            )
    if isinstance(selected, Mapping):
        chained = [{**item, "data": {**(item.get("data") or {}), **selected}} for item in items]
    else:
        chained = [dict(item) for item in items]
    return chained if isinstance(then, list) else chained[0]


class Accumulator:
    """Collect results for one request and complete exactly once.

    ``add`` may be called in any order; batch results are re-ordered by
    position before completion. A singular request (``pos is None``)
    completes on its first result.
    """

    def __init__(
        self,
        expected: int,
        cache: Cache,
        options: SieveOptions,
        chain: Chain,
        extractor: Extractor | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.expected = expected
        self.cache = cache
        self.options = options
        self.chain = chain
        self.extractor = extractor or extract
        self.logger = logger or structlog.get_logger("sieve.accumulator")
        self.results: list[dict[str, Any]] = []
        self.future: asyncio.Future[Any] = (loop or asyncio.get_running_loop()).create_future()

    @property
    def done(self) -> bool:
        return self.future.done()

    async def accumulate(
        self,
        entry: Entry,
        raw: str,
        pos: int | None,
        cached: str | None = None,
    ) -> dict[str, Any]:
        """Extract, resolve any chained request, cache and add the result."""

        selected: Any = raw
        if entry.selector is not None:
            selected = self.extractor(raw, entry.selector, entry.engine)
        if entry.then is not None:
            declaration = chain_declaration(entry.then, selected)
            self.logger.debug("chain_start", url=entry.url, pos=pos)
            value = await self.chain(declaration)
        else:
            value = selected

        record: dict[str, Any] = {"value": value, "selection": entry.selection}
        ttl = entry.cache if entry.cache is not None else self.options.cache
        self.cache.put(entry, record, full_result=True, ttl=ttl)
        if entry.debug and cached:
            record = {**record, "cached": cached}
        self.add(record, pos)
        return record

    def add(self, record: dict[str, Any], pos: int | None) -> None:
        if self.done:
            self.logger.debug("result_after_completion", pos=pos)
            return
        self.results.append({**record, "pos": pos})
        if pos is None:
            self.finish(self._strip(self.results[0]))
            return
        if len(self.results) == self.expected:
            ordered = sorted(self.results, key=lambda item: item["pos"])
            self.finish([self._strip(item) for item in ordered])

    def finish(self, result: Any) -> None:
        if self.done:
            return
        self.future.set_result(result)

    def fail(self, exc: BaseException) -> bool:
        """Report ``exc`` on the completion future; ``False`` if already settled."""

        if self.done:
            return False
        self.future.set_exception(exc)
        return True

    @staticmethod
    def _strip(item: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in item.items() if key != "pos"}


__all__ = ["Accumulator", "Chain", "chain_declaration"]
