"""Staggered start of batch fetches to avoid bursting a remote host."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from ..config import Entry, SieveOptions

Sleeper = Callable[[float], Awaitable[None]]


def stagger_delay(entry: Entry, pos: int | None, options: SieveOptions) -> float:
    """Seconds to wait before the first attempt of the entry at ``pos``.

    Singular requests start immediately. Positions are local to one request,
    so the members of a nested ``then`` batch are staggered among themselves
    only, not relative to the parent entry's position.
    """

    if not pos:
        return 0.0
    return entry.effective_wait(options) * pos


class Stagger:
    """Delay helper with a swappable sleep function."""

    def __init__(self, options: SieveOptions, sleep: Sleeper | None = None) -> None:
        self.options = options
        self.sleep = sleep or asyncio.sleep

    async def wait_turn(self, entry: Entry, pos: int | None) -> float:
        delay = stagger_delay(entry, pos, self.options)
        if delay > 0:
            await self.sleep(delay)
        return delay

    async def backoff(self, entry: Entry) -> float:
        """Pause before retrying an entry that returned an empty body."""

        delay = entry.effective_wait(self.options)
        if delay > 0:
            await self.sleep(delay)
        return delay


__all__ = ["Sleeper", "Stagger", "stagger_delay"]
