"""Pytest configuration providing mock transports, a fake clock and shared fixtures."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

from sieve import Sieve
from sieve.config import ConfigLocator, ConfigRepository, SieveOptions
from sieve.engine import Cache, set_default_cache
from sieve.infra import MemoryStore


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingHandler:
    """Mock transport handler serving canned responses per URL path."""

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="missing")
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, text=route)

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def recording_handler() -> type[RecordingHandler]:
    return RecordingHandler


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> Cache:
    return Cache(MemoryStore(clock=clock))


@pytest.fixture
def process_cache(clock: FakeClock) -> Iterable[Cache]:
    """Swap the process-wide default cache for an isolated one."""

    cache = Cache(MemoryStore(clock=clock))
    set_default_cache(cache)
    yield cache
    set_default_cache(None)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def options() -> SieveOptions:
    return SieveOptions(wait=0.5, tries=3, timeout=2)


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]:
    def _builder(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=False)

    return _builder


@pytest.fixture
def run_sieve(cache: Cache, fake_sleep, options: SieveOptions, make_client) -> Callable[..., Any]:
    """Run a declaration against a mock handler and return the result."""

    def _run(declaration: Any, handler: Callable[[httpx.Request], Any], **kwargs: Any) -> Any:
        async def _main() -> Any:
            async with make_client(handler) as client:
                kwargs.setdefault("options", options)
                kwargs.setdefault("cache", cache)
                sieve = Sieve(declaration, client=client, sleep=fake_sleep, **kwargs)
                return await sieve.run()

        return asyncio.run(_main())

    return _run


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("SIEVE_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
