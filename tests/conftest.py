"""Fakes shared by the test modules: an aiohttp-like session, a clock, a sleep."""

import asyncio
import json
from typing import Any, Optional

import pytest


class FakeResponse:
    def __init__(self, status: int = 200, body: Any = b"", gate: Optional[asyncio.Event] = None) -> None:
        self.status = status
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.body = body
        self.gate = gate

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc) -> bool:
        return False

    async def read(self) -> bytes:
        if self.gate is not None:
            await self.gate.wait()
        return self.body


class FakeSession:
    """Replays scripted responses by URL substring; the longest match wins.

    Each route holds a queue of responses or exceptions. The last item
    repeats once the queue is down to one. Unknown URLs get a 404.
    """

    closed = False

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, dict]] = []
        self._routes: dict[str, list[Any]] = {}

    def add(self, fragment: str, *responses: Any) -> None:
        self._routes[fragment] = list(responses)

    def urls(self, fragment: str = "") -> list[str]:
        return [url for _, url, _ in self.requests if fragment in url]

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append((method, url, kwargs))
        for fragment in sorted(self._routes, key=len, reverse=True):
            if fragment in url:
                queue = self._routes[fragment]
                item = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(item, BaseException):
                    raise item
                return item
        return FakeResponse(404, b"")

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
