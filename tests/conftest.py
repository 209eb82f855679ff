"""Shared pytest fixtures for the CryptoPulse client tests."""

from __future__ import annotations

import asyncio
import json
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
from urllib.parse import urlsplit

import pytest

from cryptopulse.core.events import ErrorSurfaced, EventBus
from cryptopulse.core.gateway import HttpResponse, HttpTransport, RemoteGateway
from cryptopulse.core.storage import ReportStore
from cryptopulse.dashboard.renderer import ChartRenderer
from cryptopulse.session.controller import SessionController

BASE_URL = "http://cryptopulse.test"

_real_sleep = asyncio.sleep


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


@dataclass
class RecordedRequest:
    method: str
    path: str
    params: dict[str, str] = field(default_factory=dict)
    json_body: Any = None
    timeout: float = 0.0


class FakeTransport(HttpTransport):
    """Scripted transport keyed by ``(method, path)``.

    Each route holds a queue of replies; the last reply repeats.  A reply is
    an :class:`HttpResponse`, an exception to raise, a zero-argument callable
    returning either, or any JSON-serialisable value (served as ``200``).
    Unscripted routes answer ``404``.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[RecordedRequest] = []
        self.closed = False
        self._lock = threading.Lock()

    def add(self, method: str, path: str, *replies: Any) -> None:
        self.routes[(method, path)] = list(replies)

    def calls(self, path: str) -> list[RecordedRequest]:
        with self._lock:
            return [r for r in self.requests if r.path == path]

    def send(self, method, url, *, params=None, json_body=None, timeout):
        path = urlsplit(url).path
        with self._lock:
            self.requests.append(
                RecordedRequest(method, path, dict(params or {}), json_body, timeout)
            )
            queue = self.routes.get((method, path))
            if not queue:
                return HttpResponse(404, b'{"error":"not found"}')
            reply = queue[0] if len(queue) == 1 else queue.pop(0)

        if callable(reply) and not isinstance(reply, HttpResponse):
            reply = reply()
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, HttpResponse):
            return reply
        return HttpResponse(200, json.dumps(reply).encode("utf-8"))

    def close(self) -> None:
        self.closed = True


def slow(seconds: float, reply: Any) -> Callable[[], Any]:
    """A reply that blocks the transport thread for *seconds* first."""

    def _reply() -> Any:
        time.sleep(seconds)
        return reply

    return _reply


def kline(open_time: int, o: str, h: str, lo: str, c: str, v: str = "10.5") -> dict[str, Any]:
    return {
        "open_time": open_time,
        "open": o,
        "high": h,
        "low": lo,
        "close": c,
        "volume": v,
        "close_time": open_time + 899_999,
    }


def chart_payload(*intervals: str) -> dict[str, Any]:
    """A ``chart_data`` object with three bars for each interval."""
    base = 1_700_000_000_000
    return {
        "kline": {
            interval: [
                kline(base, "100.0", "110.0", "95.0", "105.0"),
                kline(base + 900_000, "105.0", "108.0", "99.0", "101.0"),
                kline(base + 1_800_000, "101.0", "112.0", "100.0", "111.0"),
            ]
            for interval in intervals
        },
        "depth": {"bids": {}, "asks": {}},
    }


async def fast_sleep(seconds: float) -> None:
    """Polling timer running a thousand times faster than real time."""
    await _real_sleep(seconds / 1000.0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def gateway(transport: FakeTransport) -> RemoteGateway:
    return RemoteGateway(transport, base_url=BASE_URL, request_timeout=1.0, start_timeout=2.0)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def errors(bus: EventBus) -> list[ErrorSurfaced]:
    """Every :class:`ErrorSurfaced` published on *bus*."""
    seen: list[ErrorSurfaced] = []
    bus.subscribe(ErrorSurfaced, seen.append)
    return seen


@pytest.fixture
def renderer(tmp_path: Path) -> ChartRenderer:
    return ChartRenderer(tmp_path / "charts")


@pytest.fixture
def controller(
    gateway: RemoteGateway,
    transport: FakeTransport,
    renderer: ChartRenderer,
    bus: EventBus,
    tmp_path: Path,
) -> SessionController:
    """A controller with prompt fetching scripted to succeed."""
    transport.add("GET", "/api/prompt", {"symbol": "BTCUSDT", "prompt": "analyse BTCUSDT"})
    return SessionController(
        gateway,
        renderer=renderer,
        bus=bus,
        report_store=ReportStore(tmp_path / "reports"),
        min_cycle_seconds=0,
        sleep=fast_sleep,
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until *predicate* holds or *timeout* seconds pass."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await _real_sleep(0.001)
