"""Remote gateway to the CryptoPulse service with an injectable HTTP transport.

Every call carries its own timeout and turns transport trouble and non-2xx
answers into the typed errors of :mod:`cryptopulse.core.exceptions`, so the
session code never sees a ``requests`` exception or has to read status codes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import requests

from cryptopulse.core.config import ClientConfig
from cryptopulse.core.constants import (
    CHART_PATH,
    DEFAULT_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_START_TIMEOUT_SECONDS,
    MONITOR_PATH,
    MONITOR_STOP_PATH,
    PAIRS_PATH,
    PROMPT_PATH,
    REPORT_PATH,
    SUBMIT_RESPONSE_PATH,
)
from cryptopulse.core.exceptions import (
    GatewayTimeout,
    HttpError,
    NotFoundError,
    TransportError,
)
from cryptopulse.models.kline import ChartData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """What a transport hands back: status code and the raw body."""

    status: int
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class MonitorStarted:
    """Result of starting a monitor."""

    monitor_id: str
    chart_data: ChartData | None = None


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------


class HttpTransport(ABC):
    """Blocking HTTP transport.  The gateway runs it off the event loop."""

    @abstractmethod
    def send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        timeout: float,
    ) -> HttpResponse:
        """Perform one request.

        Must raise :class:`TransportError` for connection-level failures and
        :class:`GatewayTimeout` when its own *timeout* expires.
        """

    def close(self) -> None:
        """Release pooled connections."""


class RequestsTransport(HttpTransport):
    """``requests.Session`` transport with an optional HTTP proxy."""

    def __init__(self, proxy_url: str = "") -> None:
        self._session = requests.Session()
        if proxy_url:
            self._session.proxies.update({"http": proxy_url, "https": proxy_url})
            logger.info("Using HTTP proxy %s", proxy_url)

    def send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        timeout: float,
    ) -> HttpResponse:
        try:
            resp = self._session.request(
                method, url, params=params, json=json_body, timeout=timeout
            )
        except requests.Timeout as exc:
            raise GatewayTimeout(timeout) from exc
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        return HttpResponse(status=resp.status_code, content=resp.content)

    def close(self) -> None:
        self._session.close()


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class RemoteGateway:
    """Bounded, typed access to the monitor service.

    Parameters
    ----------
    transport:
        Blocking transport; see :class:`HttpTransport`.
    base_url:
        Service root, e.g. ``"http://127.0.0.1:8080"``.
    request_timeout:
        Seconds allowed for searches, polls, stop, submit and report calls.
    start_timeout:
        Seconds allowed for starting a monitor.
    """

    def __init__(
        self,
        transport: HttpTransport,
        base_url: str = DEFAULT_BASE_URL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        start_timeout: float = DEFAULT_START_TIMEOUT_SECONDS,
    ) -> None:
        self._transport = transport
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.start_timeout = start_timeout

    @classmethod
    def from_config(cls, cfg: ClientConfig) -> RemoteGateway:
        return cls(
            RequestsTransport(cfg.proxy_url),
            base_url=cfg.base_url,
            request_timeout=cfg.request_timeout_seconds,
            start_timeout=cfg.start_timeout_seconds,
        )

    def close(self) -> None:
        self._transport.close()

    async def call(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        binary: bool = False,
    ) -> Any:
        """Issue one request and return the decoded JSON body.

        With ``binary=True`` the raw bytes are returned instead.

        Raises
        ------
        GatewayTimeout
            *timeout* elapsed first; the wait is cancelled.
        NotFoundError
            The service answered 404.
        HttpError
            Any other non-2xx status; carries the body text.
        TransportError
            Connection failure or a body that is not valid JSON.
        """
        url = f"{self.base_url}{path}"
        try:
            response: HttpResponse = await asyncio.wait_for(
                asyncio.to_thread(
                    self._transport.send,
                    method,
                    url,
                    params=params,
                    json_body=json_body,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("%s %s timed out after %.1fs", method, path, timeout)
            raise GatewayTimeout(timeout) from None

        if not response.ok:
            body = response.text.strip()
            logger.debug("%s %s -> %d %s", method, path, response.status, body)
            if response.status == 404:
                raise NotFoundError(response.status, body)
            raise HttpError(response.status, body)

        if binary:
            return response.content
        try:
            return json.loads(response.content)
        except (ValueError, UnicodeDecodeError) as exc:
            raise TransportError(f"Malformed response body from {path}: {exc}") from exc

    # -- operations ---------------------------------------------------------

    async def search_pairs(self, query: str) -> list[str]:
        """Pair identifiers matching *query*, in the order the service returns."""
        body = await self.call(
            "GET", PAIRS_PATH, params={"query": query}, timeout=self.request_timeout
        )
        # The service encodes "no match" as null
        if body is None:
            return []
        if not isinstance(body, list):
            raise TransportError(f"Expected a list of pairs, got {type(body).__name__}")
        return [str(p) for p in body]

    async def start_monitor(
        self, symbol: str, intervals: Sequence[str], cycle: str
    ) -> MonitorStarted:
        body = _expect_mapping(
            await self.call(
                "POST",
                MONITOR_PATH,
                json_body={"symbol": symbol, "intervals": list(intervals), "cycle": cycle},
                timeout=self.start_timeout,
            ),
            "start monitor",
        )
        monitor_id = str(body.get("monitor_id") or "")
        if not monitor_id:
            raise TransportError("Start monitor response has no monitor_id")
        return MonitorStarted(
            monitor_id=monitor_id,
            chart_data=ChartData.from_api(body.get("chart_data")),
        )

    async def stop_monitor(self, monitor_id: str) -> dict[str, Any]:
        body = await self.call(
            "POST",
            MONITOR_STOP_PATH,
            json_body={"monitor_id": monitor_id},
            timeout=self.request_timeout,
        )
        return dict(body) if isinstance(body, Mapping) else {}

    async def poll_chart(self, symbol: str) -> ChartData | None:
        """Latest chart data for *symbol*, or ``None`` when none is available."""
        body = _expect_mapping(
            await self.call(
                "GET", CHART_PATH, params={"symbol": symbol}, timeout=self.request_timeout
            ),
            "poll chart",
        )
        return ChartData.from_api(body.get("chart_data"))

    async def fetch_prompt(self, symbol: str) -> str:
        body = _expect_mapping(
            await self.call(
                "GET", PROMPT_PATH, params={"symbol": symbol}, timeout=self.request_timeout
            ),
            "fetch prompt",
        )
        return str(body.get("prompt") or "")

    async def submit_response(self, analysis_id: str, response_json: str) -> str | None:
        """Submit an analysis answer; returns the report id if one was produced."""
        body = _expect_mapping(
            await self.call(
                "POST",
                SUBMIT_RESPONSE_PATH,
                json_body={"analysis_id": analysis_id, "response_json": response_json},
                timeout=self.request_timeout,
            ),
            "submit response",
        )
        report_id = str(body.get("report_id") or "")
        return report_id or None

    async def fetch_report(self, report_id: str) -> bytes:
        return await self.call(
            "GET",
            REPORT_PATH,
            params={"report_id": report_id},
            timeout=self.request_timeout,
            binary=True,
        )


def _expect_mapping(body: Any, operation: str) -> Mapping[str, Any]:
    if not isinstance(body, Mapping):
        raise TransportError(
            f"Unexpected {operation} response: expected an object, got {type(body).__name__}"
        )
    return body
