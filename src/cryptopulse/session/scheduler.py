"""Recurring chart polling for the active monitor session."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from cryptopulse.core.exceptions import GatewayError, NotFoundError
from cryptopulse.models.kline import ChartData

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[Optional[ChartData]]]
TickFn = Callable[[ChartData], Awaitable[None]]
ErrorFn = Callable[[Exception], None]
SleepFn = Callable[[float], Awaitable[None]]


class PollingScheduler:
    """Runs at most one polling recurrence at a time.

    Parameters
    ----------
    is_active:
        Checked before every tick; once it returns ``False`` the recurrence
        ends by itself, whether or not :meth:`end` is ever called.
    on_error:
        Receives every failed tick, whether the fetch or the tick handler
        raised, except :class:`NotFoundError`, which only means there is
        nothing to show yet.
    sleep:
        Timer awaited between ticks.
    """

    def __init__(
        self,
        is_active: Callable[[], bool],
        on_error: ErrorFn | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._is_active = is_active
        self._on_error = on_error
        self._sleep = sleep
        self._task: Optional[asyncio.Task[None]] = None
        self.interval_ms = 0

    @property
    def is_scheduled(self) -> bool:
        return self._task is not None and not self._task.done()

    def begin(self, interval_ms: int, fetch_fn: FetchFn, on_tick: TickFn) -> None:
        """Poll *fetch_fn* every *interval_ms* and hand chart data to *on_tick*.

        Any recurrence already running is cancelled first.  Must be called
        from a running event loop.
        """
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")

        self.end()
        self.interval_ms = interval_ms
        self._task = asyncio.create_task(
            self._run(interval_ms / 1000.0, fetch_fn, on_tick), name="chart-poll"
        )
        logger.info("Chart updates scheduled every %d ms", interval_ms)

    def end(self) -> None:
        """Cancel the recurrence.  No-op when nothing is scheduled."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Cleared chart update interval")

    async def aclose(self) -> None:
        """Cancel the recurrence and wait until it has fully unwound."""
        task = self._task
        self.end()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self, interval: float, fetch_fn: FetchFn, on_tick: TickFn) -> None:
        try:
            while True:
                await self._sleep(interval)
                if not self._is_active():
                    logger.info("Stopping chart updates: monitoring stopped")
                    break
                await self._tick(fetch_fn, on_tick)
        finally:
            if self._task is asyncio.current_task():
                self._task = None

    async def _tick(self, fetch_fn: FetchFn, on_tick: TickFn) -> None:
        try:
            data = await fetch_fn()
            if data is None:
                logger.warning("No chart_data received")
                return
            if not self._is_active():
                return
            await on_tick(data)
        except NotFoundError as exc:
            logger.debug("Chart update skipped: %s", exc)
        except GatewayError as exc:
            logger.error("Chart update error: %s", exc)
            self._report(exc)
        except Exception as exc:
            logger.exception("Chart update failed")
            self._report(exc)

    def _report(self, exc: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("Chart error handler failed")
