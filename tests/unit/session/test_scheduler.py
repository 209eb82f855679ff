"""Unit tests for cryptopulse.session.scheduler."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from conftest import chart_payload, fast_sleep, wait_until
from cryptopulse.core.exceptions import HttpError, NotFoundError
from cryptopulse.models.kline import ChartData
from cryptopulse.session.scheduler import PollingScheduler

CHART = ChartData.from_api(chart_payload("15m"))


class Recorder:
    """Scripted fetch results plus a log of ticks and errors."""

    def __init__(self, *results: object) -> None:
        self.results = list(results)
        self.fetches = 0
        self.ticks: list[ChartData] = []
        self.errors: list[Exception] = []

    async def fetch(self) -> Optional[ChartData]:
        self.fetches += 1
        result = self.results[0] if len(self.results) == 1 else self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result  # type: ignore[return-value]

    async def tick(self, chart: ChartData) -> None:
        self.ticks.append(chart)


class TestBegin:
    @pytest.mark.asyncio
    async def test_ticks_until_ended(self) -> None:
        rec = Recorder(CHART)
        sched = PollingScheduler(lambda: True, rec.errors.append, sleep=fast_sleep)

        sched.begin(10, rec.fetch, rec.tick)
        assert sched.is_scheduled
        assert sched.interval_ms == 10
        await wait_until(lambda: len(rec.ticks) >= 3)

        await sched.aclose()
        assert not sched.is_scheduled
        ticks = len(rec.ticks)
        await asyncio.sleep(0.05)
        assert len(rec.ticks) == ticks

    @pytest.mark.asyncio
    @pytest.mark.parametrize("interval", [0, -5])
    async def test_rejects_non_positive_interval(self, interval: int) -> None:
        sched = PollingScheduler(lambda: True)
        with pytest.raises(ValueError):
            sched.begin(interval, Recorder(CHART).fetch, Recorder().tick)
        assert not sched.is_scheduled

    @pytest.mark.asyncio
    async def test_begin_replaces_previous_recurrence(self) -> None:
        first, second = Recorder(CHART), Recorder(CHART)
        sched = PollingScheduler(lambda: True, sleep=fast_sleep)

        sched.begin(10, first.fetch, first.tick)
        await wait_until(lambda: first.ticks)
        sched.begin(10, second.fetch, second.tick)
        await asyncio.sleep(0)
        seen = len(first.ticks)
        await wait_until(lambda: len(second.ticks) >= 2)

        assert len(first.ticks) == seen
        await sched.aclose()

    @pytest.mark.asyncio
    async def test_end_without_recurrence_is_noop(self) -> None:
        sched = PollingScheduler(lambda: True)
        sched.end()
        await sched.aclose()
        assert not sched.is_scheduled


class TestTick:
    @pytest.mark.asyncio
    async def test_no_data_skips_tick(self) -> None:
        rec = Recorder(None)
        sched = PollingScheduler(lambda: True, rec.errors.append, sleep=fast_sleep)
        sched.begin(10, rec.fetch, rec.tick)
        await wait_until(lambda: rec.fetches >= 3)
        await sched.aclose()
        assert rec.ticks == []
        assert rec.errors == []

    @pytest.mark.asyncio
    async def test_not_found_is_suppressed(self) -> None:
        rec = Recorder(NotFoundError(404, "no chart"), CHART)
        sched = PollingScheduler(lambda: True, rec.errors.append, sleep=fast_sleep)
        sched.begin(10, rec.fetch, rec.tick)
        await wait_until(lambda: rec.ticks)
        await sched.aclose()
        assert rec.errors == []

    @pytest.mark.asyncio
    async def test_other_errors_reported_and_polling_continues(self) -> None:
        boom = HttpError(500, "boom")
        rec = Recorder(boom, CHART)
        sched = PollingScheduler(lambda: True, rec.errors.append, sleep=fast_sleep)
        sched.begin(10, rec.fetch, rec.tick)
        await wait_until(lambda: rec.ticks)
        await sched.aclose()
        assert rec.errors == [boom]

    @pytest.mark.asyncio
    async def test_tick_handler_failure_reported_and_polling_continues(self) -> None:
        rec = Recorder(CHART)
        calls = {"n": 0}

        async def flaky_tick(chart: ChartData) -> None:
            calls["n"] += 1
            if calls["n"] == 1:
                raise OverflowError("date value out of range")
            rec.ticks.append(chart)

        sched = PollingScheduler(lambda: True, rec.errors.append, sleep=fast_sleep)
        sched.begin(10, rec.fetch, flaky_tick)
        await wait_until(lambda: len(rec.ticks) >= 2)
        assert sched.is_scheduled
        await sched.aclose()

        (err,) = rec.errors
        assert isinstance(err, OverflowError)

    @pytest.mark.asyncio
    async def test_failing_error_handler_does_not_end_polling(self) -> None:
        rec = Recorder(HttpError(500, "boom"), CHART)

        def broken_handler(exc: Exception) -> None:
            raise RuntimeError("handler broke")

        sched = PollingScheduler(lambda: True, broken_handler, sleep=fast_sleep)
        sched.begin(10, rec.fetch, rec.tick)
        await wait_until(lambda: rec.ticks)
        assert sched.is_scheduled
        await sched.aclose()

    @pytest.mark.asyncio
    async def test_inactive_session_ends_recurrence(self) -> None:
        active = {"value": True}
        rec = Recorder(CHART)
        sched = PollingScheduler(lambda: active["value"], sleep=fast_sleep)
        sched.begin(10, rec.fetch, rec.tick)
        await wait_until(lambda: rec.ticks)

        active["value"] = False
        await wait_until(lambda: not sched.is_scheduled)
        fetches = rec.fetches
        await asyncio.sleep(0.05)
        assert rec.fetches == fetches

    @pytest.mark.asyncio
    async def test_deactivated_during_fetch_does_not_tick(self) -> None:
        active = {"value": True}
        rec = Recorder(CHART)

        async def fetch() -> Optional[ChartData]:
            active["value"] = False
            return await rec.fetch()

        sched = PollingScheduler(lambda: active["value"], sleep=fast_sleep)
        sched.begin(10, fetch, rec.tick)
        await wait_until(lambda: not sched.is_scheduled)
        assert rec.fetches == 1
        assert rec.ticks == []

    @pytest.mark.asyncio
    async def test_ticks_never_overlap(self) -> None:
        running = {"now": 0, "peak": 0}
        rec = Recorder(CHART)

        async def slow_tick(chart: ChartData) -> None:
            running["now"] += 1
            running["peak"] = max(running["peak"], running["now"])
            await asyncio.sleep(0.01)
            running["now"] -= 1
            await rec.tick(chart)

        sched = PollingScheduler(lambda: True, sleep=fast_sleep)
        sched.begin(1, rec.fetch, slow_tick)
        await wait_until(lambda: len(rec.ticks) >= 3)
        await sched.aclose()
        assert running["peak"] == 1
