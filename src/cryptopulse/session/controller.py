"""Monitor session lifecycle: select, start, poll, submit, stop.

:class:`SessionController` owns the one :class:`Session` record and is the
only thing that mutates it.  State moves ``IDLE → STARTING → ACTIVE →
STOPPING → IDLE``; the current state guards every operation, so at most one
start or stop is outstanding at a time.

Failures never escape the public operations.  They are logged and published
once as :class:`ErrorSurfaced`, and the operation returns a falsy value.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

from cryptopulse.core.constants import (
    DEFAULT_MIN_CYCLE_SECONDS,
    DEFAULT_REPORT_DIR,
    VALID_INTERVALS,
)
from cryptopulse.core.duration import parse_duration
from cryptopulse.core.events import (
    ChartUpdated,
    ErrorSurfaced,
    EventBus,
    PairSelected,
    PromptUpdated,
    ReportSaved,
    SessionStarted,
    SessionStopped,
)
from cryptopulse.core.exceptions import CryptoPulseError, GatewayError, ValidationError
from cryptopulse.core.gateway import RemoteGateway
from cryptopulse.core.storage import ReportStore
from cryptopulse.dashboard.renderer import ChartRenderer
from cryptopulse.models.kline import ChartData
from cryptopulse.models.session import Session, SessionState
from cryptopulse.session.scheduler import PollingScheduler, SleepFn

logger = logging.getLogger(__name__)


class SessionController:
    """Drives one monitor session against a :class:`RemoteGateway`.

    Parameters
    ----------
    gateway:
        Remote service access.
    renderer:
        Chart collaborator; ``None`` disables drawing.
    bus:
        Where session events and surfaced errors are published.
    report_store:
        Destination for downloaded reports.
    min_cycle_seconds:
        Shortest polling cycle accepted by :meth:`start`.
    valid_intervals:
        Interval labels the service accepts.
    sleep:
        Timer the polling scheduler awaits between ticks.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        *,
        renderer: ChartRenderer | None = None,
        bus: EventBus | None = None,
        report_store: ReportStore | None = None,
        min_cycle_seconds: float = DEFAULT_MIN_CYCLE_SECONDS,
        valid_intervals: Sequence[str] = VALID_INTERVALS,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._renderer = renderer
        self.bus = bus if bus is not None else EventBus()
        self._report_store = (
            report_store if report_store is not None else ReportStore(Path(DEFAULT_REPORT_DIR))
        )
        self._min_cycle_seconds = min_cycle_seconds
        self._valid_intervals = tuple(valid_intervals)
        self._session = Session()
        self._scheduler = PollingScheduler(
            is_active=lambda: self._session.is_active,
            on_error=lambda exc: self.report_error("update chart", exc),
            sleep=sleep,
        )
        self.latest_prompt = ""

    # -- read-only views ------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def session(self) -> Session:
        """A copy of the session record."""
        return dataclasses.replace(self._session)

    @property
    def scheduler(self) -> PollingScheduler:
        return self._scheduler

    # -- error channel ----------------------------------------------------------

    def report_error(self, operation: str, exc: Exception) -> None:
        """Log *exc* and publish it as the single user-visible failure."""
        if isinstance(exc, ValidationError):
            logger.warning("%s rejected: %s", operation, exc)
        else:
            logger.error("%s failed: %s", operation, exc)
        self.bus.publish(ErrorSurfaced(operation=operation, message=str(exc), error=exc))

    # -- operations -------------------------------------------------------------

    def select_pair(self, pair: str) -> bool:
        """Choose the pair the next monitor will watch."""
        pair = (pair or "").strip()
        try:
            if self._session.state is not SessionState.IDLE:
                raise ValidationError("Stop the running monitor before choosing another pair.")
            if not pair:
                raise ValidationError("Please select a trading pair!")
        except ValidationError as exc:
            self.report_error("select pair", exc)
            return False

        self._session.selected_pair = pair
        logger.info("Selected pair: %s", pair)
        self.bus.publish(PairSelected(pair=pair))
        return True

    async def start(
        self,
        intervals: Sequence[str],
        cycle: str,
        pair: Optional[str] = None,
    ) -> bool:
        """Start a monitor for the selected pair (or *pair*, if given).

        Returns ``True`` once the session is ``ACTIVE``.
        """
        try:
            symbol, chosen, cycle, interval_ms = self._validate_start(intervals, cycle, pair)
        except ValidationError as exc:
            self.report_error("start monitor", exc)
            return False

        payload = {"symbol": symbol, "intervals": list(chosen), "cycle": cycle}
        logger.info("Starting monitor with payload: %s", payload)
        self._session.state = SessionState.STARTING
        try:
            started = await self._gateway.start_monitor(symbol, chosen, cycle)
        except GatewayError as exc:
            self._session.state = SessionState.IDLE
            self.report_error("start monitor", exc)
            return False
        except asyncio.CancelledError:
            self._session.state = SessionState.IDLE
            raise

        s = self._session
        s.selected_pair = symbol
        s.monitor_id = started.monitor_id
        s.intervals = chosen
        s.cycle = cycle
        s.is_active = True
        s.state = SessionState.ACTIVE
        logger.info("Monitor started: %s (%s every %s)", s.monitor_id, symbol, cycle)
        self.bus.publish(
            SessionStarted(monitor_id=s.monitor_id, symbol=symbol, intervals=chosen, cycle=cycle)
        )

        # Polling is scheduled before anything that can fail or be cancelled
        self._scheduler.begin(interval_ms, self._poll_chart, self._on_chart_tick)
        if started.chart_data is not None:
            try:
                await self._render(started.chart_data, update=False)
            except Exception as exc:
                self.report_error("render chart", exc)
        await self.fetch_prompt()
        return True

    async def stop(self) -> bool:
        """Stop the running monitor.

        On failure the session is left exactly as it was, since the monitor
        may still be running on the server.
        """
        s = self._session
        if s.state is not SessionState.ACTIVE or not s.monitor_id:
            self.report_error("stop monitor", ValidationError("No active monitor to stop!"))
            return False

        monitor_id, symbol = s.monitor_id, s.selected_pair
        s.state = SessionState.STOPPING
        try:
            result = await self._gateway.stop_monitor(monitor_id)
        except GatewayError as exc:
            s.state = SessionState.ACTIVE
            self.report_error("stop monitor", exc)
            return False
        except asyncio.CancelledError:
            s.state = SessionState.ACTIVE
            raise

        logger.info("Monitor stopped: %s %s", monitor_id, result)
        s.reset()
        self._scheduler.end()
        if self._renderer is not None:
            self._renderer.reset()
        self.latest_prompt = ""
        self.bus.publish(SessionStopped(monitor_id=monitor_id, symbol=symbol))
        return True

    async def fetch_prompt(self) -> Optional[str]:
        """Fetch the analysis prompt for the selected pair."""
        symbol = self._session.selected_pair
        if not symbol:
            self.report_error("fetch prompt", ValidationError("No trading pair selected."))
            return None
        try:
            prompt = await self._gateway.fetch_prompt(symbol)
        except GatewayError as exc:
            self.report_error("fetch prompt", exc)
            return None

        self.latest_prompt = prompt
        if prompt:
            self.bus.publish(PromptUpdated(symbol=symbol, prompt=prompt))
        return prompt

    async def submit_response(self, text: str) -> Optional[Path]:
        """Submit an analysis response for the running monitor.

        Returns the saved report path when the service produced a report.
        """
        text = (text or "").strip()
        s = self._session
        try:
            if not text:
                raise ValidationError("Please provide a response!")
            if s.state is not SessionState.ACTIVE or not s.monitor_id:
                raise ValidationError("No active monitor! Please start a monitor first.")
        except ValidationError as exc:
            self.report_error("submit response", exc)
            return None

        try:
            report_id = await self._gateway.submit_response(s.monitor_id, text)
        except GatewayError as exc:
            self.report_error("submit response", exc)
            return None

        logger.info("Response submitted for %s, report: %s", s.monitor_id, report_id)
        if report_id is None:
            return None
        return await self.download_report(report_id)

    async def download_report(self, report_id: str) -> Optional[Path]:
        """Fetch report *report_id* and save it through the report store."""
        logger.info("Downloading report: %s", report_id)
        try:
            payload = await self._gateway.fetch_report(report_id)
            path = self._report_store.save(report_id, payload)
        except (CryptoPulseError, OSError, ValueError) as exc:
            self.report_error("download report", exc)
            return None

        self.bus.publish(ReportSaved(report_id=report_id, path=path))
        return path

    # -- teardown ---------------------------------------------------------------

    async def close(self) -> None:
        """Cancel any polling recurrence and release the transport.

        Does not stop the monitor on the server; call :meth:`stop` first for
        that.
        """
        await self._scheduler.aclose()
        self._gateway.close()

    async def __aenter__(self) -> SessionController:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- internals --------------------------------------------------------------

    def _validate_start(
        self, intervals: Sequence[str], cycle: str, pair: Optional[str]
    ) -> tuple[str, tuple[str, ...], str, int]:
        if self._session.state is not SessionState.IDLE:
            raise ValidationError(
                f"A monitor is already {self._session.state.value}; stop it first."
            )
        symbol = (pair if pair is not None else self._session.selected_pair).strip()
        if not symbol:
            raise ValidationError("Please select a trading pair!")

        chosen = tuple(dict.fromkeys(i.strip() for i in intervals if i and i.strip()))
        if not chosen:
            raise ValidationError("Please select at least one interval!")
        unknown = [i for i in chosen if i not in self._valid_intervals]
        if unknown:
            raise ValidationError(f"Invalid interval: {', '.join(unknown)}")

        token = (cycle or "").strip()
        interval_ms = parse_duration(token)
        if interval_ms <= 0:
            raise ValidationError("Cycle must be greater than zero.")
        if interval_ms < self._min_cycle_seconds * 1000:
            raise ValidationError(f"Cycle must be at least {self._min_cycle_seconds:g}s.")
        return symbol, chosen, token, interval_ms

    async def _poll_chart(self) -> Optional[ChartData]:
        return await self._gateway.poll_chart(self._session.selected_pair)

    async def _on_chart_tick(self, chart: ChartData) -> None:
        await self._render(chart, update=True)
        await self.fetch_prompt()

    async def _render(self, chart: ChartData, *, update: bool) -> None:
        """Draw *chart* in a worker thread so the loop keeps serving I/O."""
        if self._renderer is None:
            return
        s = self._session
        monitor_id, symbol = s.monitor_id, s.selected_pair
        result = await asyncio.to_thread(
            self._renderer.render, chart, symbol=symbol, allowed=s.intervals, update=update
        )
        if self._session.monitor_id != monitor_id:
            # The session was stopped while drawing
            self._renderer.reset()
            return
        if result.drawn:
            self.bus.publish(
                ChartUpdated(symbol=symbol, intervals=result.drawn, created=result.created)
            )
