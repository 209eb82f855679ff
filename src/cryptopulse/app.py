"""Terminal front end for a CryptoPulse monitor session.

Resolves a pair, starts a monitor, prints prompts and surfaced errors while
chart snapshots are written to disk, and stops the monitor on Ctrl-C or
after ``--duration`` seconds.

Usage::

    cryptopulse --query btcusd --intervals 15m 1h --cycle 30s
    cryptopulse --pair ETHUSDT --duration 300 --response-file answer.json
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from cryptopulse.core.config import ClientConfig
from cryptopulse.core.constants import SETTINGS_FILENAME, VALID_INTERVALS
from cryptopulse.core.events import (
    ChartUpdated,
    ErrorSurfaced,
    EventBus,
    PromptUpdated,
    ReportSaved,
    SessionStarted,
    SessionStopped,
)
from cryptopulse.core.gateway import RemoteGateway
from cryptopulse.core.logging_setup import LOGGER_NAME, setup_logger
from cryptopulse.core.storage import ReportStore
from cryptopulse.dashboard.renderer import ChartRenderer
from cryptopulse.models.session import SessionState
from cryptopulse.session.controller import SessionController
from cryptopulse.session.search import PairSearchController

logger = logging.getLogger(__name__)


class MonitorConsole:
    """Wires the session core to a text stream."""

    def __init__(
        self,
        cfg: ClientConfig,
        gateway: RemoteGateway | None = None,
        out: TextIO = sys.stdout,
        err: TextIO = sys.stderr,
    ) -> None:
        self.cfg = cfg
        self.out = out
        self.err = err
        self.bus = EventBus()
        self.gateway = gateway if gateway is not None else RemoteGateway.from_config(cfg)
        self.controller = SessionController(
            self.gateway,
            renderer=ChartRenderer(cfg.chart_dir),
            bus=self.bus,
            report_store=ReportStore(cfg.report_dir),
            min_cycle_seconds=cfg.min_cycle_seconds,
        )
        self.search = PairSearchController(self.gateway, self.controller)
        self._stop_requested = asyncio.Event()

        self.bus.subscribe(ErrorSurfaced, self._on_error)
        self.bus.subscribe(SessionStarted, self._on_started)
        self.bus.subscribe(SessionStopped, self._on_stopped)
        self.bus.subscribe(ChartUpdated, self._on_chart)
        self.bus.subscribe(PromptUpdated, self._on_prompt)
        self.bus.subscribe(ReportSaved, self._on_report)

    def request_stop(self) -> None:
        self._stop_requested.set()

    async def run(
        self,
        *,
        pair: str = "",
        query: str = "",
        intervals: Sequence[str] = (),
        cycle: str = "",
        duration: Optional[float] = None,
        response_text: str = "",
    ) -> int:
        """Run one session to completion and return a process exit code."""
        async with self.controller:
            if not await self._choose_pair(pair, query):
                return 1

            started = await self.controller.start(
                list(intervals) or self.cfg.default_intervals,
                cycle or self.cfg.default_cycle,
            )
            if not started:
                return 1

            try:
                if response_text:
                    await self.controller.submit_response(response_text)
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop_requested.wait(), timeout=duration)
            finally:
                if self.controller.state is SessionState.ACTIVE:
                    await self.controller.stop()
        return 0

    async def _choose_pair(self, pair: str, query: str) -> bool:
        if pair:
            return self.controller.select_pair(pair.upper())

        matches = await self.search.search(query)
        if not matches:
            print(f"No trading pairs match {query!r}.", file=self.err)
            return False
        wanted = query.strip().upper()
        choice = wanted if wanted in matches else matches[0]
        print(f"Selected pair: {choice} ({len(matches)} matches)", file=self.out)
        return self.search.select(choice)

    # -- event handlers -------------------------------------------------------

    def _on_error(self, evt: ErrorSurfaced) -> None:
        print(f"Failed to {evt.operation}: {evt.message}", file=self.err)

    def _on_started(self, evt: SessionStarted) -> None:
        print(
            f"Monitoring {evt.symbol} [{', '.join(evt.intervals)}] every {evt.cycle} "
            f"(monitor {evt.monitor_id}). Press Ctrl-C to stop.",
            file=self.out,
        )

    def _on_stopped(self, evt: SessionStopped) -> None:
        print(f"Monitor {evt.monitor_id} stopped.", file=self.out)

    def _on_chart(self, evt: ChartUpdated) -> None:
        verb = "Created" if evt.created else "Updated"
        print(f"{verb} charts for {evt.symbol}: {', '.join(evt.intervals)}", file=self.out)

    def _on_prompt(self, evt: PromptUpdated) -> None:
        print(f"--- Prompt for {evt.symbol} ---\n{evt.prompt}\n", file=self.out)

    def _on_report(self, evt: ReportSaved) -> None:
        print(f"Report {evt.report_id} saved to {evt.path}", file=self.out)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cryptopulse",
        description="Start a CryptoPulse market monitor and follow its charts.",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--pair", help="Exact trading pair, e.g. BTCUSDT")
    target.add_argument("--query", help="Search text; the exact or first match is used")
    parser.add_argument(
        "--intervals",
        nargs="+",
        choices=VALID_INTERVALS,
        default=None,
        help="Kline intervals to chart (default from settings)",
    )
    parser.add_argument("--cycle", default="", help='Polling cycle such as "30s", "5m", "1h"')
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds instead of waiting for Ctrl-C",
    )
    parser.add_argument(
        "--response-file",
        type=Path,
        default=None,
        help="Submit this file's contents as the analysis response once started",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(SETTINGS_FILENAME),
        help=f"Settings file (default: ./{SETTINGS_FILENAME})",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser


async def _run(console: MonitorConsole, args: argparse.Namespace, response_text: str) -> int:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, console.request_stop)
    return await console.run(
        pair=args.pair or "",
        query=args.query or "",
        intervals=args.intervals or (),
        cycle=args.cycle,
        duration=args.duration,
        response_text=response_text,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    cfg = ClientConfig.from_file(args.config)
    setup_logger(
        LOGGER_NAME,
        cfg.log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    response_text = ""
    if args.response_file is not None:
        try:
            response_text = args.response_file.read_text(encoding="utf-8")
        except OSError as exc:
            print(f"Cannot read {args.response_file}: {exc}", file=sys.stderr)
            return 2

    console = MonitorConsole(cfg)
    return asyncio.run(_run(console, args, response_text))


if __name__ == "__main__":
    sys.exit(main())
