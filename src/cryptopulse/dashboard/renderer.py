"""Candlestick-plus-volume panels, one matplotlib figure per interval."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from matplotlib import dates as mdates
from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

from cryptopulse.dashboard.registry import ChartRegistry
from cryptopulse.models.kline import ChartData, Kline

logger = logging.getLogger(__name__)

UP_COLOR = "#28a745"
DOWN_COLOR = "#dc3545"
VOLUME_COLOR = "#007bff"
VOLUME_ALPHA = 0.4


@dataclass(frozen=True)
class RenderResult:
    """Intervals drawn by one :meth:`ChartRenderer.render` call."""

    drawn: tuple[str, ...] = ()
    created: tuple[str, ...] = ()


class ChartRenderer:
    """Draws panels for the session and remembers them in a :class:`ChartRegistry`.

    Parameters
    ----------
    chart_dir:
        Where ``<symbol>-<interval>.png`` snapshots are written.  ``None``
        keeps figures in memory only.
    registry:
        Panel registry; a fresh one is created when omitted.
    """

    def __init__(
        self, chart_dir: Path | None = None, registry: ChartRegistry | None = None
    ) -> None:
        self.chart_dir = chart_dir
        self.registry = registry if registry is not None else ChartRegistry()
        self._figures: dict[str, Figure] = {}
        # render() runs in worker threads; reset() may run on the loop
        self._lock = threading.Lock()

    def figure(self, interval: str) -> Figure | None:
        return self._figures.get(interval)

    def render(
        self,
        chart: ChartData,
        *,
        symbol: str,
        allowed: Iterable[str],
        update: bool = False,
    ) -> RenderResult:
        """Draw every interval in *chart* that is also in *allowed*.

        Safe to call from a worker thread. A panel is created when none
        exists yet or when *update* is false; otherwise the existing panel is
        redrawn in place.
        """
        with self._lock:
            return self._render(chart, symbol, set(allowed), update)

    def _render(
        self, chart: ChartData, symbol: str, allowed_set: set[str], update: bool
    ) -> RenderResult:
        drawn: list[str] = []
        created: list[str] = []

        for interval in chart:
            if interval not in allowed_set:
                logger.debug("Skipping interval %s: not requested for %s", interval, symbol)
                continue
            bars = chart.get(interval)
            if not bars:
                continue

            if update and self.registry.has_panel(interval) and interval in self._figures:
                fig = self._figures[interval]
                for ax in list(fig.axes):
                    fig.delaxes(ax)
                logger.debug("Updated chart for interval: %s", interval)
            else:
                fig = Figure(figsize=(10, 5), dpi=100)
                self._figures[interval] = fig
                self.registry.mark_created(interval)
                created.append(interval)
                logger.info("Created new chart for interval: %s", interval)

            _draw_panel(fig, bars, title=f"{symbol} - {interval} K-line")
            self._save(fig, symbol, interval)
            drawn.append(interval)

        return RenderResult(drawn=tuple(drawn), created=tuple(created))

    def reset(self) -> None:
        """Drop all panels and clear the registry."""
        with self._lock:
            self._clear()

    def _clear(self) -> None:
        for fig in self._figures.values():
            fig.clear()
        self._figures.clear()
        self.registry.clear()

    def _save(self, fig: Figure, symbol: str, interval: str) -> None:
        if self.chart_dir is None:
            return
        path = self.chart_dir / f"{symbol}-{interval}.png"
        try:
            self.chart_dir.mkdir(parents=True, exist_ok=True)
            fig.savefig(path)
        except OSError as exc:
            logger.error("Could not save chart %s: %s", path, exc)


def _draw_panel(fig: Figure, bars: Sequence[Kline], title: str) -> None:
    ax = fig.add_subplot(111)
    vol_ax = ax.twinx()

    xs = [mdates.date2num(k.opened_at) for k in bars]
    gaps = [b - a for a, b in zip(xs, xs[1:]) if b > a]
    # One hour (in days) when there is a single bar
    step = min(gaps) if gaps else 1.0 / 24
    width = step * 0.6

    for x, k in zip(xs, bars):
        color = UP_COLOR if k.is_bullish else DOWN_COLOR
        ax.vlines(x, k.low, k.high, colors=color, linewidth=1.0)
        body_low = min(k.open, k.close)
        body_h = abs(k.close - k.open) or (k.high - k.low) * 0.001
        ax.add_patch(
            Rectangle(
                (x - width / 2, body_low),
                width,
                body_h,
                facecolor=color,
                edgecolor=color,
                linewidth=0.8,
            )
        )

    vol_ax.bar(xs, [k.volume for k in bars], width=width, color=VOLUME_COLOR, alpha=VOLUME_ALPHA)
    vol_ax.set_ylabel("Volume")
    vol_ax.grid(False)

    lows = [k.low for k in bars]
    highs = [k.high for k in bars]
    pad = (max(highs) - min(lows)) * 0.05 or max(highs) * 0.01 or 1.0
    ax.set_ylim(min(lows) - pad, max(highs) + pad)
    ax.set_xlim(xs[0] - step, xs[-1] + step)

    ax.set_title(title)
    ax.set_xlabel("Time")
    ax.set_ylabel("Price")
    ax.xaxis.set_major_locator(mdates.AutoDateLocator())
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%m-%d %H:%M"))
    ax.grid(True, linewidth=0.6, alpha=0.35)
    fig.autofmt_xdate()
