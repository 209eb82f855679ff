"""Tracks which interval panels already exist for the current session."""

from __future__ import annotations


class ChartRegistry:
    """Interval label → "panel exists".

    The renderer asks :meth:`has_panel` to choose between drawing a new
    panel and updating one in place, and calls :meth:`mark_created` after
    drawing a new one.  :meth:`clear` runs once per session reset.
    """

    def __init__(self) -> None:
        self._panels: dict[str, bool] = {}

    def has_panel(self, interval: str) -> bool:
        return self._panels.get(interval, False)

    def mark_created(self, interval: str) -> None:
        self._panels[interval] = True

    def clear(self) -> None:
        self._panels.clear()

    def intervals(self) -> tuple[str, ...]:
        return tuple(self._panels)

    def __contains__(self, interval: object) -> bool:
        return interval in self._panels

    def __len__(self) -> int:
        return len(self._panels)
