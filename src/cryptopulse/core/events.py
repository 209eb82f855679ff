"""In-process event system between the session core and its presenters.

The session controllers publish what happened; whoever draws the dashboard
(the console app, a GUI, a test) subscribes.  :class:`ErrorSurfaced` is the
single channel for user-visible failures.

Usage::

    bus = EventBus()
    bus.subscribe(ErrorSurfaced, lambda evt: print(evt.message))
    bus.publish(ErrorSurfaced(operation="start", message="boom"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Type

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PairSelected:
    """A trading pair was chosen for the next monitor."""

    pair: str


@dataclass(frozen=True)
class SuggestionsChanged:
    """The pair suggestion list was repopulated, cleared or hidden."""

    query: str
    suggestions: tuple[str, ...]
    visible: bool


@dataclass(frozen=True)
class SessionStarted:
    """The server accepted a monitor and polling has begun."""

    monitor_id: str
    symbol: str
    intervals: tuple[str, ...]
    cycle: str


@dataclass(frozen=True)
class SessionStopped:
    """The server confirmed the monitor stopped; the session is reset."""

    monitor_id: str
    symbol: str


@dataclass(frozen=True)
class ChartUpdated:
    """Chart panels were drawn; *created* lists the ones drawn for the first time."""

    symbol: str
    intervals: tuple[str, ...]
    created: tuple[str, ...]


@dataclass(frozen=True)
class PromptUpdated:
    """A fresh analysis prompt is available for the selected pair."""

    symbol: str
    prompt: str


@dataclass(frozen=True)
class ReportSaved:
    """An analysis report was downloaded and written to disk."""

    report_id: str
    path: Path


@dataclass(frozen=True)
class ErrorSurfaced:
    """A user-visible failure.  *operation* names what was being attempted."""

    operation: str
    message: str
    error: Exception | None = None


EventHandler = Callable[[Any], None]


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class EventBus:
    """In-process pub/sub event bus.

    Handlers are called synchronously on the event loop that publishes,
    in registration order.
    """

    def __init__(self) -> None:
        self._handlers: dict[Type, list[EventHandler]] = {}

    def subscribe(self, event_type: Type, handler: EventHandler) -> None:
        """Register *handler* to be called when *event_type* is published."""
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: Type, handler: EventHandler) -> None:
        """Remove *handler* from *event_type* subscribers."""
        handlers = self._handlers.get(event_type, [])
        try:
            handlers.remove(handler)
        except ValueError:
            pass

    def publish(self, event: object) -> None:
        """Dispatch *event* to all registered handlers for its type.

        If a handler raises, the exception is logged and remaining handlers
        still execute.
        """
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler %s failed for %s",
                    getattr(handler, "__name__", repr(handler)),
                    type(event).__name__,
                )

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()

    def has_subscribers(self, event_type: Type) -> bool:
        """Return ``True`` if *event_type* has at least one subscriber."""
        return bool(self._handlers.get(event_type))
