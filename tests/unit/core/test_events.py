"""Tests for cryptopulse.core.events."""

from __future__ import annotations

import pytest

from cryptopulse.core.events import (
    ErrorSurfaced,
    EventBus,
    PairSelected,
    SessionStarted,
)


class TestEventBus:
    def test_publish_reaches_subscribers_in_order(self) -> None:
        bus = EventBus()
        seen: list[str] = []
        bus.subscribe(PairSelected, lambda e: seen.append(f"a:{e.pair}"))
        bus.subscribe(PairSelected, lambda e: seen.append(f"b:{e.pair}"))
        bus.publish(PairSelected(pair="BTCUSDT"))
        assert seen == ["a:BTCUSDT", "b:BTCUSDT"]

    def test_dispatch_is_by_exact_type(self) -> None:
        bus = EventBus()
        seen: list[object] = []
        bus.subscribe(ErrorSurfaced, seen.append)
        bus.publish(PairSelected(pair="BTCUSDT"))
        assert seen == []

    def test_failing_handler_does_not_block_others(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        bus = EventBus()
        seen: list[object] = []

        def broken(_event: object) -> None:
            raise RuntimeError("handler bug")

        bus.subscribe(PairSelected, broken)
        bus.subscribe(PairSelected, seen.append)
        bus.publish(PairSelected(pair="ETHUSDT"))

        assert len(seen) == 1
        assert "broken" in caplog.text

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        seen: list[object] = []
        bus.subscribe(PairSelected, seen.append)
        bus.unsubscribe(PairSelected, seen.append)
        bus.unsubscribe(PairSelected, seen.append)
        bus.publish(PairSelected(pair="BTCUSDT"))
        assert seen == []

    def test_clear_and_has_subscribers(self) -> None:
        bus = EventBus()
        bus.subscribe(SessionStarted, lambda e: None)
        assert bus.has_subscribers(SessionStarted)
        assert not bus.has_subscribers(ErrorSurfaced)
        bus.clear()
        assert not bus.has_subscribers(SessionStarted)


class TestEvents:
    def test_events_are_frozen(self) -> None:
        evt = ErrorSurfaced(operation="start monitor", message="boom")
        with pytest.raises(AttributeError):
            evt.message = "other"  # type: ignore[misc]
        assert evt.error is None
