"""The monitor session record and its lifecycle states."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of the single monitor session."""

    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


@dataclass
class Session:
    """Mutable state of the one monitor this client tracks.

    Empty strings mean "not set".  ``is_active`` implies both
    ``monitor_id`` and ``selected_pair`` are non-empty; :meth:`validate`
    reports any violation.
    """

    selected_pair: str = ""
    monitor_id: str = ""
    is_active: bool = False
    cycle: str = ""
    intervals: tuple[str, ...] = ()
    state: SessionState = SessionState.IDLE

    def reset(self) -> None:
        """Return every field to its zero value."""
        self.selected_pair = ""
        self.monitor_id = ""
        self.is_active = False
        self.cycle = ""
        self.intervals = ()
        self.state = SessionState.IDLE

    def validate(self) -> list[str]:
        """Return a list of invariant violations (empty means consistent)."""
        errors: list[str] = []
        if self.is_active and not self.monitor_id:
            errors.append("active session has no monitor_id.")
        if self.is_active and not self.selected_pair:
            errors.append("active session has no selected_pair.")
        # The monitor stays live while a stop request is in flight
        live = self.state in (SessionState.ACTIVE, SessionState.STOPPING)
        if self.is_active != live:
            errors.append(f"is_active={self.is_active} disagrees with state={self.state.value}.")
        return errors
