"""Validated client configuration loaded from ``cryptopulse_settings.json``."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cryptopulse.core.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_CHART_DIR,
    DEFAULT_CYCLE,
    DEFAULT_INTERVALS,
    DEFAULT_LOG_DIR,
    DEFAULT_MIN_CYCLE_SECONDS,
    DEFAULT_REPORT_DIR,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_START_TIMEOUT_SECONDS,
    VALID_INTERVALS,
)
from cryptopulse.core.duration import is_valid_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientConfig:
    """Immutable snapshot of the client configuration.

    Build from a settings file via :meth:`from_file`, or construct directly
    for testing.
    """

    base_url: str = DEFAULT_BASE_URL
    proxy_url: str = ""
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    start_timeout_seconds: float = DEFAULT_START_TIMEOUT_SECONDS
    default_cycle: str = DEFAULT_CYCLE
    min_cycle_seconds: float = DEFAULT_MIN_CYCLE_SECONDS
    default_intervals: list[str] = field(default_factory=lambda: list(DEFAULT_INTERVALS))
    chart_dir: Path = Path(DEFAULT_CHART_DIR)
    report_dir: Path = Path(DEFAULT_REPORT_DIR)
    log_dir: Path = Path(DEFAULT_LOG_DIR)

    # -- factory ----------------------------------------------------------

    @classmethod
    def from_file(cls, path: Path) -> ClientConfig:
        """Load from a JSON settings file with validation.

        Missing or unparseable values fall back to defaults.  Validation
        warnings are logged but never raise.
        """
        try:
            raw = path.read_text(encoding="utf-8")
            data: dict[str, Any] = json.loads(raw) or {}
            if not isinstance(data, dict):
                data = {}
        except (OSError, json.JSONDecodeError, TypeError) as exc:
            logger.warning("Could not read config from %s: %s", path, exc)
            data = {}

        cfg = cls(
            base_url=_parse_url(data.get("base_url"), DEFAULT_BASE_URL),
            proxy_url=str(data.get("proxy_url", "") or "").strip(),
            request_timeout_seconds=_safe_float(
                data.get("request_timeout_seconds"), DEFAULT_REQUEST_TIMEOUT_SECONDS
            ),
            start_timeout_seconds=_safe_float(
                data.get("start_timeout_seconds"), DEFAULT_START_TIMEOUT_SECONDS
            ),
            default_cycle=str(data.get("default_cycle", "") or DEFAULT_CYCLE).strip(),
            min_cycle_seconds=max(
                0.0, _safe_float(data.get("min_cycle_seconds"), DEFAULT_MIN_CYCLE_SECONDS)
            ),
            default_intervals=_parse_intervals(data),
            chart_dir=Path(str(data.get("chart_dir", "") or DEFAULT_CHART_DIR)),
            report_dir=Path(str(data.get("report_dir", "") or DEFAULT_REPORT_DIR)),
            log_dir=Path(str(data.get("log_dir", "") or DEFAULT_LOG_DIR)),
        )

        errors = cfg.validate()
        for err in errors:
            logger.warning("Config validation: %s", err)

        return cfg

    # -- validation -------------------------------------------------------

    def validate(self) -> list[str]:
        """Return a list of human-readable validation warnings (empty = OK)."""
        errors: list[str] = []
        if not self.base_url.startswith(("http://", "https://")):
            errors.append(f"base_url={self.base_url!r} must be an http(s) URL.")
        if self.request_timeout_seconds <= 0:
            errors.append(
                f"request_timeout_seconds={self.request_timeout_seconds} must be > 0."
            )
        if self.start_timeout_seconds <= 0:
            errors.append(f"start_timeout_seconds={self.start_timeout_seconds} must be > 0.")
        if not is_valid_duration(self.default_cycle):
            errors.append(f"default_cycle={self.default_cycle!r} is not a valid cycle.")
        if not self.default_intervals:
            errors.append("default_intervals is empty.")
        unknown = [i for i in self.default_intervals if i not in VALID_INTERVALS]
        if unknown:
            errors.append(f"default_intervals has unknown intervals: {', '.join(unknown)}.")
        return errors


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _parse_url(value: Any, default: str) -> str:
    url = str(value or "").strip().rstrip("/")
    return url if url else default


def _parse_intervals(data: dict[str, Any]) -> list[str]:
    raw = data.get("default_intervals")
    if not isinstance(raw, list) or not raw:
        return list(DEFAULT_INTERVALS)
    intervals = [str(i).strip() for i in raw if str(i).strip()]
    return intervals if intervals else list(DEFAULT_INTERVALS)


def _safe_float(value: Any, default: float) -> float:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default
