"""Shared constants for the CryptoPulse client.

Endpoint paths, timeouts and defaults used across the gateway, the session
controller and the console app live here so there is a single source of truth.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Remote service endpoints
# ---------------------------------------------------------------------------
DEFAULT_BASE_URL: str = "http://127.0.0.1:8080"

PAIRS_PATH: str = "/api/pairs"
MONITOR_PATH: str = "/api/monitor"
MONITOR_STOP_PATH: str = "/api/monitor/stop"
CHART_PATH: str = "/api/chart"
PROMPT_PATH: str = "/api/prompt"
SUBMIT_RESPONSE_PATH: str = "/api/submit_response"
REPORT_PATH: str = "/api/report"

# ---------------------------------------------------------------------------
# Per-call timeouts (seconds).  Searches, status calls and polls use the
# short one; starting a monitor waits for the server to open its streams.
# ---------------------------------------------------------------------------
DEFAULT_REQUEST_TIMEOUT_SECONDS: float = 5.0
DEFAULT_START_TIMEOUT_SECONDS: float = 30.0

# ---------------------------------------------------------------------------
# Cycle tokens are ``<digits><unit>`` where unit is s, m or h.
# ---------------------------------------------------------------------------
DURATION_UNIT_MS: dict[str, int] = {
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
}

DEFAULT_CYCLE: str = "30s"

# The server refuses cycles shorter than this.
DEFAULT_MIN_CYCLE_SECONDS: float = 10.0

# ---------------------------------------------------------------------------
# Kline intervals the server accepts for a monitor.
# ---------------------------------------------------------------------------
VALID_INTERVALS: tuple[str, ...] = ("1m", "5m", "15m", "1h", "4h", "1d")
DEFAULT_INTERVALS: tuple[str, ...] = ("15m",)

# ---------------------------------------------------------------------------
# Pair search
# ---------------------------------------------------------------------------
MIN_QUERY_LENGTH: int = 2

# ---------------------------------------------------------------------------
# Local output directories (relative to the working directory).
# ---------------------------------------------------------------------------
DEFAULT_CHART_DIR: str = "charts"
DEFAULT_REPORT_DIR: str = "reports"
DEFAULT_LOG_DIR: str = "logs"

SETTINGS_FILENAME: str = "cryptopulse_settings.json"
