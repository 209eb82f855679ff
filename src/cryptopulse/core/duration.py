"""Parse short duration tokens such as ``"30s"``, ``"5m"`` or ``"1h"``."""

from __future__ import annotations

import re

from cryptopulse.core.constants import DURATION_UNIT_MS
from cryptopulse.core.exceptions import InvalidFormat

_TOKEN_RE = re.compile(r"(\d+)([smh])", re.ASCII)


def parse_duration(token: str) -> int:
    """Convert a cycle token into milliseconds.

    ``"30s"`` → ``30000``, ``"5m"`` → ``300000``, ``"1h"`` → ``3600000``.
    No bounds are enforced, so ``"0s"`` parses to ``0``; callers that
    schedule work from the result must reject zero themselves.

    Raises
    ------
    InvalidFormat
        If *token* is not one or more digits followed by ``s``, ``m`` or ``h``.
    """
    match = _TOKEN_RE.fullmatch(token) if isinstance(token, str) else None
    if match is None:
        raise InvalidFormat(
            f'Invalid cycle format {token!r}: use a format like "30s", "5m", "1h".'
        )
    value, unit = match.groups()
    return int(value) * DURATION_UNIT_MS[unit]


def is_valid_duration(token: str) -> bool:
    """Return ``True`` if *token* would parse."""
    return isinstance(token, str) and _TOKEN_RE.fullmatch(token) is not None
