"""CryptoPulse exception hierarchy.

All application-specific exceptions inherit from :class:`CryptoPulseError`.
Gateway failures are split by cause so callers can react to a timeout, a
non-success status or a broken transport without inspecting message text.
"""

from __future__ import annotations


class CryptoPulseError(Exception):
    """Base exception for all CryptoPulse errors."""


# -- Configuration ----------------------------------------------------------


class ConfigError(CryptoPulseError):
    """Invalid or missing configuration."""


# -- Local input ------------------------------------------------------------


class ValidationError(CryptoPulseError):
    """Bad local input; raised before anything reaches the network."""


class InvalidFormat(ValidationError):
    """A duration token does not match ``<digits><s|m|h>``."""


# -- Remote gateway ---------------------------------------------------------


class GatewayError(CryptoPulseError):
    """A remote call failed."""


class GatewayTimeout(GatewayError):
    """The call did not complete within its timeout and was abandoned."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"request timed out after {timeout:g}s")
        self.timeout = timeout


class HttpError(GatewayError):
    """The service answered with a non-success status."""

    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(f"API error: {status} {body}".rstrip())
        self.status = status
        self.body = body


class NotFoundError(HttpError):
    """The service answered 404; the resource is gone or not ready yet."""


class TransportError(GatewayError):
    """Connection-level failure or an undecodable response body."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
