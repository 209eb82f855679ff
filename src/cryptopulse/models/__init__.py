"""Domain data models for the CryptoPulse client.

Re-exports all model classes for convenient imports::

    from cryptopulse.models import ChartData, Kline, Session, SessionState
"""

from cryptopulse.models.kline import ChartData, Kline
from cryptopulse.models.session import Session, SessionState

__all__ = [
    "ChartData",
    "Kline",
    "Session",
    "SessionState",
]
