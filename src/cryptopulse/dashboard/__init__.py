"""Render collaborators for the monitor dashboard."""

from cryptopulse.dashboard.registry import ChartRegistry
from cryptopulse.dashboard.renderer import ChartRenderer, RenderResult

__all__ = [
    "ChartRegistry",
    "ChartRenderer",
    "RenderResult",
]
