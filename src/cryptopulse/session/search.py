"""Pair lookup as the user types, feeding the session's pair selection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from cryptopulse.core.constants import MIN_QUERY_LENGTH
from cryptopulse.core.events import SuggestionsChanged
from cryptopulse.core.exceptions import GatewayError
from cryptopulse.core.gateway import RemoteGateway
from cryptopulse.session.controller import SessionController

logger = logging.getLogger(__name__)


@dataclass
class PendingSearch:
    """The in-flight query and the task running it."""

    query: str
    task: asyncio.Task


class PairSearchController:
    """Keeps a suggestion list in step with the search box.

    Each new query cancels the search still running for the previous one,
    so a slow stale answer cannot overwrite a newer list.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        session: SessionController,
        min_query_length: int = MIN_QUERY_LENGTH,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._min_query_length = min_query_length
        self.suggestions: tuple[str, ...] = ()
        self.visible = False
        self.pending: Optional[PendingSearch] = None

    def on_query_changed(self, query: str) -> None:
        """Fire-and-forget search for *query*.  Needs a running event loop."""
        self.cancel_pending()
        task = asyncio.create_task(self.search(query), name=f"pair-search:{query}")
        self.pending = PendingSearch(query=query, task=task)
        task.add_done_callback(self._forget)

    def cancel_pending(self) -> None:
        if self.pending is not None:
            self.pending.task.cancel()
            self.pending = None

    async def search(self, query: str) -> list[str]:
        """Look up pairs matching *query* and show them as suggestions."""
        query = (query or "").strip()
        self._show(query, ())
        if len(query) < self._min_query_length:
            return []

        try:
            pairs = await self._gateway.search_pairs(query)
        except GatewayError as exc:
            self._report_failure(query, exc)
            return []

        self._show(query, tuple(pairs))
        logger.debug("Search %r returned %d pairs", query, len(pairs))
        return pairs

    def select(self, pair: str) -> bool:
        """Pick one of the listed suggestions and close the list.

        The list stays open when the session refuses the pair.
        """
        if not self.visible or pair not in self.suggestions:
            logger.warning("Ignoring selection of %r: not a current suggestion", pair)
            return False
        if not self._session.select_pair(pair):
            return False
        self._show("", ())
        return True

    def _report_failure(self, query: str, exc: GatewayError) -> None:
        self._show(query, ())
        self._session.report_error("search pairs", exc)

    def _show(self, query: str, pairs: tuple[str, ...]) -> None:
        self.suggestions = pairs
        self.visible = bool(pairs)
        self._session.bus.publish(
            SuggestionsChanged(query=query, suggestions=pairs, visible=self.visible)
        )

    def _forget(self, task: asyncio.Task) -> None:
        if self.pending is not None and self.pending.task is task:
            self.pending = None
