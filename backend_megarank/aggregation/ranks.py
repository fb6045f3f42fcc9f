"""
Serialized, coalescing rank recompute over the whole store.

Every write that can change ordering requests a recompute. Requests queue on
one lock; a request already covered by a recompute that started after it was
made returns without running another full pass.
"""

from __future__ import annotations

import asyncio

from backend_megarank.database import ActivityStore
from backend_megarank.megarank_logging import get_logger

logger = get_logger(__name__)


class RankRecalculator:
    def __init__(self, store: ActivityStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()
        self._requested = 0
        self._completed = 0
        self._last_total = 0
        self.runs = 0

    async def recompute_all(self) -> int:
        """Recompute dense ranks; returns the number of ranked addresses."""
        self._requested += 1
        ticket = self._requested
        async with self._lock:
            if self._completed >= ticket:
                logger.debug("ranks_recompute_coalesced", ticket=ticket)
                return self._last_total
            covers = self._requested
            loop = asyncio.get_running_loop()
            total = await loop.run_in_executor(None, self._store.recompute_ranks)
            self.runs += 1
            self._completed = covers
            self._last_total = total
            return total
