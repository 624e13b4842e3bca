"""Cache implementations."""

import asyncio
from typing import Any

from loguru import logger

from ..models import Expansion


class InMemoryExpansionCache:
    """Process-lifetime expansion cache keyed by tip id.

    Entries never expire. A fallback result is cached like any other, so a
    transient provider failure sticks for the tip until the entry is
    invalidated or the process restarts.
    """

    def __init__(self) -> None:
        self.entries: dict[str, Expansion] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def startup(self) -> None:
        """Initialize cache."""
        logger.debug("In-memory expansion cache ready")

    async def shutdown(self) -> None:
        """Cleanup cache."""
        self.entries.clear()
        self._locks.clear()

    async def get(self, tip_id: str) -> Expansion | None:
        """Get the cached expansion (the stored object, not a copy)."""
        return self.entries.get(tip_id)

    async def set(self, tip_id: str, expansion: Expansion) -> None:
        """Store an expansion, silently replacing any previous entry."""
        self.entries[tip_id] = expansion

    async def invalidate(self, tip_id: str) -> None:
        """Drop one tip's cached expansion."""
        self.entries.pop(tip_id, None)

    def lock(self, tip_id: str) -> asyncio.Lock:
        """Single-flight lock for one tip id."""
        lock = self._locks.get(tip_id)
        if lock is None:
            lock = self._locks[tip_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, tip_id: Any) -> bool:
        return tip_id in self.entries
