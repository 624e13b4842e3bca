"""Storage protocol definitions using typing.Protocol."""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from ..models import Expansion


class ExpansionCache(Protocol):
    """Server-side cache holding at most one expansion per tip id."""

    async def get(self, tip_id: str) -> Expansion | None:
        """Get the cached expansion."""
        ...

    async def set(self, tip_id: str, expansion: Expansion) -> None:
        """Store an expansion, replacing any previous one."""
        ...

    async def invalidate(self, tip_id: str) -> None:
        """Drop the cached expansion for one tip."""
        ...

    def lock(self, tip_id: str) -> AbstractAsyncContextManager[Any]:
        """Per-tip lock coordinating concurrent misses."""
        ...

    async def startup(self) -> None:
        """Initialize cache on startup."""
        ...

    async def shutdown(self) -> None:
        """Cleanup cache on shutdown."""
        ...


class KeyValueStore(Protocol):
    """Durable key-value store for client state."""

    async def get(self, key: str) -> Any | None:
        """Get the decoded value stored under a key."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a key."""
        ...

    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with a prefix."""
        ...

    async def startup(self) -> None:
        """Open the store."""
        ...

    async def shutdown(self) -> None:
        """Close the store."""
        ...
