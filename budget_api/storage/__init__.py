"""Storage module with factories for the expansion cache and client store."""

from loguru import logger

from ..config import get_settings
from .cache import InMemoryExpansionCache
from .protocols import ExpansionCache, KeyValueStore
from .sqlite import SQLiteKeyValueStore


def create_expansion_cache() -> ExpansionCache:
    """Create the server-side expansion cache."""
    logger.info("Creating in-memory expansion cache")
    return InMemoryExpansionCache()


def create_client_store(database_url: str | None = None) -> KeyValueStore:
    """Create the durable client store.

    Args:
        database_url: Database URL. Uses settings if not provided.
    """
    url = database_url or get_settings().client_database_url
    logger.info("Creating SQLite client state store")
    return SQLiteKeyValueStore(url)


__all__ = [
    "ExpansionCache",
    "InMemoryExpansionCache",
    "KeyValueStore",
    "SQLiteKeyValueStore",
    "create_client_store",
    "create_expansion_cache",
]
