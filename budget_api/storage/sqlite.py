"""SQLite key-value store for durable client state."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import databases
import sqlalchemy as sa
from loguru import logger

LIKE_ESCAPE = "/"

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS client_state (
    name VARCHAR PRIMARY KEY NOT NULL,
    value TEXT NOT NULL,
    updated_at DATETIME NOT NULL
)
"""


class SQLiteKeyValueStore:
    """Durable key-value store using databases.

    Values are stored as JSON text, so anything ``json.dumps`` accepts
    round-trips. It plays the role of browser local storage for the client.
    """

    def __init__(self, database_url: str):
        """Initialize the store.

        Args:
            database_url: Database connection URL.
        """
        self.database = databases.Database(database_url)
        self.metadata = sa.MetaData()

        self.state = sa.Table(
            "client_state",
            self.metadata,
            sa.Column("name", sa.String, primary_key=True),
            sa.Column("value", sa.Text),
            sa.Column("updated_at", sa.DateTime),
        )

    async def startup(self) -> None:
        """Open the connection and create the table."""
        path = self.database.url.database
        if path and path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        await self.database.connect()
        await self.database.execute(CREATE_TABLE_SQL)
        logger.debug(f"Client state store ready: {path}")

    async def shutdown(self) -> None:
        """Close database connection."""
        await self.database.disconnect()

    async def get(self, key: str) -> Any | None:
        """Get a decoded value.

        Returns:
            The stored value, or None when missing or not valid JSON.
        """
        query = self.state.select().where(self.state.c.name == key)
        row = await self.database.fetch_one(query)
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except (TypeError, ValueError):
            logger.debug(f"Ignoring unreadable client state for key {key}")
            return None

    async def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one.

        Args:
            key: State key.
            value: JSON-serializable value.
        """
        encoded = json.dumps(value)
        async with self.database.transaction():
            await self.database.execute(self.state.delete().where(self.state.c.name == key))
            await self.database.execute(
                self.state.insert().values(
                    name=key,
                    value=encoded,
                    updated_at=datetime.now(UTC),
                )
            )

    async def delete(self, key: str) -> None:
        """Remove a key if present."""
        await self.database.execute(self.state.delete().where(self.state.c.name == key))

    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with ``prefix``.

        The pattern is bound as one parameter so no ``%`` appears in the SQL
        text. SQLite LIKE ignores case, so names are re-checked here.
        """
        pattern = _escape_like(prefix) + "%"
        query = (
            self.state.select()
            .where(self.state.c.name.like(pattern, escape=LIKE_ESCAPE))
            .order_by(self.state.c.name)
        )
        rows = await self.database.fetch_all(query)
        return [row["name"] for row in rows if row["name"].startswith(prefix)]


def _escape_like(value: str) -> str:
    """Make LIKE wildcards in ``value`` match literally."""
    for char in (LIKE_ESCAPE, "%", "_"):
        value = value.replace(char, LIKE_ESCAPE + char)
    return value
