"""Headless tip-of-the-day session: daily pick, alternates and expansions."""

from dataclasses import dataclass

from loguru import logger

from .client import ExpansionClient
from .models import Expansion
from .storage import KeyValueStore
from .tips import DAILY_TIP_STORAGE_KEY, Tip, pick_tip_for_date, random_tip, today_iso
from .types import StoredDailyTip


@dataclass
class TipOfDaySession:
    """State behind the tip-of-the-day panel.

    The same daily tip is shown all day (persisted under
    ``DAILY_TIP_STORAGE_KEY``); alternates are random tips other than the daily
    and current ones. An expansion is only exposed through
    :attr:`visible_expansion` while it belongs to the current tip.
    """

    client: ExpansionClient
    store: KeyValueStore
    day: str | None = None
    daily: Tip | None = None
    current: Tip | None = None
    revealed: bool = False
    alt_count: int = 0
    expanding: bool = False
    expansion: Expansion | None = None
    error: str | None = None

    async def load(self, today: str | None = None) -> Tip:
        """Restore today's tip or pick and persist a fresh one."""
        today = today or today_iso()
        self.day = today
        stored = await self._load_stored()
        if stored and stored.get("date") == today:
            daily = pick_tip_for_date(today)
            if daily.id == stored.get("tipId"):
                self.daily = daily
                if stored.get("revealed"):
                    await self._show(daily)
                return daily

        daily = pick_tip_for_date(today)
        self.daily = daily
        await self._save_stored({"date": today, "tipId": daily.id})
        return daily

    async def reveal(self) -> Tip | None:
        """Show the daily tip."""
        if self.daily is None:
            await self.load()
        await self._show(self.daily)
        await self._save_stored(
            {"date": self.day or today_iso(), "tipId": self.daily.id, "revealed": True}
        )
        return self.current

    async def another(self) -> Tip:
        """Switch to a random tip other than the daily and current ones."""
        exclude = [tip.id for tip in (self.daily, self.current) if tip is not None]
        alternate = random_tip(exclude)
        self.alt_count += 1
        self.expansion = None
        self.error = None
        await self._show(alternate)
        return alternate

    async def expand_more(self) -> Expansion | None:
        """Request the deeper dive for the current tip."""
        if self.current is None:
            return None

        self.expanding = True
        self.error = None
        try:
            outcome = await self.client.expand(self.current.id)
        finally:
            self.expanding = False

        if outcome.error is not None:
            self.error = outcome.error
        else:
            self.expansion = outcome.expansion
        return outcome.expansion

    @property
    def visible_expansion(self) -> Expansion | None:
        """The expansion, only if it was generated for the current tip."""
        if self.expansion is None or self.current is None:
            return None
        if self.expansion.base_tip_id != self.current.id:
            return None
        return self.expansion

    async def _show(self, tip: Tip) -> None:
        self.current = tip
        self.revealed = True
        await self.client.hydrate(tip.id)

    async def _load_stored(self) -> StoredDailyTip | None:
        try:
            stored = await self.store.get(DAILY_TIP_STORAGE_KEY)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Daily tip load failed (non-critical): {e}")
            return None
        return stored if isinstance(stored, dict) else None

    async def _save_stored(self, stored: StoredDailyTip) -> None:
        try:
            await self.store.set(DAILY_TIP_STORAGE_KEY, stored)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Daily tip persist failed (non-critical): {e}")
