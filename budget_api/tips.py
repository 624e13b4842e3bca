"""Static financial tip registry and tip selection."""

import random
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from .types import TipCategory

# Storage key for the persisted daily tip choice
DAILY_TIP_STORAGE_KEY = "daily_tip_v1"


@dataclass(frozen=True, slots=True)
class Tip:
    """A static educational tip."""

    id: str
    category: TipCategory
    title: str
    description: str
    content: str | None = None
    actionable: str | None = None
    difficulty: str | None = None

    @property
    def body(self) -> str:
        """Extended text, falling back to the description."""
        return self.content or self.description


# Order is part of the daily-pick contract. Keep ids stable.
TIPS: tuple[Tip, ...] = (
    Tip(
        id="tip-budget-50-30-20",
        category="budgeting",
        title="Use the 50/30/20 Rule",
        description="Allocate 50% needs, 30% wants, 20% saving/debt to keep spending balanced.",
        content=(
            "Allocate 50% of net income to needs, 30% to wants, "
            "and 20% to saving or debt payoff."
        ),
        actionable="List last month’s net income, apply percentages, and adjust categories today.",
        difficulty="easy",
    ),
    Tip(
        id="tip-track-small",
        category="budgeting",
        title="Track Small Purchases",
        description="Small daily expenses add up—log them to curb impulse spending.",
        content=(
            "Minor daily expenses (coffee, snacks) can add up. "
            "Logging them raises awareness and curbs impulse spending."
        ),
        actionable="Track every sub-$10 spend for one week in a note.",
        difficulty="easy",
    ),
    Tip(
        id="tip-emergency-fund",
        category="saving",
        title="Build an Emergency Fund",
        description="Target 3–6 months essential expenses in a high-yield account.",
        content=(
            "Aim for 3–6 months of essential expenses in a separate "
            "high-yield savings account for resilience."
        ),
        actionable="Open a high-yield savings account and set an automatic weekly transfer.",
        difficulty="moderate",
    ),
    Tip(
        id="tip-round-up",
        category="saving",
        title="Automate Round-Ups",
        description="Round transactions and save the difference—micro-savings add up.",
        content=(
            "Use a tool that rounds transactions and saves the difference—"
            "effortless micro-savings accumulate."
        ),
        actionable="Enable round-up feature in your banking or fintech app today.",
        difficulty="easy",
    ),
    Tip(
        id="tip-debt-snowball",
        category="debt",
        title="Try the Debt Snowball",
        description="Attack smallest balance debts first for momentum.",
        content=(
            "Pay smallest balances first for motivational wins while making "
            "minimums on others, then roll payments forward."
        ),
        actionable="List debts by balance; pay the smallest aggressively this month.",
        difficulty="moderate",
    ),
    Tip(
        id="tip-debt-avalanche",
        category="debt",
        title="Or Use Debt Avalanche",
        description="Pay highest interest rate debt first to reduce interest cost.",
        content="Target the highest interest rate debt first to minimize total interest paid over time.",
        actionable="Sort debts by APR; increase payment to top APR account.",
        difficulty="advanced",
    ),
    Tip(
        id="tip-invest-index",
        category="investing",
        title="Favor Broad Index Funds",
        description="Low-cost diversified index funds beat most active strategies net of fees.",
        content="Low-cost diversified index funds often outperform frequent stock picking after fees.",
        actionable="Compare total expense ratios; shift one holding to a broad index fund.",
        difficulty="moderate",
    ),
    Tip(
        id="tip-invest-auto",
        category="investing",
        title="Automate Contributions",
        description="Recurring transfers enforce discipline and dollar-cost averaging.",
        content=(
            "Set recurring transfers to investment accounts to enforce "
            "consistency and dollar-cost averaging."
        ),
        actionable="Schedule an automatic monthly transfer after next payday.",
        difficulty="easy",
    ),
    Tip(
        id="tip-mindset-delay",
        category="mindset",
        title="Delay Gratification",
        description="A 24h pause before wants kills impulse buys.",
        content="Waiting 24 hours before non-essential purchases filters out emotional spending.",
        actionable="Add desired item to a list and revisit tomorrow.",
        difficulty="easy",
    ),
    Tip(
        id="tip-mindset-incremental",
        category="mindset",
        title="Think Incrementally",
        description="Small 1% improvements compound heavily over time.",
        content=(
            "Small, repeatable improvements (1% gains) compound into large "
            "financial progress over time."
        ),
        actionable="Pick one recurring bill and reduce it by a few percent.",
        difficulty="easy",
    ),
)

_TIPS_BY_ID: dict[str, Tip] = {tip.id: tip for tip in TIPS}


def get_tip_by_id(tip_id: str) -> Tip | None:
    """Look up a tip. Unknown ids return None; callers decide if that is fatal."""
    return _TIPS_BY_ID.get(tip_id)


def all_tips() -> list[Tip]:
    """Return a copy of the ordered tip dataset."""
    return list(TIPS)


def today_iso() -> str:
    """Current UTC calendar day as ``YYYY-MM-DD``."""
    return datetime.now(UTC).date().isoformat()


def day_key(day: date | datetime | str | None = None) -> str:
    """Normalize a day to its ``YYYY-MM-DD`` string.

    Datetimes are converted to UTC first (naive ones are taken as UTC).
    Strings are cut to their first ten characters.
    """
    if day is None:
        return today_iso()
    if isinstance(day, datetime):
        if day.tzinfo is not None:
            day = day.astimezone(UTC)
        return day.date().isoformat()
    if isinstance(day, date):
        return day.isoformat()
    return str(day)[:10]


def day_hash(key: str) -> int:
    """Polynomial rolling hash (x31) with unsigned 32-bit wraparound."""
    value = 0
    for char in key:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    return value


def pick_tip_for_date(day: date | datetime | str | None = None) -> Tip:
    """Deterministic tip for a calendar day."""
    return TIPS[day_hash(day_key(day)) % len(TIPS)]


def random_tip(exclude_ids: Iterable[str | None] = ()) -> Tip:
    """Uniform random tip not in ``exclude_ids``.

    Falls back to the full set when every tip is excluded, so it never fails.
    """
    excluded = {tip_id for tip_id in exclude_ids if tip_id}
    pool = [tip for tip in TIPS if tip.id not in excluded]
    return random.choice(pool or TIPS)  # nosec B311 - not security sensitive
