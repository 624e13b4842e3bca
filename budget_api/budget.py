"""Monthly budget arithmetic over income and expense transactions."""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

TransactionType = Literal["income", "expense"]


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single income or expense entry."""

    id: str
    type: TransactionType
    date: str
    amount: float
    description: str = ""
    category: str = ""
    period_tag: str = ""


@dataclass(frozen=True, slots=True)
class Totals:
    income_total: float = 0.0
    expense_total: float = 0.0


def compute_totals(transactions: Iterable[Transaction]) -> Totals:
    """Sum income and expenses separately."""
    income = expense = 0.0
    for transaction in transactions:
        if transaction.type == "income":
            income += transaction.amount
        else:
            expense += transaction.amount
    return Totals(income_total=income, expense_total=expense)


def group_by_category(
    transactions: Iterable[Transaction], transaction_type: TransactionType
) -> list[tuple[str, float]]:
    """Total per category for one transaction type, in first-seen order."""
    totals: dict[str, float] = {}
    for transaction in transactions:
        if transaction.type != transaction_type:
            continue
        totals[transaction.category] = totals.get(transaction.category, 0.0) + transaction.amount
    return list(totals.items())


def compute_ending_balance(starting_balance: float, income_total: float, expense_total: float) -> float:
    return starting_balance + income_total - expense_total


def compute_savings_percent(starting_balance: float, net_savings: float) -> float | None:
    """Net savings as a percentage of the starting balance; None if the balance is not positive."""
    if starting_balance <= 0:
        return None
    return net_savings / starting_balance * 100


def normalize_period(date_iso: str) -> str:
    """Bucket a date into its week-of-month period label ("" if unparsable)."""
    try:
        day = datetime.fromisoformat(date_iso).day
    except (TypeError, ValueError):
        return ""
    if day <= 7:
        return "1st-7th"
    if day <= 14:
        return "8th-14th"
    if day <= 21:
        return "15th-21st"
    return "22nd-31st"


def format_currency(amount: float) -> str:
    """US dollar formatting, e.g. ``-$1,234.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def round1(value: float) -> float:
    """Round to one decimal place, halves toward positive infinity."""
    return math.floor(value * 10 + 0.5) / 10
