from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ..models.transaction import StoredTransaction

"""Filtering and totals over stored bank transactions (the --report view)."""

__all__ = [
    "filter_transactions",
    "month_options",
    "vendor_options",
    "total_amount",
    "format_inr",
]


def _month_of(txn: StoredTransaction) -> str:
    return txn.date.strftime("%Y-%m")


def filter_transactions(
    stored: Iterable[StoredTransaction],
    bank_account_id: Any = None,
    month: str | None = None,
    vendor: str | None = None,
) -> list[StoredTransaction]:
    """Rows matching every given filter (None = no filter). month is 'YYYY-MM'."""
    rows = list(stored)
    if bank_account_id is not None:
        rows = [t for t in rows if t.bank_account_id == bank_account_id]
    if month is not None:
        rows = [t for t in rows if _month_of(t) == month]
    if vendor is not None:
        rows = [t for t in rows if t.vendor == vendor]
    return rows


def month_options(stored: Iterable[StoredTransaction]) -> list[str]:
    """Distinct 'YYYY-MM' values, newest first."""
    return sorted({_month_of(t) for t in stored}, reverse=True)


def vendor_options(stored: Iterable[StoredTransaction]) -> list[str]:
    return sorted({t.vendor for t in stored if t.vendor})


def total_amount(stored: Iterable[StoredTransaction]) -> Decimal:
    return sum((Decimal(t.amount) for t in stored), Decimal("0"))


def _group_indian(digits: str) -> str:
    # 下3桁 + 以降2桁区切り (12,34,567)
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join([*groups, tail])


def format_inr(amount: Decimal | int | float) -> str:
    """Render an amount as 'Rs.1,23,456.00' ('-Rs.…' when negative)."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    digits, fraction = f"{abs(value):.2f}".split(".")
    return f"{sign}Rs.{_group_indian(digits)}.{fraction}"
