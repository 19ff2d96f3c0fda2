from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from .statement import StatementFormat

"""Transaction models for the bank statement import tool.

NormalizedTransaction is the canonical output of statement parsing; StoredTransaction
and BankAccount mirror the rows already persisted in PostgreSQL.
"""

__all__ = [
    "NormalizedTransaction",
    "StoredTransaction",
    "BankAccount",
    "DedupResult",
    "ImportResult",
    "dedup_key",
]


def _amount_text(amount: Any) -> str:
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    if value == 0:
        return "0"  # -0 と 0 を同一視
    return format(value.normalize(), "f")


def dedup_key(txn_date: date | str, description: str, amount: Any) -> str:
    """Render the (date, description, amount) triple used for duplicate detection.

    The amount is rendered without trailing zeros so that 100, 100.0 and
    Decimal("100.00") produce the same key.

    >>> dedup_key(date(2024, 1, 1), "ABC", Decimal("100.00"))
    '2024-01-01|ABC|100'
    """
    date_text = txn_date.isoformat() if isinstance(txn_date, date) else str(txn_date)
    return f"{date_text}|{description}|{_amount_text(amount)}"


@dataclass(frozen=True)
class NormalizedTransaction:
    """One statement row after parsing.

    amount is signed: positive = credit (inflow), negative = debit (outflow).
    """
    date: date
    description: str
    amount: Decimal
    expense_head: str | None = None
    vendor: str | None = None

    @property
    def key(self) -> str:
        return dedup_key(self.date, self.description, self.amount)


@dataclass(frozen=True)
class StoredTransaction:
    """A row of the bank_transactions table."""
    id: Any
    date: date
    description: str
    amount: Decimal
    expense_head: str | None = None
    vendor: str | None = None
    remark: str | None = None
    bank_account_id: Any = None
    bank_name: str | None = None


@dataclass(frozen=True)
class BankAccount:
    """A row of the bank_accounts table."""
    id: Any
    name: str
    current_balance: Decimal = Decimal("0")
    last_statement_date: date | None = None
    is_primary: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class DedupResult:
    """New transactions split from the ones already stored."""
    new_transactions: list[NormalizedTransaction]
    duplicate_count: int


@dataclass(frozen=True)
class ImportResult:
    """Outcome of importing one statement grid.

    closing_balance is the raw text of the last non-empty balance cell ("" if none).
    """
    transactions: list[NormalizedTransaction]  # 挿入対象 (重複除外後)
    duplicate_count: int
    closing_balance: str
    statement_format: StatementFormat
    header_row_index: int
    parsed_count: int  # 重複除外前の正規化済み行数
    latest_date: date | None = None  # 重複除外前の最新取引日
