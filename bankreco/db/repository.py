from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any

from ..models.transaction import BankAccount, NormalizedTransaction, StoredTransaction, dedup_key
from .batch_insert import batch_insert

"""SQL access to bank_transactions / bank_accounts.

Every function takes an open psycopg2 cursor; transaction boundaries are
handled by the caller.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "TRANSACTIONS_TABLE",
    "ACCOUNTS_TABLE",
    "INSERT_COLUMNS",
    "fetch_existing_keys",
    "fetch_transactions",
    "fetch_bank_accounts",
    "insert_transactions",
    "update_account_balance",
    "update_classifications",
    "update_bank_names",
]

TRANSACTIONS_TABLE = "bank_transactions"
ACCOUNTS_TABLE = "bank_accounts"

INSERT_COLUMNS = (
    "date",
    "description",
    "amount",
    "expense_head",
    "vendor",
    "bank_account_id",
    "bank_name",
)


def fetch_existing_keys(cursor: Any) -> set[str]:
    """Dedup keys of every stored transaction."""
    cursor.execute(f"SELECT date, description, amount FROM {TRANSACTIONS_TABLE}")
    return {dedup_key(d, desc, amount) for d, desc, amount in cursor.fetchall()}


def fetch_transactions(cursor: Any) -> list[StoredTransaction]:
    """All stored transactions, newest first."""
    cursor.execute(
        f"SELECT id, date, description, amount, expense_head, vendor, remark, "
        f"bank_account_id, bank_name FROM {TRANSACTIONS_TABLE} ORDER BY date DESC"
    )
    return [
        StoredTransaction(
            id=r[0],
            date=r[1],
            description=r[2] or "",
            amount=Decimal(str(r[3])),
            expense_head=r[4],
            vendor=r[5],
            remark=r[6],
            bank_account_id=r[7],
            bank_name=r[8],
        )
        for r in cursor.fetchall()
    ]


def fetch_bank_accounts(cursor: Any) -> list[BankAccount]:
    """Bank accounts, primary first then by name."""
    cursor.execute(
        f"SELECT id, name, current_balance, last_statement_date, is_primary, is_active "
        f"FROM {ACCOUNTS_TABLE} ORDER BY is_primary DESC, name"
    )
    return [
        BankAccount(
            id=r[0],
            name=r[1],
            current_balance=Decimal(str(r[2] or 0)),
            last_statement_date=r[3],
            is_primary=bool(r[4]),
            is_active=bool(r[5]),
        )
        for r in cursor.fetchall()
    ]


def insert_transactions(
    cursor: Any,
    transactions: Iterable[NormalizedTransaction],
    account: BankAccount | None = None,
) -> int:
    """Insert parsed transactions, linked to ``account`` when given."""
    account_id = account.id if account is not None else None
    bank_name = account.name if account is not None else None
    rows = [
        (t.date, t.description, t.amount, t.expense_head, t.vendor, account_id, bank_name)
        for t in transactions
    ]
    result = batch_insert(cursor, TRANSACTIONS_TABLE, INSERT_COLUMNS, rows)
    return result.inserted_rows


def update_account_balance(cursor: Any, account_id: Any, balance: Decimal, last_statement_date: date) -> None:
    cursor.execute(
        f"UPDATE {ACCOUNTS_TABLE} SET current_balance = %s, last_statement_date = %s WHERE id = %s",
        (balance, last_statement_date, account_id),
    )


def update_classifications(cursor: Any, updates: Iterable[tuple[Any, str | None, str | None]]) -> int:
    count = 0
    for txn_id, expense_head, vendor in updates:
        cursor.execute(
            f"UPDATE {TRANSACTIONS_TABLE} SET expense_head = %s, vendor = %s WHERE id = %s",
            (expense_head, vendor, txn_id),
        )
        count += 1
    logger.debug("classification updates=%d", count)
    return count


def update_bank_names(cursor: Any, updates: Iterable[tuple[Any, str]]) -> int:
    count = 0
    for txn_id, bank_name in updates:
        cursor.execute(
            f"UPDATE {TRANSACTIONS_TABLE} SET bank_name = %s WHERE id = %s",
            (bank_name, txn_id),
        )
        count += 1
    logger.debug("bank name updates=%d", count)
    return count
