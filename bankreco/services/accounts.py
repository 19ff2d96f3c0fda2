from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from typing import Any

from ..excel.cells import as_amount, to_cell
from ..models.classification import DEFAULT_RULES, ClassificationRule
from ..models.transaction import BankAccount, ImportResult, StoredTransaction
from .classification import apply_rules

"""Follow-up updates around an import: account balance, rule re-application to
stored rows and bank-name backfill. All functions are pure; db.repository applies
the returned updates."""

__all__ = [
    "closing_balance_update",
    "reclassify_transactions",
    "backfill_bank_names",
    "select_upload_account",
]


def closing_balance_update(
    account: BankAccount, result: ImportResult, today: date
) -> tuple[Decimal, date]:
    """New (current_balance, last_statement_date) for the account of an import.

    The balance comes from the statement's closing balance text (thousands
    separators stripped); when it is missing or not numeric the account keeps
    its current balance. The statement date is the latest parsed transaction
    date, or ``today`` when the statement had none.
    """
    parsed = as_amount(to_cell(result.closing_balance))
    balance = parsed if parsed is not None else account.current_balance
    return balance, result.latest_date or today


def reclassify_transactions(
    stored: Iterable[StoredTransaction],
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
) -> list[tuple[Any, str | None, str | None]]:
    """Apply classification rules to stored rows lacking expense head or vendor.

    Returns (id, expense_head, vendor) for rows whose classification changed.
    """
    updates: list[tuple[Any, str | None, str | None]] = []
    for txn in stored:
        if txn.expense_head and txn.vendor:
            continue
        expense_head, vendor = apply_rules(txn.description, txn.expense_head, txn.vendor, rules)
        if expense_head != txn.expense_head or vendor != txn.vendor:
            updates.append((txn.id, expense_head, vendor))
    return updates


def backfill_bank_names(
    stored: Iterable[StoredTransaction], accounts: Iterable[BankAccount]
) -> list[tuple[Any, str]]:
    """(id, bank_name) for rows linked to an account but missing the bank name."""
    names = {a.id: a.name for a in accounts}
    return [
        (txn.id, names[txn.bank_account_id])
        for txn in stored
        if txn.bank_account_id is not None and not txn.bank_name and txn.bank_account_id in names
    ]


def select_upload_account(accounts: Sequence[BankAccount], name: str | None = None) -> BankAccount | None:
    """Account that imported rows are attached to.

    With ``name`` the account of that name (None if absent); otherwise the
    primary account, falling back to the first one.
    """
    if name is not None:
        return next((a for a in accounts if a.name == name), None)
    if not accounts:
        return None
    return next((a for a in accounts if a.is_primary), accounts[0])
