from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Statement layout models: supported bank formats and resolved column positions."""

__all__ = [
    "StatementFormat",
    "ColumnMap",
]


class StatementFormat(Enum):
    """Supported bank statement layouts.

    - ICICI: "Value Date" / "Description" / "Cr/Dr" + "Transaction Amount"
    - JANATA: "Date" / "Transaction Particulars" / "Withdrawal" + "Deposit"
    """
    ICICI = "icici"
    JANATA = "janata"


@dataclass(frozen=True)
class ColumnMap:
    """Zero-based column index per logical field within the detected header row.

    Fields that a format does not use (or an optional column that is absent) are None.
    """
    date: int
    description: int
    amount: int | None = None  # ICICI
    credit_debit_flag: int | None = None  # ICICI
    withdrawal: int | None = None  # JANATA
    deposit: int | None = None  # JANATA
    balance: int | None = None  # both, optional

    def indices(self) -> list[int]:
        """All resolved (non-None) column indices."""
        values = (
            self.date,
            self.description,
            self.amount,
            self.credit_debit_flag,
            self.withdrawal,
            self.deposit,
            self.balance,
        )
        return [v for v in values if v is not None]
