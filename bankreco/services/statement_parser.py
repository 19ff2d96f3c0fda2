from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from ..excel.cells import Cell, TextCell, as_amount, as_date, as_text, cell_at, is_empty
from ..models.classification import DEFAULT_RULES, ClassificationRule
from ..models.statement import ColumnMap, StatementFormat
from ..models.transaction import NormalizedTransaction
from .classification import apply_rules
from .errors import HeaderNotFound, RequiredColumnMissing

"""Statement grid parsing: header detection, column resolution, row normalization.

Header and column lookup are case-insensitive substring matches on text cells,
which is enough to tell the two supported exports apart and tolerates the small
wording differences between bank branches ("Transaction Amount(INR)" etc.).
"""

logger = logging.getLogger(__name__)

__all__ = [
    "detect_format",
    "find_column",
    "resolve_columns",
    "normalize_rows",
]

# ヘッダ行判定: 全フレーズを含むセルが存在する行
_HEADER_MARKERS: dict[StatementFormat, tuple[str, ...]] = {
    StatementFormat.ICICI: ("value date", "description"),
    StatementFormat.JANATA: ("date", "transaction particulars"),
}

_COLUMN_TARGETS: dict[StatementFormat, dict[str, str]] = {
    StatementFormat.ICICI: {
        "date": "value date",
        "description": "description",
        "credit_debit_flag": "cr/dr",
        "amount": "transaction amount",
        "balance": "available balance",
    },
    StatementFormat.JANATA: {
        "date": "date",
        "description": "transaction particulars",
        "withdrawal": "withdrawal",
        "deposit": "deposit",
        "balance": "available balance",
    },
}

_REQUIRED_FIELDS: dict[StatementFormat, tuple[str, ...]] = {
    StatementFormat.ICICI: ("date", "description", "credit_debit_flag", "amount"),
    StatementFormat.JANATA: ("date", "description", "withdrawal", "deposit"),
}

_ZERO = Decimal("0")


def _row_mentions(row: Sequence[Cell], phrase: str) -> bool:
    return any(isinstance(c, TextCell) and phrase in c.text.lower() for c in row)


def detect_format(
    grid: Sequence[Sequence[Cell]], hint: StatementFormat | None = None
) -> tuple[StatementFormat, int]:
    """Locate the transaction table header.

    Rows are scanned top to bottom and the first row that qualifies for a
    format decides both the format and the header row index. ICICI is checked
    before JANATA for the same row. With ``hint`` only that format is searched.

    Raises:
        HeaderNotFound: no row qualifies
    """
    candidates = [hint] if hint is not None else list(StatementFormat)
    for index, row in enumerate(grid):
        for fmt in candidates:
            if all(_row_mentions(row, marker) for marker in _HEADER_MARKERS[fmt]):
                logger.debug("header detected format=%s row_index=%d", fmt.value, index)
                return fmt, index
    names = "/".join(fmt.value.upper() for fmt in candidates)
    raise HeaderNotFound(f"Could not find {names} transaction table headers")


def find_column(header_row: Sequence[Cell], phrase: str) -> int | None:
    """Index of the first text cell containing ``phrase`` (case-insensitive)."""
    target = phrase.lower()
    for index, cell in enumerate(header_row):
        if isinstance(cell, TextCell) and target in cell.text.lower():
            return index
    return None


def resolve_columns(header_row: Sequence[Cell], fmt: StatementFormat) -> ColumnMap:
    """Build the ColumnMap of a detected header row.

    Raises:
        RequiredColumnMissing: a mandatory column of the format is absent
    """
    found = {field: find_column(header_row, phrase) for field, phrase in _COLUMN_TARGETS[fmt].items()}
    missing = [field for field in _REQUIRED_FIELDS[fmt] if found[field] is None]
    if missing:
        raise RequiredColumnMissing(
            f"Required {fmt.value.upper()} columns not found: {', '.join(missing)}"
        )
    return ColumnMap(**found)  # type: ignore[arg-type]


def _row_amount(row: Sequence[Cell], fmt: StatementFormat, columns: ColumnMap) -> Decimal | None:
    if fmt is StatementFormat.ICICI:
        amount = as_amount(cell_at(row, columns.amount), blank=_ZERO)
        if amount is None:
            return None
        flag = as_text(cell_at(row, columns.credit_debit_flag))
        return amount if flag.upper() == "CR" else -amount

    # JANATA: 出金/入金列それぞれ空・不正値は 0 扱い
    withdrawal = as_amount(cell_at(row, columns.withdrawal)) or _ZERO
    deposit = as_amount(cell_at(row, columns.deposit)) or _ZERO
    return deposit - withdrawal


def normalize_rows(
    rows: Sequence[Sequence[Cell]],
    fmt: StatementFormat,
    columns: ColumnMap,
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
    first_row_index: int = 0,
) -> tuple[list[NormalizedTransaction], str]:
    """Convert data rows (the rows after the header) into transactions.

    Rows without a usable date are skipped silently: they are summary or
    filler lines of the export. The returned balance is the raw text of the
    last non-empty balance cell, i.e. the statement's closing balance.

    Parameters
    ----------
    rows: data rows in statement order
    fmt: detected statement format
    columns: resolved column positions
    rules: classification rule table
    first_row_index: grid index of rows[0] (only used for debug logging)
    """
    transactions: list[NormalizedTransaction] = []
    last_balance = ""
    for offset, row in enumerate(rows):
        row_index = first_row_index + offset
        date_cell = cell_at(row, columns.date)
        if is_empty(date_cell):
            continue
        txn_date = as_date(date_cell)
        if txn_date is None:
            logger.debug("row_index=%d skipped: invalid date %r", row_index, as_text(date_cell))
            continue
        amount = _row_amount(row, fmt, columns)
        if amount is None:
            logger.debug("row_index=%d skipped: non numeric amount", row_index)
            continue

        balance_cell = cell_at(row, columns.balance)
        if not is_empty(balance_cell):
            last_balance = as_text(balance_cell)

        description = as_text(cell_at(row, columns.description))
        expense_head, vendor = apply_rules(description, None, None, rules)
        transactions.append(
            NormalizedTransaction(
                date=txn_date,
                description=description,
                amount=amount,
                expense_head=expense_head,
                vendor=vendor,
            )
        )
    return transactions, last_balance
