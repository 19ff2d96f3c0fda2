from __future__ import annotations

import numbers
import re
import warnings
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

"""Typed spreadsheet cells and explicit coercions.

Workbook values arrive untyped (str / int / float / Timestamp / NaN). They are
wrapped once into TextCell | NumberCell | DateCell | EmptyCell and every
consumer goes through as_text / as_date / as_amount, which return None when the
cell cannot be coerced instead of silently defaulting.
"""

__all__ = [
    "Cell",
    "TextCell",
    "NumberCell",
    "DateCell",
    "EmptyCell",
    "EMPTY",
    "to_cell",
    "cell_at",
    "is_empty",
    "as_text",
    "as_date",
    "as_amount",
]

# parseFloat 相当: 先頭の数値部分のみ採用 ("1200.50 Cr" -> 1200.50)
_NUMBER_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

# Excel シリアル日付の基準日 (1900 うるう年バグ込み)
_EXCEL_EPOCH = date(1899, 12, 30)
_EXCEL_MAX_SERIAL = 2958466  # 9999-12-31 の翌日
_MIN_YEAR = 1900


@dataclass(frozen=True)
class TextCell:
    text: str


@dataclass(frozen=True)
class NumberCell:
    value: int | float | Decimal


@dataclass(frozen=True)
class DateCell:
    value: date


@dataclass(frozen=True)
class EmptyCell:
    pass


EMPTY = EmptyCell()

Cell = TextCell | NumberCell | DateCell | EmptyCell


def to_cell(value: Any) -> Cell:
    """Wrap a raw workbook value.

    None, NaN/NaT and whitespace-only strings become EMPTY.
    """
    if value is None:
        return EMPTY
    if isinstance(value, str):
        return TextCell(value) if value.strip() else EMPTY
    try:
        if pd.isna(value):
            return EMPTY
    except (TypeError, ValueError):
        pass
    if isinstance(value, bool):
        return TextCell(str(value))
    if isinstance(value, datetime):
        return DateCell(value.date())
    if isinstance(value, date):
        return DateCell(value)
    if isinstance(value, numbers.Real):
        return NumberCell(value)  # type: ignore[arg-type]
    return TextCell(str(value))


def cell_at(row: Sequence[Cell], index: int | None) -> Cell:
    """Cell at index, EMPTY when the column is unresolved or the row is short."""
    if index is None or index < 0 or index >= len(row):
        return EMPTY
    return row[index]


def is_empty(cell: Cell) -> bool:
    return isinstance(cell, EmptyCell)


def as_text(cell: Cell) -> str:
    """Display text of a cell (integral numbers without a trailing '.0')."""
    if isinstance(cell, TextCell):
        return cell.text
    if isinstance(cell, NumberCell):
        v = cell.value
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)
    if isinstance(cell, DateCell):
        return cell.value.isoformat()
    return ""


def _date_from_slashes(text: str) -> date | None:
    # DD/MM/YYYY -> date(YYYY, MM, DD)
    parts = [p.strip() for p in text.strip().split("/")]
    if len(parts) != 3 or len(parts[2]) != 4:
        return None
    try:
        day, month, year = (int(p) for p in parts)
        return date(year, month, day)
    except ValueError:
        return None


def _date_from_text(text: str) -> date | None:
    # ISO 8601 を優先 (dayfirst で 2024-03-05 が 5 月にならないように)
    text = text.strip()
    parsed = pd.to_datetime(text, format="ISO8601", errors="coerce")
    if pd.isna(parsed):
        # "15 Mar 2024" / "15-03-2024" 等
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            parsed = pd.to_datetime(text, errors="coerce", dayfirst=True)
    if pd.isna(parsed) or parsed.year < _MIN_YEAR:
        # "Mar" のような見出しは 0001-03-01 に解釈されるため除外
        return None
    return parsed.date()


def as_date(cell: Cell) -> date | None:
    """Calendar date of a cell, or None when it is not a valid date."""
    if isinstance(cell, DateCell):
        return cell.value
    if isinstance(cell, TextCell):
        if "/" in cell.text:
            return _date_from_slashes(cell.text)
        return _date_from_text(cell.text)
    if isinstance(cell, NumberCell):
        serial = float(cell.value)
        if not 1 <= serial < _EXCEL_MAX_SERIAL:
            return None
        return _EXCEL_EPOCH + timedelta(days=int(serial))
    return None


def as_amount(cell: Cell, blank: Decimal | None = None) -> Decimal | None:
    """Decimal value of a cell with thousands separators stripped.

    Returns ``blank`` for an empty cell and None when the cell is not numeric.
    """
    if isinstance(cell, EmptyCell):
        return blank
    if isinstance(cell, NumberCell):
        try:
            return Decimal(str(cell.value))
        except InvalidOperation:
            return None
    if isinstance(cell, TextCell):
        cleaned = cell.text.replace(",", "").strip()
        if not cleaned:
            return blank
        m = _NUMBER_PREFIX.match(cleaned)
        if m is None:
            return None
        return Decimal(m.group(0))
    return None
