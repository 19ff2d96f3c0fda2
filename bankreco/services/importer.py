from __future__ import annotations

import logging
from collections.abc import Sequence, Set
from typing import Any

from ..excel.cells import Cell, to_cell
from ..models.classification import DEFAULT_RULES, ClassificationRule
from ..models.statement import StatementFormat
from ..models.transaction import ImportResult
from .dedup import partition_duplicates
from .statement_parser import detect_format, normalize_rows, resolve_columns

"""Statement import pipeline.

detect header -> resolve columns -> normalize rows (with classification) -> dedup.
Pure and in-memory: reading the workbook and persisting the result belong to
the caller (services.orchestrator).
"""

logger = logging.getLogger(__name__)

__all__ = [
    "as_cell_grid",
    "import_statement",
]


def as_cell_grid(grid: Sequence[Sequence[Any]]) -> list[list[Cell]]:
    """Wrap raw values into cells (cells already wrapped are kept)."""
    return [
        [v if isinstance(v, Cell) else to_cell(v) for v in row]
        for row in grid
    ]


def import_statement(
    grid: Sequence[Sequence[Any]],
    existing_keys: Set[str],
    format_hint: StatementFormat | None = None,
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
) -> ImportResult:
    """Parse one statement grid into the batch of transactions to insert.

    Parameters
    ----------
    grid: row-major cell values of the first worksheet (raw values or cells)
    existing_keys: dedup keys of the transactions already stored
    format_hint: expected statement format (None = detect)
    rules: classification rule table

    Raises
    ------
    HeaderNotFound, RequiredColumnMissing
        Fatal; nothing is returned for the statement.
    """
    cells = as_cell_grid(grid)
    fmt, header_index = detect_format(cells, format_hint)
    columns = resolve_columns(cells[header_index], fmt)
    logger.debug("format=%s header_row=%d columns=%s", fmt.value, header_index, columns)

    parsed, closing_balance = normalize_rows(
        cells[header_index + 1:], fmt, columns, rules, first_row_index=header_index + 1
    )
    dedup = partition_duplicates(parsed, existing_keys)
    latest = max((t.date for t in parsed), default=None)
    logger.debug(
        "parsed=%d new=%d duplicates=%d closing_balance=%r",
        len(parsed),
        len(dedup.new_transactions),
        dedup.duplicate_count,
        closing_balance,
    )
    return ImportResult(
        transactions=dedup.new_transactions,
        duplicate_count=dedup.duplicate_count,
        closing_balance=closing_balance,
        statement_format=fmt,
        header_row_index=header_index,
        parsed_count=len(parsed),
        latest_date=latest,
    )
