from __future__ import annotations

from pathlib import Path

import pandas as pd

from .cells import Cell, is_empty, to_cell

"""Statement workbook reader.

Bank exports put a free-form preamble (account holder, period, branch) above the
transaction table, so the sheet is read without a header row and handed to the
parser as a plain cell grid. Only the first worksheet is used.
"""

__all__ = [
    "EmptyStatementError",
    "read_statement_workbook",
    "grid_from_dataframe",
    "read_statement_grid",
]


class EmptyStatementError(Exception):
    """Raised when the workbook has no sheet or the first sheet has no rows."""


def read_statement_workbook(path: Path) -> tuple[str, pd.DataFrame]:
    """Read the first worksheet of a statement workbook as a raw DataFrame.

    Returns (sheet_name, frame). Cells are kept as-is (header=None); the
    default NaN conversion of strings such as "NA" is disabled because they
    can legitimately appear in narrations.
    """
    xls = pd.ExcelFile(path)
    if not xls.sheet_names:
        raise EmptyStatementError(f"no worksheet in '{path.name}'")
    name = str(xls.sheet_names[0])
    df = xls.parse(xls.sheet_names[0], header=None, keep_default_na=False, na_values=[""])
    return name, df


def grid_from_dataframe(df: pd.DataFrame) -> list[list[Cell]]:
    """Convert a raw DataFrame into a row-major grid of typed cells."""
    return [[to_cell(v) for v in row] for row in df.itertuples(index=False, name=None)]


def read_statement_grid(path: Path) -> tuple[str, list[list[Cell]]]:
    """Read a workbook and return (sheet_name, grid).

    Raises EmptyStatementError when no data is found in the statement.
    """
    name, df = read_statement_workbook(path)
    grid = grid_from_dataframe(df)
    if all(all(is_empty(c) for c in row) for row in grid):
        raise EmptyStatementError(f"no data found in '{path.name}' sheet '{name}'")
    return name, grid
