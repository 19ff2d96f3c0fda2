from __future__ import annotations

from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from bankreco.excel.cells import EMPTY, NumberCell, TextCell
from bankreco.excel.reader import EmptyStatementError, grid_from_dataframe, read_statement_grid
from bankreco.services.importer import import_statement


def test_read_statement_grid_first_sheet(make_statement, icici_grid):
    path = make_statement("icici_march.xlsx", icici_grid, sheet="OpTransactionHistory")
    sheet, grid = read_statement_grid(path)
    assert sheet == "OpTransactionHistory"
    assert TextCell("DETAILED STATEMENT") in grid[0]


def test_read_statement_grid_keeps_na_strings(make_statement):
    path = make_statement("na.xlsx", [["Narration"], ["NA"], ["N/A"]])
    _, grid = read_statement_grid(path)
    assert grid[1][0] == TextCell("NA")
    assert grid[2][0] == TextCell("N/A")


def test_read_statement_grid_empty_sheet(make_statement):
    path = make_statement("empty.xlsx", [[None, None], [None, ""]])
    with pytest.raises(EmptyStatementError):
        read_statement_grid(path)


def test_workbook_roundtrip_imports(make_statement, icici_grid):
    path = make_statement("icici.xlsx", icici_grid)
    _, grid = read_statement_grid(path)
    result = import_statement(grid, set())
    assert [t.amount for t in result.transactions] == [Decimal("-1200.50"), Decimal("25000"), Decimal("-500")]
    assert result.latest_date == date(2024, 3, 15)
    assert result.closing_balance == "73,299.50"


def test_grid_from_dataframe_types():
    df = pd.DataFrame([["x", 1.5, float("nan")], [None, 3, "  "]])
    grid = grid_from_dataframe(df)
    assert grid[0] == [TextCell("x"), NumberCell(1.5), EMPTY]
    assert grid[1][0] is EMPTY
    assert grid[1][2] is EMPTY
