from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from bankreco.models.classification import ClassificationRule
from bankreco.models.statement import StatementFormat
from bankreco.models.transaction import dedup_key
from bankreco.services.errors import HeaderNotFound, RequiredColumnMissing
from bankreco.services.importer import import_statement


def test_import_icici_statement(icici_grid):
    result = import_statement(icici_grid, set())
    assert result.statement_format is StatementFormat.ICICI
    assert result.header_row_index == 3
    assert result.parsed_count == 3
    assert result.duplicate_count == 0
    assert result.closing_balance == "73,299.50"
    assert result.latest_date == date(2024, 3, 15)

    first, second, third = result.transactions
    assert (first.date, first.amount) == (date(2024, 3, 1), Decimal("-1200.50"))
    assert (first.expense_head, first.vendor) == ("Other Cost", "Avinash")
    assert (second.amount, second.vendor) == (Decimal("25000"), "Ajit")
    assert third.date == date(2024, 3, 15)


def test_import_janata_statement(janata_grid):
    result = import_statement(janata_grid, set(), format_hint=StatementFormat.JANATA)
    assert result.statement_format is StatementFormat.JANATA
    assert [t.amount for t in result.transactions] == [Decimal("10000.00"), Decimal("-15000.00"), Decimal("-59")]
    assert result.closing_balance == "45,000.00"
    assert result.transactions[1].vendor == "Sonu Sir"


def test_import_skips_existing(icici_grid):
    existing = {dedup_key(date(2024, 3, 5), "NEFT-AJIT-capital", Decimal("25000.00"))}
    result = import_statement(icici_grid, existing)
    assert result.duplicate_count == 1
    assert result.parsed_count == 3
    assert len(result.transactions) == 2
    # 重複除外前の最新日
    assert result.latest_date == date(2024, 3, 15)


def test_import_with_custom_rules(icici_grid):
    rules = (ClassificationRule("atm", "Cash", "Self"),)
    result = import_statement(icici_grid, set(), rules=rules)
    heads = [(t.expense_head, t.vendor) for t in result.transactions]
    assert heads == [(None, None), (None, None), ("Cash", "Self")]


def test_import_header_not_found():
    with pytest.raises(HeaderNotFound):
        import_statement([["nothing"], ["to", "see"]], set())


def test_import_required_column_missing():
    grid = [["Value Date", "Description", "Cr/Dr"], ["01/01/2024", "x", "CR"]]
    with pytest.raises(RequiredColumnMissing):
        import_statement(grid, set())


def test_import_header_only_statement():
    result = import_statement([["Date", "Transaction Particulars", "Withdrawal", "Deposit"]], set())
    assert result.transactions == []
    assert result.parsed_count == 0
    assert result.latest_date is None
    assert result.closing_balance == ""


def test_import_iso_text_dates_match_stored_keys():
    grid = [
        ["Value Date", "Description", "Cr/Dr", "Transaction Amount"],
        ["Mar", "", "", ""],
        ["2024-03-05", "NEFT salary", "CR", "100"],
    ]
    result = import_statement(grid, {"2024-03-05|NEFT salary|100"})
    assert result.parsed_count == 1
    assert result.duplicate_count == 1
    assert result.transactions == []
    assert result.latest_date == date(2024, 3, 5)
