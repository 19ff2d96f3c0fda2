# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

ICICI_HEADER = [
    "No.",
    "Transaction ID",
    "Value Date",
    "Txn Posted Date",
    "ChequeNo.",
    "Description",
    "Cr/Dr",
    "Transaction Amount(INR)",
    "Available Balance(INR)",
]

JANATA_HEADER = [
    "Sr No",
    "Date",
    "Transaction Particulars",
    "Cheque No",
    "Withdrawal",
    "Deposit",
    "Available Balance",
]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
statement_format: auto
classification_rules:
  - match: Avinash
    expense_head: Other Cost
    vendor: Avinash
  - match: Ajit
    expense_head: Funding
    vendor: Ajit
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def icici_grid() -> list[list[object]]:
    return [
        ["DETAILED STATEMENT"],
        ["Account Number", "XXXXXXXX1234"],
        [],
        ICICI_HEADER,
        [1, "S1", "01/03/2024", "01/03/2024", "", "UPI/Payment to Avinash for materials", "DR", "1,200.50", "48,799.50"],
        [2, "S2", "05/03/2024", "05/03/2024", "", "NEFT-AJIT-capital", "CR", 25000, "73,799.50"],
        [3, "S3", "15/03/2024", "15/03/2024", "", "ATM WDL", "DR", "500", "73,299.50"],
        ["", "", "", "", "", "Legends: CR - Credit, DR - Debit"],
    ]


@pytest.fixture()
def janata_grid() -> list[list[object]]:
    return [
        ["Janata Sahakari Bank Ltd."],
        ["Statement Date", "31/03/2024"],
        JANATA_HEADER,
        [1, "02/03/2024", "By Cash Deposit", "", "", "10,000.00", "60,000.00"],
        [2, "03/03/2024", "To Bhatsange rent March", "004512", "15,000.00", "", "45,000.00"],
        [3, "04/03/2024", "Bank charges", "", "59", "", ""],
        ["", "", "Total", "", "15,059.00", "10,000.00", ""],
    ]


@pytest.fixture()
def make_statement(temp_workdir: Path) -> Callable[[str, list[list[object]]], Path]:
    """Write a single-sheet .xlsx statement into data/ and return its path."""
    def _make(name: str, rows: list[list[object]], sheet: str = "Sheet1") -> Path:
        p = temp_workdir / "data" / name
        with pd.ExcelWriter(p, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
        return p
    return _make
