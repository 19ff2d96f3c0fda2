from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from bankreco.models.config_models import ImportConfig
from bankreco.models.statement import StatementFormat
from bankreco.services.orchestrator import ProcessingError, process_all, scan_statement_files


class FakeCursor:
    """Scripted cursor: answers the repository SELECTs and records everything else."""

    def __init__(self, existing: list[tuple] | None = None, accounts: list[tuple] | None = None) -> None:
        self.existing = existing or []
        self.accounts = accounts if accounts is not None else [(1, "ICICI Current", Decimal("0"), None, True, True)]
        self.statements: list[tuple[str, Any]] = []
        self._last: list[tuple] = []
        self.fail_on: str | None = None

    def execute(self, sql: str, params: Any = None) -> None:
        if self.fail_on is not None and sql.startswith(self.fail_on):
            raise RuntimeError(f"{self.fail_on} failed")
        self.statements.append((sql, params))
        if sql.startswith("SELECT date, description, amount"):
            self._last = self.existing
        elif sql.startswith("SELECT id, name"):
            self._last = self.accounts
        else:
            self._last = []

    def fetchall(self) -> list[tuple]:
        return self._last



@pytest.fixture()
def inserted_rows(monkeypatch) -> list[list[object]]:
    import bankreco.db.batch_insert as bi

    captured: list[list[object]] = []

    def fake_execute_values(cursor, sql, rows, page_size=1000):
        cursor.statements.append((sql, None))
        captured.extend(rows)

    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return captured


@pytest.fixture()
def config(temp_workdir: Path) -> ImportConfig:
    return ImportConfig(source_directory=str(temp_workdir / "data"))


def _error_lines(temp_workdir: Path) -> list[dict[str, Any]]:
    lines: list[dict[str, Any]] = []
    for p in sorted((temp_workdir / "logs").glob("errors-*.log")):
        lines.extend(json.loads(line) for line in p.read_text(encoding="utf-8").splitlines())
    return lines


def test_scan_statement_files(temp_workdir: Path):
    data = temp_workdir / "data"
    (data / "b.xlsx").write_bytes(b"x")
    (data / "a.xlsx").write_bytes(b"x")
    (data / "~$a.xlsx").write_bytes(b"lock")
    (data / "old.xls").write_bytes(b"x")
    (data / "notes.txt").write_text("ignore")
    (data / "sub.xlsx").mkdir()
    assert [p.name for p in scan_statement_files(data)] == ["a.xlsx", "b.xlsx"]


def test_scan_statement_files_errors(temp_workdir: Path):
    with pytest.raises(ProcessingError, match="Directory not found"):
        scan_statement_files(temp_workdir / "missing")
    (temp_workdir / "file.txt").write_text("x")
    with pytest.raises(ProcessingError, match="not a directory"):
        scan_statement_files(temp_workdir / "file.txt")


def test_process_all_empty_directory(config: ImportConfig):
    result = process_all(config)
    assert (result.success_files, result.failed_files, result.total_inserted_rows) == (0, 0, 0)
    assert result.file_stats == []
    assert result.elapsed_seconds >= 0


def test_process_all_mock_mode(config, make_statement, icici_grid, janata_grid):
    make_statement("1_icici.xlsx", icici_grid)
    make_statement("2_janata.xlsx", janata_grid)

    result = process_all(config)

    assert result.success_files == 2
    assert result.failed_files == 0
    assert result.total_inserted_rows == 6
    assert result.total_duplicate_rows == 0
    assert [(s.file_name, s.statement_format, s.inserted_rows) for s in result.file_stats] == [
        ("1_icici.xlsx", "icici", 3),
        ("2_janata.xlsx", "janata", 3),
    ]


def test_process_all_same_statement_twice_is_deduplicated(config, make_statement, icici_grid):
    make_statement("a.xlsx", icici_grid)
    make_statement("b.xlsx", icici_grid)

    result = process_all(config)

    assert result.success_files == 2
    assert result.total_inserted_rows == 3
    assert result.total_duplicate_rows == 3
    assert [s.status for s in result.file_stats] == ["success", "success"]


def test_process_all_partial_failure_writes_error_log(config, temp_workdir, make_statement, icici_grid):
    make_statement("good.xlsx", icici_grid)
    make_statement("no_header.xlsx", [["Some report"], ["a", "b", "c"]])
    make_statement("missing_col.xlsx", [["Value Date", "Description", "Cr/Dr"], ["01/01/2024", "x", "CR"]])
    (temp_workdir / "data" / "corrupt.xlsx").write_bytes(b"not a workbook")

    result = process_all(config)

    assert result.success_files == 1
    assert result.failed_files == 3
    assert result.total_inserted_rows == 3
    errors = {e["file"]: e for e in _error_lines(temp_workdir)}
    assert errors["no_header.xlsx"]["error_type"] == "HEADER_NOT_FOUND"
    assert errors["missing_col.xlsx"]["error_type"] == "REQUIRED_COLUMN_MISSING"
    assert errors["missing_col.xlsx"]["message"] == "Required ICICI columns not found: amount"
    assert errors["corrupt.xlsx"]["error_type"] == "PROCESSING_ERROR"
    assert errors["corrupt.xlsx"]["sheet"] == "<FILE_LEVEL>"
    assert all(e["row"] == -1 for e in errors.values())
    assert sorted(result.failed_file_names) == ["corrupt.xlsx", "missing_col.xlsx", "no_header.xlsx"]
    assert result.total_files == 4
    stats = {s.file_name: s for s in result.file_stats}
    assert stats["good.xlsx"].error is None
    assert stats["missing_col.xlsx"].error == "Required ICICI columns not found: amount"
    assert [s.file_name for s in result.failures] == ["corrupt.xlsx", "missing_col.xlsx", "no_header.xlsx"]


def test_process_all_empty_statement(config, temp_workdir, make_statement):
    make_statement("blank.xlsx", [[None], [None]])
    result = process_all(config)
    assert result.failed_files == 1
    assert _error_lines(temp_workdir)[0]["error_type"] == "EMPTY_STATEMENT"


def test_process_all_header_only_statement_succeeds(config, make_statement):
    make_statement("header_only.xlsx", [["Date", "Transaction Particulars", "Withdrawal", "Deposit"]])
    result = process_all(config)
    assert result.success_files == 1
    assert result.total_inserted_rows == 0


def test_process_all_format_hint(temp_workdir, make_statement, icici_grid):
    make_statement("icici.xlsx", icici_grid)
    cfg = ImportConfig(source_directory=str(temp_workdir / "data"), statement_format=StatementFormat.JANATA)
    result = process_all(cfg)
    assert result.failed_files == 1


def test_process_all_live_mode(config, make_statement, icici_grid, inserted_rows):
    make_statement("icici.xlsx", icici_grid)
    cur = FakeCursor()

    result = process_all(config, cursor=cur, today=date(2024, 4, 1))

    assert result.success_files == 1
    assert result.total_inserted_rows == 3
    sql = [s for s, _ in cur.statements]
    begin, commit = sql.index("BEGIN"), sql.index("COMMIT")
    assert sql[begin + 1].startswith("INSERT INTO bank_transactions")
    assert sql[commit - 1].startswith("UPDATE bank_accounts")
    _, params = cur.statements[commit - 1]
    assert params == (Decimal("73299.50"), date(2024, 3, 15), 1)
    assert inserted_rows[0][-2:] == [1, "ICICI Current"]
    assert inserted_rows[0][3:5] == ["Other Cost", "Avinash"]


def test_process_all_live_all_duplicates_touches_nothing(config, make_statement, icici_grid, inserted_rows):
    make_statement("icici.xlsx", icici_grid)
    cur = FakeCursor(
        existing=[
            (date(2024, 3, 1), "UPI/Payment to Avinash for materials", Decimal("-1200.50")),
            (date(2024, 3, 5), "NEFT-AJIT-capital", Decimal("25000.00")),
            (date(2024, 3, 15), "ATM WDL", Decimal("-500.00")),
        ]
    )

    result = process_all(config, cursor=cur)

    assert result.success_files == 1
    assert result.total_inserted_rows == 0
    assert result.total_duplicate_rows == 3
    assert "BEGIN" not in [s for s, _ in cur.statements]
    assert inserted_rows == []


def test_process_all_live_insert_failure_rolls_back(config, temp_workdir, make_statement, icici_grid, monkeypatch):
    import bankreco.db.batch_insert as bi

    def boom(cursor, sql, rows, page_size=1000):
        raise RuntimeError("duplicate key value violates unique constraint")

    monkeypatch.setattr(bi, "execute_values", boom)
    make_statement("icici.xlsx", icici_grid)
    cur = FakeCursor()

    result = process_all(config, cursor=cur)

    assert result.failed_files == 1
    assert result.total_inserted_rows == 0
    sql = [s for s, _ in cur.statements]
    assert "ROLLBACK" in sql and "COMMIT" not in sql
    (err,) = _error_lines(temp_workdir)
    assert err["error_type"] == "DATABASE_INSERT_ERROR"
    assert "unique constraint" in err["message"]


def test_process_all_live_balance_update_failure(config, temp_workdir, make_statement, icici_grid, inserted_rows):
    make_statement("icici.xlsx", icici_grid)
    cur = FakeCursor()
    cur.fail_on = "UPDATE bank_accounts"

    result = process_all(config, cursor=cur)

    assert result.failed_files == 1
    assert "ROLLBACK" in [s for s, _ in cur.statements]
    assert _error_lines(temp_workdir)[0]["error_type"] == "TRANSACTION_COMMIT_ERROR"


def test_process_all_live_begin_failure(config, temp_workdir, make_statement, icici_grid, inserted_rows):
    make_statement("icici.xlsx", icici_grid)
    cur = FakeCursor()
    cur.fail_on = "BEGIN"

    result = process_all(config, cursor=cur)

    assert result.failed_files == 1
    assert _error_lines(temp_workdir)[0]["error_type"] == "TRANSACTION_BEGIN_ERROR"


def test_process_all_unknown_bank_account(temp_workdir, make_statement, icici_grid):
    make_statement("icici.xlsx", icici_grid)
    cfg = ImportConfig(source_directory=str(temp_workdir / "data"), bank_account="HDFC")
    with pytest.raises(ProcessingError, match="bank account not found"):
        process_all(cfg, cursor=FakeCursor())


def test_process_all_live_without_accounts(config, make_statement, icici_grid, inserted_rows):
    make_statement("icici.xlsx", icici_grid)
    cur = FakeCursor(accounts=[])

    result = process_all(config, cursor=cur)

    assert result.total_inserted_rows == 3
    assert not any(s.startswith("UPDATE") for s, _ in cur.statements)
    assert inserted_rows[0][-2:] == [None, None]
