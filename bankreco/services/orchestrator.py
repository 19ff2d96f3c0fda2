from __future__ import annotations

import dataclasses
import logging
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from ..db.batch_insert import BatchInsertError
from ..db.repository import (
    fetch_bank_accounts,
    fetch_existing_keys,
    insert_transactions,
    update_account_balance,
)
from ..excel.reader import EmptyStatementError, read_statement_grid
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.error_record import FILE_LEVEL, ErrorType
from ..models.processing_result import FileStat, ProcessingResult
from ..models.statement_file import FileStatus, StatementFile
from ..models.transaction import BankAccount, ImportResult
from .accounts import closing_balance_update, select_upload_account
from .errors import HeaderNotFound, RequiredColumnMissing
from .importer import import_statement
from .progress import ProgressTracker
from .summary import render_import_message

"""Service orchestration for the statement import.

Coordinates a whole run: scanning the source directory, importing each
statement workbook in its own database transaction, keeping the duplicate key
snapshot current across files and aggregating the results.
"""

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal run-level error (directory, bank account lookup)."""
    pass


def scan_statement_files(directory: Path) -> list[Path]:
    """Scan directory for .xlsx statement files (non-recursive, sorted by name).

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    try:
        # Excel のロックファイル (~$xxx.xlsx) は除外
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix == ".xlsx" and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _resolve_account(config: ImportConfig, cursor: Any) -> BankAccount | None:
    if cursor is None:
        return None
    account = select_upload_account(fetch_bank_accounts(cursor), config.bank_account)
    if account is None and config.bank_account is not None:
        raise ProcessingError(f"bank account not found: {config.bank_account}")
    return account


def process_all(config: ImportConfig, cursor: Any = None, today: date | None = None) -> ProcessingResult:
    """Import all statement workbooks in the configured directory.

    Args:
        config: Import configuration
        cursor: Database cursor (None = mock mode, nothing is persisted and
            every parsed transaction counts as new)
        today: Fallback statement date (defaults to the current UTC date)

    Returns:
        ProcessingResult with aggregated counts and per-file stats

    Raises:
        ProcessingError: For fatal errors that prevent processing
    """
    start_time = datetime.now(UTC)
    today = today or start_time.date()
    error_log = ErrorLogBuffer()

    file_paths = scan_statement_files(Path(config.source_directory))

    if not file_paths:
        end_time = datetime.now(UTC)
        return ProcessingResult(
            success_files=0,
            failed_files=0,
            total_inserted_rows=0,
            total_duplicate_rows=0,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            file_stats=[],
        )

    # 既存取引キーは実行開始時に 1 回だけ取得し、以降は挿入分を追加していく
    existing_keys: set[str] = fetch_existing_keys(cursor) if cursor is not None else set()
    account = _resolve_account(config, cursor)
    if account is not None:
        logger.info(f"Importing into bank account: {account.name}")

    file_stats: list[FileStat] = []

    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)

            file_result, import_result = _process_single_file(
                file_path, config, cursor, error_log, existing_keys, account, today
            )
            ok = file_result.status == FileStatus.SUCCESS
            progress.finish_file(ok, file_result.inserted_rows, file_result.duplicate_rows)

            if ok and import_result is not None and file_result.inserted_rows:
                # 後続ファイルの重複判定・残高計算に反映
                existing_keys.update(t.key for t in import_result.transactions)
                if account is not None and cursor is not None:
                    balance, _ = closing_balance_update(account, import_result, today)
                    account = dataclasses.replace(account, current_balance=balance)

            file_stats.append(
                FileStat(
                    file_name=file_path.name,
                    status=file_result.status.value,
                    inserted_rows=file_result.inserted_rows,
                    duplicate_rows=file_result.duplicate_rows,
                    elapsed_seconds=(file_result.end_time - file_result.start_time).total_seconds(),
                    statement_format=(
                        file_result.statement_format.value if file_result.statement_format else None
                    ),
                    error=file_result.error,
                )
            )

    try:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(f"error log written: {log_path}")
    except OSError as e:
        logger.warning(f"failed to write error log: {e}")

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=progress.succeeded,
        failed_files=progress.failed,
        total_inserted_rows=progress.inserted,
        total_duplicate_rows=progress.duplicates,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )


def _failed(
    file_path: Path,
    start_time: datetime,
    error_log: ErrorLogBuffer,
    error_type: ErrorType,
    message: str,
    sheet: str = FILE_LEVEL,
    statement_format: Any = None,
) -> StatementFile:
    error_log.add(file_path.name, error_type, message, sheet=sheet)
    logger.error(f"{file_path.name}: {message}")
    return StatementFile(
        path=file_path,
        name=file_path.name,
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=FileStatus.FAILED,
        statement_format=statement_format,
        error=message,
    )


def _rollback(cursor: Any, file_path: Path, error_log: ErrorLogBuffer) -> None:
    try:
        cursor.execute("ROLLBACK")
    except Exception as e:
        error_log.add(file_path.name, ErrorType.TRANSACTION_ROLLBACK_ERROR, str(e))
        logger.warning(f"{file_path.name}: rollback failed: {e}")


def _process_single_file(
    file_path: Path,
    config: ImportConfig,
    cursor: Any,
    error_log: ErrorLogBuffer,
    existing_keys: set[str],
    account: BankAccount | None,
    today: date,
) -> tuple[StatementFile, ImportResult | None]:
    """Import one statement workbook.

    Parsing happens fully in memory before the database is touched; the
    insert and the account balance update then run in one transaction that is
    rolled back on any failure, so a file is imported completely or not at all.
    """
    start_time = datetime.now(UTC)

    try:
        sheet_name, grid = read_statement_grid(file_path)
    except EmptyStatementError as e:
        return _failed(file_path, start_time, error_log, ErrorType.EMPTY_STATEMENT, str(e)), None
    except Exception as e:
        return _failed(file_path, start_time, error_log, ErrorType.PROCESSING_ERROR, str(e)), None

    try:
        result = import_statement(
            grid,
            existing_keys,
            format_hint=config.statement_format,
            rules=config.classification_rules,
        )
    except HeaderNotFound as e:
        return (
            _failed(file_path, start_time, error_log, ErrorType.HEADER_NOT_FOUND, str(e), sheet=sheet_name),
            None,
        )
    except RequiredColumnMissing as e:
        return (
            _failed(file_path, start_time, error_log, ErrorType.REQUIRED_COLUMN_MISSING, str(e), sheet=sheet_name),
            None,
        )

    new_count = len(result.transactions)
    message = render_import_message(new_count, result.duplicate_count)

    if new_count == 0:
        # 取引ゼロ / 全件重複: 何も書き込まず成功扱い (残高も更新しない)
        if result.parsed_count == 0:
            logger.warning(f"{file_path.name}: {message}")
        else:
            logger.info(f"{file_path.name}: {message}")
        return (
            StatementFile(
                path=file_path,
                name=file_path.name,
                start_time=start_time,
                end_time=datetime.now(UTC),
                status=FileStatus.SUCCESS,
                statement_format=result.statement_format,
                duplicate_rows=result.duplicate_count,
            ),
            result,
        )

    if cursor is not None:
        try:
            cursor.execute("BEGIN")
        except Exception as e:
            return (
                _failed(
                    file_path, start_time, error_log, ErrorType.TRANSACTION_BEGIN_ERROR,
                    f"Failed to begin transaction: {e}", statement_format=result.statement_format,
                ),
                None,
            )
        try:
            inserted = insert_transactions(cursor, result.transactions, account)
            if account is not None:
                balance, last_date = closing_balance_update(account, result, today)
                update_account_balance(cursor, account.id, balance, last_date)
            cursor.execute("COMMIT")
        except BatchInsertError as e:
            _rollback(cursor, file_path, error_log)
            return (
                _failed(
                    file_path, start_time, error_log, ErrorType.DATABASE_INSERT_ERROR,
                    f"Error importing transactions: {e}", sheet=sheet_name,
                    statement_format=result.statement_format,
                ),
                None,
            )
        except Exception as e:
            _rollback(cursor, file_path, error_log)
            return (
                _failed(
                    file_path, start_time, error_log, ErrorType.TRANSACTION_COMMIT_ERROR,
                    f"commit failed: {e}", statement_format=result.statement_format,
                ),
                None,
            )
    else:
        # mock モード: 全件挿入済とみなす
        inserted = new_count
        logger.debug(f"{file_path.name}: mock mode inserted_rows={inserted}")

    logger.info(f"{file_path.name}: {render_import_message(inserted, result.duplicate_count)}")
    if result.closing_balance:
        logger.info(f"{file_path.name}: closing balance {result.closing_balance}")

    return (
        StatementFile(
            path=file_path,
            name=file_path.name,
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=FileStatus.SUCCESS,
            statement_format=result.statement_format,
            inserted_rows=inserted,
            duplicate_rows=result.duplicate_count,
        ),
        result,
    )
