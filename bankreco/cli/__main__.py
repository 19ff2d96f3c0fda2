from __future__ import annotations

import argparse
import dataclasses
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from bankreco.config.loader import ConfigError, load_config, parse_statement_format
from bankreco.db.repository import (
    fetch_bank_accounts,
    fetch_transactions,
    update_bank_names,
    update_classifications,
)
from bankreco.logging.init import log_summary, setup_logging
from bankreco.models.config_models import ImportConfig
from bankreco.services.accounts import backfill_bank_names, reclassify_transactions
from bankreco.services.ledger import (
    filter_transactions,
    format_inr,
    month_options,
    total_amount,
    vendor_options,
)
from bankreco.services.orchestrator import ProcessingError, process_all, scan_statement_files
from bankreco.services.summary import render_summary_line

"""CLI entrypoint.

Default flow: load config -> scan directory for .xlsx statements -> import each
into PostgreSQL (mock mode without a database) -> SUMMARY line.
Maintenance flows (--reclassify / --report) work on the stored rows only.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = "config/import.yml"


def _build_dsn(cfg: ImportConfig) -> str:
    """Resolve the connection string.

    Priority: DATABASE_URL / PGDSN (env, .env already loaded with override) >
    individual PG* variables > database section of the config file.
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a psycopg2 cursor; transaction boundaries are explicit (BEGIN/COMMIT)."""
    conn = psycopg2.connect(_build_dsn(cfg))
    conn.autocommit = True  # orchestrator が BEGIN/COMMIT を明示発行
    cur = conn.cursor()
    try:
        yield cur
    finally:
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Bank statement -> PostgreSQL importer")
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to import.yml")
    p.add_argument(
        "--format",
        choices=["auto", "icici", "janata"],
        default=None,
        help="Statement format (overrides config)",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print detected layout & first rows then exit")
    p.add_argument(
        "--reclassify",
        action="store_true",
        help="Apply classification rules and bank names to stored transactions",
    )
    p.add_argument("--report", action="store_true", help="Print count and total of stored transactions")
    p.add_argument("--month", default=None, help="Report filter: YYYY-MM")
    p.add_argument("--vendor", default=None, help="Report filter: vendor name")
    return p.parse_args(argv)


def _inspect_data(cfg: ImportConfig) -> int:
    from bankreco.excel.reader import read_statement_grid
    from bankreco.services.importer import import_statement

    directory = Path(cfg.source_directory)
    try:
        files = scan_statement_files(directory)
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            sheet, grid = read_statement_grid(f)
            result = import_statement(grid, set(), cfg.statement_format, cfg.classification_rules)
        except Exception as e:  # 検査用途なので続行
            print(f"  error: {e}")
            continue
        print(
            f"  SHEET: {sheet} format={result.statement_format.value} "
            f"header_row={result.header_row_index + 1} rows={result.parsed_count} "
            f"closing_balance={result.closing_balance!r}"
        )
        for t in result.transactions[:3]:
            print(
                f"    {t.date.isoformat()} {t.amount:>12} {t.description!r} "
                f"head={t.expense_head!r} vendor={t.vendor!r}"
            )
    return EXIT_SUCCESS_ALL


def _reclassify(cfg: ImportConfig, cursor: Any) -> None:
    logger = setup_logging()
    stored = fetch_transactions(cursor)
    cursor.execute("BEGIN")
    try:
        changed = update_classifications(cursor, reclassify_transactions(stored, cfg.classification_rules))
        named = update_bank_names(cursor, backfill_bank_names(stored, fetch_bank_accounts(cursor)))
        cursor.execute("COMMIT")
    except Exception:
        cursor.execute("ROLLBACK")
        raise
    logger.info(f"reclassified={changed} bank_names_filled={named}")


def _report(cursor: Any, month: str | None, vendor: str | None) -> None:
    logger = setup_logging()
    stored = fetch_transactions(cursor)
    logger.info(f"months={','.join(month_options(stored))}")
    logger.info(f"vendors={','.join(vendor_options(stored))}")
    rows = filter_transactions(stored, month=month, vendor=vendor)
    logger.info(f"transactions={len(rows)} total={format_inr(total_amount(rows))}")


def _run_maintenance(cfg: ImportConfig, args: argparse.Namespace) -> int:
    logger = setup_logging()
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.error("--reclassify/--report need a database connection")
        return EXIT_FATAL
    try:
        with _db_connection(cfg) as cur:
            if args.reclassify:
                _reclassify(cfg, cur)
            if args.report:
                _report(cur, args.month, args.vendor)
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 空リスト [] を渡された場合に sys.argv が混入しないよう None のときのみ参照
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(Path(args.config))
        if args.format is not None:
            cfg = dataclasses.replace(cfg, statement_format=parse_statement_format(args.format))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        setup_logging(debug=True)
        logger.debug("debug mode enabled")

    if args.reclassify or args.report:
        return _run_maintenance(cfg, args)

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    logger.info(f"Processing statements from: {directory}")

    if args.inspect_data:
        return _inspect_data(cfg)

    # DISABLE_DB_CONNECT=1 でDB接続を完全に無効化 (テスト・試行用)
    db_mode = "mock"
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        try:
            result = process_all(cfg, cursor=None)
        except ProcessingError as e:
            logger.error(f"processing(mock): {e}")
            return EXIT_FATAL
    else:
        try:
            with _db_connection(cfg) as cur:
                db_mode = "live"
                try:
                    result = process_all(cfg, cursor=cur)
                except ProcessingError as e:
                    logger.error(f"processing: {e}")
                    return EXIT_FATAL
        except psycopg2.Error as db_e:
            if db_mode == "live":
                # 接続後の失敗は mock に落とさない (途中までコミット済の可能性)
                logger.error(f"database: {db_e}")
                return EXIT_FATAL
            if os.getenv("SUPPRESS_DB_WARNING") == "1":
                logger.debug(f"DB connection failed (suppressed warn) -> fallback to mock mode: {db_e}")
            else:
                logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
            try:
                result = process_all(cfg, cursor=None)
            except ProcessingError as e:
                logger.error(f"processing(mock): {e}")
                return EXIT_FATAL

    logger.info(f"mode={db_mode} inserted={result.total_inserted_rows}")

    for failed in result.failures:
        logger.warning(f"failed statement: {failed.file_name} ({failed.error})")

    summary_line = render_summary_line(result.total_files, result)
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
