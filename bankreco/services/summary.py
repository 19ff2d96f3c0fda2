from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line and per-statement import message rendering."""

__all__ = [
    "render_summary_line",
    "render_import_message",
    "NO_TRANSACTIONS_MESSAGE",
    "ALL_DUPLICATES_MESSAGE",
]

NO_TRANSACTIONS_MESSAGE = "No transactions found in the statement"
ALL_DUPLICATES_MESSAGE = "All transactions already exist in the database"


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記回避
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line of a run.

    Format:
    SUMMARY files={total}/{total} success={success} failed={failed}
    inserted={rows} duplicates={dups} elapsed_sec={elapsed}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_inserted_rows=40,
        ...     total_duplicate_rows=2, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(1, result)
        'SUMMARY files=1/1 success=1 failed=0 inserted=40 duplicates=2 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"inserted={result.total_inserted_rows} "
        f"duplicates={result.total_duplicate_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def render_import_message(inserted: int, duplicates: int) -> str:
    """User facing outcome of one statement import."""
    if inserted == 0 and duplicates == 0:
        return NO_TRANSACTIONS_MESSAGE
    if inserted == 0:
        return ALL_DUPLICATES_MESSAGE
    if duplicates > 0:
        return (
            f"Imported {_plural(inserted, 'new transaction')}. "
            f"Skipped {_plural(duplicates, 'duplicate')}."
        )
    return f"Successfully imported {_plural(inserted, 'transaction')}"
