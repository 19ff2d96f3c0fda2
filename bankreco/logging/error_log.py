from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import FILE_LEVEL, UNKNOWN_ROW, ErrorRecord, ErrorType

"""Per-run error log.

Failed statements are collected while the run goes on and written once at the
end to ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC start of the first flush), one
JSON object per line. A run without failures leaves no file behind.
"""

__all__ = [
    "ErrorLogBuffer",
    "LOGS_DIR",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Failed-statement records of one import run."""

    def __init__(self, logs_dir: Path = LOGS_DIR) -> None:
        self.logs_dir = logs_dir
        self._records: list[ErrorRecord] = []
        self._path: Path | None = None

    def add(
        self,
        file: str,
        error_type: ErrorType,
        message: str,
        sheet: str = FILE_LEVEL,
        row: int = UNKNOWN_ROW,
    ) -> ErrorRecord:
        record = ErrorRecord.create(file, error_type, message, sheet=sheet, row=row)
        self._records.append(record)
        return record

    @property
    def records(self) -> tuple[ErrorRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def _target(self) -> Path:
        # ファイル名は初回 flush 時に確定し、以降は同じファイルへ追記
        if self._path is None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._path = self.logs_dir / f"errors-{stamp}.log"
        return self._path

    def flush(self) -> Path | None:
        """Write pending records; returns the log path, None when nothing was pending."""
        if not self._records:
            return None
        path = self._target()
        with path.open("a", encoding="utf-8") as f:
            f.writelines(r.to_json_line() + "\n" for r in self._records)
        self._records.clear()
        return path
