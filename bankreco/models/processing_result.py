from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Run results: one FileStat per statement workbook and the aggregate that
feeds the SUMMARY line."""


@dataclass(frozen=True)
class FileStat:
    """Outcome of one statement workbook."""
    file_name: str
    status: str  # success / failed
    inserted_rows: int  # 新規挿入行数 (mock では挿入予定行数)
    duplicate_rows: int  # 既存と重複しスキップした行数
    elapsed_seconds: float
    statement_format: str | None = None  # icici / janata, ヘッダ未検出なら None
    error: str | None = None  # 失敗理由 (成功時 None)


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results for one import run."""
    success_files: int
    failed_files: int
    total_inserted_rows: int
    total_duplicate_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files

    @property
    def failures(self) -> list[FileStat]:
        return [s for s in self.file_stats or [] if s.status == "failed"]

    @property
    def failed_file_names(self) -> list[str]:
        return [s.file_name for s in self.failures]
