from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .statement import StatementFormat

"""Outcome of importing one statement workbook (services.orchestrator)."""


class FileStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class StatementFile:
    """One statement workbook after its import attempt.

    A file with no new transactions (empty table or everything already
    stored) is still SUCCESS; FAILED means nothing of it was written.
    """
    path: Path
    name: str
    status: FileStatus
    start_time: datetime  # UTC
    end_time: datetime  # UTC
    statement_format: StatementFormat | None = None  # ヘッダ検出前に失敗した場合 None
    inserted_rows: int = 0
    duplicate_rows: int = 0
    error: str | None = None  # 失敗理由
