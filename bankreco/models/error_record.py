from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum

"""Error records of the JSON Lines error log.

One record per failed statement file. Statement failures are file-level by
nature (the header, a required column or the database transaction), so the
row defaults to -1 and the sheet to ``FILE_LEVEL`` when the workbook could not
be opened at all.
"""

__all__ = [
    "ErrorType",
    "ErrorRecord",
    "FILE_LEVEL",
    "UNKNOWN_ROW",
]

FILE_LEVEL = "<FILE_LEVEL>"
UNKNOWN_ROW = -1


class ErrorType(str, Enum):
    HEADER_NOT_FOUND = "HEADER_NOT_FOUND"
    REQUIRED_COLUMN_MISSING = "REQUIRED_COLUMN_MISSING"
    EMPTY_STATEMENT = "EMPTY_STATEMENT"
    DATABASE_INSERT_ERROR = "DATABASE_INSERT_ERROR"
    TRANSACTION_BEGIN_ERROR = "TRANSACTION_BEGIN_ERROR"
    TRANSACTION_COMMIT_ERROR = "TRANSACTION_COMMIT_ERROR"
    TRANSACTION_ROLLBACK_ERROR = "TRANSACTION_ROLLBACK_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"


@dataclass(frozen=True)
class ErrorRecord:
    """One line of the error log.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: statement workbook name
        sheet: worksheet name, FILE_LEVEL when the workbook was not read
        row: 1-based grid row, UNKNOWN_ROW for file-level failures
        error_type: ErrorType value
        message: parser / database error text
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    error_type: str
    message: str

    @classmethod
    def create(
        cls,
        file: str,
        error_type: ErrorType,
        message: str,
        sheet: str = FILE_LEVEL,
        row: int = UNKNOWN_ROW,
    ) -> ErrorRecord:
        """Record stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return cls(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=ErrorType(error_type).value,
            message=message,
        )

    @property
    def is_file_level(self) -> bool:
        return self.row == UNKNOWN_ROW

    def to_json_line(self) -> str:
        # 固定スキーマ: 追加キー禁止
        return json.dumps(asdict(self), ensure_ascii=False)
