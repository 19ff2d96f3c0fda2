from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Statement import progress (tqdm, TTY only).

The tracker always keeps the running per-run totals (files ok / failed, rows
inserted / skipped as duplicates); the bar that shows them is only drawn when
stdout is a terminal so piped logs stay free of control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Counts statement outcomes and mirrors them on a file-level bar."""

    def __init__(self, total_files: int, *, description: str = "Importing statements") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0
        self.succeeded = 0
        self.failed = 0
        self.inserted = 0
        self.duplicates = 0

        self.pbar: TqdmType[Any] | None = None
        if is_tty_enabled():
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    @property
    def enabled(self) -> bool:
        return self.pbar is not None

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, ok: bool, inserted: int = 0, duplicates: int = 0) -> None:
        """Account one statement; failed statements contribute no rows."""
        if ok:
            self.succeeded += 1
            self.inserted += inserted
            self.duplicates += duplicates
        else:
            self.failed += 1
        if self.pbar is not None:
            self.pbar.set_postfix(ok=self.succeeded, failed=self.failed, new=self.inserted, dup=self.duplicates)
            self.pbar.update(1)
            self.pbar.set_description(self.description)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
