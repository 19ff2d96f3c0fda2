from __future__ import annotations

"""Fatal statement parsing errors.

Both abort the import of the whole statement before any transaction is produced.
"""

__all__ = [
    "StatementError",
    "HeaderNotFound",
    "RequiredColumnMissing",
]


class StatementError(Exception):
    """Base class for errors that make a statement unparseable."""


class HeaderNotFound(StatementError):
    """No row of the grid looks like the transaction table header."""


class RequiredColumnMissing(StatementError):
    """The header row lacks a column the statement format cannot do without."""
