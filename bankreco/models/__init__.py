"""Domain models for the bank statement import tool.

This package contains all domain model classes used throughout the application:
configuration, statement layouts, normalized and stored transactions and the
aggregated processing results.
"""

from .classification import DEFAULT_RULES, ClassificationRule
from .config_models import DatabaseConfig, ImportConfig
from .statement import ColumnMap, StatementFormat
from .transaction import (
    BankAccount,
    DedupResult,
    ImportResult,
    NormalizedTransaction,
    StoredTransaction,
    dedup_key,
)

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Classification
    "ClassificationRule",
    "DEFAULT_RULES",
    # Statement layout
    "ColumnMap",
    "StatementFormat",
    # Transactions
    "BankAccount",
    "DedupResult",
    "ImportResult",
    "NormalizedTransaction",
    "StoredTransaction",
    "dedup_key",
]
