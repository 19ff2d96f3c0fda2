from __future__ import annotations

from dataclasses import dataclass, field

from .classification import DEFAULT_RULES, ClassificationRule
from .statement import StatementFormat

"""Config dataclasses for the bank statement import tool.

These are the typed form of config/import.yml after schema validation in
bankreco.config.loader.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for the import process.

    Contains all settings needed to read statement workbooks and import them to PostgreSQL.
    """
    source_directory: str  # Directory to scan for statement workbooks
    statement_format: StatementFormat | None = None  # None = auto detect per file
    bank_account: str | None = None  # bank_accounts.name to attach imported rows to
    classification_rules: tuple[ClassificationRule, ...] = DEFAULT_RULES
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
