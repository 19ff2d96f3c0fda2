"""Bank statement import tool (statement workbook -> PostgreSQL bank_transactions)."""

__version__ = "0.3.0"
