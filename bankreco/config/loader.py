from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.classification import DEFAULT_RULES, ClassificationRule
from ..models.config_models import DatabaseConfig, ImportConfig
from ..models.statement import StatementFormat

"""Config loader.

Responsibilities:
- Load YAML config (config/import.yml by default)
- Validate against config_schema.json (shipped next to this module)
- Apply defaults (statement_format=auto, default classification rules)
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "load_config",
    "parse_statement_format",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / invalid, or the data violates it
            (missing required keys, wrong types, unknown keys)
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def parse_statement_format(value: str | None) -> StatementFormat | None:
    """'icici' / 'janata' -> StatementFormat, 'auto' / None -> None."""
    if value is None or value == "auto":
        return None
    try:
        return StatementFormat(value)
    except ValueError as e:
        raise ConfigError(f"unknown statement format: {value}") from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    rules_raw = data.get("classification_rules")
    if rules_raw is None:
        rules = DEFAULT_RULES
    else:
        # 設定順 = 評価順
        rules = tuple(
            ClassificationRule(r["match"], r["expense_head"], r["vendor"]) for r in rules_raw
        )

    return ImportConfig(
        source_directory=data["source_directory"],
        statement_format=parse_statement_format(data.get("statement_format")),
        bank_account=data.get("bank_account"),
        classification_rules=rules,
        database=db,
    )
