from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Paged multi-row INSERT via psycopg2.extras.execute_values.

One statement file is inserted with a single call; execute_values splits it
into pages of ``page_size`` rows. Transaction boundaries stay with the caller
(one BEGIN/COMMIT per statement in services.orchestrator), so a failing page
leaves nothing behind once the caller rolls back.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "PAGE_SIZE",
    "BatchInsertError",
    "InsertResult",
    "batch_insert",
]

PAGE_SIZE = 1000


class BatchInsertError(Exception):
    """Driver error raised while inserting a batch (constraint, type, connection)."""


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    pages: int = 0


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = PAGE_SIZE,
) -> InsertResult:
    """INSERT ``rows`` (values in ``columns`` order) into ``table``.

    ``table`` and ``columns`` are fixed identifiers of db.repository and are
    interpolated as-is; values always go through driver parameters.

    Raises:
        BatchInsertError: the driver rejected a page
    """
    values = [list(r) for r in rows]
    if not values:
        return InsertResult(inserted_rows=0)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    pages = math.ceil(len(values) / page_size)
    logger.debug("insert table=%s rows=%d pages=%d", table, len(values), pages)
    try:
        execute_values(cursor, sql, values, page_size=page_size)
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    return InsertResult(inserted_rows=len(values), pages=pages)
