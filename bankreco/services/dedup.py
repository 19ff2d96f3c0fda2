from __future__ import annotations

from collections.abc import Iterable, Set

from ..models.transaction import DedupResult, NormalizedTransaction

"""Duplicate suppression against transactions that are already stored."""

__all__ = [
    "partition_duplicates",
]


def partition_duplicates(
    transactions: Iterable[NormalizedTransaction],
    existing_keys: Set[str],
) -> DedupResult:
    """Split parsed transactions into new ones and already stored ones.

    Keys are compared exactly (see models.transaction.dedup_key). Only the
    pre-existing key set is consulted, so two identical rows of the same batch
    are both kept.
    """
    new: list[NormalizedTransaction] = []
    duplicates = 0
    for txn in transactions:
        if txn.key in existing_keys:
            duplicates += 1
        else:
            new.append(txn)
    return DedupResult(new_transactions=new, duplicate_count=duplicates)
