from __future__ import annotations

from collections.abc import Sequence

from ..models.classification import DEFAULT_RULES, ClassificationRule

"""Description-based auto classification (expense head / vendor)."""

__all__ = [
    "apply_rules",
]


def apply_rules(
    description: str,
    expense_head: str | None,
    vendor: str | None,
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
) -> tuple[str | None, str | None]:
    """Fill a missing expense head and/or vendor from the first matching rule.

    Existing values are never overwritten: when both are already set they are
    returned unchanged, and a partial match only fills the empty field.
    Applying the function to its own output is a no-op.

    >>> apply_rules("Payment to Avinash for materials", None, None)
    ('Other Cost', 'Avinash')
    """
    if expense_head and vendor:
        return expense_head, vendor

    lowered = description.lower()
    for rule in rules:
        if rule.trigger.lower() in lowered:
            return expense_head or rule.expense_head, vendor or rule.vendor

    return expense_head, vendor
