from __future__ import annotations

from typing import NamedTuple

__all__ = [
    "ClassificationRule",
    "DEFAULT_RULES",
]


class ClassificationRule(NamedTuple):
    """Description substring -> (expense head, vendor) suggestion."""
    trigger: str  # 大文字小文字を無視した部分一致
    expense_head: str
    vendor: str


# 宣言順で評価 (先勝ち)
DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("Avinash", "Other Cost", "Avinash"),
    ClassificationRule("Bhatsange", "Rent ", "Sonu Sir"),
    ClassificationRule("Ajit", "Funding", "Ajit"),
)
