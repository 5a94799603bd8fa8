"""Bulk budget parsing, categorization and editing."""

from budgetbook.budgeting.categorizer import (
    KEYWORD_CATEGORY_RULES,
    keyword_label,
    resolve_category,
)
from budgetbook.budgeting.editor import BulkBudgetEditor
from budgetbook.budgeting.parser import parse_budget_line, parse_budget_text

__all__ = [
    "KEYWORD_CATEGORY_RULES",
    "BulkBudgetEditor",
    "keyword_label",
    "parse_budget_line",
    "parse_budget_text",
    "resolve_category",
]
