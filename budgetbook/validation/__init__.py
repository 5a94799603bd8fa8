"""Validation package."""

from budgetbook.validation.validator import BudgetValidator, parse_amount

__all__ = ["BudgetValidator", "parse_amount"]
