"""
Bulk Budget Editor

Holds the proposals of one "bulk add" interaction while the user reviews
them. Every proposal can be renamed, re-categorized, re-priced or dropped.
Submission turns the current list into Budget records 1:1, in display
order. Edited text is never re-parsed.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from budgetbook.budgeting.parser import parse_budget_text
from budgetbook.models.budget import (
    Budget,
    BudgetLineProposal,
    BudgetPeriod,
    Category,
    first_of_month,
)


EDITABLE_FIELDS = ("source_name", "category", "amount")


class BulkBudgetEditor:
    """Editable buffer of budget line proposals."""

    def __init__(self, proposals: Optional[Iterable[BudgetLineProposal]] = None):
        self._items: list[BudgetLineProposal] = list(proposals or [])

    @classmethod
    def from_text(
        cls,
        text: str,
        categories: Optional[Iterable[Category]] = None,
    ) -> "BulkBudgetEditor":
        return cls(parse_budget_text(text, categories))

    @property
    def items(self) -> list[BudgetLineProposal]:
        """Current proposals in display order (copies)."""
        return [item.model_copy() for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.item_id == item_id:
                return index
        raise KeyError(f"No proposal with id {item_id!r}")

    def update_item(self, item_id: str, field: str, value: str) -> BudgetLineProposal:
        """
        Replace one field of a proposal.

        Raises:
            KeyError: unknown item_id
            ValueError: field is not editable
        """
        if field not in EDITABLE_FIELDS:
            raise ValueError(
                f"Cannot edit {field!r}; editable fields are {', '.join(EDITABLE_FIELDS)}"
            )
        index = self._index_of(item_id)
        updated = self._items[index].model_copy(update={field: value})
        self._items[index] = updated
        return updated

    def remove_item(self, item_id: str) -> None:
        """Drop a proposal. Raises KeyError for unknown ids."""
        del self._items[self._index_of(item_id)]

    def to_budgets(self, user_id: str, month: date) -> list[Budget]:
        """
        Convert the current proposals into Budget records.

        Raises:
            ValueError: a proposal's amount is not a decimal number
        """
        budget_month = first_of_month(month)
        budgets = []
        for item in self._items:
            try:
                amount = Decimal(item.amount.replace(",", "").strip())
            except InvalidOperation:
                raise ValueError(
                    f"Amount {item.amount!r} for {item.source_name!r} is not a number"
                )
            budgets.append(Budget(
                user_id=user_id,
                name=item.source_name,
                category=item.category,
                amount_limit=amount,
                period=BudgetPeriod.MONTHLY,
                month=budget_month,
            ))
        return budgets
