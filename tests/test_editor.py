"""Tests for the bulk budget editor."""

import pytest
from datetime import date
from decimal import Decimal

from budgetbook.budgeting import BulkBudgetEditor
from budgetbook.models.budget import BudgetLineProposal, Category


@pytest.fixture
def editor():
    categories = [Category(user_id="u1", name="Food")]
    return BulkBudgetEditor.from_text(
        "Pepper 40,000\nOnions 10,000\nTransport",
        categories,
    )


class TestBulkBudgetEditor:

    def test_from_text_builds_proposals(self, editor):
        assert len(editor) == 3
        assert [i.item_id for i in editor.items] == ["item-0", "item-1", "item-2"]

    def test_items_are_copies(self, editor):
        editor.items[0].source_name = "Changed"
        assert editor.items[0].source_name == "Pepper"

    def test_update_each_editable_field(self, editor):
        editor.update_item("item-0", "source_name", "Scotch bonnet")
        editor.update_item("item-0", "category", "Market")
        editor.update_item("item-0", "amount", "45000")

        item = editor.items[0]
        assert item.source_name == "Scotch bonnet"
        assert item.category == "Market"
        assert item.amount == "45000"

    def test_update_unknown_field(self, editor):
        with pytest.raises(ValueError):
            editor.update_item("item-0", "item_id", "item-9")

    def test_update_unknown_item(self, editor):
        with pytest.raises(KeyError):
            editor.update_item("item-42", "amount", "1")

    def test_remove_item(self, editor):
        editor.remove_item("item-1")
        assert [i.source_name for i in editor.items] == ["Pepper", "Transport"]

        with pytest.raises(KeyError):
            editor.remove_item("item-1")

    def test_to_budgets_is_one_to_one_in_display_order(self, editor):
        editor.remove_item("item-1")
        editor.update_item("item-2", "amount", "20,000")

        budgets = editor.to_budgets("u1", date(2024, 5, 20))

        assert [b.name for b in budgets] == ["Pepper", "Transport"]
        assert [b.amount_limit for b in budgets] == [Decimal("40000"), Decimal("20000")]
        assert [b.category for b in budgets] == ["Food", "Transport"]
        assert all(b.month == date(2024, 5, 1) for b in budgets)
        assert all(b.user_id == "u1" for b in budgets)

    def test_edited_names_are_not_reparsed(self, editor):
        editor.update_item("item-0", "source_name", "Pepper 999")
        budgets = editor.to_budgets("u1", date(2024, 5, 1))
        assert budgets[0].name == "Pepper 999"
        assert budgets[0].amount_limit == Decimal("40000")

    def test_to_budgets_rejects_non_numeric_amount(self, editor):
        editor.update_item("item-0", "amount", "forty")
        with pytest.raises(ValueError):
            editor.to_budgets("u1", date(2024, 5, 1))

    def test_empty_editor(self):
        editor = BulkBudgetEditor()
        assert len(editor) == 0
        assert editor.to_budgets("u1", date(2024, 5, 1)) == []

    def test_accepts_existing_proposals(self):
        editor = BulkBudgetEditor([BudgetLineProposal(item_id="a", amount="5")])
        assert editor.items[0].item_id == "a"
