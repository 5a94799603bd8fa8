"""Tests for the bulk budget text parser."""

import pytest

from budgetbook.budgeting import parse_budget_line, parse_budget_text
from budgetbook.models.budget import Category


def make_categories(*names):
    return [Category(user_id="u1", name=name) for name in names]


class TestParseBudgetLine:
    """Splitting one line into (name, amount)."""

    @pytest.mark.parametrize("line,expected", [
        ("Pepper 40,000", ("Pepper", "40000")),
        ("Onions 10000", ("Onions", "10000")),
        ("Item 2 Pack 500", ("Item 2 Pack", "500")),
        ("Fuel 12,500.50", ("Fuel", "12500.50")),
        ("  Rice   25,000  ", ("Rice", "25000")),
        ("Transport", ("Transport", "0")),
        ("Room101", ("Room", "101")),
    ])
    def test_splits_trailing_amount(self, line, expected):
        assert parse_budget_line(line) == expected

    @pytest.mark.parametrize("line", [
        "Pepper 40,000",
        "Fuel 12,500.50",
        "Room101",
        "Item 2 Pack 500",
        "Rent 1,200,000",
        "Airtime 0.5",
    ])
    def test_rejoined_line_parses_to_same_amount(self, line):
        name, amount = parse_budget_line(line)
        assert parse_budget_line(f"{name} {amount}") == (name, amount)

    def test_amount_only_line_has_empty_name(self):
        assert parse_budget_line("40,000") == ("", "40000")

    def test_commas_without_digits_are_not_an_amount(self):
        assert parse_budget_line("Misc ,,,") == ("Misc ,,,", "0")

    def test_trailing_dot_is_not_an_amount(self):
        assert parse_budget_line("Etc.") == ("Etc.", "0")


class TestParseBudgetText:
    """Parsing a pasted block into proposals."""

    def test_one_proposal_per_non_blank_line_in_order(self):
        text = "Pepper 40,000\n\n   \nOnions 10,000\nTransport\n"
        proposals = parse_budget_text(text)

        assert [p.source_name for p in proposals] == ["Pepper", "Onions", "Transport"]
        assert [p.amount for p in proposals] == ["40000", "10000", "0"]
        assert [p.item_id for p in proposals] == ["item-0", "item-1", "item-2"]

    def test_empty_text_gives_no_proposals(self):
        assert parse_budget_text("") == []
        assert parse_budget_text("\n \n\t\n") == []

    def test_windows_line_endings(self):
        proposals = parse_budget_text("Rice 100\r\nBeans 200\r\n")
        assert [(p.source_name, p.amount) for p in proposals] == [
            ("Rice", "100"),
            ("Beans", "200"),
        ]

    def test_categories_are_resolved_against_user_categories(self):
        categories = make_categories("Groceries", "Transport")
        proposals = parse_budget_text(
            "Groceries 5000\nTransport to work 3000\nNetflix 4000\nGift 1000",
            categories,
        )
        assert [p.category for p in proposals] == [
            "Groceries",
            "Transport",
            "Entertainment",
            "",
        ]

    def test_without_categories_keyword_labels_are_used(self):
        proposals = parse_budget_text("Pepper 40,000\nUber 2,000")
        assert [p.category for p in proposals] == ["Food", "Transport"]

    def test_never_raises_on_garbage(self):
        proposals = parse_budget_text("!!!\n@@@ ...\n")
        assert [p.amount for p in proposals] == ["0", "0"]
