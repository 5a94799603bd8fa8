"""Tests for the category resolver."""

import pytest

from budgetbook.budgeting import KEYWORD_CATEGORY_RULES, keyword_label, resolve_category
from budgetbook.models.budget import Category


def make_categories(*names):
    return [Category(user_id="u1", name=name) for name in names]


class TestResolveCategory:
    """Resolution order: exact, substring, keyword table, nothing."""

    def test_exact_match_is_case_insensitive_and_returns_stored_name(self):
        categories = make_categories("Food", "Transport")
        assert resolve_category("food", categories) == "Food"
        assert resolve_category("TRANSPORT", categories) == "Transport"

    def test_exact_match_beats_substring(self):
        categories = make_categories("Rent", "Rent Deposit")
        assert resolve_category("rent deposit", categories) == "Rent Deposit"

    def test_substring_match_uses_list_order(self):
        categories = make_categories("Gas", "Gas Bill")
        assert resolve_category("Gas Bill March", categories) == "Gas"

    def test_substring_beats_keyword_table(self):
        categories = make_categories("Kitchen")
        # "rice" is a Food keyword, but the user category wins
        assert resolve_category("Kitchen rice", categories) == "Kitchen"

    def test_keyword_label_is_returned_as_written(self):
        # the label lookup is an exact match, so "food" is not picked up
        categories = make_categories("food")
        assert resolve_category("Pepper", categories) == "Food"

    def test_keyword_label_matches_user_category_of_same_name(self):
        categories = make_categories("Food")
        assert resolve_category("Fresh Pepper", categories) == "Food"

    def test_keyword_label_when_no_user_category(self):
        assert resolve_category("Airtime top-up", []) == "Utilities"
        assert resolve_category("House cleaning", []) == "Housing"

    def test_no_match_returns_empty_string(self):
        categories = make_categories("Food")
        assert resolve_category("Birthday gift", categories) == ""

    def test_empty_category_names_are_ignored_for_substring(self):
        categories = [Category.model_construct(user_id="u1", name="")]
        assert resolve_category("Gift", categories) == ""

    def test_empty_name_resolves_to_nothing(self):
        assert resolve_category("", make_categories("Food")) == ""

    def test_is_deterministic(self):
        categories = make_categories("Food", "Fuel")
        first = resolve_category("Fuel for car", categories)
        assert all(
            resolve_category("Fuel for car", categories) == first
            for _ in range(5)
        )


class TestKeywordTable:
    """The built-in keyword fallback."""

    @pytest.mark.parametrize("name,label", [
        ("Ponmo", "Food"),
        ("Frozen chicken", "Food"),
        ("Detergent", "Toiletries"),
        ("Bolt rides", "Transport"),
        ("Internet", "Utilities"),
        ("Movie night", "Entertainment"),
    ])
    def test_labels(self, name, label):
        assert keyword_label(name) == label

    def test_first_keyword_in_table_order_wins(self):
        # "ata" (Food) is listed before "data" (Utilities)
        assert keyword_label("Data bundle") == "Food"

    def test_unknown_name(self):
        assert keyword_label("Birthday gift") == ""

    def test_table_is_ordered(self):
        keywords = list(KEYWORD_CATEGORY_RULES)
        assert keywords.index("ata") < keywords.index("data")
