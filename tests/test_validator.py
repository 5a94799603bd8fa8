"""Tests for bulk budget validation."""

import pytest
from decimal import Decimal

from budgetbook.models.budget import BudgetLineProposal
from budgetbook.validation import BudgetValidator, parse_amount


def proposal(index, name="Rice", category="Food", amount="1000"):
    return BudgetLineProposal(
        item_id=f"item-{index}",
        source_name=name,
        category=category,
        amount=amount,
    )


@pytest.fixture
def validator():
    return BudgetValidator()


class TestParseAmount:

    @pytest.mark.parametrize("value,expected", [
        ("1000", Decimal("1000")),
        ("40,000", Decimal("40000")),
        (" 12.50 ", Decimal("12.50")),
        ("abc", None),
        ("", None),
        ("NaN", None),
        ("Infinity", None),
    ])
    def test_values(self, value, expected):
        assert parse_amount(value) == expected


class TestBudgetValidator:

    def test_clean_batch_is_valid(self, validator):
        result = validator.validate_proposals([proposal(0), proposal(1, name="Beans")])
        assert result.is_valid
        assert result.can_submit
        assert result.issues == []

    def test_empty_batch_blocks_submit(self, validator):
        result = validator.validate_proposals([])
        assert not result.schema_valid
        assert not result.can_submit

    def test_non_numeric_amount_blocks_submit(self, validator):
        result = validator.validate_proposals([proposal(0, amount="ten")])
        assert not result.can_submit
        assert result.error_count == 1
        assert result.issues[0].field == "item-0"

    def test_negative_amount_blocks_submit(self, validator):
        result = validator.validate_proposals([proposal(0, amount="-5")])
        assert not result.can_submit

    def test_semantic_stage_skipped_when_schema_fails(self, validator):
        result = validator.validate_proposals([proposal(0, category="", amount="x")])
        assert not result.semantic_valid
        assert result.warnings == []

    def test_missing_category_is_a_warning(self, validator):
        result = validator.validate_proposals([proposal(0, category="")])
        assert result.can_submit
        assert not result.is_valid
        assert len(result.warnings) == 1

    def test_zero_amount_and_missing_name_warn(self, validator):
        result = validator.validate_proposals([proposal(0, name="", amount="0")])
        assert result.can_submit
        assert len(result.warnings) == 2

    def test_huge_amount_warns(self, validator):
        result = validator.validate_proposals([proposal(0, amount="999999999999")])
        assert result.can_submit
        assert any("unusually high" in w for w in result.warnings)

    def test_too_many_lines(self, validator):
        limit = validator._settings.max_bulk_lines
        result = validator.validate_proposals(
            [proposal(i) for i in range(limit + 1)]
        )
        assert not result.can_submit
        assert result.issues[0].issue_type == "too_many"

    def test_overlong_name_blocks_submit(self, validator):
        result = validator.validate_proposals([proposal(0, name="A" * 250)])
        assert not result.can_submit
        assert result.issues[0].issue_type == "too_long"
        assert result.issues[0].field == "item-0"

    def test_overlong_category_blocks_submit(self, validator):
        result = validator.validate_proposals([proposal(0, category="C" * 101)])
        assert not result.can_submit
        assert result.issues[0].issue_type == "too_long"

    def test_names_at_the_limit_are_fine(self, validator):
        result = validator.validate_proposals(
            [proposal(0, name="A" * 200, category="C" * 100)]
        )
        assert result.can_submit

    def test_summary_mentions_fix(self, validator):
        result = validator.validate_proposals([proposal(0, amount="ten")])
        summary = validator.get_user_friendly_summary(result)
        assert "fix the issues" in summary

    def test_summary_for_valid_result(self, validator):
        result = validator.validate_proposals([proposal(0)])
        assert validator.get_user_friendly_summary(result).startswith("✅")
