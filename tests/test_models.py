"""
Tests for Budget Book

Test strategy:
1. Unit tests for individual components (models, parser, resolver, validator)
2. Integration tests for flows (with in-memory storage and fake services)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from budgetbook.models.budget import (
    Budget,
    BudgetLineProposal,
    BudgetPeriod,
    Category,
    CategoryGroup,
    ReceiptUpload,
    ScannedReceipt,
    ScannedReceiptItem,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    first_of_month,
)
from budgetbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestBudgetModels:
    """Tests for budget-related Pydantic models."""

    def test_category_strips_whitespace(self):
        category = Category(user_id="u1", name="  Food  ")
        assert category.name == "Food"
        assert category.group == CategoryGroup.NEEDS

    def test_category_rejects_empty_name(self):
        with pytest.raises(ValueError):
            Category(user_id="u1", name="   ")

    def test_budget_month_normalised_to_first_day(self):
        budget = Budget(
            user_id="u1",
            name="Rice",
            category="Food",
            amount_limit=Decimal("20000"),
            month=date(2024, 3, 17),
        )
        assert budget.month == date(2024, 3, 1)
        assert budget.period == BudgetPeriod.MONTHLY

    def test_budget_rejects_negative_limit(self):
        with pytest.raises(ValueError):
            Budget(
                user_id="u1",
                amount_limit=Decimal("-1"),
                month=date(2024, 3, 1),
            )

    def test_budget_allows_empty_name_and_category(self):
        budget = Budget(user_id="u1", amount_limit=Decimal("0"), month=date(2024, 3, 1))
        assert budget.name == ""
        assert budget.category == ""

    def test_first_of_month_accepts_datetime(self):
        assert first_of_month(datetime(2024, 12, 31, 23, 59)) == date(2024, 12, 1)

    def test_proposal_defaults(self):
        proposal = BudgetLineProposal(item_id="item-0")
        assert proposal.source_name == ""
        assert proposal.category == ""
        assert proposal.amount == "0"


class TestReceiptModels:
    """Tests for receipt and transaction models."""

    def test_receipt_upload_rejects_non_image(self):
        with pytest.raises(ValueError):
            ReceiptUpload(
                original_filename="receipt.pdf",
                file_size_bytes=100,
                mime_type="application/pdf",
            )

    def test_receipt_upload_lowercases_mime_type(self):
        upload = ReceiptUpload(
            original_filename="receipt.jpg",
            file_size_bytes=100,
            mime_type="IMAGE/JPEG",
        )
        assert upload.mime_type == "image/jpeg"

    def test_scanned_receipt_items_total(self):
        receipt = ScannedReceipt(
            store="Shoprite",
            items=[
                ScannedReceiptItem(name="Milk", amount=Decimal("1500")),
                ScannedReceiptItem(name="Bread", amount=Decimal("1200.50")),
            ],
        )
        assert receipt.items_total == Decimal("2700.50")

    def test_scanned_receipt_without_items(self):
        assert ScannedReceipt().items_total == Decimal("0")

    def test_transaction_defaults_to_expense(self):
        transaction = Transaction(
            user_id="u1",
            amount=Decimal("500"),
            transaction_date=date(2024, 3, 2),
        )
        assert transaction.type == TransactionType.EXPENSE
        assert transaction.receipt_url is None


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_SAVED,
            description="Budget saved",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.is_user_action is False

    def test_audit_event_to_log_dict(self):
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.BULK_TEXT_PARSED,
            user_id="u1",
            correlation_id=correlation_id,
            description="Parsed",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "bulk_text_parsed"
        assert log_dict["user_id"] == "u1"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_to_sheets_row(self):
        event = AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            description="Boom",
            details={"a": 1},
        )
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "system_error"
        assert row[9] == '{"a": 1}'

    def test_builder_bulk_budgets_saved(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.bulk_budgets_saved(
            user_id="u1",
            count=3,
            month="2024-03-01",
            total="75000",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.BULK_BUDGETS_SAVED
        assert event.details["count"] == 3
        assert event.is_user_action is True

    def test_builder_bulk_save_failed_is_error(self):
        event = AuditEventBuilder.bulk_save_failed(
            user_id="u1",
            count=4,
            error_message="quota exceeded",
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "quota exceeded"

    def test_builder_budget_changed_description(self):
        event = AuditEventBuilder.budget_changed(
            event_type=AuditEventType.BUDGET_DELETED,
            budget_id=uuid4(),
            user_id="u1",
            name="Rice",
            amount="20000",
        )
        assert "deleted" in event.description
        assert event.entity_type == "budget"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            can_submit=False,
            issues=[
                ValidationIssue(
                    field="item-0",
                    issue_type="invalid_format",
                    message="Not a number",
                    severity="error",
                ),
                ValidationIssue(
                    field="item-1",
                    issue_type="missing",
                    message="No category",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1

    def test_validation_issue_rejects_unknown_severity(self):
        with pytest.raises(ValueError):
            ValidationIssue(
                field="x",
                issue_type="missing",
                message="m",
                severity="fatal",
            )
