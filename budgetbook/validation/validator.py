"""
Two-Stage Validation of Bulk Budget Submissions

Runs on the user's (possibly hand-edited) proposals right before they are
saved.

STAGE 1 - SCHEMA VALIDATION:
- Something to save at all
- Every amount is a non-negative decimal number
- The batch isn't larger than we accept in one go

STAGE 2 - SEMANTIC VALIDATION:
- Lines without a category
- Zero or absurdly large amounts
- Lines without a name

Stage 1 errors block submission. Stage 2 only produces warnings: an
uncategorized or zero budget is allowed, it just deserves a second look.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to fix in the editor.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from budgetbook.config import get_settings
from budgetbook.models.budget import (
    MAX_CATEGORY_LENGTH,
    MAX_NAME_LENGTH,
    BudgetLineProposal,
    ValidationIssue,
    ValidationResult,
)


def parse_amount(value: str) -> Optional[Decimal]:
    """Return the amount as a Decimal, or None if it isn't a finite number."""
    try:
        amount = Decimal(value.replace(",", "").strip())
    except (InvalidOperation, AttributeError):
        return None
    if not amount.is_finite():
        return None
    return amount


class BudgetValidator:
    """Validates bulk budget proposals through a two-stage pipeline."""

    def __init__(self):
        self._settings = get_settings().app

    def _validate_schema(
        self,
        proposals: list[BudgetLineProposal],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if not proposals:
            issues.append(ValidationIssue(
                field="proposals",
                issue_type="empty",
                message="There are no budget lines to save",
                severity="error",
                suggested_fix="Paste at least one line such as 'Rice 20,000'",
            ))

        if len(proposals) > self._settings.max_bulk_lines:
            issues.append(ValidationIssue(
                field="proposals",
                issue_type="too_many",
                message=(
                    f"{len(proposals)} lines is more than the "
                    f"{self._settings.max_bulk_lines} allowed at once"
                ),
                severity="error",
                suggested_fix="Split the list and add it in parts",
            ))

        for item in proposals:
            amount = parse_amount(item.amount)
            if amount is None:
                issues.append(ValidationIssue(
                    field=item.item_id,
                    issue_type="invalid_format",
                    message=f"Amount '{item.amount}' for '{item.source_name}' is not a number",
                    severity="error",
                    suggested_fix="Enter the amount using digits only",
                ))
            elif amount < 0:
                issues.append(ValidationIssue(
                    field=item.item_id,
                    issue_type="invalid_value",
                    message=f"Amount for '{item.source_name}' cannot be negative",
                    severity="error",
                ))

            if len(item.source_name.strip()) > MAX_NAME_LENGTH:
                issues.append(ValidationIssue(
                    field=item.item_id,
                    issue_type="too_long",
                    message=f"Name of line {item.item_id} is longer than {MAX_NAME_LENGTH} characters",
                    severity="error",
                    suggested_fix="Shorten the name",
                ))

            if len(item.category.strip()) > MAX_CATEGORY_LENGTH:
                issues.append(ValidationIssue(
                    field=item.item_id,
                    issue_type="too_long",
                    message=f"Category of line {item.item_id} is longer than {MAX_CATEGORY_LENGTH} characters",
                    severity="error",
                    suggested_fix="Pick one of your categories",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        proposals: list[BudgetLineProposal],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []
        max_amount = Decimal(str(self._settings.max_budget_amount))

        for item in proposals:
            label = item.source_name or item.item_id

            if not item.source_name:
                issues.append(ValidationIssue(
                    field=item.item_id,
                    issue_type="missing",
                    message=f"Line {item.item_id} has no name",
                    severity="warning",
                    suggested_fix="The category will be shown instead",
                ))

            if not item.category:
                issues.append(ValidationIssue(
                    field=item.item_id,
                    issue_type="missing",
                    message=f"'{label}' has no category",
                    severity="warning",
                    suggested_fix="Pick a category so spending can be tracked against it",
                ))

            amount = parse_amount(item.amount)
            if amount == 0:
                issues.append(ValidationIssue(
                    field=item.item_id,
                    issue_type="suspicious_value",
                    message=f"'{label}' has a limit of 0",
                    severity="warning",
                    suggested_fix="Check the amount was read from the line",
                ))
            elif amount is not None and amount > max_amount:
                issues.append(ValidationIssue(
                    field=item.item_id,
                    issue_type="suspicious_value",
                    message=f"'{label}' has an unusually high limit ({amount:,})",
                    severity="warning",
                    suggested_fix="Please verify this amount is correct",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate_proposals(
        self,
        proposals: list[BudgetLineProposal],
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Stage 2 only runs when stage 1 passes.
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(proposals)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(proposals)
            all_issues.extend(semantic_issues)

        warnings = [i.message for i in all_issues if i.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid and not warnings,
            can_submit=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a user-friendly summary of validation results."""
        if result.is_valid:
            return "✅ All lines look good."

        lines = []

        if not result.schema_valid:
            lines.append("❌ Some lines can't be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please check the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.can_submit:
            lines.append("You can still save, but please review carefully.")
        else:
            lines.append("Please fix the issues above before saving.")

        return "\n".join(lines).strip()
