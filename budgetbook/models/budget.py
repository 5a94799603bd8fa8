"""
Core Data Models for Budget Book

These models define the schemas for everything flowing through the system:
categories, budgets, transactions and the transient proposals produced while
the user reviews pasted text or a scanned receipt.

DESIGN DECISION: Proposals (BudgetLineProposal, ScannedReceipt) are kept
separate from persisted records (Budget, Transaction). A proposal is what the
parser or the AI thinks it saw; only the user turns it into a record.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class CategoryGroup(str, Enum):
    """
    Spending groups a category belongs to.

    Follows the needs / wants / savings split.
    """
    NEEDS = "needs"
    WANTS = "wants"
    SAVINGS = "savings"


class BudgetPeriod(str, Enum):
    """Budget period. Only monthly budgets are created today."""
    MONTHLY = "monthly"


class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


MAX_NAME_LENGTH = 200
MAX_CATEGORY_LENGTH = 100


def first_of_month(value: date) -> date:
    """Normalise any date to the first day of its month."""
    if isinstance(value, datetime):
        value = value.date()
    return value.replace(day=1)


# =============================================================================
# CATEGORIES
# =============================================================================

class Category(BaseModel):
    """
    A user-defined spending category.

    Names are unique per user (case-insensitive). The resolver treats
    categories as read-only input.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(default="", description="Owner of the category")
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_CATEGORY_LENGTH,
        description="Category name as the user typed it"
    )
    group: CategoryGroup = Field(
        default=CategoryGroup.NEEDS,
        description="needs / wants / savings"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(BaseModel):
    """
    A persisted monthly budget line.

    `month` always holds the first day of the budgeted month.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    name: str = Field(
        default="",
        max_length=MAX_NAME_LENGTH,
        description="Budget name (may be empty)"
    )
    category: str = Field(
        default="",
        max_length=MAX_CATEGORY_LENGTH,
        description="Category name; empty means unassigned"
    )
    amount_limit: Annotated[
        Decimal,
        Field(ge=0, description="Spending limit for the period")
    ]
    period: BudgetPeriod = Field(default=BudgetPeriod.MONTHLY)
    month: date = Field(..., description="First day of the budgeted month")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('month')
    @classmethod
    def normalise_month(cls, v: date) -> date:
        return first_of_month(v)


class BudgetLineProposal(BaseModel):
    """
    One line of pasted bulk-budget text, parsed and categorized.

    CRITICAL: This is a PROPOSAL. The user can edit every field or drop
    the line before anything is saved. `amount` stays a string so a
    half-typed correction never fails validation while editing.
    """

    item_id: str = Field(..., description="Stable id, item-<line index>")
    source_name: str = Field(default="", description="Name parsed from the line")
    category: str = Field(default="", description="Best-guess category or ''")
    amount: str = Field(default="0", description="Comma-free decimal string")


# =============================================================================
# TRANSACTIONS & RECEIPTS
# =============================================================================

class Transaction(BaseModel):
    """A persisted income or expense entry."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    amount: Annotated[Decimal, Field(ge=0)]
    description: str = Field(default="", max_length=300)
    category: str = Field(default="", max_length=MAX_CATEGORY_LENGTH)
    transaction_date: date
    type: TransactionType = Field(default=TransactionType.EXPENSE)
    receipt_url: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ReceiptUpload(BaseModel):
    """Represents an uploaded receipt image before it is stored."""

    upload_id: UUID = Field(default_factory=uuid4)
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    original_filename: str
    file_size_bytes: int = Field(ge=0)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image types."""
        allowed = {'image/jpeg', 'image/png', 'image/webp'}
        if v.lower() not in allowed:
            raise ValueError(f"Unsupported image type: {v}. Allowed: {allowed}")
        return v.lower()


class ScannedReceiptItem(BaseModel):
    """A single purchased item read off a receipt."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(default="", max_length=200)
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    category: str = Field(default="", max_length=MAX_CATEGORY_LENGTH)


class ScannedReceipt(BaseModel):
    """
    Data extracted from a receipt image by the AI scanner.

    CRITICAL: This is PROPOSED data, NOT verified.
    It MUST go through user review before transactions are created.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    scan_id: UUID = Field(default_factory=uuid4)
    scanned_at: datetime = Field(default_factory=datetime.utcnow)
    store: str = Field(default="", max_length=200)
    purchase_date: Optional[date] = Field(
        default=None,
        description="Transaction date if the model could read one"
    )
    items: list[ScannedReceiptItem] = Field(default_factory=list)
    total: Optional[Decimal] = Field(default=None, ge=0)
    receipt_url: Optional[str] = None

    # Raw model output for debugging
    raw_text: Optional[str] = None

    @property
    def items_total(self) -> Decimal:
        return sum((item.amount for item in self.items), Decimal("0"))


# =============================================================================
# MONTHLY PLAN & SUMMARY
# =============================================================================

# Share of the expected income each group should take (50/30/20)
GROUP_TARGET_SHARES: dict[CategoryGroup, Decimal] = {
    CategoryGroup.NEEDS: Decimal("0.5"),
    CategoryGroup.WANTS: Decimal("0.3"),
    CategoryGroup.SAVINGS: Decimal("0.2"),
}


class MonthlyPlan(BaseModel):
    """
    The user's expected income for one month.

    One plan per (user, month); saving again replaces the income.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    month: date = Field(..., description="First day of the planned month")
    expected_income: Annotated[Decimal, Field(ge=0)] = Decimal("0")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('month')
    @classmethod
    def normalise_month(cls, v: date) -> date:
        return first_of_month(v)

    def target_for(self, group: CategoryGroup) -> Decimal:
        return self.expected_income * GROUP_TARGET_SHARES[group]


class BudgetSpending(BaseModel):
    """A budget next to what has been spent against it this month."""

    budget: Budget
    spent: Decimal = Decimal("0")
    group: Optional[CategoryGroup] = Field(
        default=None,
        description="Group of the budget's category, None if unknown"
    )

    @property
    def remaining(self) -> Decimal:
        return self.budget.amount_limit - self.spent

    @property
    def over_limit(self) -> bool:
        return self.spent > self.budget.amount_limit

    @property
    def percent_used(self) -> Decimal:
        if self.budget.amount_limit == 0:
            return Decimal("0")
        return self.spent / self.budget.amount_limit * 100


class GroupTotal(BaseModel):
    """Budgeted and spent totals of one category group."""

    group: CategoryGroup
    limit_total: Decimal = Decimal("0")
    spent_total: Decimal = Decimal("0")
    target: Optional[Decimal] = Field(
        default=None,
        description="Share of the expected income, when a plan exists"
    )

    @property
    def over_target(self) -> Decimal:
        """How far the budgeted total exceeds the target, or 0."""
        if self.target is None or self.limit_total <= self.target:
            return Decimal("0")
        return self.limit_total - self.target


class BudgetSummary(BaseModel):
    """Budgets of one month with spending and per-group totals."""

    user_id: str
    month: date
    lines: list[BudgetSpending] = Field(default_factory=list)
    groups: list[GroupTotal] = Field(default_factory=list)
    expected_income: Optional[Decimal] = None

    @property
    def total_limit(self) -> Decimal:
        return sum((line.budget.amount_limit for line in self.lines), Decimal("0"))

    @property
    def total_spent(self) -> Decimal:
        return sum((line.spent for line in self.lines), Decimal("0"))

    def group_total(self, group: CategoryGroup) -> GroupTotal:
        for total in self.groups:
            if total.group == group:
                return total
        return GroupTotal(group=group)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field (or proposal id) with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation of a bulk submission.

    Stage 1: Schema validation (amounts parse, buffer not empty)
    Stage 2: Semantic validation (missing categories, suspicious amounts)
    """

    validated_at: datetime = Field(default_factory=datetime.utcnow)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    can_submit: bool = Field(
        ...,
        description="Can the proposals be saved as they are?"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)

    # Warnings don't block but should be shown
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
