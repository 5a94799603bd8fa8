"""
Data Models Package

This package contains all Pydantic models used in Budget Book.
All data flowing through the system must conform to these schemas.
"""

from budgetbook.models.budget import (
    Budget,
    BudgetLineProposal,
    BudgetPeriod,
    BudgetSpending,
    BudgetSummary,
    Category,
    CategoryGroup,
    GROUP_TARGET_SHARES,
    GroupTotal,
    MonthlyPlan,
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

__all__ = [
    # Budget models
    "Budget",
    "BudgetLineProposal",
    "BudgetPeriod",
    "BudgetSpending",
    "BudgetSummary",
    "Category",
    "CategoryGroup",
    "GROUP_TARGET_SHARES",
    "GroupTotal",
    "MonthlyPlan",
    "ReceiptUpload",
    "ScannedReceipt",
    "ScannedReceiptItem",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "first_of_month",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
