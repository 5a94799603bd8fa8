"""
Audit Models for Budget Book

Every significant action in the system is logged for audit purposes:
budgets created from pasted text, categories changed, receipts scanned.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Bulk budget entry
    BULK_TEXT_PARSED = "bulk_text_parsed"
    BULK_VALIDATION_FAILED = "bulk_validation_failed"
    BULK_BUDGETS_SAVED = "bulk_budgets_saved"
    BULK_SAVE_FAILED = "bulk_save_failed"

    # Single budgets
    BUDGET_SAVED = "budget_saved"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"

    # Monthly plan
    MONTHLY_PLAN_SAVED = "monthly_plan_saved"

    # Categories
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"

    # Receipts
    RECEIPT_UPLOADED = "receipt_uploaded"
    RECEIPT_SCANNED = "receipt_scanned"
    RECEIPT_SCAN_FAILED = "receipt_scan_failed"
    TRANSACTIONS_SAVED = "transactions_saved"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'budget', 'category', 'receipt')"
    )
    entity_id: Optional[UUID] = None

    user_id: Optional[str] = None

    # For tracking related events (e.g. one bulk-add interaction)
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            self.user_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.bulk_text_parsed(user_id, 12, 3, correlation_id)
    """

    @staticmethod
    def bulk_text_parsed(
        user_id: str,
        line_count: int,
        uncategorized: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BULK_TEXT_PARSED,
            entity_type="bulk_budget",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Parsed {line_count} budget lines from pasted text",
            details={
                "line_count": line_count,
                "uncategorized": uncategorized,
            },
            is_user_action=True,
        )

    @staticmethod
    def bulk_validation_failed(
        user_id: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BULK_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="bulk_budget",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Bulk budget validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def bulk_budgets_saved(
        user_id: str,
        count: int,
        month: str,
        total: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BULK_BUDGETS_SAVED,
            entity_type="bulk_budget",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Saved {count} budgets for {month}",
            details={
                "count": count,
                "month": month,
                "total_limit": total,
            },
            is_user_action=True,
        )

    @staticmethod
    def bulk_save_failed(
        user_id: str,
        count: int,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BULK_SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="bulk_budget",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Bulk save of {count} budgets failed",
            details={"count": count},
            error_message=error_message,
        )

    @staticmethod
    def budget_changed(
        event_type: AuditEventType,
        budget_id: UUID,
        user_id: str,
        name: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        verb = {
            AuditEventType.BUDGET_SAVED: "saved",
            AuditEventType.BUDGET_UPDATED: "updated",
            AuditEventType.BUDGET_DELETED: "deleted",
        }.get(event_type, "changed")
        return AuditEvent(
            event_type=event_type,
            entity_type="budget",
            entity_id=budget_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Budget {verb}: {name} - {amount}",
            details={
                "name": name,
                "amount_limit": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def monthly_plan_saved(
        plan_id: UUID,
        user_id: str,
        month: str,
        expected_income: str
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTHLY_PLAN_SAVED,
            entity_type="monthly_plan",
            entity_id=plan_id,
            user_id=user_id,
            description=f"Expected income for {month} set to {expected_income}",
            details={
                "month": month,
                "expected_income": expected_income,
            },
            is_user_action=True,
        )

    @staticmethod
    def category_changed(
        event_type: AuditEventType,
        category_id: UUID,
        user_id: str,
        name: str,
        group: Optional[str] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="category",
            entity_id=category_id,
            user_id=user_id,
            description=f"Category {event_type.value.split('_')[-1]}: {name}",
            details={
                "name": name,
                "group": group,
            },
            is_user_action=True,
        )

    @staticmethod
    def receipt_uploaded(
        upload_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            entity_type="receipt",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description=f"Receipt uploaded: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def receipt_scanned(
        scan_id: UUID,
        store: str,
        item_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCANNED,
            entity_type="receipt",
            entity_id=scan_id,
            correlation_id=correlation_id,
            description=f"Receipt scanned: {store or 'unknown store'} ({item_count} items)",
            details={
                "store": store,
                "item_count": item_count,
            },
        )

    @staticmethod
    def receipt_scan_failed(
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SCAN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Receipt could not be read",
            error_message=error_message,
        )

    @staticmethod
    def transactions_saved(
        user_id: str,
        count: int,
        store: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_SAVED,
            entity_type="transaction",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Saved {count} transactions from {store or 'receipt'}",
            details={
                "count": count,
                "store": store,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
