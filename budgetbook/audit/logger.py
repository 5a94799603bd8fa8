"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. User can see history of their budget changes

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from budgetbook.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from budgetbook.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_bulk_parsed(
        self,
        user_id: str,
        line_count: int,
        uncategorized: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.bulk_text_parsed(
            user_id=user_id,
            line_count=line_count,
            uncategorized=uncategorized,
            correlation_id=correlation_id,
        ))

    async def log_bulk_validation_failed(
        self,
        user_id: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.bulk_validation_failed(
            user_id=user_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_bulk_saved(
        self,
        user_id: str,
        count: int,
        month: str,
        total: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.bulk_budgets_saved(
            user_id=user_id,
            count=count,
            month=month,
            total=total,
            correlation_id=correlation_id,
        ))

    async def log_bulk_save_failed(
        self,
        user_id: str,
        count: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.bulk_save_failed(
            user_id=user_id,
            count=count,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_budget_change(
        self,
        event_type: AuditEventType,
        budget_id: UUID,
        user_id: str,
        name: str,
        amount: str,
    ) -> None:
        await self.log(AuditEventBuilder.budget_changed(
            event_type=event_type,
            budget_id=budget_id,
            user_id=user_id,
            name=name,
            amount=amount,
        ))

    async def log_monthly_plan_saved(
        self,
        plan_id: UUID,
        user_id: str,
        month: str,
        expected_income: str,
    ) -> None:
        await self.log(AuditEventBuilder.monthly_plan_saved(
            plan_id=plan_id,
            user_id=user_id,
            month=month,
            expected_income=expected_income,
        ))

    async def log_category_change(
        self,
        event_type: AuditEventType,
        category_id: UUID,
        user_id: str,
        name: str,
        group: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.category_changed(
            event_type=event_type,
            category_id=category_id,
            user_id=user_id,
            name=name,
            group=group,
        ))

    async def log_receipt_uploaded(
        self,
        upload_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_uploaded(
            upload_id=upload_id,
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

    async def log_receipt_scanned(
        self,
        scan_id: UUID,
        store: str,
        item_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scanned(
            scan_id=scan_id,
            store=store,
            item_count=item_count,
            correlation_id=correlation_id,
        ))

    async def log_receipt_scan_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_scan_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_transactions_saved(
        self,
        user_id: str,
        count: int,
        store: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transactions_saved(
            user_id=user_id,
            count=count,
            store=store,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one bulk add).
    Pass it through all subsequent operations.
    """
    return uuid4()
