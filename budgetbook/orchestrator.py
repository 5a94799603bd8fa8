"""
Main Orchestrator for Budget Book

This module ties together all the components and defines the
end-to-end flows for:
1. Bulk budgets (paste text → parse → categorize → review/edit → validate → save)
2. Single budgets and categories (create, edit, duplicate, delete)
3. Receipt scanning (image → store → scan → review → save transactions)
4. Monthly summary (spent vs limit per budget, group totals vs the income plan)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing pasted or scanned persists without the user reviewing it
- A bulk save is one write; it either commits or the user is told
  that none of it did
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import calendar
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

import structlog

from budgetbook.audit import AuditLogger, create_correlation_id
from budgetbook.budgeting import BulkBudgetEditor
from budgetbook.models.audit import AuditEventType
from budgetbook.models.budget import (
    Budget,
    BudgetPeriod,
    BudgetSpending,
    BudgetSummary,
    Category,
    CategoryGroup,
    GroupTotal,
    MonthlyPlan,
    ReceiptUpload,
    ScannedReceipt,
    ScannedReceiptItem,
    Transaction,
    TransactionType,
    ValidationResult,
    first_of_month,
)
from budgetbook.services.image import CloudinaryImageService
from budgetbook.services.receipts import GeminiReceiptScanner, ReceiptScanError
from budgetbook.services.storage import (
    BudgetStorageInterface,
    CategoryStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsMonthlyPlanStorage,
    GoogleSheetsTransactionStorage,
    InMemoryBudgetStorage,
    InMemoryCategoryStorage,
    InMemoryMonthlyPlanStorage,
    InMemoryTransactionStorage,
    MonthlyPlanStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
)
from budgetbook.validation import BudgetValidator


logger = structlog.get_logger()


class BulkValidationError(ValueError):
    """The reviewed proposals have errors that block saving."""

    def __init__(self, result: ValidationResult, message: str):
        super().__init__(message)
        self.result = result


class BulkSaveError(Exception):
    """
    The bulk insert failed and nothing from the batch was committed.

    `uncommitted` is the number of budget lines the user has to resubmit.
    """

    def __init__(self, uncommitted: int, reason: str):
        self.uncommitted = uncommitted
        self.reason = reason
        super().__init__(
            f"None of the {uncommitted} budget lines were saved ({reason}). "
            f"Your list is still here, please try saving again."
        )


class BudgetFlow:
    """
    Orchestrates budget and category management.

    Bulk flow:
    1. Paste → preview_bulk parses the text against the user's categories
    2. Review → the user edits or drops proposals in the editor
    3. Submit → validate, convert 1:1 in display order, one bulk insert

    Edited proposals are never re-parsed.

    The monthly summary puts each budget next to what was spent on it and
    compares the group totals with the user's 50/30/20 income plan.
    """

    def __init__(
        self,
        budget_storage: BudgetStorageInterface,
        category_storage: CategoryStorageInterface,
        validator: Optional[BudgetValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        transaction_storage: Optional[TransactionStorageInterface] = None,
        plan_storage: Optional[MonthlyPlanStorageInterface] = None,
    ):
        self._budget_storage = budget_storage
        self._category_storage = category_storage
        self._validator = validator or BudgetValidator()
        self._audit_logger = audit_logger
        self._transaction_storage = transaction_storage or InMemoryTransactionStorage()
        self._plan_storage = plan_storage or InMemoryMonthlyPlanStorage()

    # -------------------------------------------------------------------------
    # Bulk budgets
    # -------------------------------------------------------------------------

    async def preview_bulk(
        self,
        user_id: str,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> BulkBudgetEditor:
        """
        Parse pasted text into an editable list of proposals.

        Categories are guessed from the user's own categories first.
        """
        correlation_id = correlation_id or create_correlation_id()
        categories = await self._category_storage.list_categories(user_id)
        editor = BulkBudgetEditor.from_text(text, categories)

        if self._audit_logger:
            await self._audit_logger.log_bulk_parsed(
                user_id=user_id,
                line_count=len(editor),
                uncategorized=sum(1 for item in editor.items if not item.category),
                correlation_id=correlation_id,
            )

        return editor

    async def _log_validation_failed(
        self,
        user_id: str,
        result: ValidationResult,
        correlation_id: UUID,
        conversion_error: Optional[str] = None,
    ) -> None:
        if not self._audit_logger:
            return
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
        ]
        if conversion_error:
            issues.append({"field": "proposals", "type": "conversion", "message": conversion_error})
        await self._audit_logger.log_bulk_validation_failed(
            user_id=user_id,
            issues=issues,
            correlation_id=correlation_id,
        )

    def validate_bulk(self, editor: BulkBudgetEditor) -> tuple[ValidationResult, str]:
        """
        Validate the current proposals.

        Returns:
            (validation_result, user_message)
        """
        result = self._validator.validate_proposals(editor.items)
        return result, self._validator.get_user_friendly_summary(result)

    async def submit_bulk(
        self,
        user_id: str,
        editor: BulkBudgetEditor,
        month: date,
        correlation_id: Optional[UUID] = None,
    ) -> list[Budget]:
        """
        Save the reviewed proposals as budgets for `month`.

        Returns:
            The saved budgets, in display order

        Raises:
            BulkValidationError: Proposals have blocking errors
            BulkSaveError: The store rejected the batch; nothing was saved
        """
        correlation_id = correlation_id or create_correlation_id()

        result, message = self.validate_bulk(editor)
        if not result.can_submit:
            await self._log_validation_failed(user_id, result, correlation_id)
            raise BulkValidationError(result, message)

        try:
            budgets = editor.to_budgets(user_id, month)
        except ValueError as e:
            # pydantic's ValidationError is a ValueError
            await self._log_validation_failed(user_id, result, correlation_id, str(e))
            raise BulkValidationError(result, f"Some lines can't be saved: {e}") from e

        try:
            await self._budget_storage.insert_budgets(budgets)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_bulk_save_failed(
                    user_id=user_id,
                    count=len(budgets),
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise BulkSaveError(len(budgets), str(e)) from e

        if self._audit_logger:
            total = sum((b.amount_limit for b in budgets), Decimal("0"))
            await self._audit_logger.log_bulk_saved(
                user_id=user_id,
                count=len(budgets),
                month=first_of_month(month).isoformat(),
                total=str(total),
                correlation_id=correlation_id,
            )

        return budgets

    # -------------------------------------------------------------------------
    # Single budgets
    # -------------------------------------------------------------------------

    async def create_budget(
        self,
        user_id: str,
        category: str,
        amount_limit: Decimal,
        month: date,
        name: Optional[str] = None,
    ) -> Budget:
        """Create one budget. The name defaults to the category."""
        budget = Budget(
            user_id=user_id,
            name=name or category,
            category=category,
            amount_limit=amount_limit,
            period=BudgetPeriod.MONTHLY,
            month=month,
        )
        await self._budget_storage.save_budget(budget)

        if self._audit_logger:
            await self._audit_logger.log_budget_change(
                event_type=AuditEventType.BUDGET_SAVED,
                budget_id=budget.id,
                user_id=user_id,
                name=budget.name,
                amount=str(budget.amount_limit),
            )
        return budget

    async def update_budget(
        self,
        budget_id: UUID,
        name: Optional[str] = None,
        category: Optional[str] = None,
        amount_limit: Optional[Decimal] = None,
        month: Optional[date] = None,
    ) -> Budget:
        """
        Edit an existing budget. Fields left as None keep their value.

        Raises:
            NotFoundError: If the budget doesn't exist
        """
        existing = await self._budget_storage.get_budget(budget_id)
        if existing is None:
            raise NotFoundError(f"Budget not found: {budget_id}")

        changes = {
            key: value for key, value in {
                "name": name,
                "category": category,
                "amount_limit": amount_limit,
                "month": month,
            }.items()
            if value is not None
        }
        # Re-validate so the month is normalised and limits stay non-negative
        updated = Budget.model_validate({**existing.model_dump(), **changes})
        await self._budget_storage.update_budget(updated)

        if self._audit_logger:
            await self._audit_logger.log_budget_change(
                event_type=AuditEventType.BUDGET_UPDATED,
                budget_id=updated.id,
                user_id=updated.user_id,
                name=updated.name,
                amount=str(updated.amount_limit),
            )
        return updated

    async def duplicate_budget(
        self,
        budget_id: UUID,
        month: Optional[date] = None,
    ) -> Budget:
        """
        Copy a budget as a new record, optionally into another month.

        Raises:
            NotFoundError: If the budget doesn't exist
        """
        existing = await self._budget_storage.get_budget(budget_id)
        if existing is None:
            raise NotFoundError(f"Budget not found: {budget_id}")

        return await self.create_budget(
            user_id=existing.user_id,
            category=existing.category,
            amount_limit=existing.amount_limit,
            month=month or existing.month,
            name=existing.name,
        )

    async def delete_budget(self, budget_id: UUID) -> bool:
        existing = await self._budget_storage.get_budget(budget_id)
        deleted = await self._budget_storage.delete_budget(budget_id)

        if deleted and existing and self._audit_logger:
            await self._audit_logger.log_budget_change(
                event_type=AuditEventType.BUDGET_DELETED,
                budget_id=existing.id,
                user_id=existing.user_id,
                name=existing.name,
                amount=str(existing.amount_limit),
            )
        return deleted

    async def list_budgets(
        self,
        user_id: str,
        month: Optional[date] = None,
    ) -> list[Budget]:
        return await self._budget_storage.list_budgets(user_id, month)

    # -------------------------------------------------------------------------
    # Monthly plan & summary
    # -------------------------------------------------------------------------

    async def get_monthly_plan(self, user_id: str, month: date) -> Optional[MonthlyPlan]:
        return await self._plan_storage.get_plan(user_id, month)

    async def set_expected_income(
        self,
        user_id: str,
        month: date,
        expected_income: Decimal,
    ) -> MonthlyPlan:
        """
        Save the expected income of a month, replacing any earlier value.

        Raises:
            ValueError: If the income is negative
        """
        plan = await self._plan_storage.save_plan(MonthlyPlan(
            user_id=user_id,
            month=month,
            expected_income=expected_income,
            updated_at=datetime.utcnow(),
        ))

        if self._audit_logger:
            await self._audit_logger.log_monthly_plan_saved(
                plan_id=plan.id,
                user_id=user_id,
                month=plan.month.isoformat(),
                expected_income=str(plan.expected_income),
            )
        return plan

    async def budget_summary(self, user_id: str, month: date) -> BudgetSummary:
        """
        Budgets of a month with what was spent against each one.

        An expense counts towards a budget when it has the budget's category
        and its description contains the budget name (case-insensitive).
        One expense can count towards several budgets.

        Group totals only include budgets whose category is one of the
        user's categories, matched by exact name.
        """
        start = first_of_month(month)
        end = start.replace(day=calendar.monthrange(start.year, start.month)[1])

        budgets = await self._budget_storage.list_budgets(user_id, start)
        categories = await self._category_storage.list_categories(user_id)
        expenses = [
            t for t in await self._transaction_storage.list_transactions(user_id, start, end)
            if t.type == TransactionType.EXPENSE
        ]
        plan = await self._plan_storage.get_plan(user_id, start)

        groups_by_name = {c.name: c.group for c in categories}
        lines = []
        for budget in budgets:
            wanted = budget.name.lower()
            spent = sum(
                (
                    t.amount for t in expenses
                    if t.category == budget.category and wanted in t.description.lower()
                ),
                Decimal("0"),
            )
            lines.append(BudgetSpending(
                budget=budget,
                spent=spent,
                group=groups_by_name.get(budget.category),
            ))

        groups = []
        for group in CategoryGroup:
            in_group = [line for line in lines if line.group == group]
            groups.append(GroupTotal(
                group=group,
                limit_total=sum((line.budget.amount_limit for line in in_group), Decimal("0")),
                spent_total=sum((line.spent for line in in_group), Decimal("0")),
                target=plan.target_for(group) if plan else None,
            ))

        return BudgetSummary(
            user_id=user_id,
            month=start,
            lines=lines,
            groups=groups,
            expected_income=plan.expected_income if plan else None,
        )

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def list_categories(self, user_id: str) -> list[Category]:
        return await self._category_storage.list_categories(user_id)

    async def add_category(
        self,
        user_id: str,
        name: str,
        group: CategoryGroup = CategoryGroup.NEEDS,
    ) -> Category:
        """
        Raises:
            DuplicateError: The user already has a category with this name
        """
        category = await self._category_storage.add_category(
            Category(user_id=user_id, name=name, group=group)
        )

        if self._audit_logger:
            await self._audit_logger.log_category_change(
                event_type=AuditEventType.CATEGORY_CREATED,
                category_id=category.id,
                user_id=user_id,
                name=category.name,
                group=category.group.value,
            )
        return category

    async def rename_category(
        self,
        category: Category,
        new_name: str,
        group: Optional[CategoryGroup] = None,
    ) -> Category:
        """
        Rename a category (and optionally move it to another group).

        Existing budgets keep the old name; categories are referenced by name
        only at the time a budget is created.

        Raises:
            NotFoundError: If the category doesn't exist
            DuplicateError: The new name is already taken
        """
        updated = Category.model_validate({
            **category.model_dump(),
            "name": new_name,
            "group": group or category.group,
        })
        updated = await self._category_storage.update_category(updated)

        if self._audit_logger:
            await self._audit_logger.log_category_change(
                event_type=AuditEventType.CATEGORY_UPDATED,
                category_id=updated.id,
                user_id=updated.user_id,
                name=updated.name,
                group=updated.group.value,
            )
        return updated

    async def delete_category(self, category: Category) -> bool:
        deleted = await self._category_storage.delete_category(category.id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_category_change(
                event_type=AuditEventType.CATEGORY_DELETED,
                category_id=category.id,
                user_id=category.user_id,
                name=category.name,
            )
        return deleted


class ReceiptScanFlow:
    """
    Orchestrates the receipt scanning flow.

    Flow:
    1. Upload → Check the image and store it on Cloudinary
    2. Scan → Gemini reads store, date, items and total
    3. Review → Present to user (PAUSE - require confirmation)
    4. Save → Reviewed items become expense transactions

    The system NEVER saves scanned items without review.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        image_service: Optional[CloudinaryImageService] = None,
        scanner: Optional[GeminiReceiptScanner] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transaction_storage = transaction_storage
        self._image_service = image_service
        self._scanner = scanner
        self._audit_logger = audit_logger

    @property
    def image_service(self) -> CloudinaryImageService:
        # Lazy so the budget pages work without Cloudinary credentials
        if self._image_service is None:
            self._image_service = CloudinaryImageService()
        return self._image_service

    @property
    def scanner(self) -> GeminiReceiptScanner:
        if self._scanner is None:
            self._scanner = GeminiReceiptScanner()
        return self._scanner

    async def upload_receipt(
        self,
        image_bytes: bytes,
        filename: str,
        mime_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Store a receipt image and return its URL.

        Raises:
            InvalidImageError: Not an acceptable image
            ImageUploadError: Cloudinary rejected or failed the upload
        """
        correlation_id = correlation_id or create_correlation_id()
        upload = ReceiptUpload(
            original_filename=filename,
            file_size_bytes=len(image_bytes),
            mime_type=mime_type,
        )

        try:
            url = await self.image_service.upload_receipt(image_bytes, upload)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="cloudinary",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_receipt_uploaded(
                upload_id=upload.upload_id,
                filename=filename,
                file_size=upload.file_size_bytes,
                correlation_id=correlation_id,
            )
        return url

    async def scan(
        self,
        image_bytes: bytes,
        mime_type: str,
        receipt_url: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ScannedReceipt:
        """
        Read a receipt image.

        Raises:
            ReceiptScanError: The model call failed or its reply was unusable
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            receipt = await self.scanner.scan(
                image_bytes,
                mime_type,
                receipt_url=receipt_url,
            )
        except ReceiptScanError as e:
            if self._audit_logger:
                await self._audit_logger.log_receipt_scan_failed(
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"stage": "receipt_scan", "mime_type": mime_type},
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_receipt_scanned(
                scan_id=receipt.scan_id,
                store=receipt.store,
                item_count=len(receipt.items),
                correlation_id=correlation_id,
            )
        return receipt

    def build_transactions(
        self,
        user_id: str,
        receipt: ScannedReceipt,
        items: Optional[Iterable[ScannedReceiptItem]] = None,
    ) -> list[Transaction]:
        """
        Turn reviewed receipt items into expense transactions.

        Args:
            items: The reviewed items; defaults to everything scanned
        """
        transaction_date = receipt.purchase_date or date.today()
        transactions = []
        for item in receipt.items if items is None else items:
            description = f"{receipt.store} - {item.name}" if receipt.store else item.name
            transactions.append(Transaction(
                user_id=user_id,
                amount=item.amount,
                description=description[:300],
                category=item.category,
                transaction_date=transaction_date,
                type=TransactionType.EXPENSE,
                receipt_url=receipt.receipt_url,
            ))
        return transactions

    async def save_transactions(
        self,
        user_id: str,
        receipt: ScannedReceipt,
        items: Optional[Iterable[ScannedReceiptItem]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Save reviewed items as transactions in one bulk insert.

        CRITICAL: Call ONLY after the user has reviewed the items.
        """
        correlation_id = correlation_id or create_correlation_id()
        transactions = self.build_transactions(user_id, receipt, items)
        if not transactions:
            return []

        await self._transaction_storage.insert_transactions(transactions)

        if self._audit_logger:
            await self._audit_logger.log_transactions_saved(
                user_id=user_id,
                count=len(transactions),
                store=receipt.store,
                correlation_id=correlation_id,
            )
        return transactions


def create_app_components(
    use_storage: bool = True,
) -> tuple[BudgetFlow, ReceiptScanFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    Returns:
        (budget_flow, receipt_flow, sheets_client)
    """
    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            category_storage = GoogleSheetsCategoryStorage(sheets_client)
            budget_storage = GoogleSheetsBudgetStorage(sheets_client)
            transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
            plan_storage = GoogleSheetsMonthlyPlanStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        category_storage = InMemoryCategoryStorage()
        budget_storage = InMemoryBudgetStorage()
        transaction_storage = InMemoryTransactionStorage()
        plan_storage = InMemoryMonthlyPlanStorage()
        audit_logger = AuditLogger()  # Local-only logging

    budget_flow = BudgetFlow(
        budget_storage=budget_storage,
        category_storage=category_storage,
        audit_logger=audit_logger,
        transaction_storage=transaction_storage,
        plan_storage=plan_storage,
    )

    receipt_flow = ReceiptScanFlow(
        transaction_storage=transaction_storage,
        audit_logger=audit_logger,
    )

    return budget_flow, receipt_flow, sheets_client
