"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the storage backend because:
1. Users can view and fix their budgets directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal budget)
- No transactions; bulk inserts rely on a single append request
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interfaces, so the flows don't
change when the backend does.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budgetbook.config import get_settings
from budgetbook.models.audit import AuditEvent, AuditEventType, AuditSeverity
from budgetbook.models.budget import (
    Budget,
    BudgetPeriod,
    Category,
    CategoryGroup,
    MonthlyPlan,
    Transaction,
    TransactionType,
    first_of_month,
)
from budgetbook.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    DuplicateError,
    MonthlyPlanStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)


CATEGORY_COLUMNS = ["id", "user_id", "name", "group", "created_at"]

BUDGET_COLUMNS = [
    "id",
    "user_id",
    "name",
    "category",
    "amount_limit",
    "period",
    "month",
    "created_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "amount",
    "description",
    "category",
    "transaction_date",
    "type",
    "receipt_url",
    "created_at",
]

MONTHLY_PLAN_COLUMNS = [
    "id",
    "user_id",
    "month",
    "expected_income",
    "created_at",
    "updated_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _cell_getter(row: list) -> Callable[..., str]:
    """Column accessor that tolerates short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Establish connection using service account credentials."""
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with a header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_categories_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.categories_sheet_name, CATEGORY_COLUMNS)

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.budgets_sheet_name, BUDGET_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.transactions_sheet_name, TRANSACTION_COLUMNS)

    def get_monthly_plans_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.monthly_plans_sheet_name, MONTHLY_PLAN_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsCategoryStorage(CategoryStorageInterface):
    """Categories stored one per row."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _category_to_row(self, category: Category) -> list:
        return [
            str(category.id),
            category.user_id,
            category.name,
            category.group.value,
            category.created_at.isoformat(),
        ]

    def _row_to_category(self, row: list) -> Category:
        safe_get = _cell_getter(row)
        return Category(
            id=UUID(safe_get(0)),
            user_id=safe_get(1),
            name=safe_get(2),
            group=CategoryGroup(safe_get(3, "needs")),
            created_at=datetime.fromisoformat(safe_get(4)),
        )

    def _load(self) -> tuple[gspread.Worksheet, list[list]]:
        sheet = self._client.get_categories_sheet()
        return sheet, sheet.get_all_values()

    def _check_unique(self, rows: list[list], category: Category) -> None:
        wanted = category.name.lower()
        for row in rows[1:]:
            if (
                len(row) > 2
                and row[1] == category.user_id
                and row[2].lower() == wanted
                and row[0] != str(category.id)
            ):
                raise DuplicateError(f"Category already exists: {category.name}")

    async def list_categories(self, user_id: str) -> list[Category]:
        try:
            _, rows = self._load()
            categories = []
            for row in rows[1:]:
                if not row or not row[0] or len(row) < 2 or row[1] != user_id:
                    continue
                try:
                    categories.append(self._row_to_category(row))
                except Exception:
                    continue  # Skip malformed rows
            return sorted(categories, key=lambda c: c.name.lower())
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def add_category(self, category: Category) -> Category:
        try:
            sheet, rows = self._load()
            self._check_unique(rows, category)
            sheet.append_row(self._category_to_row(category), value_input_option="RAW")
            return category
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")

    async def update_category(self, category: Category) -> Category:
        try:
            sheet, rows = self._load()
            self._check_unique(rows, category)
            for idx, row in enumerate(rows[1:], start=2):  # Row 1 is header
                if row and row[0] == str(category.id):
                    sheet.update(
                        range_name=f"A{idx}",
                        values=[self._category_to_row(category)],
                        value_input_option="RAW",
                    )
                    return category
            raise NotFoundError(f"Category not found: {category.id}")
        except (NotFoundError, DuplicateError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to update category: {e}")

    async def delete_category(self, category_id: UUID) -> bool:
        try:
            sheet, rows = self._load()
            for idx, row in enumerate(rows[1:], start=2):
                if row and row[0] == str(category_id):
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete category: {e}")


class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """Budgets stored one per row."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _budget_to_row(self, budget: Budget) -> list:
        return [
            str(budget.id),
            budget.user_id,
            budget.name,
            budget.category,
            str(budget.amount_limit),
            budget.period.value,
            budget.month.isoformat(),
            budget.created_at.isoformat(),
        ]

    def _row_to_budget(self, row: list) -> Budget:
        safe_get = _cell_getter(row)
        return Budget(
            id=UUID(safe_get(0)),
            user_id=safe_get(1),
            name=safe_get(2),
            category=safe_get(3),
            amount_limit=Decimal(safe_get(4, "0")),
            period=BudgetPeriod(safe_get(5, "monthly")),
            month=date.fromisoformat(safe_get(6)),
            created_at=datetime.fromisoformat(safe_get(7)),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_budget(self, budget: Budget) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            sheet.append_row(self._budget_to_row(budget), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")

    async def insert_budgets(self, budgets: list[Budget]) -> int:
        # One append request for the whole batch; deliberately not retried.
        if not budgets:
            return 0
        try:
            sheet = self._client.get_budgets_sheet()
            rows = [self._budget_to_row(budget) for budget in budgets]
            sheet.append_rows(rows, value_input_option="RAW")
            return len(rows)
        except Exception as e:
            raise StorageError(f"Failed to save {len(budgets)} budgets: {e}")

    async def get_budget(self, budget_id: UUID) -> Optional[Budget]:
        try:
            sheet = self._client.get_budgets_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(budget_id):
                    return self._row_to_budget(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get budget: {e}")

    async def update_budget(self, budget: Budget) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(budget.id):
                    sheet.update(
                        range_name=f"A{idx}",
                        values=[self._budget_to_row(budget)],
                        value_input_option="RAW",
                    )
                    return True
            raise NotFoundError(f"Budget not found: {budget.id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update budget: {e}")

    async def delete_budget(self, budget_id: UUID) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(budget_id):
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete budget: {e}")

    async def list_budgets(
        self,
        user_id: str,
        month: Optional[date] = None,
    ) -> list[Budget]:
        wanted = first_of_month(month).isoformat() if month else None
        try:
            sheet = self._client.get_budgets_sheet()
            budgets = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0] or len(row) < 7 or row[1] != user_id:
                    continue
                if wanted and row[6] != wanted:
                    continue
                try:
                    budgets.append(self._row_to_budget(row))
                except Exception:
                    continue  # Skip malformed rows
            return sorted(budgets, key=lambda b: (b.category.lower(), b.name.lower()))
        except Exception as e:
            raise StorageError(f"Failed to list budgets: {e}")


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """Transactions stored one per row."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction) -> list:
        return [
            str(transaction.id),
            transaction.user_id,
            str(transaction.amount),
            transaction.description,
            transaction.category,
            transaction.transaction_date.isoformat(),
            transaction.type.value,
            transaction.receipt_url or "",
            transaction.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        safe_get = _cell_getter(row)
        return Transaction(
            id=UUID(safe_get(0)),
            user_id=safe_get(1),
            amount=Decimal(safe_get(2, "0")),
            description=safe_get(3),
            category=safe_get(4),
            transaction_date=date.fromisoformat(safe_get(5)),
            type=TransactionType(safe_get(6, "expense")),
            receipt_url=safe_get(7) or None,
            created_at=datetime.fromisoformat(safe_get(8)),
        )

    async def insert_transactions(self, transactions: list[Transaction]) -> int:
        if not transactions:
            return 0
        try:
            sheet = self._client.get_transactions_sheet()
            rows = [self._transaction_to_row(t) for t in transactions]
            sheet.append_rows(rows, value_input_option="RAW")
            return len(rows)
        except Exception as e:
            raise StorageError(f"Failed to save {len(transactions)} transactions: {e}")

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            transactions = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0] or len(row) < 2 or row[1] != user_id:
                    continue
                try:
                    transaction = self._row_to_transaction(row)
                except Exception:
                    continue
                if date_from and transaction.transaction_date < date_from:
                    continue
                if date_to and transaction.transaction_date > date_to:
                    continue
                transactions.append(transaction)
            transactions.sort(key=lambda t: t.transaction_date, reverse=True)
            return transactions
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")


class GoogleSheetsMonthlyPlanStorage(MonthlyPlanStorageInterface):
    """Monthly plans, one row per (user, month)."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _plan_to_row(self, plan: MonthlyPlan) -> list:
        return [
            str(plan.id),
            plan.user_id,
            plan.month.isoformat(),
            str(plan.expected_income),
            plan.created_at.isoformat(),
            plan.updated_at.isoformat(),
        ]

    def _row_to_plan(self, row: list) -> MonthlyPlan:
        safe_get = _cell_getter(row)
        return MonthlyPlan(
            id=UUID(safe_get(0)),
            user_id=safe_get(1),
            month=date.fromisoformat(safe_get(2)),
            expected_income=Decimal(safe_get(3, "0")),
            created_at=datetime.fromisoformat(safe_get(4)),
            updated_at=datetime.fromisoformat(safe_get(5, safe_get(4))),
        )

    def _find_row(self, rows: list[list], user_id: str, month: date) -> Optional[int]:
        wanted = first_of_month(month).isoformat()
        for idx, row in enumerate(rows[1:], start=2):  # Row 1 is header
            if len(row) > 2 and row[1] == user_id and row[2] == wanted:
                return idx
        return None

    async def get_plan(self, user_id: str, month: date) -> Optional[MonthlyPlan]:
        try:
            rows = self._client.get_monthly_plans_sheet().get_all_values()
            idx = self._find_row(rows, user_id, month)
            return self._row_to_plan(rows[idx - 1]) if idx else None
        except Exception as e:
            raise StorageError(f"Failed to get monthly plan: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_plan(self, plan: MonthlyPlan) -> MonthlyPlan:
        try:
            sheet = self._client.get_monthly_plans_sheet()
            rows = sheet.get_all_values()
            idx = self._find_row(rows, plan.user_id, plan.month)
            if idx is None:
                sheet.append_row(self._plan_to_row(plan), value_input_option="RAW")
                return plan

            existing = self._row_to_plan(rows[idx - 1])
            plan = plan.model_copy(update={"id": existing.id, "created_at": existing.created_at})
            sheet.update(
                range_name=f"A{idx}",
                values=[self._plan_to_row(plan)],
                value_input_option="RAW",
            )
            return plan
        except Exception as e:
            raise StorageError(f"Failed to save monthly plan: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        safe_get = _cell_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            user_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            events = self._all_events()
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
