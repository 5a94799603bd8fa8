"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Every query is scoped to a user_id. The interface is intentionally small -
just the operations the budget and receipt flows need.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from budgetbook.models.budget import Budget, Category, MonthlyPlan, Transaction
from budgetbook.models.audit import AuditEvent


class CategoryStorageInterface(ABC):
    """Abstract interface for category storage."""

    @abstractmethod
    async def list_categories(self, user_id: str) -> list[Category]:
        """
        List a user's categories ordered by name.

        Args:
            user_id: Owner of the categories

        Returns:
            Categories sorted case-insensitively by name
        """
        pass

    @abstractmethod
    async def add_category(self, category: Category) -> Category:
        """
        Save a new category.

        Raises:
            DuplicateError: The user already has a category with this name
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_category(self, category: Category) -> Category:
        """
        Update an existing category's name or group.

        Raises:
            NotFoundError: If the category doesn't exist
            DuplicateError: The new name clashes with another category
        """
        pass

    @abstractmethod
    async def delete_category(self, category_id: UUID) -> bool:
        """Delete a category. Returns False if it didn't exist."""
        pass


class BudgetStorageInterface(ABC):
    """Abstract interface for budget storage."""

    @abstractmethod
    async def save_budget(self, budget: Budget) -> bool:
        """
        Save a single budget.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def insert_budgets(self, budgets: list[Budget]) -> int:
        """
        Insert many budgets in one request.

        The batch is sent as a single write. Implementations must not
        retry it, since a retried batch may be committed twice.

        Returns:
            Number of budgets inserted

        Raises:
            StorageError: If the write fails. Callers treat the whole
                batch as not committed.
        """
        pass

    @abstractmethod
    async def get_budget(self, budget_id: UUID) -> Optional[Budget]:
        """Retrieve a budget by ID, or None."""
        pass

    @abstractmethod
    async def update_budget(self, budget: Budget) -> bool:
        """
        Update an existing budget.

        Raises:
            NotFoundError: If budget doesn't exist
        """
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: UUID) -> bool:
        """Delete a budget by ID. Returns False if it didn't exist."""
        pass

    @abstractmethod
    async def list_budgets(
        self,
        user_id: str,
        month: Optional[date] = None,
    ) -> list[Budget]:
        """
        List a user's budgets, optionally for one month.

        Args:
            user_id: Owner of the budgets
            month: Any date within the month to filter on

        Returns:
            Budgets ordered by category, then name
        """
        pass


class TransactionStorageInterface(ABC):
    """Abstract interface for transaction storage."""

    @abstractmethod
    async def insert_transactions(self, transactions: list[Transaction]) -> int:
        """
        Insert many transactions in one request. Same contract as
        BudgetStorageInterface.insert_budgets.
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """List a user's transactions, newest first."""
        pass


class MonthlyPlanStorageInterface(ABC):
    """Abstract interface for monthly income plans."""

    @abstractmethod
    async def get_plan(self, user_id: str, month: date) -> Optional[MonthlyPlan]:
        """Get the plan of the month containing `month`, or None."""
        pass

    @abstractmethod
    async def save_plan(self, plan: MonthlyPlan) -> MonthlyPlan:
        """
        Insert or replace the plan for (plan.user_id, plan.month).

        Raises:
            StorageError: If save fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Returns True if logged successfully."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one interaction, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
