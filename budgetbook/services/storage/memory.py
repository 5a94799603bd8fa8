"""
In-Memory Storage Implementation

Used for tests and as the fallback when Google Sheets isn't configured.
Data lives for the lifetime of the process only.

Bulk inserts validate the whole batch before touching the store, so a
failed batch leaves nothing behind.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from budgetbook.models.audit import AuditEvent
from budgetbook.models.budget import (
    Budget,
    Category,
    MonthlyPlan,
    Transaction,
    first_of_month,
)
from budgetbook.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    MonthlyPlanStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
)


class InMemoryCategoryStorage(CategoryStorageInterface):

    def __init__(self):
        self._categories: dict[UUID, Category] = {}

    def _name_taken(self, category: Category) -> bool:
        wanted = category.name.lower()
        return any(
            existing.user_id == category.user_id
            and existing.name.lower() == wanted
            and existing.id != category.id
            for existing in self._categories.values()
        )

    async def list_categories(self, user_id: str) -> list[Category]:
        categories = [c for c in self._categories.values() if c.user_id == user_id]
        return sorted(categories, key=lambda c: c.name.lower())

    async def add_category(self, category: Category) -> Category:
        if self._name_taken(category):
            raise DuplicateError(f"Category already exists: {category.name}")
        self._categories[category.id] = category
        return category

    async def update_category(self, category: Category) -> Category:
        if category.id not in self._categories:
            raise NotFoundError(f"Category not found: {category.id}")
        if self._name_taken(category):
            raise DuplicateError(f"Category already exists: {category.name}")
        self._categories[category.id] = category
        return category

    async def delete_category(self, category_id: UUID) -> bool:
        return self._categories.pop(category_id, None) is not None


class InMemoryBudgetStorage(BudgetStorageInterface):

    def __init__(self):
        self._budgets: dict[UUID, Budget] = {}

    async def save_budget(self, budget: Budget) -> bool:
        if budget.id in self._budgets:
            raise DuplicateError(f"Budget already exists: {budget.id}")
        self._budgets[budget.id] = budget
        return True

    async def insert_budgets(self, budgets: list[Budget]) -> int:
        ids = [budget.id for budget in budgets]
        if len(set(ids)) != len(ids) or any(i in self._budgets for i in ids):
            raise DuplicateError("Batch contains budgets that already exist")
        for budget in budgets:
            self._budgets[budget.id] = budget
        return len(budgets)

    async def get_budget(self, budget_id: UUID) -> Optional[Budget]:
        return self._budgets.get(budget_id)

    async def update_budget(self, budget: Budget) -> bool:
        if budget.id not in self._budgets:
            raise NotFoundError(f"Budget not found: {budget.id}")
        self._budgets[budget.id] = budget
        return True

    async def delete_budget(self, budget_id: UUID) -> bool:
        return self._budgets.pop(budget_id, None) is not None

    async def list_budgets(
        self,
        user_id: str,
        month: Optional[date] = None,
    ) -> list[Budget]:
        wanted = first_of_month(month) if month else None
        budgets = [
            b for b in self._budgets.values()
            if b.user_id == user_id and (wanted is None or b.month == wanted)
        ]
        return sorted(budgets, key=lambda b: (b.category.lower(), b.name.lower()))


class InMemoryTransactionStorage(TransactionStorageInterface):

    def __init__(self):
        self._transactions: dict[UUID, Transaction] = {}

    async def insert_transactions(self, transactions: list[Transaction]) -> int:
        ids = [t.id for t in transactions]
        if len(set(ids)) != len(ids) or any(i in self._transactions for i in ids):
            raise DuplicateError("Batch contains transactions that already exist")
        for transaction in transactions:
            self._transactions[transaction.id] = transaction
        return len(transactions)

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        transactions = []
        for t in self._transactions.values():
            if t.user_id != user_id:
                continue
            if date_from and t.transaction_date < date_from:
                continue
            if date_to and t.transaction_date > date_to:
                continue
            transactions.append(t)
        transactions.sort(key=lambda t: t.transaction_date, reverse=True)
        return transactions


class InMemoryMonthlyPlanStorage(MonthlyPlanStorageInterface):

    def __init__(self):
        self._plans: dict[tuple[str, date], MonthlyPlan] = {}

    async def get_plan(self, user_id: str, month: date) -> Optional[MonthlyPlan]:
        return self._plans.get((user_id, first_of_month(month)))

    async def save_plan(self, plan: MonthlyPlan) -> MonthlyPlan:
        key = (plan.user_id, plan.month)
        existing = self._plans.get(key)
        if existing:
            # Upsert keeps the original id and creation time
            plan = plan.model_copy(update={"id": existing.id, "created_at": existing.created_at})
        self._plans[key] = plan
        return plan


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
