"""Storage tests: in-memory backend and the Sheets backend on a fake worksheet."""

import asyncio
import pytest
from datetime import date
from decimal import Decimal

from budgetbook.models.budget import Budget, Category, MonthlyPlan, Transaction
from budgetbook.services.storage import (
    DuplicateError,
    GoogleSheetsBudgetStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsMonthlyPlanStorage,
    GoogleSheetsTransactionStorage,
    InMemoryBudgetStorage,
    InMemoryMonthlyPlanStorage,
    NotFoundError,
    StorageError,
)
from budgetbook.services.storage.google_sheets import (
    BUDGET_COLUMNS,
    CATEGORY_COLUMNS,
    MONTHLY_PLAN_COLUMNS,
    TRANSACTION_COLUMNS,
)


def budget(name="Rice", amount="1000", month=date(2024, 3, 1), user_id="u1", category="Food"):
    return Budget(
        user_id=user_id,
        name=name,
        category=category,
        amount_limit=Decimal(amount),
        month=month,
    )


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, columns, fail_appends=False):
        self.rows = [list(columns)]
        self.fail_appends = fail_appends
        self.append_calls = 0

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def append_rows(self, rows, value_input_option=None):
        self.append_calls += 1
        if self.fail_appends:
            raise RuntimeError("APIError: quota exceeded")
        self.rows.extend(list(row) for row in rows)

    def update(self, range_name, values, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:

    def __init__(self, fail_appends=False):
        self.categories = FakeWorksheet(CATEGORY_COLUMNS)
        self.budgets = FakeWorksheet(BUDGET_COLUMNS, fail_appends=fail_appends)
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.plans = FakeWorksheet(MONTHLY_PLAN_COLUMNS)

    def get_categories_sheet(self):
        return self.categories

    def get_budgets_sheet(self):
        return self.budgets

    def get_monthly_plans_sheet(self):
        return self.plans

    def get_transactions_sheet(self):
        return self.transactions


class TestInMemoryBudgetStorage:

    def test_bulk_insert_is_all_or_nothing(self):
        storage = InMemoryBudgetStorage()
        existing = budget("Beans")
        asyncio.run(storage.save_budget(existing))

        with pytest.raises(DuplicateError):
            asyncio.run(storage.insert_budgets([budget("Rice"), existing]))

        assert [b.name for b in asyncio.run(storage.list_budgets("u1"))] == ["Beans"]

    def test_list_filters_by_month_and_user(self):
        storage = InMemoryBudgetStorage()
        asyncio.run(storage.insert_budgets([
            budget("Rice"),
            budget("Yam", month=date(2024, 4, 1)),
            budget("Oil", user_id="u2"),
        ]))
        listed = asyncio.run(storage.list_budgets("u1", date(2024, 3, 31)))
        assert [b.name for b in listed] == ["Rice"]

    def test_list_orders_by_category_then_name(self):
        storage = InMemoryBudgetStorage()
        asyncio.run(storage.insert_budgets([
            budget("Uber", category="Transport"),
            budget("Yam", category="Food"),
            budget("Beans", category="food"),
            budget("Airtime", category="Utilities"),
        ]))
        listed = asyncio.run(storage.list_budgets("u1"))
        assert [(b.category, b.name) for b in listed] == [
            ("food", "Beans"),
            ("Food", "Yam"),
            ("Transport", "Uber"),
            ("Utilities", "Airtime"),
        ]


class TestGoogleSheetsBudgetStorage:

    def test_bulk_insert_round_trips(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsBudgetStorage(client)
        saved = [budget("Rice", "20000.50"), budget("Beans")]

        assert asyncio.run(storage.insert_budgets(saved)) == 2
        assert client.budgets.append_calls == 1

        listed = asyncio.run(storage.list_budgets("u1", date(2024, 3, 1)))
        assert [(b.name, b.amount_limit) for b in listed] == [
            ("Beans", Decimal("1000")),
            ("Rice", Decimal("20000.50")),
        ]

    def test_bulk_insert_failure_is_not_retried(self):
        client = FakeSheetsClient(fail_appends=True)
        storage = GoogleSheetsBudgetStorage(client)

        with pytest.raises(StorageError):
            asyncio.run(storage.insert_budgets([budget()]))
        assert client.budgets.append_calls == 1

    def test_update_and_delete(self):
        storage = GoogleSheetsBudgetStorage(FakeSheetsClient())
        original = budget()
        asyncio.run(storage.save_budget(original))

        changed = original.model_copy(update={"amount_limit": Decimal("5")})
        asyncio.run(storage.update_budget(changed))
        assert asyncio.run(storage.get_budget(original.id)).amount_limit == Decimal("5")

        assert asyncio.run(storage.delete_budget(original.id)) is True
        assert asyncio.run(storage.get_budget(original.id)) is None
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_budget(changed))

    def test_malformed_rows_are_skipped(self):
        client = FakeSheetsClient()
        client.budgets.rows.append(["not-a-uuid", "u1", "Bad", "", "x", "monthly", "2024-03-01", ""])
        storage = GoogleSheetsBudgetStorage(client)
        asyncio.run(storage.save_budget(budget()))

        assert [b.name for b in asyncio.run(storage.list_budgets("u1"))] == ["Rice"]

    def test_list_orders_by_category_then_name(self):
        storage = GoogleSheetsBudgetStorage(FakeSheetsClient())
        asyncio.run(storage.insert_budgets([
            budget("Uber", category="Transport"),
            budget("Rice"),
            budget("Data", category="Utilities"),
            budget("Beans"),
        ]))
        listed = asyncio.run(storage.list_budgets("u1"))
        assert [b.name for b in listed] == ["Beans", "Rice", "Uber", "Data"]


class TestGoogleSheetsCategoryStorage:

    def test_duplicate_names_rejected(self):
        storage = GoogleSheetsCategoryStorage(FakeSheetsClient())
        asyncio.run(storage.add_category(Category(user_id="u1", name="Food")))

        with pytest.raises(DuplicateError):
            asyncio.run(storage.add_category(Category(user_id="u1", name="food")))

    def test_rename(self):
        storage = GoogleSheetsCategoryStorage(FakeSheetsClient())
        category = asyncio.run(storage.add_category(Category(user_id="u1", name="Fun")))

        asyncio.run(storage.update_category(category.model_copy(update={"name": "Leisure"})))

        assert [c.name for c in asyncio.run(storage.list_categories("u1"))] == ["Leisure"]


class TestGoogleSheetsTransactionStorage:

    def test_insert_and_filter_by_date(self):
        storage = GoogleSheetsTransactionStorage(FakeSheetsClient())
        asyncio.run(storage.insert_transactions([
            Transaction(user_id="u1", amount=Decimal("100"), transaction_date=date(2024, 3, 1)),
            Transaction(
                user_id="u1",
                amount=Decimal("200"),
                transaction_date=date(2024, 3, 20),
                receipt_url="https://img/1.jpg",
            ),
        ]))

        listed = asyncio.run(storage.list_transactions("u1", date_from=date(2024, 3, 10)))
        assert len(listed) == 1
        assert listed[0].receipt_url == "https://img/1.jpg"


class TestMonthlyPlanStorage:

    @pytest.fixture(params=["memory", "sheets"])
    def storage(self, request):
        if request.param == "memory":
            return InMemoryMonthlyPlanStorage()
        return GoogleSheetsMonthlyPlanStorage(FakeSheetsClient())

    def test_missing_plan(self, storage):
        assert asyncio.run(storage.get_plan("u1", date(2024, 3, 1))) is None

    def test_save_is_an_upsert_per_month(self, storage):
        first = asyncio.run(storage.save_plan(
            MonthlyPlan(user_id="u1", month=date(2024, 3, 9), expected_income=Decimal("1000"))
        ))
        asyncio.run(storage.save_plan(
            MonthlyPlan(user_id="u1", month=date(2024, 3, 1), expected_income=Decimal("1500.50"))
        ))
        asyncio.run(storage.save_plan(
            MonthlyPlan(user_id="u1", month=date(2024, 4, 1), expected_income=Decimal("9"))
        ))

        plan = asyncio.run(storage.get_plan("u1", date(2024, 3, 31)))
        assert plan.id == first.id
        assert plan.expected_income == Decimal("1500.50")
        assert asyncio.run(storage.get_plan("u2", date(2024, 3, 1))) is None

    def test_sheets_upsert_rewrites_the_same_row(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsMonthlyPlanStorage(client)
        for income in ("100", "200"):
            asyncio.run(storage.save_plan(
                MonthlyPlan(user_id="u1", month=date(2024, 3, 1), expected_income=Decimal(income))
            ))

        assert len(client.plans.rows) == 2  # header + one plan
        assert client.plans.rows[1][3] == "200"
