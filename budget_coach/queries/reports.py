"""
Report Aggregations

DESIGN DECISION: Every number the coach sees is computed here,
deterministically, from stored transactions and budgets. The LLM never
does arithmetic on the user's data.
"""

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from budget_coach.models.finance import (
    CENT,
    CategorySpending,
    MonthlyTrend,
    MonthSummary,
    Transaction,
    TransactionType,
)
from budget_coach.services.storage import (
    BudgetStorageInterface,
    TransactionStorageInterface,
)


ZERO = Decimal("0")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month (both inclusive)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months; negative goes back."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def summarize_month(
    transactions: list[Transaction],
    month: int,
    year: int,
) -> MonthSummary:
    """
    Income, expenses, balance and savings rate for a set of transactions.

    Debt payments count as expenses here (they are money out), unlike the
    trend and budget reports which only count the expense type.
    """
    income = ZERO
    expenses = ZERO
    for tx in transactions:
        if tx.type.is_outflow:
            expenses += tx.amount
        elif tx.type.is_inflow:
            income += tx.amount

    balance = income - expenses
    savings_rate = ZERO
    if income > 0:
        savings_rate = (balance / income * 100).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )

    return MonthSummary(
        month=month,
        year=year,
        income=income,
        expenses=expenses,
        balance=balance,
        savings_rate=savings_rate,
    )


class ReportBuilder:
    """Aggregates a user's ledger into trends and budget usage."""

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        budget_storage: BudgetStorageInterface,
    ):
        self._transactions = transaction_storage
        self._budgets = budget_storage

    async def monthly_trends(
        self,
        user_id: str,
        months: int = 6,
        today: Optional[date] = None,
    ) -> list[MonthlyTrend]:
        """
        Income and spending for each of the last `months` calendar months,
        the current one included, oldest first.

        Months without transactions are reported as zeros.
        """
        today = today or date.today()
        if months < 1:
            return []

        keys = [shift_month(today.year, today.month, -i) for i in range(months)]
        start_year, start_month = keys[-1]

        transactions = await self._transactions.list_transactions(
            user_id,
            date_from=date(start_year, start_month, 1),
            date_to=today,
        )

        spending = {key: ZERO for key in keys}
        income = {key: ZERO for key in keys}
        for tx in transactions:
            key = (tx.transaction_date.year, tx.transaction_date.month)
            if key not in spending:
                continue
            if tx.type == TransactionType.EXPENSE:
                spending[key] += tx.amount
            elif tx.type.is_inflow:
                income[key] += tx.amount

        return [
            MonthlyTrend(
                month=calendar.month_abbr[month],
                spending=spending[(year, month)].quantize(CENT, rounding=ROUND_HALF_UP),
                income=income[(year, month)].quantize(CENT, rounding=ROUND_HALF_UP),
            )
            for year, month in sorted(keys)
        ]

    async def category_spending(
        self,
        user_id: str,
        month: int,
        year: int,
    ) -> list[CategorySpending]:
        """
        Spending against each budget set for the month.

        Only categories with a budget appear; unbudgeted spending is left out.
        """
        budgets = await self._budgets.list_budgets(user_id, month, year)
        first, last = month_bounds(year, month)
        expenses = await self._transactions.list_transactions(
            user_id,
            date_from=first,
            date_to=last,
            transaction_type=TransactionType.EXPENSE,
        )

        spent_by_category: dict = {}
        for tx in expenses:
            spent_by_category[tx.category_id] = (
                spent_by_category.get(tx.category_id, ZERO) + tx.amount
            )

        rows = []
        for budget in budgets:
            category = budget.category
            rows.append(CategorySpending(
                category_id=budget.category_id,
                category_name=category.name if category else "Unknown",
                amount=spent_by_category.get(budget.category_id, ZERO),
                budget=budget.amount,
                color=category.color if category else None,
                icon_name=category.icon_name if category else None,
            ))
        return rows
