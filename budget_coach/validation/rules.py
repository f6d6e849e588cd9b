"""
Ledger Rules

Small deterministic rules applied before anything is written:
salary categories force income, only salary income may recur, and debt
balances stay within 0 <= remaining <= total.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from budget_coach.models.finance import (
    Category,
    DebtCreate,
    RecurringSchedule,
    TransactionType,
)


def is_salary_category(category: Optional[Category]) -> bool:
    return bool(category and category.force_income)


def resolve_transaction_type(
    requested_type: TransactionType,
    category_force_income: bool,
) -> TransactionType:
    """Salary-like categories always record income."""
    return TransactionType.INCOME if category_force_income else requested_type


def resolve_recurring_schedule(
    requested: Optional[RecurringSchedule],
    category: Optional[Category],
) -> Optional[RecurringSchedule]:
    """Only salary income can recur; anything else is stored without a schedule."""
    return requested if is_salary_category(category) else None


def next_bi_monthly_pay_date(after: date) -> date:
    """
    Next salary date for a 15th/30th pay cycle.

    In months shorter than 30 days the second pay day is the last day.
    """
    if after.day < 15:
        return after.replace(day=15)

    last_day = calendar.monthrange(after.year, after.month)[1]
    end_of_month = min(30, last_day)
    if after.day < end_of_month:
        return after.replace(day=end_of_month)

    first_of_next = after.replace(day=1) + timedelta(days=last_day)
    return first_of_next.replace(day=15)


def clamp_new_debt(data: DebtCreate) -> tuple[Decimal, Decimal]:
    """
    Normalize balances for a new debt.

    Returns (total_amount, remaining_balance) with remaining floored at zero
    and total raised to at least remaining.
    """
    remaining = max(Decimal("0"), data.remaining_balance)
    total = max(remaining, data.total_amount)
    return total, remaining


def clamp_remaining_balance(value: Decimal) -> Decimal:
    return max(Decimal("0"), value)
