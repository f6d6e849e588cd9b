"""Ledger validation package."""

from budget_coach.validation.rules import (
    clamp_new_debt,
    clamp_remaining_balance,
    is_salary_category,
    next_bi_monthly_pay_date,
    resolve_recurring_schedule,
    resolve_transaction_type,
)
from budget_coach.validation.validator import (
    LedgerValidationError,
    LedgerValidator,
)

__all__ = [
    "LedgerValidationError",
    "LedgerValidator",
    "clamp_new_debt",
    "clamp_remaining_balance",
    "is_salary_category",
    "next_bi_monthly_pay_date",
    "resolve_recurring_schedule",
    "resolve_transaction_type",
]
