"""Reports and financial context package."""

from budget_coach.queries.context import (
    FALLBACK_CONTEXT,
    FinancialContextBuilder,
    render_financial_context,
)
from budget_coach.queries.reports import (
    ReportBuilder,
    month_bounds,
    shift_month,
    summarize_month,
)

__all__ = [
    "FALLBACK_CONTEXT",
    "FinancialContextBuilder",
    "ReportBuilder",
    "month_bounds",
    "render_financial_context",
    "shift_month",
    "summarize_month",
]
