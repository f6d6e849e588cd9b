"""
Financial Context Summarizer

Turns a user's ledger into the plain-text snapshot handed to the coach.

FLOW:
1. Fetch trends, this month's budget usage, this month's transactions
   and all debts (deterministic storage reads)
2. Aggregate the month summary
3. Render a fixed-format text block

CRITICAL: The coach only ever sees numbers computed here. If anything
in step 1 fails, the coach gets a fallback sentence instead of partial
or invented data.
"""

import asyncio
import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog

from budget_coach.config import AppSettings, get_settings
from budget_coach.models.finance import (
    CategorySpending,
    Debt,
    MonthlyTrend,
    MonthSummary,
    Transaction,
    format_money,
)
from budget_coach.queries.reports import ReportBuilder, month_bounds, summarize_month
from budget_coach.services.storage import (
    DebtStorageInterface,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)

FALLBACK_CONTEXT = (
    "Unable to load financial data. User may need to add transactions and budgets."
)


def _percent_label(row: CategorySpending) -> str:
    pct = row.percent_used
    if pct is None:
        return "N/A"
    return str(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def render_financial_context(
    today: date,
    summary: MonthSummary,
    trends: list[MonthlyTrend],
    spending: list[CategorySpending],
    transactions: list[Transaction],
    debts: list[Debt],
    currency_symbol: str = "₱",
    trend_months: int = 6,
    recent_count: int = 5,
) -> str:
    """
    Render the snapshot text.

    Sections appear in a fixed order, each with its own empty-state line,
    so the coach can rely on the layout.
    """
    def money(amount: Decimal) -> str:
        return format_money(amount, currency_symbol)

    savings_rate = f"{summary.savings_rate:.1f}" if summary.income > 0 else "0"
    lines = [
        f"Current month ({calendar.month_name[today.month]} {today.year}):",
        f"- Income: {money(summary.income)}",
        f"- Expenses: {money(summary.expenses)}",
        f"- Balance: {money(summary.balance)}",
        f"- Savings rate: {savings_rate}%",
        "",
        f"Monthly trends (last {trend_months} months):",
    ]

    if trends:
        for trend in trends:
            lines.append(
                f"- {trend.month}: income {money(trend.income)}, "
                f"spending {money(trend.spending)}"
            )
    else:
        lines.append("No data yet.")

    lines += ["", "Category spending vs budget this month:"]
    spent_rows = [row for row in spending if row.amount > 0]
    if spent_rows:
        for row in spent_rows:
            lines.append(
                f"- {row.category_name}: spent {money(row.amount)} of "
                f"{money(row.budget)} budget ({_percent_label(row)}%)"
            )
    else:
        lines.append("No budgets or spending data.")

    lines += ["", "Active debts:"]
    if not debts:
        lines.append("No debts tracked.")
    else:
        active = [debt for debt in debts if debt.is_active]
        if active:
            for debt in active:
                lines.append(
                    f"- {debt.name}: {money(debt.remaining_balance)} remaining "
                    f"of {money(debt.total_amount)}"
                )
        else:
            lines.append("No active debts.")

    lines += ["", "Recent transactions:"]
    recent = transactions[:recent_count]
    if recent:
        for tx in recent:
            sign = "-" if tx.type.is_outflow else "+"
            lines.append(
                f"- {tx.transaction_date.isoformat()}: {tx.display_description} "
                f"({tx.category_label}) {sign}{money(tx.amount)}"
            )
    else:
        lines.append("None.")

    return "\n".join(lines)


class FinancialContextBuilder:
    """
    Builds the financial snapshot for one user.

    Never raises on storage failures: the coach still answers, just
    without personal numbers.
    """

    def __init__(
        self,
        reports: ReportBuilder,
        transaction_storage: TransactionStorageInterface,
        debt_storage: DebtStorageInterface,
        settings: Optional[AppSettings] = None,
    ):
        self._reports = reports
        self._transactions = transaction_storage
        self._debts = debt_storage
        self._settings = settings or get_settings().app

    async def build(self, user_id: str, today: Optional[date] = None) -> str:
        today = today or date.today()
        first, last = month_bounds(today.year, today.month)

        try:
            trends, spending, transactions, debts = await asyncio.gather(
                self._reports.monthly_trends(
                    user_id, months=self._settings.trend_months, today=today
                ),
                self._reports.category_spending(user_id, today.month, today.year),
                self._transactions.list_transactions(
                    user_id,
                    date_from=first,
                    date_to=last,
                    limit=self._settings.context_transaction_limit,
                ),
                self._debts.list_debts(user_id),
            )
        except StorageError as e:
            logger.error(
                "financial_context_failed",
                user_id=user_id,
                error=str(e),
            )
            return FALLBACK_CONTEXT

        summary = summarize_month(transactions, today.month, today.year)
        return render_financial_context(
            today=today,
            summary=summary,
            trends=trends,
            spending=spending,
            transactions=transactions,
            debts=debts,
            currency_symbol=self._settings.currency_symbol,
            trend_months=self._settings.trend_months,
            recent_count=self._settings.recent_transaction_count,
        )
