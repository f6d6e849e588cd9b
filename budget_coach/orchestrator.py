"""
Main Orchestrator for Budget Coach

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger (transaction in -> validate -> salary rules -> save)
2. Budgets (set or clear a monthly ceiling per category)
3. Debts (create, edit, pay down through a debt payment transaction)
4. Coach (ledger -> financial snapshot -> Gemini -> reply)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written unless validation passes
- The coach only sees the deterministic snapshot
- Every change is audited
"""

from collections.abc import Iterator
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from budget_coach.agents import CoachServiceError, FinancialCoachAgent
from budget_coach.audit import AuditLogger, create_correlation_id
from budget_coach.config import get_settings
from budget_coach.models.audit import AuditEventType
from budget_coach.models.finance import (
    Budget,
    Category,
    CategorySpending,
    ChatMessage,
    Debt,
    DebtCreate,
    DebtPayment,
    DebtUpdate,
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
    ValidationResult,
)
from budget_coach.queries import FinancialContextBuilder, ReportBuilder
from budget_coach.services.storage import (
    BudgetStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    DebtStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsDebtStorage,
    GoogleSheetsTransactionStorage,
    NotFoundError,
    TransactionStorageInterface,
)
from budget_coach.validation import (
    LedgerValidationError,
    LedgerValidator,
    clamp_new_debt,
    clamp_remaining_balance,
    is_salary_category,
    next_bi_monthly_pay_date,
    resolve_recurring_schedule,
    resolve_transaction_type,
)


logger = structlog.get_logger(__name__)

# Fields an update may not clear; None for these means "leave unchanged"
REQUIRED_TRANSACTION_FIELDS = {"amount", "type", "category_id", "transaction_date"}
REQUIRED_DEBT_FIELDS = {"name", "type", "total_amount", "remaining_balance"}


async def _ensure_valid(
    result: ValidationResult,
    user_id: str,
    audit_logger: Optional[AuditLogger],
    correlation_id: UUID,
) -> None:
    """Audit and raise when validation found errors."""
    if result.is_valid:
        return

    if audit_logger:
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
        ]
        await audit_logger.log_validation_failed(
            user_id=user_id,
            subject=result.subject,
            issues=issues,
            correlation_id=correlation_id,
        )
    raise LedgerValidationError(result)


class LedgerFlow:
    """
    Orchestrates income and expense transactions.

    Flow:
    1. Validate → type, date, category exists and fits
    2. Resolve → salary categories force income, only salary recurs
    3. Save → persist and audit

    Debt payments never go through here; they come from DebtFlow.pay_debt.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        category_storage: CategoryStorageInterface,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transactions = transaction_storage
        self._categories = category_storage
        self._validator = validator or LedgerValidator(category_storage)
        self._audit_logger = audit_logger

    async def list_categories(
        self,
        category_type: Optional[TransactionType] = None,
    ) -> list[Category]:
        return await self._categories.list_categories(category_type)

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        return await self._transactions.list_transactions(
            user_id,
            date_from=date_from,
            date_to=date_to,
            transaction_type=transaction_type,
            limit=limit,
        )

    async def get_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        return await self._transactions.get_transaction(user_id, transaction_id)

    async def add_transaction(
        self,
        user_id: str,
        data: TransactionCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record a new income or expense.

        Raises:
            LedgerValidationError: Input failed validation
        """
        correlation_id = correlation_id or create_correlation_id()

        result, category = await self._validator.validate_transaction(
            data.type, data.category_id, data.transaction_date
        )
        await _ensure_valid(result, user_id, self._audit_logger, correlation_id)

        transaction = Transaction(
            user_id=user_id,
            amount=data.amount,
            type=resolve_transaction_type(data.type, is_salary_category(category)),
            category_id=data.category_id,
            description=data.description,
            transaction_date=data.transaction_date,
            notes=data.notes,
            recurring_schedule=resolve_recurring_schedule(
                data.recurring_schedule, category
            ),
            category=category,
        )
        await self._transactions.save_transaction(transaction)

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                user_id=user_id,
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=str(transaction.amount),
                correlation_id=correlation_id,
            )

        return transaction

    async def update_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
        data: TransactionUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Apply the provided fields to an existing transaction.

        Type, category and date changes are re-validated and the salary
        rules re-applied.

        Raises:
            NotFoundError: No such transaction for this user
            LedgerValidationError: The result would be invalid
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._transactions.get_transaction(user_id, transaction_id)
        if existing is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in REQUIRED_TRANSACTION_FIELDS
        }
        if not changes:
            return existing

        merged = existing.model_copy(update=changes)
        category = existing.category

        if changes.keys() & {"type", "category_id", "transaction_date"}:
            result, category = await self._validator.validate_transaction(
                merged.type, merged.category_id, merged.transaction_date
            )
            await _ensure_valid(result, user_id, self._audit_logger, correlation_id)

        merged = merged.model_copy(update={
            "type": resolve_transaction_type(merged.type, is_salary_category(category)),
            "recurring_schedule": resolve_recurring_schedule(
                merged.recurring_schedule, category
            ),
            "category": category,
        })
        await self._transactions.update_transaction(merged)

        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(
                user_id=user_id,
                transaction_id=transaction_id,
                changed_fields=sorted(changes),
                correlation_id=correlation_id,
            )

        return merged

    async def delete_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete a transaction. Returns False when there was nothing to delete."""
        deleted = await self._transactions.delete_transaction(user_id, transaction_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                user_id=user_id,
                transaction_id=transaction_id,
                correlation_id=correlation_id or create_correlation_id(),
            )
        return deleted

    def next_pay_date(self, after: Optional[date] = None) -> date:
        """Next 15th/30th salary date, used to pre-fill recurring income."""
        return next_bi_monthly_pay_date(after or date.today())


class BudgetFlow:
    """Monthly spending ceilings, one per category per month."""

    def __init__(
        self,
        budget_storage: BudgetStorageInterface,
        reports: ReportBuilder,
        validator: LedgerValidator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._budgets = budget_storage
        self._reports = reports
        self._validator = validator
        self._audit_logger = audit_logger

    async def list_budgets(self, user_id: str, month: int, year: int) -> list[Budget]:
        return await self._budgets.list_budgets(user_id, month, year)

    async def set_budget(
        self,
        user_id: str,
        category_id: UUID,
        amount: Decimal,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Create the budget or overwrite the amount of the existing one.

        Raises:
            LedgerValidationError: Bad amount, month or category
        """
        correlation_id = correlation_id or create_correlation_id()

        result = await self._validator.validate_budget(category_id, amount, month, year)
        await _ensure_valid(result, user_id, self._audit_logger, correlation_id)

        budget = await self._budgets.upsert_budget(Budget(
            user_id=user_id,
            category_id=category_id,
            amount=amount,
            month=month,
            year=year,
        ))

        if self._audit_logger:
            await self._audit_logger.log_budget_set(
                user_id=user_id,
                budget_id=budget.id,
                category_id=category_id,
                amount=str(amount),
                month=month,
                year=year,
                correlation_id=correlation_id,
            )
        return budget

    async def delete_budget(
        self,
        user_id: str,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        deleted = await self._budgets.delete_budget(user_id, budget_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_budget_deleted(
                user_id=user_id,
                budget_id=budget_id,
                correlation_id=correlation_id or create_correlation_id(),
            )
        return deleted

    async def category_spending(
        self,
        user_id: str,
        month: int,
        year: int,
    ) -> list[CategorySpending]:
        return await self._reports.category_spending(user_id, month, year)


class DebtFlow:
    """
    Orchestrates debts and their payments.

    Balances always satisfy 0 <= remaining <= total. A payment lowers the
    remaining balance and is recorded as a debt payment transaction.
    """

    def __init__(
        self,
        debt_storage: DebtStorageInterface,
        transaction_storage: TransactionStorageInterface,
        validator: LedgerValidator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._debts = debt_storage
        self._transactions = transaction_storage
        self._validator = validator
        self._audit_logger = audit_logger

    async def list_debts(self, user_id: str, active_only: bool = False) -> list[Debt]:
        return await self._debts.list_debts(user_id, active_only=active_only)

    async def get_debt(self, user_id: str, debt_id: UUID) -> Optional[Debt]:
        return await self._debts.get_debt(user_id, debt_id)

    async def create_debt(
        self,
        user_id: str,
        data: DebtCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Debt:
        """Create a debt. Balances are clamped rather than rejected."""
        total, remaining = clamp_new_debt(data)
        debt = Debt(
            user_id=user_id,
            name=data.name,
            type=data.type,
            total_amount=total,
            remaining_balance=remaining,
            interest_rate=data.interest_rate,
            due_date=data.due_date,
        )
        await self._debts.save_debt(debt)

        if self._audit_logger:
            await self._audit_logger.log_debt_changed(
                event_type=AuditEventType.DEBT_CREATED,
                user_id=user_id,
                debt_id=debt.id,
                name=debt.name,
                remaining_balance=str(debt.remaining_balance),
                correlation_id=correlation_id or create_correlation_id(),
            )
        return debt

    async def update_debt(
        self,
        user_id: str,
        debt_id: UUID,
        data: DebtUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> Debt:
        """
        Apply the provided fields to a debt.

        Raises:
            NotFoundError: No such debt for this user
            LedgerValidationError: Remaining balance would exceed the total
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._debts.get_debt(user_id, debt_id)
        if existing is None:
            raise NotFoundError("Debt not found")

        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in REQUIRED_DEBT_FIELDS
        }
        if not changes:
            return existing

        if "remaining_balance" in changes:
            changes["remaining_balance"] = clamp_remaining_balance(
                changes["remaining_balance"]
            )

        merged = {**existing.model_dump(), **changes}
        result = self._validator.validate_debt_balances(
            merged["total_amount"], merged["remaining_balance"]
        )
        await _ensure_valid(result, user_id, self._audit_logger, correlation_id)

        debt = Debt.model_validate(merged)

        await self._debts.update_debt(debt)

        if self._audit_logger:
            await self._audit_logger.log_debt_changed(
                event_type=AuditEventType.DEBT_UPDATED,
                user_id=user_id,
                debt_id=debt.id,
                name=debt.name,
                remaining_balance=str(debt.remaining_balance),
                correlation_id=correlation_id,
            )
        return debt

    async def delete_debt(
        self,
        user_id: str,
        debt_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        existing = await self._debts.get_debt(user_id, debt_id)
        deleted = await self._debts.delete_debt(user_id, debt_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_debt_changed(
                event_type=AuditEventType.DEBT_DELETED,
                user_id=user_id,
                debt_id=debt_id,
                name=existing.name if existing else "",
                correlation_id=correlation_id or create_correlation_id(),
            )
        return deleted

    async def pay_debt(
        self,
        user_id: str,
        payment: DebtPayment,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Debt, Transaction]:
        """
        Pay down a debt.

        Lowers the remaining balance and records a debt payment
        transaction under the shared Debt Payment category.

        Returns:
            (updated_debt, payment_transaction)

        Raises:
            LedgerValidationError: Bad amount, unknown debt, or the
                Debt Payment category is missing
        """
        correlation_id = correlation_id or create_correlation_id()

        debt = await self._debts.get_debt(user_id, payment.debt_id)
        result, category = await self._validator.validate_payment(payment, debt)
        await _ensure_valid(result, user_id, self._audit_logger, correlation_id)

        updated = debt.model_copy(update={
            "remaining_balance": clamp_remaining_balance(
                debt.remaining_balance - payment.amount
            ),
        })
        await self._debts.update_debt(updated)

        transaction = Transaction(
            user_id=user_id,
            amount=payment.amount,
            type=TransactionType.DEBT_PAYMENT,
            category_id=category.id,
            debt_id=debt.id,
            description=f"Payment: {debt.name}",
            transaction_date=payment.payment_date,
            notes=payment.notes,
            category=category,
            debt_name=debt.name,
        )
        await self._transactions.save_transaction(transaction)

        if self._audit_logger:
            await self._audit_logger.log_debt_paid(
                user_id=user_id,
                debt_id=debt.id,
                transaction_id=transaction.id,
                amount=str(payment.amount),
                remaining_balance=str(updated.remaining_balance),
                correlation_id=correlation_id,
            )

        return updated, transaction


class CoachFlow:
    """
    Orchestrates the coach conversation.

    FLOW:
    1. Ledger → financial snapshot (deterministic)
    2. Snapshot + chat history → Gemini
    3. Reply → user

    The coach NEVER sees storage, only the snapshot text.
    """

    def __init__(
        self,
        context_builder: FinancialContextBuilder,
        coach_agent: Optional[FinancialCoachAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._context_builder = context_builder
        self._coach_agent = coach_agent or FinancialCoachAgent()
        self._audit_logger = audit_logger

    @property
    def is_configured(self) -> bool:
        return self._coach_agent.is_configured

    async def build_context(
        self,
        user_id: str,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        context = await self._context_builder.build(user_id, today=today)

        if self._audit_logger:
            await self._audit_logger.log_context_built(
                user_id=user_id,
                context_length=len(context),
                correlation_id=correlation_id,
            )
        return context

    async def ask(
        self,
        user_id: str,
        messages: list[ChatMessage],
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Answer the latest message with the user's snapshot attached.

        Raises:
            CoachError: Not configured, empty history, or Gemini failed
        """
        correlation_id = correlation_id or create_correlation_id()

        context = await self.build_context(user_id, correlation_id=correlation_id)

        try:
            reply = await self._coach_agent.reply(messages, financial_context=context)
        except CoachServiceError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_coach_replied(
                user_id=user_id,
                message_count=len(messages),
                reply_length=len(reply),
                correlation_id=correlation_id,
            )
        return reply

    def stream(
        self,
        messages: list[ChatMessage],
        financial_context: Optional[str] = None,
    ) -> Iterator[str]:
        """Stream a reply for a snapshot already built with build_context."""
        return self._coach_agent.stream_reply(messages, financial_context)


class AppComponents(NamedTuple):
    ledger: LedgerFlow
    budgets: BudgetFlow
    debts: DebtFlow
    coach: CoachFlow
    validator: LedgerValidator
    sheets_client: GoogleSheetsClient


def create_app_components(
    sheets_client: Optional[GoogleSheetsClient] = None,
    coach_agent: Optional[FinancialCoachAgent] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        sheets_client: Pre-built client (tests pass one over a fake
                       spreadsheet). Built from settings when None.
        coach_agent: Pre-built coach. Built from settings when None.

    Raises:
        ConnectionError: Google Sheets settings are missing or invalid
    """
    if sheets_client is None:
        try:
            sheets_client = GoogleSheetsClient()
        except ValidationError as e:
            logger.warning("storage_not_configured", error=str(e))
            raise ConnectionError(f"Storage not configured: {e}") from e

    category_storage = GoogleSheetsCategoryStorage(sheets_client)
    transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
    budget_storage = GoogleSheetsBudgetStorage(sheets_client)
    debt_storage = GoogleSheetsDebtStorage(sheets_client)
    audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))

    validator = LedgerValidator(category_storage)
    reports = ReportBuilder(transaction_storage, budget_storage)
    context_builder = FinancialContextBuilder(
        reports,
        transaction_storage,
        debt_storage,
        settings=get_settings().app,
    )

    return AppComponents(
        ledger=LedgerFlow(
            transaction_storage,
            category_storage,
            validator=validator,
            audit_logger=audit_logger,
        ),
        budgets=BudgetFlow(budget_storage, reports, validator, audit_logger),
        debts=DebtFlow(debt_storage, transaction_storage, validator, audit_logger),
        coach=CoachFlow(context_builder, coach_agent, audit_logger),
        validator=validator,
        sheets_client=sheets_client,
    )
