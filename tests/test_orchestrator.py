"""Tests for the ledger, budget, debt and coach flows."""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from budget_coach.models import (
    AuditEventType,
    DebtCreate,
    DebtPayment,
    DebtType,
    DebtUpdate,
    RecurringSchedule,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
)
from budget_coach.orchestrator import AppComponents, create_app_components
from budget_coach.services.storage import ConnectionError, NotFoundError
from budget_coach.validation import LedgerValidationError


USER_ID = "user-1"
PAY_DAY = date(2026, 10, 15)


def audit_types(audit_storage) -> list[AuditEventType]:
    return [e.event_type for e in asyncio.run(audit_storage.get_recent_events())]


def new_debt(debt_flow, total="10000", remaining="8000", name="Car loan"):
    return asyncio.run(debt_flow.create_debt(USER_ID, DebtCreate(
        name=name,
        type=DebtType.LOAN,
        total_amount=Decimal(total),
        remaining_balance=Decimal(remaining),
    )))


class TestLedgerFlow:

    def test_salary_is_always_income_and_keeps_schedule(self, ledger_flow, salary_category):
        tx = asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("25000"),
            type=TransactionType.EXPENSE,
            category_id=salary_category.id,
            transaction_date=PAY_DAY,
            recurring_schedule=RecurringSchedule.BI_MONTHLY,
        )))

        assert tx.type == TransactionType.INCOME
        assert tx.recurring_schedule == RecurringSchedule.BI_MONTHLY

        stored = asyncio.run(ledger_flow.get_transaction(USER_ID, tx.id))
        assert stored.type == TransactionType.INCOME
        assert stored.recurring_schedule == RecurringSchedule.BI_MONTHLY

    def test_schedule_dropped_for_other_categories(self, ledger_flow, categories):
        tx = asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("3000"),
            type=TransactionType.INCOME,
            category_id=categories["Freelance"].id,
            transaction_date=PAY_DAY,
            recurring_schedule=RecurringSchedule.BI_MONTHLY,
        )))

        assert tx.type == TransactionType.INCOME
        assert tx.recurring_schedule is None

    def test_add_audits_creation(self, ledger_flow, expense_category, audit_storage):
        correlation_id = uuid4()
        asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("120.50"),
            type=TransactionType.EXPENSE,
            category_id=expense_category.id,
            transaction_date=PAY_DAY,
        ), correlation_id=correlation_id))

        events = asyncio.run(audit_storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_type for e in events] == [AuditEventType.TRANSACTION_CREATED]
        assert events[0].details["amount"] == "120.50"

    def test_category_type_mismatch_is_rejected(self, ledger_flow, expense_category, audit_storage):
        with pytest.raises(LedgerValidationError, match="is for expense, not income"):
            asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
                amount=Decimal("10"),
                type=TransactionType.INCOME,
                category_id=expense_category.id,
                transaction_date=PAY_DAY,
            )))

        assert asyncio.run(ledger_flow.list_transactions(USER_ID)) == []
        assert audit_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    def test_debt_payment_type_is_rejected(self, ledger_flow, categories):
        with pytest.raises(LedgerValidationError, match="paying the debt"):
            asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
                amount=Decimal("10"),
                type=TransactionType.DEBT_PAYMENT,
                category_id=categories["Debt Payment"].id,
                transaction_date=PAY_DAY,
            )))

    def test_unknown_category_is_rejected(self, ledger_flow):
        with pytest.raises(LedgerValidationError, match="Category not found"):
            asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
                amount=Decimal("10"),
                type=TransactionType.EXPENSE,
                category_id=uuid4(),
                transaction_date=PAY_DAY,
            )))

    def test_update_amount_and_description(self, ledger_flow, expense_category, audit_storage):
        tx = asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("10"),
            type=TransactionType.EXPENSE,
            category_id=expense_category.id,
            transaction_date=PAY_DAY,
        )))

        updated = asyncio.run(ledger_flow.update_transaction(
            USER_ID, tx.id, TransactionUpdate(amount=Decimal("15.25"), description="Lunch")
        ))

        assert updated.amount == Decimal("15.25")
        assert updated.description == "Lunch"
        stored = asyncio.run(ledger_flow.get_transaction(USER_ID, tx.id))
        assert stored.amount == Decimal("15.25")
        assert AuditEventType.TRANSACTION_UPDATED in audit_types(audit_storage)

    def test_update_to_salary_category_forces_income(self, ledger_flow, categories, salary_category):
        tx = asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("5000"),
            type=TransactionType.INCOME,
            category_id=categories["Freelance"].id,
            transaction_date=PAY_DAY,
        )))

        updated = asyncio.run(ledger_flow.update_transaction(
            USER_ID,
            tx.id,
            TransactionUpdate(
                category_id=salary_category.id,
                recurring_schedule=RecurringSchedule.BI_MONTHLY,
            ),
        ))

        assert updated.type == TransactionType.INCOME
        assert updated.recurring_schedule == RecurringSchedule.BI_MONTHLY
        assert updated.category.name == "Salary"

    def test_update_null_required_field_is_ignored(self, ledger_flow, expense_category):
        tx = asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("10"),
            type=TransactionType.EXPENSE,
            category_id=expense_category.id,
            transaction_date=PAY_DAY,
        )))

        updated = asyncio.run(ledger_flow.update_transaction(
            USER_ID, tx.id, TransactionUpdate(amount=None, notes="split with Ana")
        ))
        assert updated.amount == Decimal("10")
        assert updated.notes == "split with Ana"

    def test_empty_update_returns_existing(self, ledger_flow, expense_category, audit_storage):
        tx = asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("10"),
            type=TransactionType.EXPENSE,
            category_id=expense_category.id,
            transaction_date=PAY_DAY,
        )))

        unchanged = asyncio.run(ledger_flow.update_transaction(USER_ID, tx.id, TransactionUpdate()))

        assert unchanged.id == tx.id
        assert AuditEventType.TRANSACTION_UPDATED not in audit_types(audit_storage)

    def test_update_missing_transaction(self, ledger_flow):
        with pytest.raises(NotFoundError):
            asyncio.run(ledger_flow.update_transaction(
                USER_ID, uuid4(), TransactionUpdate(description="x")
            ))

    def test_delete(self, ledger_flow, expense_category, audit_storage):
        tx = asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("10"),
            type=TransactionType.EXPENSE,
            category_id=expense_category.id,
            transaction_date=PAY_DAY,
        )))

        assert asyncio.run(ledger_flow.delete_transaction(USER_ID, tx.id)) is True
        assert asyncio.run(ledger_flow.delete_transaction(USER_ID, tx.id)) is False
        assert audit_types(audit_storage).count(AuditEventType.TRANSACTION_DELETED) == 1

    def test_next_pay_date(self, ledger_flow):
        assert ledger_flow.next_pay_date(date(2026, 10, 19)) == date(2026, 10, 30)


class TestBudgetFlow:

    def test_set_budget_upserts(self, budget_flow, expense_category, audit_storage):
        first = asyncio.run(budget_flow.set_budget(
            USER_ID, expense_category.id, Decimal("3000"), 10, 2026
        ))
        second = asyncio.run(budget_flow.set_budget(
            USER_ID, expense_category.id, Decimal("3500"), 10, 2026
        ))

        assert second.id == first.id
        budgets = asyncio.run(budget_flow.list_budgets(USER_ID, 10, 2026))
        assert [b.amount for b in budgets] == [Decimal("3500")]
        assert audit_types(audit_storage).count(AuditEventType.BUDGET_SET) == 2

    def test_invalid_month_is_rejected(self, budget_flow, expense_category):
        with pytest.raises(LedgerValidationError, match="Month must be between 1 and 12"):
            asyncio.run(budget_flow.set_budget(
                USER_ID, expense_category.id, Decimal("100"), 13, 2026
            ))

    def test_income_category_budget_is_allowed(self, budget_flow, salary_category):
        budget = asyncio.run(budget_flow.set_budget(
            USER_ID, salary_category.id, Decimal("100"), 10, 2026
        ))
        assert budget.category_id == salary_category.id

    def test_delete_budget(self, budget_flow, expense_category, audit_storage):
        budget = asyncio.run(budget_flow.set_budget(
            USER_ID, expense_category.id, Decimal("100"), 10, 2026
        ))

        assert asyncio.run(budget_flow.delete_budget(USER_ID, budget.id)) is True
        assert asyncio.run(budget_flow.list_budgets(USER_ID, 10, 2026)) == []
        assert AuditEventType.BUDGET_DELETED in audit_types(audit_storage)

    def test_category_spending(self, budget_flow, ledger_flow, expense_category):
        asyncio.run(budget_flow.set_budget(
            USER_ID, expense_category.id, Decimal("1000"), 10, 2026
        ))
        asyncio.run(ledger_flow.add_transaction(USER_ID, TransactionCreate(
            amount=Decimal("1250"),
            type=TransactionType.EXPENSE,
            category_id=expense_category.id,
            transaction_date=date(2026, 10, 3),
        )))

        rows = asyncio.run(budget_flow.category_spending(USER_ID, 10, 2026))

        assert rows[0].amount == Decimal("1250")
        assert rows[0].is_over_budget


class TestDebtFlow:

    def test_create_clamps_balances(self, debt_flow):
        overdrawn = new_debt(debt_flow, total="100", remaining="150", name="Card")
        negative = new_debt(debt_flow, total="100", remaining="-5", name="Paid off")

        assert (overdrawn.total_amount, overdrawn.remaining_balance) == (Decimal("150"), Decimal("150"))
        assert negative.remaining_balance == Decimal("0")
        assert not negative.is_active

    def test_update_rejects_remaining_above_total(self, debt_flow, audit_storage):
        debt = new_debt(debt_flow)

        with pytest.raises(LedgerValidationError, match="cannot exceed total"):
            asyncio.run(debt_flow.update_debt(
                USER_ID, debt.id, DebtUpdate(remaining_balance=Decimal("20000"))
            ))

        stored = asyncio.run(debt_flow.get_debt(USER_ID, debt.id))
        assert stored.remaining_balance == Decimal("8000")
        assert AuditEventType.VALIDATION_FAILED in audit_types(audit_storage)

    def test_update_clamps_negative_remaining(self, debt_flow):
        debt = new_debt(debt_flow)

        updated = asyncio.run(debt_flow.update_debt(
            USER_ID, debt.id, DebtUpdate(name="Car", remaining_balance=Decimal("-1"))
        ))

        assert updated.name == "Car"
        assert updated.remaining_balance == Decimal("0")

    def test_update_missing_debt(self, debt_flow):
        with pytest.raises(NotFoundError, match="Debt not found"):
            asyncio.run(debt_flow.update_debt(USER_ID, uuid4(), DebtUpdate(name="x")))

    def test_pay_debt(self, debt_flow, ledger_flow, audit_storage):
        debt = new_debt(debt_flow)

        updated, tx = asyncio.run(debt_flow.pay_debt(USER_ID, DebtPayment(
            debt_id=debt.id,
            amount=Decimal("2000"),
            payment_date=date(2026, 10, 12),
        )))

        assert updated.remaining_balance == Decimal("6000")
        assert tx.type == TransactionType.DEBT_PAYMENT
        assert tx.description == "Payment: Car loan"
        assert tx.category.name == "Debt Payment"

        stored_debt = asyncio.run(debt_flow.get_debt(USER_ID, debt.id))
        assert stored_debt.remaining_balance == Decimal("6000")
        stored_tx = asyncio.run(ledger_flow.get_transaction(USER_ID, tx.id))
        assert stored_tx.debt_id == debt.id
        assert stored_tx.debt_name == "Car loan"
        assert AuditEventType.DEBT_PAID in audit_types(audit_storage)

    def test_pay_off_in_full(self, debt_flow):
        debt = new_debt(debt_flow, total="500", remaining="500")

        updated, _ = asyncio.run(debt_flow.pay_debt(USER_ID, DebtPayment(
            debt_id=debt.id, amount=Decimal("500"), payment_date=PAY_DAY,
        )))

        assert updated.remaining_balance == Decimal("0")
        assert asyncio.run(debt_flow.list_debts(USER_ID, active_only=True)) == []

    def test_overpayment_is_rejected(self, debt_flow, ledger_flow):
        debt = new_debt(debt_flow, total="2000", remaining="1500")

        with pytest.raises(LedgerValidationError, match="cannot exceed remaining balance"):
            asyncio.run(debt_flow.pay_debt(USER_ID, DebtPayment(
                debt_id=debt.id, amount=Decimal("1500.01"), payment_date=PAY_DAY,
            )))

        assert asyncio.run(ledger_flow.list_transactions(USER_ID)) == []

    def test_payment_for_unknown_debt(self, debt_flow):
        with pytest.raises(LedgerValidationError, match="Debt not found"):
            asyncio.run(debt_flow.pay_debt(USER_ID, DebtPayment(
                debt_id=uuid4(), amount=Decimal("10"), payment_date=PAY_DAY,
            )))

    def test_delete_debt(self, debt_flow, audit_storage):
        debt = new_debt(debt_flow)

        assert asyncio.run(debt_flow.delete_debt(USER_ID, debt.id)) is True
        assert asyncio.run(debt_flow.list_debts(USER_ID)) == []
        assert AuditEventType.DEBT_DELETED in audit_types(audit_storage)


class TestCreateAppComponents:

    def test_wires_flows_over_given_client(self, sheets_client):
        components = create_app_components(sheets_client=sheets_client)

        assert isinstance(components, AppComponents)
        assert components.sheets_client is sheets_client
        assert not components.coach.is_configured
        categories = asyncio.run(components.ledger.list_categories())
        assert any(c.name == "Debt Payment" for c in categories)

    def test_validation_errors_read_as_a_summary(self, sheets_client):
        components = create_app_components(sheets_client=sheets_client)

        with pytest.raises(LedgerValidationError) as excinfo:
            asyncio.run(components.budgets.set_budget(
                USER_ID, uuid4(), Decimal("100"), 13, 2026
            ))

        summary = components.validator.get_user_friendly_summary(excinfo.value.result)
        assert summary.startswith("Please fix the following:")
        assert "Month must be between 1 and 12, got 13" in summary

    def test_missing_sheets_settings(self):
        with pytest.raises(ConnectionError, match="Storage not configured"):
            create_app_components()
