"""
Tests for Budget Coach

Test strategy:
1. Unit tests for individual components (models, rules, validators)
2. Integration tests for flows (against in-memory sheets)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from budget_coach.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Category,
    CategorySpending,
    ChatMessage,
    ChatRole,
    Debt,
    DebtType,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    format_money,
)


class TestFinanceModels:
    """Tests for ledger Pydantic models."""

    def test_category_strips_whitespace(self):
        """Test that whitespace is stripped from category names."""
        category = Category(name="  Groceries  ", type=TransactionType.EXPENSE)
        assert category.name == "Groceries"

    def test_category_rejects_debt_payment_type(self):
        """Debt payments are filed under an expense category."""
        with pytest.raises(ValueError):
            Category(name="Loans", type=TransactionType.DEBT_PAYMENT)

    def test_transaction_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in ("0", "-10"):
            with pytest.raises(ValueError):
                Transaction(
                    user_id="u",
                    amount=Decimal(amount),
                    type=TransactionType.EXPENSE,
                    category_id=uuid4(),
                    transaction_date=date(2026, 10, 1),
                )

    def test_transaction_display_fallbacks(self):
        """Description falls back to debt name, then a generic label."""
        tx = Transaction(
            user_id="u",
            amount=Decimal("50"),
            type=TransactionType.DEBT_PAYMENT,
            category_id=uuid4(),
            transaction_date=date(2026, 10, 1),
            debt_name="Car loan",
        )
        assert tx.display_description == "Car loan"
        assert tx.category_label == "debt_payment"

        tx = tx.model_copy(update={"debt_name": None})
        assert tx.display_description == "Transaction"

    def test_transaction_type_direction(self):
        assert TransactionType.EXPENSE.is_outflow
        assert TransactionType.DEBT_PAYMENT.is_outflow
        assert TransactionType.INCOME.is_inflow
        assert TransactionType.OTHER_REVENUE.is_inflow
        assert not TransactionType.INCOME.is_outflow

    def test_debt_remaining_cannot_exceed_total(self):
        with pytest.raises(ValueError, match="Remaining balance cannot exceed total amount"):
            Debt(
                user_id="u",
                name="Card",
                type=DebtType.CREDIT_CARD,
                total_amount=Decimal("100"),
                remaining_balance=Decimal("150"),
            )

    def test_debt_properties(self):
        debt = Debt(
            user_id="u",
            name="Loan",
            type=DebtType.LOAN,
            total_amount=Decimal("1000"),
            remaining_balance=Decimal("400"),
        )
        assert debt.is_active
        assert debt.amount_paid == Decimal("600")

        paid_off = debt.model_copy(update={"remaining_balance": Decimal("0")})
        assert not paid_off.is_active

    def test_category_spending_percent(self):
        row = CategorySpending(
            category_id=uuid4(),
            category_name="Food",
            amount=Decimal("150"),
            budget=Decimal("100"),
        )
        assert row.percent_used == Decimal("150")
        assert row.is_over_budget

    def test_category_spending_zero_budget(self):
        """A zero budget has no percentage."""
        row = CategorySpending(
            category_id=uuid4(),
            category_name="Food",
            amount=Decimal("10"),
            budget=Decimal("0"),
        )
        assert row.percent_used is None
        assert not row.is_over_budget

    def test_chat_message_requires_content(self):
        with pytest.raises(ValueError):
            ChatMessage(role=ChatRole.USER, content="")


class TestFormatMoney:
    """Tests for amount rendering."""

    def test_whole_amount_has_no_decimals(self):
        assert format_money(Decimal("1500"), "₱") == "₱1,500"

    def test_trailing_zero_dropped(self):
        assert format_money(Decimal("12.50"), "₱") == "₱12.5"

    def test_two_decimals_kept(self):
        assert format_money(Decimal("1234567.891"), "$") == "$1,234,567.89"

    def test_rounds_half_up(self):
        assert format_money(Decimal("0.005"), "₱") == "₱0.01"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Test transaction recorded",
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            description="Budget set",
            details={"amount": "1000"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "budget_set"
        assert log_dict["details"]["amount"] == "1000"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.DEBT_PAID,
            user_id="u",
            description="Debt paid",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "debt_paid"  # event_type
        assert row[4] == "u"  # user_id
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_transaction_created(self):
        correlation_id = uuid4()
        transaction_id = uuid4()

        event = AuditEventBuilder.transaction_created(
            user_id="u",
            transaction_id=transaction_id,
            transaction_type="expense",
            amount="120.00",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.entity_id == transaction_id
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_debt_paid(self):
        debt_id = uuid4()
        transaction_id = uuid4()

        event = AuditEventBuilder.debt_paid(
            user_id="u",
            debt_id=debt_id,
            transaction_id=transaction_id,
            amount="500.00",
            remaining_balance="0.00",
        )

        assert event.entity_type == "debt"
        assert event.entity_id == debt_id
        assert event.details["transaction_id"] == str(transaction_id)

    def test_context_built_is_debug(self):
        event = AuditEventBuilder.context_built(user_id="u", context_length=42)
        assert event.severity == AuditSeverity.DEBUG


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            subject="transaction",
            schema_valid=False,
            semantic_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be positive",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.is_valid is False

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            subject="transaction",
            schema_valid=True,
            semantic_valid=True,
            issues=[
                ValidationIssue(
                    field="transaction_date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.is_valid is True
        assert result.warnings == ["Date in future"]

    def test_issue_severity_is_checked(self):
        with pytest.raises(ValueError):
            ValidationIssue(
                field="x",
                issue_type="y",
                message="z",
                severity="fatal",
            )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
