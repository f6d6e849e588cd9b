"""
Two-Stage Ledger Validation

STAGE 1 - SCHEMA VALIDATION:
- Field-level checks on the user's input
- Runs without storage

STAGE 2 - SEMANTIC VALIDATION:
- Checks that need storage: the category exists and fits the
  transaction, the debt exists, the payment fits the balance,
  the Debt Payment category is present

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues. The ledger rules in
rules.py normalize input (salary type, clamped balances) before it gets
here; anything still wrong is reported.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from budget_coach.config import get_settings
from budget_coach.models.finance import (
    DEBT_PAYMENT_CATEGORY,
    Category,
    Debt,
    DebtPayment,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    format_money,
)
from budget_coach.services.storage import CategoryStorageInterface


# Transactions dated further ahead than this get a warning
FUTURE_DATE_TOLERANCE_DAYS = 31


class LedgerValidationError(Exception):
    """Raised by the flows when a ValidationResult carries errors."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [i.message for i in result.issues if i.severity == "error"]
        super().__init__("; ".join(messages) or "Validation failed")


def _is_valid(issues: list[ValidationIssue]) -> bool:
    return not any(issue.severity == "error" for issue in issues)


class LedgerValidator:
    """
    Validates ledger input through a two-stage pipeline.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (category lookups need storage)
    """

    def __init__(
        self,
        category_storage: Optional[CategoryStorageInterface] = None,
    ):
        """
        Args:
            category_storage: Used for category checks.
                              If None, category checks are skipped.
        """
        self._categories = category_storage
        self._settings = get_settings().app

    def _result(
        self,
        subject: str,
        schema_valid: bool,
        semantic_valid: bool,
        issues: list[ValidationIssue],
    ) -> ValidationResult:
        return ValidationResult(
            subject=subject,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def validate_transaction(
        self,
        transaction_type: TransactionType,
        category_id: UUID,
        transaction_date: date,
        today: Optional[date] = None,
    ) -> tuple[ValidationResult, Optional[Category]]:
        """
        Validate a transaction about to be written.

        Returns the result and the looked-up category (None when storage
        is not configured or the category is missing).
        """
        today = today or date.today()
        issues = []

        if transaction_type == TransactionType.DEBT_PAYMENT:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message="Debt payments must be recorded by paying the debt",
                severity="error",
                suggested_fix="Use the debt payment form instead",
            ))

        if transaction_date > today + timedelta(days=FUTURE_DATE_TOLERANCE_DAYS):
            issues.append(ValidationIssue(
                field="transaction_date",
                issue_type="future_date",
                message=f"Transaction date ({transaction_date}) is far in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        schema_valid = _is_valid(issues)
        semantic_valid = False
        category = None

        if schema_valid:
            semantic_issues = []
            if self._categories is not None:
                category = await self._categories.get_category(category_id)
                if category is None:
                    semantic_issues.append(ValidationIssue(
                        field="category_id",
                        issue_type="not_found",
                        message="Category not found",
                        severity="error",
                    ))
                elif not category.force_income and category.type != transaction_type:
                    semantic_issues.append(ValidationIssue(
                        field="category_id",
                        issue_type="inconsistent",
                        message=(
                            f"Category '{category.name}' is for {category.type.value}, "
                            f"not {transaction_type.value}"
                        ),
                        severity="error",
                        suggested_fix="Pick a category of the same type",
                    ))
            semantic_valid = _is_valid(semantic_issues)
            issues.extend(semantic_issues)

        return self._result("transaction", schema_valid, semantic_valid, issues), category

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    async def validate_budget(
        self,
        category_id: UUID,
        amount: Decimal,
        month: int,
        year: int,
    ) -> ValidationResult:
        issues = []

        if amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Budget amount cannot be negative",
                severity="error",
            ))
        if not 1 <= month <= 12:
            issues.append(ValidationIssue(
                field="month",
                issue_type="invalid_value",
                message=f"Month must be between 1 and 12, got {month}",
                severity="error",
            ))
        if not 2000 <= year <= 2100:
            issues.append(ValidationIssue(
                field="year",
                issue_type="invalid_value",
                message=f"Year {year} is out of range",
                severity="error",
            ))

        schema_valid = _is_valid(issues)
        semantic_valid = False

        if schema_valid:
            semantic_issues = []
            if self._categories is not None:
                category = await self._categories.get_category(category_id)
                if category is None:
                    semantic_issues.append(ValidationIssue(
                        field="category_id",
                        issue_type="not_found",
                        message="Category not found",
                        severity="error",
                    ))
                elif category.type != TransactionType.EXPENSE:
                    semantic_issues.append(ValidationIssue(
                        field="category_id",
                        issue_type="inconsistent",
                        message=(
                            f"'{category.name}' is not an expense category; "
                            "its budget will never show spending"
                        ),
                        severity="warning",
                    ))
            semantic_valid = _is_valid(semantic_issues)
            issues.extend(semantic_issues)

        return self._result("budget", schema_valid, semantic_valid, issues)

    # ------------------------------------------------------------------
    # Debts
    # ------------------------------------------------------------------

    def validate_debt_balances(
        self,
        total_amount: Decimal,
        remaining_balance: Decimal,
    ) -> ValidationResult:
        """Check the balances a debt would end up with after an update."""
        issues = []
        if remaining_balance > total_amount:
            issues.append(ValidationIssue(
                field="remaining_balance",
                issue_type="inconsistent",
                message="Remaining balance cannot exceed total amount",
                severity="error",
            ))
        valid = _is_valid(issues)
        return self._result("debt", valid, valid, issues)

    async def validate_payment(
        self,
        payment: DebtPayment,
        debt: Optional[Debt],
    ) -> tuple[ValidationResult, Optional[Category]]:
        """
        Validate a debt payment.

        Returns the result and the Debt Payment category the payment
        transaction will be filed under.
        """
        issues = []

        if payment.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Payment amount must be positive",
                severity="error",
            ))

        schema_valid = _is_valid(issues)
        semantic_valid = False
        category = None

        if schema_valid:
            semantic_issues = []
            if debt is None:
                semantic_issues.append(ValidationIssue(
                    field="debt_id",
                    issue_type="not_found",
                    message="Debt not found",
                    severity="error",
                ))
            elif payment.amount > debt.remaining_balance:
                balance = format_money(debt.remaining_balance, self._settings.currency_symbol)
                semantic_issues.append(ValidationIssue(
                    field="amount",
                    issue_type="exceeds_balance",
                    message=f"Payment cannot exceed remaining balance ({balance})",
                    severity="error",
                ))

            if self._categories is not None:
                category = await self._categories.find_category(
                    DEBT_PAYMENT_CATEGORY, TransactionType.EXPENSE
                )
            if category is None:
                semantic_issues.append(ValidationIssue(
                    field="category",
                    issue_type="not_found",
                    message=f"{DEBT_PAYMENT_CATEGORY} category not found",
                    severity="error",
                    suggested_fix="Add an expense category named 'Debt Payment'",
                ))

            semantic_valid = _is_valid(semantic_issues)
            issues.extend(semantic_issues)

        return self._result("debt_payment", schema_valid, semantic_valid, issues), category

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Summary of validation results for display."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        errors = [i for i in result.issues if i.severity == "error"]
        if errors:
            lines.append("Please fix the following:")
            for issue in errors:
                lines.append(f"  - {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"    ({issue.suggested_fix})")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please double-check:")
            for warning in result.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines)
