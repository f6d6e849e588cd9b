"""
Core Data Models for Budget Coach

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep money as Decimal end to end

DESIGN DECISION: Every persisted record except Category carries the owning
user_id. Storage filters on it for every read and write; nothing in the
business layer is allowed to see another user's rows.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used for created_at fields."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Kinds of money movement.

    DEBT_PAYMENT is only ever written by the debt payment flow; users pick
    one of the other three when recording a transaction.
    """
    EXPENSE = "expense"
    INCOME = "income"
    OTHER_REVENUE = "other_revenue"
    DEBT_PAYMENT = "debt_payment"

    @property
    def is_outflow(self) -> bool:
        """Money leaving the user's pocket."""
        return self in (TransactionType.EXPENSE, TransactionType.DEBT_PAYMENT)

    @property
    def is_inflow(self) -> bool:
        """Money coming in."""
        return self in (TransactionType.INCOME, TransactionType.OTHER_REVENUE)


class DebtType(str, Enum):
    """Supported debt kinds."""
    LOAN = "loan"
    CREDIT_CARD = "credit_card"
    PERSONAL = "personal"


class RecurringSchedule(str, Enum):
    """Recurrence for salary-like income (paid on the 15th and the 30th)."""
    BI_MONTHLY = "bi-monthly"


class ChatRole(str, Enum):
    """Roles in a coach conversation."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# =============================================================================
# CATEGORIES
# =============================================================================

class Category(BaseModel):
    """
    A label used to group transactions and budgets.

    Categories are shared by all users. A category with force_income set
    (e.g. Salary) turns every transaction recorded against it into income.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    type: TransactionType = Field(
        ...,
        description="expense, income or other_revenue"
    )
    color: Optional[str] = Field(default=None, max_length=20)
    icon_name: Optional[str] = Field(default=None, max_length=50)
    force_income: bool = False

    @field_validator('type')
    @classmethod
    def reject_debt_payment_type(cls, v: TransactionType) -> TransactionType:
        if v == TransactionType.DEBT_PAYMENT:
            raise ValueError("Categories cannot have the debt_payment type")
        return v


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single recorded income or expense.

    category and debt_name are filled in by storage on reads (joined from
    the Categories and Debts sheets); they are never persisted on the row.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)

    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount, always positive; direction comes from type"
    )
    type: TransactionType
    category_id: UUID
    debt_id: Optional[UUID] = None
    description: Optional[str] = Field(default=None, max_length=200)
    transaction_date: date
    notes: Optional[str] = Field(default=None, max_length=1000)
    recurring_schedule: Optional[RecurringSchedule] = None

    # Joined on read
    category: Optional[Category] = None
    debt_name: Optional[str] = None

    @property
    def display_description(self) -> str:
        """Description, else the paid debt's name, else a generic label."""
        return self.description or self.debt_name or "Transaction"

    @property
    def category_label(self) -> str:
        return self.category.name if self.category else self.type.value


class TransactionCreate(BaseModel):
    """User input for a new transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    type: TransactionType
    category_id: UUID
    description: Optional[str] = Field(default=None, max_length=200)
    transaction_date: date
    notes: Optional[str] = Field(default=None, max_length=1000)
    recurring_schedule: Optional[RecurringSchedule] = None


class TransactionUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    type: Optional[TransactionType] = None
    category_id: Optional[UUID] = None
    description: Optional[str] = Field(default=None, max_length=200)
    transaction_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    recurring_schedule: Optional[RecurringSchedule] = None


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(BaseModel):
    """
    A monthly spending ceiling for one category.

    Unique per (user_id, category_id, month, year); storage upserts on that key.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    category_id: UUID
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    created_at: datetime = Field(default_factory=utcnow)

    category: Optional[Category] = None


class CategorySpending(BaseModel):
    """How much of one budget has been spent this month."""

    category_id: UUID
    category_name: str
    amount: Decimal = Field(..., description="Spent so far")
    budget: Decimal
    color: Optional[str] = None
    icon_name: Optional[str] = None

    @property
    def percent_used(self) -> Optional[Decimal]:
        """Share of the budget spent, or None when the budget is zero."""
        if self.budget <= 0:
            return None
        return self.amount / self.budget * 100

    @property
    def is_over_budget(self) -> bool:
        pct = self.percent_used
        return pct is not None and pct > 100


class MonthlyTrend(BaseModel):
    """Income and spending totals for one calendar month."""

    month: str = Field(..., description="Short month name, e.g. 'Oct'")
    spending: Decimal = Decimal("0")
    income: Decimal = Decimal("0")


class MonthSummary(BaseModel):
    """Totals for the current month used at the top of the coach context."""

    month: int = Field(..., ge=1, le=12)
    year: int
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    savings_rate: Decimal = Field(
        default=Decimal("0"),
        description="Balance as a percentage of income, 1 decimal place"
    )


# =============================================================================
# DEBTS
# =============================================================================

class Debt(BaseModel):
    """A tracked balance that payments reduce."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: DebtType
    total_amount: Decimal = Field(..., ge=0, decimal_places=2)
    remaining_balance: Decimal = Field(..., ge=0, decimal_places=2)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    due_date: Optional[date] = None
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_balance(self) -> 'Debt':
        if self.remaining_balance > self.total_amount:
            raise ValueError("Remaining balance cannot exceed total amount")
        return self

    @property
    def is_active(self) -> bool:
        return self.remaining_balance > 0

    @property
    def amount_paid(self) -> Decimal:
        return self.total_amount - self.remaining_balance


class DebtCreate(BaseModel):
    """
    User input for a new debt.

    remaining_balance may be negative or above total here; the debt flow
    clamps both before the Debt is built.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    type: DebtType
    total_amount: Decimal = Field(..., ge=0, decimal_places=2)
    remaining_balance: Decimal = Field(..., decimal_places=2)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    due_date: Optional[date] = None


class DebtUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[DebtType] = None
    total_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    remaining_balance: Optional[Decimal] = Field(default=None, decimal_places=2)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    due_date: Optional[date] = None


class DebtPayment(BaseModel):
    """A payment against one debt."""
    model_config = ConfigDict(str_strip_whitespace=True)

    debt_id: UUID
    amount: Decimal = Field(..., decimal_places=2)
    payment_date: date
    notes: Optional[str] = Field(default=None, max_length=1000)


# =============================================================================
# COACH CHAT
# =============================================================================

class ChatMessage(BaseModel):
    """One turn of the coach conversation."""
    model_config = ConfigDict(str_strip_whitespace=True)

    role: ChatRole
    content: str = Field(..., min_length=1)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'not_found')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (field-level checks)
    Stage 2: Semantic validation (checks that need storage)
    """

    subject: str = Field(
        ...,
        description="What was validated, e.g. 'transaction' or 'debt_payment'"
    )
    validated_at: datetime = Field(default_factory=utcnow)

    schema_valid: bool
    semantic_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid and not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]


# =============================================================================
# FORMATTING
# =============================================================================

CENT = Decimal("0.01")

# Name of the shared expense category that debt payments are filed under
DEBT_PAYMENT_CATEGORY = "Debt Payment"


def format_money(amount: Decimal, symbol: str) -> str:
    """
    Render an amount as symbol + grouped number with at most 2 decimals.

    Trailing zero decimals are dropped: 1500 -> "₱1,500", 12.5 -> "₱12.5".
    """
    text = f"{Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    elif text.endswith("0"):
        text = text[:-1]
    return f"{symbol}{text}"
