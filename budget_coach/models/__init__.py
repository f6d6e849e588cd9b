"""
Data Models Package

This package contains all Pydantic models used in Budget Coach.
All data flowing through the system must conform to these schemas.
"""

from budget_coach.models.finance import (
    CENT,
    DEBT_PAYMENT_CATEGORY,
    Budget,
    Category,
    CategorySpending,
    ChatMessage,
    ChatRole,
    Debt,
    DebtCreate,
    DebtPayment,
    DebtType,
    DebtUpdate,
    MonthlyTrend,
    MonthSummary,
    RecurringSchedule,
    Transaction,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
    ValidationIssue,
    ValidationResult,
    format_money,
)
from budget_coach.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CENT",
    "DEBT_PAYMENT_CATEGORY",
    "Budget",
    "Category",
    "CategorySpending",
    "ChatMessage",
    "ChatRole",
    "Debt",
    "DebtCreate",
    "DebtPayment",
    "DebtType",
    "DebtUpdate",
    "MonthlyTrend",
    "MonthSummary",
    "RecurringSchedule",
    "Transaction",
    "TransactionCreate",
    "TransactionType",
    "TransactionUpdate",
    "ValidationIssue",
    "ValidationResult",
    "format_money",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
