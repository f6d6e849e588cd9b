"""
Audit Models for Budget Coach

Every change to a user's ledger and every coach exchange is logged.
Replaying the AuditLog for one correlation id shows how a balance got
where it is. Rows are only ever appended.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from budget_coach.models.finance import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Budgets
    BUDGET_SET = "budget_set"
    BUDGET_DELETED = "budget_deleted"

    # Debts
    DEBT_CREATED = "debt_created"
    DEBT_UPDATED = "debt_updated"
    DEBT_DELETED = "debt_deleted"
    DEBT_PAID = "debt_paid"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Coach
    CONTEXT_BUILT = "context_built"
    COACH_REPLIED = "coach_replied"

    # Integrations
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """One row of the AuditLog worksheet."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Who and what
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the ledger the event touched"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget', 'debt')"
    )
    entity_id: Optional[UUID] = None

    # Shared by every event of one user action
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a payment and its transaction)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Keyword arguments for a structlog call."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Flatten for gspread append_row.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Factories for each AuditEventType, filling entity and description.

    Usage:
        event = AuditEventBuilder.transaction_created(user_id, tx_id, "expense", "120.00")
        event = AuditEventBuilder.debt_paid(user_id, debt_id, tx_id, "500.00", "0.00", correlation_id)
    """

    @staticmethod
    def transaction_created(
        user_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction recorded: {transaction_type} {amount}",
            details={"type": transaction_type, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        user_id: str,
        transaction_id: UUID,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction updated ({len(changed_fields)} fields)",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        user_id: str,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def budget_set(
        user_id: str,
        budget_id: UUID,
        category_id: UUID,
        amount: str,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget set to {amount} for {year}-{month:02d}",
            details={
                "category_id": str(category_id),
                "amount": amount,
                "month": month,
                "year": year,
            },
            is_user_action=True,
        )

    @staticmethod
    def budget_deleted(
        user_id: str,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DELETED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description="Budget deleted",
            is_user_action=True,
        )

    @staticmethod
    def debt_changed(
        event_type: AuditEventType,
        user_id: str,
        debt_id: UUID,
        name: str,
        remaining_balance: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = {
            AuditEventType.DEBT_CREATED: "created",
            AuditEventType.DEBT_UPDATED: "updated",
            AuditEventType.DEBT_DELETED: "deleted",
        }[event_type]
        details = {"name": name}
        if remaining_balance is not None:
            details["remaining_balance"] = remaining_balance
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description=f"Debt {verb}: {name}",
            details=details,
            is_user_action=True,
        )

    @staticmethod
    def debt_paid(
        user_id: str,
        debt_id: UUID,
        transaction_id: UUID,
        amount: str,
        remaining_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_PAID,
            user_id=user_id,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description=f"Debt payment of {amount}, {remaining_balance} remaining",
            details={
                "transaction_id": str(transaction_id),
                "amount": amount,
                "remaining_balance": remaining_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        user_id: str,
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=subject,
            correlation_id=correlation_id,
            description=f"{subject} rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def context_built(
        user_id: str,
        context_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTEXT_BUILT,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="coach",
            correlation_id=correlation_id,
            description="Financial context built",
            details={"context_length": context_length},
        )

    @staticmethod
    def coach_replied(
        user_id: str,
        message_count: int,
        reply_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COACH_REPLIED,
            user_id=user_id,
            entity_type="coach",
            correlation_id=correlation_id,
            description=f"Coach replied to a {message_count}-message conversation",
            details={
                "message_count": message_count,
                "reply_length": reply_length,
            },
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
