"""
Audit Logger

DESIGN DECISION: Every change to a user's ledger is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. User can see how their balances changed over time

Writes go to the local structlog stream first, then to the AuditLog
worksheet. A failed worksheet write is logged and reported as False;
it never propagates into the ledger flow that triggered it.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_coach.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from budget_coach.services.storage import AuditStorageInterface


# JSON lines on stdout
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """Records ledger and coach events to structlog and, when given, audit storage."""

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Emit the event locally, then append it to storage.

        Returns False only when the storage append failed.
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_created(
        self,
        user_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_created(
            user_id=user_id,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        user_id: str,
        transaction_id: UUID,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            user_id=user_id,
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        user_id: str,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            user_id=user_id,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_budget_set(
        self,
        user_id: str,
        budget_id: UUID,
        category_id: UUID,
        amount: str,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_set(
            user_id=user_id,
            budget_id=budget_id,
            category_id=category_id,
            amount=amount,
            month=month,
            year=year,
            correlation_id=correlation_id,
        ))

    async def log_budget_deleted(
        self,
        user_id: str,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_deleted(
            user_id=user_id,
            budget_id=budget_id,
            correlation_id=correlation_id,
        ))

    async def log_debt_changed(
        self,
        event_type: AuditEventType,
        user_id: str,
        debt_id: UUID,
        name: str,
        remaining_balance: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log debt creation, update or deletion."""
        await self.log(AuditEventBuilder.debt_changed(
            event_type=event_type,
            user_id=user_id,
            debt_id=debt_id,
            name=name,
            remaining_balance=remaining_balance,
            correlation_id=correlation_id,
        ))

    async def log_debt_paid(
        self,
        user_id: str,
        debt_id: UUID,
        transaction_id: UUID,
        amount: str,
        remaining_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.debt_paid(
            user_id=user_id,
            debt_id=debt_id,
            transaction_id=transaction_id,
            amount=amount,
            remaining_balance=remaining_balance,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        user_id: str,
        subject: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            user_id=user_id,
            subject=subject,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_context_built(
        self,
        user_id: str,
        context_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.context_built(
            user_id=user_id,
            context_length=context_length,
            correlation_id=correlation_id,
        ))

    async def log_coach_replied(
        self,
        user_id: str,
        message_count: int,
        reply_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.coach_replied(
            user_id=user_id,
            message_count=message_count,
            reply_length=reply_length,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """One id per user action (e.g. a debt payment), shared by all its events."""
    return uuid4()
