"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use fake backends for testing
3. Keep business logic decoupled from storage implementation

Every ledger method takes the owning user_id. Implementations MUST filter
reads on it and refuse to touch rows owned by anyone else; this is the
only thing standing between two users' data.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from budget_coach.models.finance import (
    Budget,
    Category,
    Debt,
    Transaction,
    TransactionType,
)
from budget_coach.models.audit import AuditEvent


class CategoryStorageInterface(ABC):
    """Shared category catalogue."""

    @abstractmethod
    async def list_categories(
        self,
        category_type: Optional[TransactionType] = None,
    ) -> list[Category]:
        """
        List categories ordered by name.

        Args:
            category_type: Only return categories of this type
        """
        pass

    @abstractmethod
    async def get_category(self, category_id: UUID) -> Optional[Category]:
        pass

    @abstractmethod
    async def find_category(
        self,
        name: str,
        category_type: TransactionType,
    ) -> Optional[Category]:
        """Find a category by exact name and type."""
        pass


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage.

    Transactions returned from reads carry the joined category and,
    for debt payments, the paid debt's name.
    """

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        """
        Save a new transaction.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        """Return the user's transaction, or None if missing or not theirs."""
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Overwrite an existing transaction.

        Raises:
            NotFoundError: If the user has no such transaction
        """
        pass

    @abstractmethod
    async def delete_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
    ) -> bool:
        """Delete a transaction. Returns False if nothing matched."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions, newest first.

        Args:
            user_id: Owner
            date_from: Only transactions on or after this date
            date_to: Only transactions on or before this date
            transaction_type: Only this type
            limit: Maximum number of results (None for all)
        """
        pass


class BudgetStorageInterface(ABC):
    """Monthly budgets, unique per user, category, month and year."""

    @abstractmethod
    async def list_budgets(
        self,
        user_id: str,
        month: int,
        year: int,
    ) -> list[Budget]:
        """List budgets for one month, largest amount first, with category joined."""
        pass

    @abstractmethod
    async def upsert_budget(self, budget: Budget) -> Budget:
        """
        Insert the budget, or overwrite the amount of the existing budget
        with the same (user_id, category_id, month, year).

        Returns:
            The stored budget (keeps the existing id on overwrite)
        """
        pass

    @abstractmethod
    async def delete_budget(self, user_id: str, budget_id: UUID) -> bool:
        pass


class DebtStorageInterface(ABC):
    """Tracked debts."""

    @abstractmethod
    async def save_debt(self, debt: Debt) -> bool:
        pass

    @abstractmethod
    async def get_debt(self, user_id: str, debt_id: UUID) -> Optional[Debt]:
        pass

    @abstractmethod
    async def update_debt(self, debt: Debt) -> bool:
        """
        Overwrite an existing debt.

        Raises:
            NotFoundError: If the user has no such debt
        """
        pass

    @abstractmethod
    async def delete_debt(self, user_id: str, debt_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_debts(
        self,
        user_id: str,
        active_only: bool = False,
    ) -> list[Debt]:
        """
        List a user's debts, largest remaining balance first.

        Args:
            active_only: Skip debts that are fully paid off
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
