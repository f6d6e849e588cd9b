"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements Google Sheets as the backend, but designed to be swappable.
"""

from budget_coach.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    DebtStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from budget_coach.services.storage.google_sheets import (
    DEFAULT_CATEGORIES,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsDebtStorage,
    GoogleSheetsTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "CategoryStorageInterface",
    "DebtStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "DEFAULT_CATEGORIES",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDebtStorage",
    "GoogleSheetsTransactionStorage",
]
