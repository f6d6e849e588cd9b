"""Services package."""

from budget_coach.services.storage import (
    AuditStorageInterface,
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
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Storage interfaces
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "CategoryStorageInterface",
    "DebtStorageInterface",
    "TransactionStorageInterface",
    # Storage exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDebtStorage",
    "GoogleSheetsTransactionStorage",
]
