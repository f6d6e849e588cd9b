"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Users can view and export their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal budget)
- No transactions (the debt payment flow orders its writes carefully)
- No row-level security, so every query filters on user_id in Python

Each entity lives in its own worksheet with a header row. The
implementation follows the abstract interfaces, so we can swap to
PostgreSQL later without changing business logic.
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_coach.config import GoogleSheetsSettings, get_settings
from budget_coach.models.audit import AuditEvent, AuditEventType, AuditSeverity
from budget_coach.models.finance import (
    Budget,
    Category,
    Debt,
    DebtType,
    RecurringSchedule,
    Transaction,
    TransactionType,
)
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


logger = structlog.get_logger(__name__)


CATEGORY_COLUMNS = [
    "id",
    "name",
    "type",
    "color",
    "icon_name",
    "force_income",
]

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "amount",
    "type",
    "category_id",
    "debt_id",
    "description",
    "transaction_date",
    "notes",
    "recurring_schedule",
]

BUDGET_COLUMNS = [
    "id",
    "user_id",
    "category_id",
    "amount",
    "month",
    "year",
    "created_at",
]

DEBT_COLUMNS = [
    "id",
    "user_id",
    "name",
    "type",
    "total_amount",
    "remaining_balance",
    "interest_rate",
    "due_date",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Seeded into a freshly created Categories sheet.
# (name, type, color, icon_name, force_income)
DEFAULT_CATEGORIES = [
    ("Food & Dining", "expense", "#f97316", "food", False),
    ("Transportation", "expense", "#3b82f6", "transport", False),
    ("Housing", "expense", "#8b5cf6", "home", False),
    ("Utilities", "expense", "#06b6d4", "utilities", False),
    ("Health", "expense", "#ef4444", "health", False),
    ("Shopping", "expense", "#ec4899", "shopping", False),
    ("Entertainment", "expense", "#eab308", "entertainment", False),
    ("Education", "expense", "#14b8a6", "education", False),
    ("Debt Payment", "expense", "#64748b", "debt", False),
    ("Other Expense", "expense", "#94a3b8", "expense", False),
    ("Salary", "income", "#16a34a", "salary", True),
    ("Freelance", "income", "#22c55e", "income", False),
    ("Business", "income", "#15803d", "business", False),
    ("Gifts", "other_revenue", "#a855f7", "gift", False),
    ("Interest", "other_revenue", "#0ea5e9", "savings", False),
    ("Other Revenue", "other_revenue", "#84cc16", "income", False),
]

# Only transient API failures are worth another attempt
sheets_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows and blanks."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _optional_date(value: str) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _timestamp(value: str) -> datetime:
    """Parse a stored timestamp; hand-entered ones without an offset are UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_uuid(value: str) -> Optional[UUID]:
    return UUID(value) if value else None


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication, worksheet creation and retry logic for API calls.
    """

    def __init__(
        self,
        settings: Optional[GoogleSheetsSettings] = None,
        spreadsheet: Optional[gspread.Spreadsheet] = None,
    ):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet = spreadsheet
        self._settings = settings or get_settings().google_sheets
        self._worksheets: dict[str, gspread.Worksheet] = {}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
        seed_rows: Optional[list[list]] = None,
    ) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row when missing."""
        if title in self._worksheets:
            return self._worksheets[title]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
            if seed_rows:
                sheet.append_rows(seed_rows, value_input_option="RAW")
            logger.info("worksheet_created", title=title, seeded=len(seed_rows or []))

        self._worksheets[title] = sheet
        return sheet

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the Categories worksheet, seeding default categories."""
        title = self._settings.categories_sheet_name
        if title in self._worksheets:
            return self._worksheets[title]

        seed = [
            category_to_row(Category(
                name=name,
                type=TransactionType(type_),
                color=color,
                icon_name=icon,
                force_income=force_income,
            ))
            for name, type_, color, icon, force_income in DEFAULT_CATEGORIES
        ]
        return self._get_or_create(
            title,
            CATEGORY_COLUMNS,
            rows=200,
            seed_rows=seed,
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=5000,
        )

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(
            self._settings.budgets_sheet_name,
            BUDGET_COLUMNS,
        )

    def get_debts_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(
            self._settings.debts_sheet_name,
            DEBT_COLUMNS,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    # ------------------------------------------------------------------
    # Row-level I/O (retried on API errors)
    # ------------------------------------------------------------------

    @sheets_retry
    def read_rows(self, sheet: gspread.Worksheet) -> list[list[str]]:
        """All data rows, header excluded."""
        return sheet.get_all_values()[1:]

    @sheets_retry
    def append(self, sheet: gspread.Worksheet, row: list) -> None:
        sheet.append_row(row, value_input_option="RAW")

    @sheets_retry
    def overwrite(self, sheet: gspread.Worksheet, row_number: int, row: list) -> None:
        """Replace a whole row. row_number is 1-based and counts the header."""
        sheet.update(
            range_name=f"A{row_number}",
            values=[row],
            value_input_option="RAW",
        )

    @sheets_retry
    def delete(self, sheet: gspread.Worksheet, row_number: int) -> None:
        sheet.delete_rows(row_number)


def _find_owned_row(
    rows: list[list[str]],
    entity_id: UUID,
    user_id: str,
) -> tuple[Optional[int], Optional[list[str]]]:
    """
    Locate a row by id that belongs to user_id.

    Returns (sheet_row_number, row); row 1 is the header so data starts at 2.
    """
    for idx, row in enumerate(rows, start=2):
        if row and row[0] == str(entity_id) and _cell(row, 1) == user_id:
            return idx, row
    return None, None


# =============================================================================
# CATEGORIES
# =============================================================================

def category_to_row(category: Category) -> list:
    return [
        str(category.id),
        category.name,
        category.type.value,
        category.color or "",
        category.icon_name or "",
        str(category.force_income),
    ]


def row_to_category(row: list) -> Category:
    return Category(
        id=UUID(_cell(row, 0)),
        name=_cell(row, 1),
        type=TransactionType(_cell(row, 2)),
        color=_cell(row, 3) or None,
        icon_name=_cell(row, 4) or None,
        force_income=_cell(row, 5).lower() == "true",
    )


def _load_categories(client: GoogleSheetsClient) -> dict[UUID, Category]:
    categories = {}
    for row in client.read_rows(client.get_categories_sheet()):
        if not row or not row[0]:
            continue
        try:
            category = row_to_category(row)
        except (ValueError, InvalidOperation):
            logger.warning("malformed_row_skipped", sheet="categories", row_id=row[0])
            continue
        categories[category.id] = category
    return categories


class GoogleSheetsCategoryStorage(CategoryStorageInterface):
    """Categories are shared; rows carry no user_id."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def list_categories(
        self,
        category_type: Optional[TransactionType] = None,
    ) -> list[Category]:
        try:
            categories = list(_load_categories(self._client).values())
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}") from e

        if category_type:
            categories = [c for c in categories if c.type == category_type]
        categories.sort(key=lambda c: c.name)
        return categories

    async def get_category(self, category_id: UUID) -> Optional[Category]:
        try:
            return _load_categories(self._client).get(category_id)
        except Exception as e:
            raise StorageError(f"Failed to get category: {e}") from e

    async def find_category(
        self,
        name: str,
        category_type: TransactionType,
    ) -> Optional[Category]:
        for category in await self.list_categories(category_type):
            if category.name == name:
                return category
        return None


# =============================================================================
# TRANSACTIONS
# =============================================================================

class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    Reads join the category (Categories sheet) and, for debt payments,
    the debt name (Debts sheet).
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, tx: Transaction) -> list:
        return [
            str(tx.id),
            tx.user_id,
            tx.created_at.isoformat(),
            str(tx.amount),
            tx.type.value,
            str(tx.category_id),
            str(tx.debt_id) if tx.debt_id else "",
            tx.description or "",
            tx.transaction_date.isoformat(),
            tx.notes or "",
            tx.recurring_schedule.value if tx.recurring_schedule else "",
        ]

    def _row_to_transaction(
        self,
        row: list,
        categories: dict[UUID, Category],
        debt_names: dict[UUID, str],
    ) -> Transaction:
        category_id = UUID(_cell(row, 5))
        debt_id = _optional_uuid(_cell(row, 6))
        schedule = _cell(row, 10)
        return Transaction(
            id=UUID(_cell(row, 0)),
            user_id=_cell(row, 1),
            created_at=_timestamp(_cell(row, 2)),
            amount=Decimal(_cell(row, 3)),
            type=TransactionType(_cell(row, 4)),
            category_id=category_id,
            debt_id=debt_id,
            description=_cell(row, 7) or None,
            transaction_date=date.fromisoformat(_cell(row, 8)),
            notes=_cell(row, 9) or None,
            recurring_schedule=RecurringSchedule(schedule) if schedule else None,
            category=categories.get(category_id),
            debt_name=debt_names.get(debt_id) if debt_id else None,
        )

    def _load_debt_names(self, user_id: str) -> dict[UUID, str]:
        names = {}
        for row in self._client.read_rows(self._client.get_debts_sheet()):
            if row and row[0] and _cell(row, 1) == user_id:
                names[UUID(row[0])] = _cell(row, 2)
        return names

    async def save_transaction(self, transaction: Transaction) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            self._client.append(sheet, self._transaction_to_row(transaction))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}") from e

    async def get_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        try:
            rows = self._client.read_rows(self._client.get_transactions_sheet())
            _, row = _find_owned_row(rows, transaction_id, user_id)
            if row is None:
                return None
            return self._row_to_transaction(
                row,
                _load_categories(self._client),
                self._load_debt_names(user_id),
            )
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}") from e

    async def update_transaction(self, transaction: Transaction) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            row_number, _ = _find_owned_row(
                self._client.read_rows(sheet),
                transaction.id,
                transaction.user_id,
            )
            if row_number is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            self._client.overwrite(
                sheet, row_number, self._transaction_to_row(transaction)
            )
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}") from e

    async def delete_transaction(
        self,
        user_id: str,
        transaction_id: UUID,
    ) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            row_number, _ = _find_owned_row(
                self._client.read_rows(sheet), transaction_id, user_id
            )
            if row_number is None:
                return False
            self._client.delete(sheet, row_number)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}") from e

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        try:
            rows = self._client.read_rows(self._client.get_transactions_sheet())
            categories = _load_categories(self._client)
            debt_names = self._load_debt_names(user_id)
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}") from e

        transactions = []
        for row in rows:
            if not row or not row[0] or _cell(row, 1) != user_id:
                continue
            try:
                tx = self._row_to_transaction(row, categories, debt_names)
            except (ValueError, InvalidOperation):
                logger.warning("malformed_row_skipped", sheet="transactions", row_id=row[0])
                continue

            if date_from and tx.transaction_date < date_from:
                continue
            if date_to and tx.transaction_date > date_to:
                continue
            if transaction_type and tx.type != transaction_type:
                continue

            transactions.append(tx)

        # Newest first
        transactions.sort(
            key=lambda t: (t.transaction_date, t.created_at),
            reverse=True,
        )
        if limit is not None:
            transactions = transactions[:limit]
        return transactions


# =============================================================================
# BUDGETS
# =============================================================================

class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """One row per (user, category, month, year)."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _budget_to_row(self, budget: Budget) -> list:
        return [
            str(budget.id),
            budget.user_id,
            str(budget.category_id),
            str(budget.amount),
            str(budget.month),
            str(budget.year),
            budget.created_at.isoformat(),
        ]

    def _row_to_budget(
        self,
        row: list,
        categories: dict[UUID, Category],
    ) -> Budget:
        category_id = UUID(_cell(row, 2))
        return Budget(
            id=UUID(_cell(row, 0)),
            user_id=_cell(row, 1),
            category_id=category_id,
            amount=Decimal(_cell(row, 3)),
            month=int(_cell(row, 4)),
            year=int(_cell(row, 5)),
            created_at=_timestamp(_cell(row, 6)),
            category=categories.get(category_id),
        )

    async def list_budgets(
        self,
        user_id: str,
        month: int,
        year: int,
    ) -> list[Budget]:
        try:
            rows = self._client.read_rows(self._client.get_budgets_sheet())
            categories = _load_categories(self._client)
        except Exception as e:
            raise StorageError(f"Failed to list budgets: {e}") from e

        budgets = []
        for row in rows:
            if not row or not row[0] or _cell(row, 1) != user_id:
                continue
            if _cell(row, 4) != str(month) or _cell(row, 5) != str(year):
                continue
            try:
                budgets.append(self._row_to_budget(row, categories))
            except (ValueError, InvalidOperation):
                logger.warning("malformed_row_skipped", sheet="budgets", row_id=row[0])

        budgets.sort(key=lambda b: b.amount, reverse=True)
        return budgets

    async def upsert_budget(self, budget: Budget) -> Budget:
        try:
            sheet = self._client.get_budgets_sheet()
            rows = self._client.read_rows(sheet)
            categories = _load_categories(self._client)

            for idx, row in enumerate(rows, start=2):
                if (
                    row
                    and _cell(row, 1) == budget.user_id
                    and _cell(row, 2) == str(budget.category_id)
                    and _cell(row, 4) == str(budget.month)
                    and _cell(row, 5) == str(budget.year)
                ):
                    existing = self._row_to_budget(row, categories)
                    stored = existing.model_copy(update={"amount": budget.amount})
                    self._client.overwrite(sheet, idx, self._budget_to_row(stored))
                    return stored

            self._client.append(sheet, self._budget_to_row(budget))
            return budget.model_copy(
                update={"category": categories.get(budget.category_id)}
            )
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}") from e

    async def delete_budget(self, user_id: str, budget_id: UUID) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            row_number, _ = _find_owned_row(
                self._client.read_rows(sheet), budget_id, user_id
            )
            if row_number is None:
                return False
            self._client.delete(sheet, row_number)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete budget: {e}") from e


# =============================================================================
# DEBTS
# =============================================================================

class GoogleSheetsDebtStorage(DebtStorageInterface):
    """Google Sheets implementation of debt storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _debt_to_row(self, debt: Debt) -> list:
        return [
            str(debt.id),
            debt.user_id,
            debt.name,
            debt.type.value,
            str(debt.total_amount),
            str(debt.remaining_balance),
            str(debt.interest_rate) if debt.interest_rate is not None else "",
            debt.due_date.isoformat() if debt.due_date else "",
            debt.created_at.isoformat(),
        ]

    def _row_to_debt(self, row: list) -> Debt:
        rate = _cell(row, 6)
        return Debt(
            id=UUID(_cell(row, 0)),
            user_id=_cell(row, 1),
            name=_cell(row, 2),
            type=DebtType(_cell(row, 3)),
            total_amount=Decimal(_cell(row, 4)),
            remaining_balance=Decimal(_cell(row, 5)),
            interest_rate=Decimal(rate) if rate else None,
            due_date=_optional_date(_cell(row, 7)),
            created_at=_timestamp(_cell(row, 8)),
        )

    async def save_debt(self, debt: Debt) -> bool:
        try:
            self._client.append(self._client.get_debts_sheet(), self._debt_to_row(debt))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save debt: {e}") from e

    async def get_debt(self, user_id: str, debt_id: UUID) -> Optional[Debt]:
        try:
            rows = self._client.read_rows(self._client.get_debts_sheet())
            _, row = _find_owned_row(rows, debt_id, user_id)
            return self._row_to_debt(row) if row is not None else None
        except Exception as e:
            raise StorageError(f"Failed to get debt: {e}") from e

    async def update_debt(self, debt: Debt) -> bool:
        try:
            sheet = self._client.get_debts_sheet()
            row_number, _ = _find_owned_row(
                self._client.read_rows(sheet), debt.id, debt.user_id
            )
            if row_number is None:
                raise NotFoundError(f"Debt not found: {debt.id}")
            self._client.overwrite(sheet, row_number, self._debt_to_row(debt))
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update debt: {e}") from e

    async def delete_debt(self, user_id: str, debt_id: UUID) -> bool:
        try:
            sheet = self._client.get_debts_sheet()
            row_number, _ = _find_owned_row(
                self._client.read_rows(sheet), debt_id, user_id
            )
            if row_number is None:
                return False
            self._client.delete(sheet, row_number)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete debt: {e}") from e

    async def list_debts(
        self,
        user_id: str,
        active_only: bool = False,
    ) -> list[Debt]:
        try:
            rows = self._client.read_rows(self._client.get_debts_sheet())
        except Exception as e:
            raise StorageError(f"Failed to list debts: {e}") from e

        debts = []
        for row in rows:
            if not row or not row[0] or _cell(row, 1) != user_id:
                continue
            try:
                debt = self._row_to_debt(row)
            except (ValueError, InvalidOperation):
                logger.warning("malformed_row_skipped", sheet="debts", row_id=row[0])
                continue
            if active_only and not debt.is_active:
                continue
            debts.append(debt)

        debts.sort(key=lambda d: d.remaining_balance, reverse=True)
        return debts


# =============================================================================
# AUDIT
# =============================================================================

class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        details = _cell(row, 9)
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=_timestamp(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            user_id=_cell(row, 4) or None,
            entity_type=_cell(row, 5) or None,
            entity_id=_optional_uuid(_cell(row, 6)),
            correlation_id=_optional_uuid(_cell(row, 7)),
            description=_cell(row, 8),
            details=json.loads(details) if details else {},
            error_message=_cell(row, 10) or None,
            is_user_action=_cell(row, 11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        events = []
        for row in self._client.read_rows(self._client.get_audit_sheet()):
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, InvalidOperation):
                continue
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._client.append(self._client.get_audit_sheet(), event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_append_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._read_events()
                if e.correlation_id == correlation_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        if user_id is not None:
            events = [e for e in events if e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
