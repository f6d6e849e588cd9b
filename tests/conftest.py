"""
Shared fixtures.

Storage runs against an in-memory stand-in for the gspread Spreadsheet and
Worksheet objects, so the real GoogleSheets* classes are exercised without
any network access.
"""

import asyncio

import gspread
import pytest

from budget_coach.audit import AuditLogger
from budget_coach.config import AppSettings, GoogleSheetsSettings, get_settings
from budget_coach.models import TransactionType
from budget_coach.orchestrator import BudgetFlow, DebtFlow, LedgerFlow
from budget_coach.queries import FinancialContextBuilder, ReportBuilder
from budget_coach.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsDebtStorage,
    GoogleSheetsTransactionStorage,
)
from budget_coach.validation import LedgerValidator


class FakeWorksheet:
    """Keeps rows as lists of strings, like get_all_values() returns them."""

    def __init__(self, title: str):
        self.title = title
        self.rows: list[list[str]] = []

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def append_rows(self, values, value_input_option=None):
        for row in values:
            self.append_row(row)

    def update(self, range_name=None, values=None, value_input_option=None):
        row_number = int(range_name.lstrip("A"))
        self.rows[row_number - 1] = [str(v) for v in values[0]]

    def delete_rows(self, start_index, end_index=None):
        del self.rows[start_index - 1]


class FakeSpreadsheet:
    def __init__(self):
        self.sheets: dict[str, FakeWorksheet] = {}

    def worksheet(self, title: str) -> FakeWorksheet:
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title: str, rows: int, cols: int) -> FakeWorksheet:
        sheet = FakeWorksheet(title)
        self.sheets[title] = sheet
        return sheet


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep real environment variables and .env files out of the tests."""
    for name in (
        "GEMINI_API_KEY",
        "GEMINI_MODEL_NAME",
        "APP_USER_ID",
        "APP_CURRENCY_SYMBOL",
        "APP_TREND_MONTHS",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sheets_settings(tmp_path) -> GoogleSheetsSettings:
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}")
    return GoogleSheetsSettings(
        credentials_path=str(credentials),
        spreadsheet_id="test-spreadsheet",
    )


@pytest.fixture
def spreadsheet() -> FakeSpreadsheet:
    return FakeSpreadsheet()


@pytest.fixture
def sheets_client(sheets_settings, spreadsheet) -> GoogleSheetsClient:
    return GoogleSheetsClient(settings=sheets_settings, spreadsheet=spreadsheet)


@pytest.fixture
def category_storage(sheets_client):
    return GoogleSheetsCategoryStorage(sheets_client)


@pytest.fixture
def transaction_storage(sheets_client):
    return GoogleSheetsTransactionStorage(sheets_client)


@pytest.fixture
def budget_storage(sheets_client):
    return GoogleSheetsBudgetStorage(sheets_client)


@pytest.fixture
def debt_storage(sheets_client):
    return GoogleSheetsDebtStorage(sheets_client)


@pytest.fixture
def audit_storage(sheets_client):
    return GoogleSheetsAuditStorage(sheets_client)


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def validator(category_storage) -> LedgerValidator:
    return LedgerValidator(category_storage)


@pytest.fixture
def reports(transaction_storage, budget_storage) -> ReportBuilder:
    return ReportBuilder(transaction_storage, budget_storage)


@pytest.fixture
def context_builder(reports, transaction_storage, debt_storage):
    return FinancialContextBuilder(
        reports,
        transaction_storage,
        debt_storage,
        settings=AppSettings(),
    )


@pytest.fixture
def ledger_flow(transaction_storage, category_storage, validator, audit_logger):
    return LedgerFlow(
        transaction_storage,
        category_storage,
        validator=validator,
        audit_logger=audit_logger,
    )


@pytest.fixture
def budget_flow(budget_storage, reports, validator, audit_logger):
    return BudgetFlow(budget_storage, reports, validator, audit_logger)


@pytest.fixture
def debt_flow(debt_storage, transaction_storage, validator, audit_logger):
    return DebtFlow(debt_storage, transaction_storage, validator, audit_logger)


@pytest.fixture
def categories(category_storage) -> dict:
    """Seeded default categories by name."""
    return {c.name: c for c in asyncio.run(category_storage.list_categories())}


@pytest.fixture
def expense_category(categories):
    return categories["Food & Dining"]


@pytest.fixture
def salary_category(categories):
    category = categories["Salary"]
    assert category.type == TransactionType.INCOME
    return category
