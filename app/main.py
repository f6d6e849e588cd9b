"""
Streamlit Frontend for Budget Coach

A thin shell over the orchestrator flows.

DESIGN PRINCIPLES:
1. Every write goes through a flow (validated and audited)
2. Validation problems are shown in plain language
3. The coach page shows exactly the snapshot the coach receives
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from budget_coach.agents import CoachError
from budget_coach.audit import create_correlation_id
from budget_coach.config import get_settings, validate_all_settings
from budget_coach.models import (
    ChatMessage,
    ChatRole,
    DebtCreate,
    DebtPayment,
    DebtType,
    DebtUpdate,
    RecurringSchedule,
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
    format_money,
)
from budget_coach.orchestrator import (
    AppComponents,
    BudgetFlow,
    CoachFlow,
    DebtFlow,
    LedgerFlow,
    create_app_components,
)
from budget_coach.services.storage import StorageError
from budget_coach.validation import LedgerValidationError, LedgerValidator


# Page configuration
st.set_page_config(
    page_title="Budget Coach",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components()


def money(amount: Decimal) -> str:
    return format_money(amount, get_settings().app.currency_symbol)


def to_cents(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def show_validation_error(validator: LedgerValidator, error: LedgerValidationError):
    st.error(validator.get_user_friendly_summary(error.result))


def main():
    """Main application entry point."""
    st.sidebar.title("💰 Budget Coach")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Overview", "🧾 Transactions", "🎯 Budgets", "💳 Debts", "🤖 Coach", "⚙️ Settings"],
        index=0,
    )

    if page == "⚙️ Settings":
        render_settings_page()
        return

    try:
        components = get_components()
    except StorageError as e:
        st.error(f"Failed to initialize: {e}")
        render_settings_page()
        return

    user_id = get_settings().app.user_id

    if page == "📊 Overview":
        render_overview_page(components.coach, components.budgets, user_id)
    elif page == "🧾 Transactions":
        render_transactions_page(components.ledger, components.validator, user_id)
    elif page == "🎯 Budgets":
        render_budgets_page(
            components.ledger, components.budgets, components.validator, user_id
        )
    elif page == "💳 Debts":
        render_debts_page(components.debts, components.validator, user_id)
    elif page == "🤖 Coach":
        render_coach_page(components.coach, user_id)


def render_overview_page(coach_flow: CoachFlow, budget_flow: BudgetFlow, user_id: str):
    """Render the monthly snapshot and the budget table."""
    st.title("📊 This Month")
    today = date.today()

    context = run_async(coach_flow.build_context(user_id))
    st.code(context, language=None)

    st.markdown("### Budgets")
    try:
        rows = run_async(budget_flow.category_spending(user_id, today.month, today.year))
    except StorageError as e:
        st.error(f"Could not load budgets: {e}")
        return

    if not rows:
        st.info("No budgets set for this month yet.")
        return

    st.dataframe(
        [
            {
                "Category": row.category_name,
                "Spent": money(row.amount),
                "Budget": money(row.budget),
                "Used": f"{row.percent_used:.0f}%" if row.percent_used is not None else "N/A",
            }
            for row in rows
        ],
        use_container_width=True,
    )


def render_transactions_page(
    ledger_flow: LedgerFlow,
    validator: LedgerValidator,
    user_id: str,
):
    """Render the add and edit forms and the recent transaction list."""
    st.title("🧾 Transactions")

    categories = run_async(ledger_flow.list_categories())

    with st.form("add_transaction"):
        col1, col2 = st.columns(2)
        with col1:
            tx_type = st.selectbox(
                "Type",
                options=[TransactionType.EXPENSE, TransactionType.INCOME, TransactionType.OTHER_REVENUE],
                format_func=lambda t: t.value.replace("_", " ").title(),
            )
            category = st.selectbox(
                "Category",
                options=categories,
                format_func=lambda c: c.name,
            )
            amount = st.number_input("Amount", min_value=0.01, step=1.0, format="%.2f")
        with col2:
            tx_date = st.date_input("Date", value=date.today())
            description = st.text_input("Description")
            recurring = st.checkbox(
                "Recurring salary (15th and 30th)",
                help=f"Next pay date: {ledger_flow.next_pay_date()}",
            )
        notes = st.text_area("Notes")

        if st.form_submit_button("💾 Save", type="primary") and category:
            try:
                tx = run_async(ledger_flow.add_transaction(
                    user_id,
                    TransactionCreate(
                        amount=to_cents(amount),
                        type=tx_type,
                        category_id=category.id,
                        description=description or None,
                        transaction_date=tx_date,
                        notes=notes or None,
                        recurring_schedule=RecurringSchedule.BI_MONTHLY if recurring else None,
                    ),
                    correlation_id=create_correlation_id(),
                ))
                st.success(f"Saved {tx.type.value} of {money(tx.amount)}")
            except LedgerValidationError as e:
                show_validation_error(validator, e)

    st.markdown("### Recent")
    transactions = run_async(ledger_flow.list_transactions(user_id, limit=50))
    if not transactions:
        st.info("No transactions yet. Add your first one above.")
        return

    for tx in transactions:
        col1, col2 = st.columns([5, 1])
        sign = "-" if tx.type.is_outflow else "+"
        col1.markdown(
            f"**{tx.display_description}** ({tx.category_label}) · "
            f"{tx.transaction_date.isoformat()} · {sign}{money(tx.amount)}"
        )
        if col2.button("Delete", key=f"delete_{tx.id}"):
            run_async(ledger_flow.delete_transaction(user_id, tx.id))
            st.rerun()

    # Debt payments are changed through the debt they paid
    editable = [tx for tx in transactions if tx.type != TransactionType.DEBT_PAYMENT]
    if not editable:
        return

    st.markdown("### Edit")
    tx = st.selectbox(
        "Transaction",
        options=editable,
        format_func=lambda t: f"{t.transaction_date.isoformat()} · {t.display_description}",
    )
    category_index = next(
        (i for i, c in enumerate(categories) if c.id == tx.category_id), 0
    )
    with st.form(f"edit_transaction_{tx.id}"):
        col1, col2 = st.columns(2)
        with col1:
            category = st.selectbox(
                "Category",
                options=categories,
                index=category_index,
                format_func=lambda c: c.name,
            )
            amount = st.number_input(
                "Amount", min_value=0.01, value=float(tx.amount), step=1.0, format="%.2f"
            )
        with col2:
            tx_date = st.date_input("Date", value=tx.transaction_date)
            description = st.text_input("Description", value=tx.description or "")
        notes = st.text_area("Notes", value=tx.notes or "")

        if st.form_submit_button("💾 Update"):
            try:
                run_async(ledger_flow.update_transaction(
                    user_id,
                    tx.id,
                    TransactionUpdate(
                        amount=to_cents(amount),
                        type=category.type,
                        category_id=category.id,
                        description=description or None,
                        transaction_date=tx_date,
                        notes=notes or None,
                    ),
                    correlation_id=create_correlation_id(),
                ))
                st.rerun()
            except LedgerValidationError as e:
                show_validation_error(validator, e)


def render_budgets_page(
    ledger_flow: LedgerFlow,
    budget_flow: BudgetFlow,
    validator: LedgerValidator,
    user_id: str,
):
    """Render the budget form and this month's budgets."""
    st.title("🎯 Budgets")
    today = date.today()

    col1, col2 = st.columns(2)
    with col1:
        month = st.selectbox("Month", options=list(range(1, 13)), index=today.month - 1)
    with col2:
        year = st.number_input("Year", min_value=2000, max_value=2100, value=today.year)

    categories = run_async(ledger_flow.list_categories(TransactionType.EXPENSE))
    with st.form("set_budget"):
        category = st.selectbox("Category", options=categories, format_func=lambda c: c.name)
        amount = st.number_input("Monthly budget", min_value=0.0, step=100.0, format="%.2f")
        if st.form_submit_button("💾 Save budget", type="primary") and category:
            try:
                run_async(budget_flow.set_budget(
                    user_id,
                    category.id,
                    to_cents(amount),
                    int(month),
                    int(year),
                ))
                st.success(f"Budget for {category.name} saved")
            except LedgerValidationError as e:
                show_validation_error(validator, e)

    budgets = run_async(budget_flow.list_budgets(user_id, int(month), int(year)))
    if not budgets:
        st.info("No budgets for this month.")
        return

    for budget in budgets:
        col1, col2 = st.columns([5, 1])
        name = budget.category.name if budget.category else "Unknown"
        col1.markdown(f"**{name}**: {money(budget.amount)}")
        if col2.button("Delete", key=f"delete_budget_{budget.id}"):
            run_async(budget_flow.delete_budget(user_id, budget.id))
            st.rerun()


def render_debts_page(debt_flow: DebtFlow, validator: LedgerValidator, user_id: str):
    """Render debts with pay, edit and add forms."""
    st.title("💳 Debts")

    debts = run_async(debt_flow.list_debts(user_id))
    active = [d for d in debts if d.is_active]

    for debt in debts:
        paid = debt.amount_paid / debt.total_amount if debt.total_amount else Decimal("1")
        st.markdown(
            f"**{debt.name}** ({debt.type.value.replace('_', ' ')}): "
            f"{money(debt.remaining_balance)} remaining of {money(debt.total_amount)}"
        )
        st.progress(float(paid))

    if active:
        with st.form("pay_debt"):
            st.markdown("### Make a payment")
            debt = st.selectbox("Debt", options=active, format_func=lambda d: d.name)
            amount = st.number_input("Amount", min_value=0.01, step=100.0, format="%.2f")
            pay_date = st.date_input("Payment date", value=date.today())
            notes = st.text_input("Notes")
            if st.form_submit_button("💸 Pay", type="primary"):
                try:
                    updated, _ = run_async(debt_flow.pay_debt(
                        user_id,
                        DebtPayment(
                            debt_id=debt.id,
                            amount=to_cents(amount),
                            payment_date=pay_date,
                            notes=notes or None,
                        ),
                    ))
                    st.success(f"{updated.name}: {money(updated.remaining_balance)} left")
                except LedgerValidationError as e:
                    show_validation_error(validator, e)

    if debts:
        st.markdown("### Edit a debt")
        debt = st.selectbox("Debt to edit", options=debts, format_func=lambda d: d.name)
        with st.form(f"edit_debt_{debt.id}"):
            name = st.text_input("Name", value=debt.name)
            debt_type = st.selectbox(
                "Type",
                options=list(DebtType),
                index=list(DebtType).index(debt.type),
                format_func=lambda t: t.value.replace("_", " ").title(),
            )
            col1, col2 = st.columns(2)
            with col1:
                total = st.number_input(
                    "Total amount", min_value=0.0, value=float(debt.total_amount),
                    step=100.0, format="%.2f",
                )
                interest = st.number_input(
                    "Interest rate (%)", min_value=0.0, max_value=100.0,
                    value=float(debt.interest_rate or 0), step=0.5,
                )
            with col2:
                remaining = st.number_input(
                    "Remaining balance", min_value=0.0, value=float(debt.remaining_balance),
                    step=100.0, format="%.2f",
                )
                due_date = st.date_input("Due date", value=debt.due_date)
            if st.form_submit_button("💾 Update debt") and name:
                try:
                    run_async(debt_flow.update_debt(
                        user_id,
                        debt.id,
                        DebtUpdate(
                            name=name,
                            type=debt_type,
                            total_amount=to_cents(total),
                            remaining_balance=to_cents(remaining),
                            interest_rate=to_cents(interest) if interest else None,
                            due_date=due_date,
                        ),
                    ))
                    st.rerun()
                except LedgerValidationError as e:
                    show_validation_error(validator, e)

    with st.form("add_debt"):
        st.markdown("### Add a debt")
        name = st.text_input("Name")
        debt_type = st.selectbox(
            "Type",
            options=list(DebtType),
            format_func=lambda t: t.value.replace("_", " ").title(),
        )
        total = st.number_input("Total amount", min_value=0.0, step=100.0, format="%.2f")
        remaining = st.number_input("Remaining balance", min_value=0.0, step=100.0, format="%.2f")
        if st.form_submit_button("💾 Save debt") and name:
            run_async(debt_flow.create_debt(
                user_id,
                DebtCreate(
                    name=name,
                    type=debt_type,
                    total_amount=to_cents(total),
                    remaining_balance=to_cents(remaining),
                ),
            ))
            st.rerun()


def render_coach_page(coach_flow: CoachFlow, user_id: str):
    """Render the coach chat."""
    st.title("🤖 Financial Coach")

    if not coach_flow.is_configured:
        st.warning("AI service is not configured. Add GEMINI_API_KEY to your environment.")
        return

    if "chat_history" not in st.session_state:
        st.session_state.chat_history = []

    for message in st.session_state.chat_history:
        with st.chat_message(message.role.value):
            st.markdown(message.content)

    prompt = st.chat_input("Ask about your spending, budgets or debts")
    if not prompt:
        return

    st.session_state.chat_history.append(ChatMessage(role=ChatRole.USER, content=prompt))
    with st.chat_message("user"):
        st.markdown(prompt)

    context = run_async(coach_flow.build_context(user_id))
    with st.chat_message("assistant"):
        try:
            reply = st.write_stream(coach_flow.stream(st.session_state.chat_history, context))
        except CoachError as e:
            st.error(str(e))
            return

    st.session_state.chat_history.append(ChatMessage(role=ChatRole.ASSISTANT, content=reply))


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI coach)", "gemini"),
        ("App", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Connected")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
