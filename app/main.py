"""
Streamlit Frontend for FinTrack

This is the dashboard a user opens to record income, expenses and
payments and to see where their money is heading.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every number shown comes from the projection functions
3. Clear error messages in simple language
4. AI insights are optional; a failure is shown inline and nothing else breaks
5. No hidden actions

The UI never does arithmetic of its own: it asks the ProfileFlow for the
active profile and hands it to fintrack.projections.
"""

import asyncio
import calendar
from datetime import date
from decimal import Decimal
from typing import Optional

import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from fintrack.config import DisplayContext, get_settings, validate_all_settings
from fintrack.models import (
    AppPreferences,
    Currency,
    EntityNotFoundError,
    Expense,
    Income,
    InstallmentPayment,
    Language,
    OneTimePayment,
    PaymentStatus,
    Recurrence,
)
from fintrack.orchestrator import (
    DataTransferFlow,
    InsightFlow,
    ProfileFlow,
    create_app_components,
)
from fintrack.projections import (
    expense_breakdown,
    income_breakdown,
    monthly_summary,
    monthly_totals,
    payment_days,
    payments_on,
    project_goal_payoff,
    project_month_balances,
    project_payoff,
    project_years,
    savings_summary,
    upcoming_payments,
)
from fintrack.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="FinTrack",
    page_icon="💶",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

LANGUAGE_LABELS = {
    Language.EN: "English",
    Language.DE: "Deutsch",
    Language.AR: "العربية",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def main():
    """Main application entry point."""
    profile_flow, transfer_flow, insight_flow = get_components()
    preferences = transfer_flow.load_preferences()
    context = DisplayContext(language=preferences.language, currency=preferences.currency)

    st.sidebar.title("💶 FinTrack")

    profiles = profile_flow.list_profiles()
    selected = st.sidebar.selectbox(
        "Profile",
        options=profiles,
        index=profiles.index(profile_flow.active_profile),
    )
    if selected != profile_flow.active_profile:
        _run_action(profile_flow.switch_profile, selected)

    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🧾 Transactions", "🐷 Savings", "📈 Reports", "⚙️ Settings"],
        index=0,
    )

    if page == "📊 Dashboard":
        render_dashboard_page(profile_flow, insight_flow, preferences, context)
    elif page == "🧾 Transactions":
        render_transactions_page(profile_flow, context)
    elif page == "🐷 Savings":
        render_savings_page(profile_flow, context)
    elif page == "📈 Reports":
        render_reports_page(profile_flow, insight_flow, preferences, context)
    elif page == "⚙️ Settings":
        render_settings_page(profile_flow, transfer_flow, preferences)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(
    profile_flow: ProfileFlow,
    insight_flow: InsightFlow,
    preferences: AppPreferences,
    context: DisplayContext,
):
    """Headline numbers, the balance walk and upcoming payments."""
    st.title(f"📊 {profile_flow.active_profile}")
    today = profile_flow.today()
    data = profile_flow.data

    summary = monthly_summary(data, today)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Current balance", context.format_currency(summary.current_balance))
    col2.metric("Monthly income", context.format_currency(summary.monthly_income))
    col3.metric("Monthly outgoing", context.format_currency(summary.total_outgoing))
    col4.metric("Net monthly savings", context.format_currency(summary.net_monthly_savings))

    st.markdown("### Balance this month")
    month = st.date_input("Month", value=today, help="Any day in the month to show")
    walk = project_month_balances(data, month, today, context)
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=[d.label for d in walk],
        y=[float(d.balance) for d in walk],
        mode="lines+markers",
        name="Balance",
    ))
    fig.update_layout(template="plotly_dark", margin=dict(t=30, b=10, l=10, r=10))
    st.plotly_chart(fig, use_container_width=True)

    st.markdown("### Upcoming payments")
    limit = get_settings().app.upcoming_payments_limit
    upcoming = [p for p in upcoming_payments(data, today) if p.due_date >= today][:limit]
    if not upcoming:
        st.info("No payments due for the rest of this month.")
    for payment in upcoming:
        status = "⏳" if payment.is_pending else "✅"
        st.markdown(
            f"{status} **{payment.name}** · {context.day_label(payment.due_date)} · "
            f"{context.format_currency(payment.amount)}"
        )

    render_payment_calendar(data, month, context)

    st.markdown("### AI summary")
    if st.button("✨ Summarize my finances"):
        with st.spinner("Asking Gemini..."):
            outcome = run_async(insight_flow.generate_summary(
                profile_flow.active_profile, data, preferences, today
            ))
        if outcome.ok:
            st.markdown(outcome.text)
        else:
            st.markdown(f"""
            <div class="error-box">
                <p>{outcome.error_message}</p>
            </div>
            """, unsafe_allow_html=True)


def render_payment_calendar(data, month: date, context: DisplayContext):
    """Month grid marking every day with a payment due, and a per-day list."""
    st.markdown(f"### Payment calendar · {context.month_label(month)}")
    due_days = payment_days(data, month)

    for column, weekday in zip(st.columns(7), WEEKDAY_NAMES):
        column.markdown(f"**{weekday}**")
    for week in calendar.monthcalendar(month.year, month.month):
        for column, day_number in zip(st.columns(7), week):
            if day_number == 0:
                continue
            if month.replace(day=day_number) in due_days:
                column.markdown(f"**{day_number}** 💳")
            else:
                column.markdown(str(day_number))

    if not due_days:
        st.info("No payments due this month.")
        return

    day = st.selectbox("Payments on", options=due_days, format_func=context.day_label)
    for payment in payments_on(data, day):
        status = "⏳" if payment.is_pending else "✅"
        st.markdown(f"{status} **{payment.name}** · {context.format_currency(payment.amount)}")


# =============================================================================
# TRANSACTIONS
# =============================================================================

TRANSACTION_KINDS = ["Income", "Expense", "Installment payment", "One-time payment"]


def _build_transaction(
    kind: str,
    name: str,
    amount: Decimal,
    start: date,
    extra: dict,
    transaction_id: Optional[str] = None,
):
    """Build a new transaction, or its replacement when `transaction_id` is given."""
    fields = {"name": name, "amount": amount, "date": start}
    if transaction_id:
        fields["id"] = transaction_id
    if "status" in extra:
        fields["status"] = extra["status"]

    if kind == "Income":
        return Income(recurrence=extra["recurrence"], **fields)
    if kind == "Expense":
        return Expense(recurrence=extra["recurrence"], **fields)
    if kind == "Installment payment":
        # Re-scheduling derives the completion date from the edited values
        return InstallmentPayment.schedule(
            name, amount, start, extra["number_of_payments"], id=transaction_id
        )
    return OneTimePayment(**fields)


def _kind_of(txn) -> str:
    if isinstance(txn, Income):
        return "Income"
    if isinstance(txn, Expense):
        return "Expense"
    if isinstance(txn, InstallmentPayment):
        return "Installment payment"
    return "One-time payment"


def _render_transaction_editor(profile_flow: ProfileFlow, txn):
    kind = _kind_of(txn)
    with st.form(f"edit-{txn.id}"):
        name = st.text_input("Name", value=txn.name)
        amount = st.number_input("Amount", min_value=0.01, value=float(txn.amount), step=10.0)
        start = st.date_input("Date", value=txn.date)
        extra = {}
        if kind in ("Income", "Expense"):
            recurrences = list(Recurrence)
            extra["recurrence"] = st.selectbox(
                "Recurrence",
                options=recurrences,
                index=recurrences.index(txn.recurrence),
                format_func=lambda r: r.value.title(),
            )
            if kind == "Expense" and txn.status is not None:
                extra["status"] = txn.status
        elif kind == "Installment payment":
            extra["number_of_payments"] = st.number_input(
                "Number of payments", min_value=1, value=txn.number_of_payments, step=1
            )
        else:
            extra["status"] = txn.status

        if st.form_submit_button("💾 Save changes"):
            try:
                profile_flow.update_transaction(_build_transaction(
                    kind, name, Decimal(str(amount)), start, extra, transaction_id=txn.id
                ))
                st.rerun()
            except (ValueError, EntityNotFoundError, StorageError) as e:
                st.error(f"Could not save the transaction: {e}")


def render_transactions_page(profile_flow: ProfileFlow, context: DisplayContext):
    """Add, list and remove transactions; set the current balance."""
    st.title("🧾 Transactions")
    data = profile_flow.data

    with st.form("balance_form"):
        balance = st.number_input(
            "Current balance (today, end of day)",
            value=float(data.current_balance),
            step=10.0,
        )
        if st.form_submit_button("Update balance"):
            try:
                profile_flow.set_current_balance(Decimal(str(balance)))
                st.rerun()
            except StorageError as e:
                st.error(f"Could not save the balance: {e}")

    st.markdown("### Add a transaction")
    kind = st.selectbox("Type", TRANSACTION_KINDS)
    with st.form("transaction_form", clear_on_submit=True):
        name = st.text_input("Name", placeholder="e.g., Salary, Rent, Car loan")
        amount = st.number_input("Amount", min_value=0.01, step=10.0)
        start = st.date_input("Date", value=profile_flow.today())
        extra = {}
        if kind in ("Income", "Expense"):
            extra["recurrence"] = st.selectbox(
                "Recurrence",
                options=list(Recurrence),
                index=1,
                format_func=lambda r: r.value.title(),
            )
        elif kind == "Installment payment":
            extra["number_of_payments"] = st.number_input(
                "Number of payments", min_value=1, value=12, step=1
            )

        if st.form_submit_button("➕ Add", type="primary"):
            try:
                txn = _build_transaction(kind, name, Decimal(str(amount)), start, extra)
                profile_flow.add_transaction(txn)
                st.success(f"Added {txn.name}")
            except (ValueError, StorageError) as e:
                st.error(f"Could not add the transaction: {e}")

    st.markdown("---")
    if not data.transactions:
        st.info("No transactions yet. Add your first one above.")
        return

    for txn in sorted(data.transactions, key=lambda t: (t.date, t.name)):
        col1, col2, col3 = st.columns([6, 1, 1])
        label = f"**{txn.name}** · {context.format_currency(txn.amount)} · {getattr(txn.recurrence, 'value', txn.recurrence)} · {txn.date.isoformat()}"
        if isinstance(txn, InstallmentPayment):
            label += f" → {txn.completion_date.isoformat()} ({txn.number_of_payments}x)"
        if isinstance(txn, OneTimePayment):
            label += " · ✅ paid" if txn.status == PaymentStatus.PAID else " · ⏳ pending"
        col1.markdown(label)

        if isinstance(txn, OneTimePayment):
            if col2.button("Toggle", key=f"toggle-{txn.id}"):
                try:
                    profile_flow.toggle_payment_status(txn.id)
                    st.rerun()
                except StorageError as e:
                    st.error(str(e))
        if col3.button("🗑️", key=f"delete-{txn.id}"):
            try:
                profile_flow.delete_transaction(txn.id)
                st.rerun()
            except (EntityNotFoundError, StorageError) as e:
                st.error(str(e))
        with st.expander("✏️ Edit"):
            _render_transaction_editor(profile_flow, txn)


# =============================================================================
# SAVINGS
# =============================================================================

def _run_action(action, *args) -> None:
    """Run a flow mutation and rerun; a failure is shown inline instead."""
    try:
        action(*args)
    except (ValueError, EntityNotFoundError, StorageError) as e:
        st.error(str(e))
        return
    st.rerun()


def _render_goal_editor(profile_flow: ProfileFlow, goal, account_names: dict):
    options = [None] + list(account_names)
    with st.form(f"edit-goal-{goal.id}"):
        name = st.text_input("Goal name", value=goal.name)
        target = st.number_input(
            "Target amount", min_value=0.01, value=float(goal.target_amount), step=100.0
        )
        linked = st.selectbox(
            "Linked account",
            options=options,
            index=options.index(goal.linked_account_id) if goal.linked_account_id in options else 0,
            format_func=lambda a: "None" if a is None else account_names[a],
        )
        current = st.number_input(
            "Already saved", min_value=0.0, value=float(goal.current_amount), step=10.0
        )
        if st.form_submit_button("💾 Save changes") and name:
            try:
                profile_flow.update_goal(goal.model_copy(update={
                    "name": name.strip(),
                    "target_amount": Decimal(str(target)),
                    "current_amount": Decimal(str(current)),
                    "linked_account_id": linked,
                }))
                st.rerun()
            except (EntityNotFoundError, StorageError) as e:
                st.error(f"Could not save the goal: {e}")


def render_savings_page(profile_flow: ProfileFlow, context: DisplayContext):
    """Savings accounts, goals in priority order and the goal projection."""
    st.title("🐷 Savings")
    data = profile_flow.data
    today = profile_flow.today()

    totals = savings_summary(data)
    col1, col2, col3 = st.columns(3)
    col1.metric("In accounts", context.format_currency(totals.total_in_accounts))
    col2.metric("Allocated to goals", context.format_currency(totals.total_allocated))
    col3.metric("Available", context.format_currency(totals.total_available))

    st.markdown("### Accounts")
    with st.form("account_form", clear_on_submit=True):
        name = st.text_input("Account name")
        amount = st.number_input("Amount", min_value=0.0, step=10.0)
        if st.form_submit_button("➕ Add account") and name:
            _run_action(profile_flow.add_account, name, Decimal(str(amount)))
    for account in data.savings_accounts:
        col1, col2 = st.columns([6, 1])
        col1.markdown(f"**{account.name}** · {context.format_currency(account.amount)}")
        if col2.button("🗑️", key=f"account-{account.id}"):
            _run_action(profile_flow.delete_account, account.id)
        with st.expander("✏️ Edit account"):
            with st.form(f"edit-account-{account.id}"):
                new_name = st.text_input("Account name", value=account.name)
                new_amount = st.number_input("Amount", min_value=0.0, value=float(account.amount), step=10.0)
                if st.form_submit_button("💾 Save changes") and new_name:
                    try:
                        profile_flow.update_account(account.model_copy(update={
                            "name": new_name.strip(),
                            "amount": Decimal(str(new_amount)),
                        }))
                        st.rerun()
                    except (EntityNotFoundError, StorageError) as e:
                        st.error(f"Could not save the account: {e}")

    st.markdown("### Goals")
    account_names = {a.id: a.name for a in data.savings_accounts}
    with st.form("goal_form", clear_on_submit=True):
        name = st.text_input("Goal name")
        target = st.number_input("Target amount", min_value=0.01, step=100.0)
        linked = st.selectbox(
            "Linked account",
            options=[None] + list(account_names),
            format_func=lambda a: "None" if a is None else account_names[a],
        )
        current = st.number_input("Already saved", min_value=0.0, step=10.0, disabled=linked is not None)
        if st.form_submit_button("➕ Add goal") and name:
            _run_action(profile_flow.add_goal, name, Decimal(str(target)), Decimal(str(current)), linked)

    for progress in totals.goals:
        goal = progress.goal
        st.markdown(
            f"**{goal.name}** · {context.format_currency(progress.effective_amount)} of "
            f"{context.format_currency(goal.target_amount)}"
            + (f" · linked to {account_names.get(goal.linked_account_id, '?')}" if goal.is_linked else "")
        )
        st.progress(float(progress.progress_percent) / 100)
        col1, col2, col3, col4 = st.columns([3, 1, 1, 1])
        if not goal.is_linked:
            funds = col1.number_input("Add funds", min_value=0.0, step=10.0, key=f"funds-{goal.id}")
            if col1.button("Add", key=f"add-{goal.id}") and funds > 0:
                _run_action(profile_flow.add_funds_to_goal, goal.id, Decimal(str(funds)))
        if col2.button("⬆️", key=f"up-{goal.id}"):
            _run_action(profile_flow.move_goal_priority, goal.id, "up")
        if col3.button("⬇️", key=f"down-{goal.id}"):
            _run_action(profile_flow.move_goal_priority, goal.id, "down")
        if col4.button("🗑️", key=f"goal-{goal.id}"):
            _run_action(profile_flow.delete_goal, goal.id)
        with st.expander("✏️ Edit goal"):
            _render_goal_editor(profile_flow, goal, account_names)

    st.markdown("### Goal projection")
    projection = project_goal_payoff(
        data.savings_goals, data.incomes, data.expenses, data.payments, today, context
    )
    if not projection.points:
        st.info("Goals can only be projected while monthly net savings are positive.")
        return
    fig = px.bar(
        x=[p.label for p in projection.points],
        y=[float(p.cumulative_saved) for p in projection.points],
        labels={"x": "Month", "y": "Saved"},
        template="plotly_dark",
    )
    st.plotly_chart(fig, use_container_width=True)
    if projection.completion_month:
        st.success(
            f"All goals reached in {projection.months_to_goal} month(s), "
            f"by {context.month_label(projection.completion_month)}."
        )


# =============================================================================
# REPORTS
# =============================================================================

def render_reports_page(
    profile_flow: ProfileFlow,
    insight_flow: InsightFlow,
    preferences: AppPreferences,
    context: DisplayContext,
):
    """Cashflow trend, debt payoff, breakdowns and the long-term projection."""
    st.title("📈 Reports")
    data = profile_flow.data
    today = profile_flow.today()
    app_settings = get_settings().app

    st.markdown("### Cashflow")
    trend = monthly_totals(data.transactions, today, app_settings.cashflow_window_months, context)
    fig = go.Figure()
    fig.add_trace(go.Bar(x=[m.label for m in trend], y=[float(m.income) for m in trend], name="Income"))
    fig.add_trace(go.Bar(x=[m.label for m in trend], y=[float(m.expenses) for m in trend], name="Expenses"))
    fig.update_layout(template="plotly_dark", barmode="group", margin=dict(t=30, b=10, l=10, r=10))
    st.plotly_chart(fig, use_container_width=True)

    st.markdown("### Debt payoff")
    payoff = project_payoff(data.payments, today, context)
    if payoff:
        fig = px.area(
            x=[p.label for p in payoff],
            y=[float(p.remaining_debt) for p in payoff],
            labels={"x": "Month", "y": "Remaining"},
            template="plotly_dark",
        )
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("No installment payments.")

    col1, col2 = st.columns(2)
    for column, title, entries in (
        (col1, "Income sources", income_breakdown(data)),
        (col2, "Monthly spending", expense_breakdown(data, today)),
    ):
        with column:
            st.markdown(f"### {title}")
            if entries:
                fig = px.pie(
                    values=[float(e.monthly_amount) for e in entries],
                    names=[e.name for e in entries],
                    template="plotly_dark",
                )
                st.plotly_chart(fig, use_container_width=True)
            else:
                st.info("Nothing recorded yet.")

    st.markdown("### Long-term projection")
    years = project_years(data, today, app_settings.projection_years)
    fig = px.line(
        x=[str(y.year) for y in years],
        y=[float(y.balance) for y in years],
        labels={"x": "Year", "y": "Balance"},
        markers=True,
        template="plotly_dark",
    )
    st.plotly_chart(fig, use_container_width=True)

    st.markdown("### AI recommendations")
    if st.button("✨ Get recommendations"):
        with st.spinner("Asking Gemini..."):
            outcome = run_async(insight_flow.generate_insights(
                profile_flow.active_profile, data, preferences, today
            ))
        if not outcome.ok:
            st.error(outcome.error_message)
        else:
            st.markdown(f"""
            <div class="info-box">
                <p>{outcome.insights.summary}</p>
            </div>
            """, unsafe_allow_html=True)
            for rec in outcome.insights.recommendations:
                with st.expander(rec.title):
                    st.markdown(rec.description)


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(
    profile_flow: ProfileFlow,
    transfer_flow: DataTransferFlow,
    preferences: AppPreferences,
):
    """Profiles, preferences, API key, import/export and recent activity."""
    st.title("⚙️ Settings")

    st.markdown("### Profiles")
    col1, col2 = st.columns(2)
    with col1:
        new_name = st.text_input("New profile name")
        if st.button("➕ Add profile"):
            try:
                profile_flow.create_profile(new_name)
                st.rerun()
            except StorageError as e:
                st.error(str(e))
        if st.button("📄 Duplicate active profile"):
            try:
                profile_flow.duplicate_profile(profile_flow.active_profile, new_name)
                st.rerun()
            except StorageError as e:
                st.error(str(e))
    with col2:
        rename_to = st.text_input("Rename active profile to")
        if st.button("✏️ Rename"):
            try:
                profile_flow.rename_profile(profile_flow.active_profile, rename_to)
                st.rerun()
            except StorageError as e:
                st.error(str(e))
        if st.button("🗑️ Delete active profile"):
            try:
                profile_flow.delete_profile(profile_flow.active_profile)
                st.rerun()
            except StorageError as e:
                st.error(str(e))

    st.markdown("---")
    st.markdown("### Preferences")
    with st.form("preferences_form"):
        language = st.selectbox(
            "Language",
            options=list(Language),
            index=list(Language).index(preferences.language),
            format_func=lambda lang: LANGUAGE_LABELS[lang],
        )
        currency = st.selectbox(
            "Currency",
            options=list(Currency),
            index=list(Currency).index(preferences.currency),
            format_func=lambda c: c.value,
        )
        api_key = st.text_input(
            "Gemini API key",
            value=preferences.gemini_api_key or "",
            type="password",
            help="Stored only on this computer",
        )
        if st.form_submit_button("Save preferences"):
            _run_action(transfer_flow.save_preferences, AppPreferences(
                language=language,
                currency=currency,
                gemini_api_key=api_key,
            ))

    st.markdown("---")
    st.markdown("### Import / export")
    st.download_button(
        "⬇️ Export all data",
        data=transfer_flow.export_json(),
        file_name=f"fintrack-export-{date.today().isoformat()}.json",
        mime="application/json",
    )
    uploaded = st.file_uploader("Import data", type=["json"], help="Replaces all profiles")
    if uploaded and st.button("⬆️ Import", type="primary"):
        try:
            imported, message, _ = transfer_flow.import_json(uploaded.getvalue())
        except StorageError as e:
            profile_flow.reload()
            st.error(f"Could not write the imported data: {e}")
        else:
            if imported:
                profile_flow.reload()
                st.markdown(f"""
                <div class="success-box">
                    <pre>{message}</pre>
                </div>
                """, unsafe_allow_html=True)
            else:
                st.markdown(f"""
                <div class="error-box">
                    <p>{message}</p>
                    <p><strong>Nothing was changed.</strong></p>
                </div>
                """, unsafe_allow_html=True)

    st.markdown("---")
    st.markdown("### Recent activity")
    for event in transfer_flow.recent_activity(limit=20):
        st.markdown(f"`{event.timestamp:%Y-%m-%d %H:%M}` {event.description}")

    st.markdown("---")
    st.markdown("### Configuration")
    status = validate_all_settings()
    for key in ("storage", "gemini", "app"):
        if status.get(key, False):
            st.success(f"✅ {key.title()} settings loaded")
        else:
            st.error(f"❌ {key.title()} - {status.get(f'{key}_error', 'Invalid')}")


if __name__ == "__main__":
    main()
