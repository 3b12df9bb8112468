"""
Streamlit Frontend for Ledgerbook

The user interface for recording income and expenses per store.

DESIGN PRINCIPLES:
1. Every action goes through LedgerCommands; the UI never touches the store
2. Every command result is shown, success or failure
3. Destructive actions (delete record, delete category) need confirmation
4. Save failures are shown as warnings: the change is kept in memory
"""

import asyncio
from datetime import datetime

import streamlit as st

from ledgerbook.audit import create_correlation_id
from ledgerbook.models.record import ALL_CATEGORIES, CommandResult, ErrorKind, RecordKind
from ledgerbook.orchestrator import LedgerCommands, create_app_components, format_currency


st.set_page_config(
    page_title="Ledgerbook",
    page_icon="📊",
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
def get_commands() -> LedgerCommands:
    """Build the application components once per server process."""
    return run_async(create_app_components())


def show_result(result: CommandResult, success_message: str) -> bool:
    """Render a command outcome. Returns True on success."""
    if result.success:
        st.success(success_message)
        return True
    if result.error_kind == ErrorKind.PERSISTENCE_ERROR:
        st.warning(result.error_message)
    else:
        st.error(result.error_message)
    return False


def format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%d/%m/%Y %H:%M")


def main():
    """Main application entry point."""
    commands = get_commands()

    st.sidebar.title("📊 Ledgerbook")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Record", "📋 Summary", "🏪 Stores", "🤖 AI Assistant", "⚙️ Settings"],
        index=0,
    )

    if page == "➕ Record":
        render_record_page(commands)
    elif page == "📋 Summary":
        render_summary_page(commands)
    elif page == "🏪 Stores":
        render_stores_page(commands)
    elif page == "🤖 AI Assistant":
        render_ai_page(commands)
    elif page == "⚙️ Settings":
        render_settings_page(commands)


def render_record_page(commands: LedgerCommands):
    """Render the new-transaction form."""
    st.title("➕ Record a Transaction")

    known_stores = [
        name for name in commands.list_categories().data if name != ALL_CATEGORIES
    ]

    with st.form("new_transaction", clear_on_submit=True):
        kind = st.radio(
            "Type",
            options=list(RecordKind),
            format_func=lambda k: k.value,
            horizontal=True,
        )
        amount = st.text_input("Amount *", placeholder="e.g. 12.50")
        description = st.text_input("Description *")
        store = st.text_input(
            "Store *",
            help="Known stores: " + (", ".join(known_stores) or "none yet"),
        )
        submitted = st.form_submit_button("💾 Save", type="primary")

    if submitted:
        result = run_async(
            commands.create(
                kind=kind,
                amount=amount,
                description=description,
                category=store,
                correlation_id=create_correlation_id(),
            )
        )
        if result.success:
            record = result.data
            show_result(
                result,
                f"✅ Recorded: {record.kind.value} {format_currency(record.amount)}",
            )
        else:
            show_result(result, "")


def render_summary_page(commands: LedgerCommands):
    """Render totals, the transaction list and edit/delete controls."""
    st.title("📋 Summary")

    categories = commands.list_categories().data
    selected = st.selectbox("Filter by store", options=categories, index=0)

    summary = commands.summary(selected).data
    col1, col2, col3 = st.columns(3)
    col1.metric("Total income", format_currency(summary.total_income))
    col2.metric("Total expenses", format_currency(summary.total_expense))
    col3.metric("Current balance", format_currency(summary.balance))

    records = commands.list_by_category(selected).data
    if not records:
        st.info("No transactions yet. Use the 'Record' page to add one.")
        return

    st.dataframe(
        [
            {
                "Date": format_timestamp(r.created_at),
                "Type": r.kind.value,
                "Amount": format_currency(r.amount),
                "Description": r.description,
                "Store": r.category,
            }
            for r in reversed(records)
        ],
        use_container_width=True,
        hide_index=True,
    )

    st.markdown("---")
    st.subheader("✏️ Edit or delete")

    by_id = {r.id: r for r in records}
    record_id = st.selectbox(
        "Transaction",
        options=list(by_id),
        format_func=lambda rid: (
            f"{by_id[rid].description} | {by_id[rid].category} | "
            f"{by_id[rid].kind.value} {format_currency(by_id[rid].amount)}"
        ),
    )
    record = by_id[record_id]

    with st.form(f"edit_{record_id}"):
        kind = st.radio(
            "Type",
            options=list(RecordKind),
            index=list(RecordKind).index(record.kind),
            format_func=lambda k: k.value,
            horizontal=True,
        )
        amount = st.text_input("Amount", value=str(record.amount))
        description = st.text_input("Description", value=record.description)
        store = st.text_input("Store", value=record.category)
        save = st.form_submit_button("💾 Save changes", type="primary")

    if save:
        result = run_async(
            commands.update(
                record_id=record_id,
                kind=kind,
                amount=amount,
                description=description,
                category=store,
                correlation_id=create_correlation_id(),
            )
        )
        if show_result(result, "✅ Transaction updated"):
            st.rerun()

    confirm = st.checkbox("I want to delete this transaction")
    if st.button("🗑️ Delete", disabled=not confirm):
        result = run_async(
            commands.delete(record_id, correlation_id=create_correlation_id())
        )
        if show_result(result, "✅ Transaction deleted"):
            st.rerun()


def render_stores_page(commands: LedgerCommands):
    """Render store (category) management."""
    st.title("🏪 Stores")

    counts = commands.category_counts().data
    if not counts:
        st.info("No stores yet.")
        return

    st.table([{"Store": name, "Transactions": count} for name, count in counts.items()])

    store = st.selectbox("Store", options=list(counts))

    st.subheader("✏️ Rename")
    new_name = st.text_input("New name", value=store)
    if st.button("Rename"):
        result = run_async(
            commands.rename_category(store, new_name, correlation_id=create_correlation_id())
        )
        if show_result(result, f"✅ Renamed {result.data} transactions"):
            st.rerun()

    st.subheader("🗑️ Delete")
    st.warning(f"This deletes all {counts[store]} transactions of '{store}'.")
    confirm = st.checkbox(f"I want to delete '{store}' and its transactions")
    if st.button("Delete store", disabled=not confirm):
        result = run_async(
            commands.delete_category(store, correlation_id=create_correlation_id())
        )
        if show_result(result, f"✅ Deleted {result.data} transactions"):
            st.rerun()


def render_ai_page(commands: LedgerCommands):
    """Render the AI question box and the ledger analysis."""
    st.title("🤖 AI Assistant")

    question = st.text_area("Your question", placeholder="e.g. How can I save more each month?")
    if st.button("🔍 Ask", type="primary"):
        with st.spinner("Asking the AI... please wait."):
            result = run_async(
                commands.ask_ai(question, correlation_id=create_correlation_id())
            )
        if result.success:
            st.markdown(result.data)
        else:
            st.error(result.error_message)

    st.markdown("---")
    st.subheader("📈 Analyze my transactions")
    category = st.selectbox("Scope", options=commands.list_categories().data)
    if st.button("Analyze with AI"):
        with st.spinner("Analyzing..."):
            result = run_async(
                commands.analyze_with_ai(category, correlation_id=create_correlation_id())
            )
        if result.success:
            st.markdown(result.data)
        else:
            st.error(result.error_message)


def render_settings_page(commands: LedgerCommands):
    """Render configuration status and recent activity."""
    st.title("⚙️ Settings")

    from ledgerbook.config import validate_all_settings

    st.markdown("### Configuration Status")
    status = validate_all_settings()
    for name, key in [("Ledger storage", "ledger"), ("Gemini (AI)", "gemini"), ("Application", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Not configured')}")

    st.markdown(f"**Data file:** `{commands.store.storage.location}`")

    st.markdown("### Recent Activity")
    for event in commands.audit_logger.recent_events(limit=20):
        st.markdown(
            f"- `{event.timestamp:%H:%M:%S}` **{event.event_type.value}**: {event.description}"
        )


if __name__ == "__main__":
    main()
