"""
Streamlit Frontend for Budget Book

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation at every step
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

The UI enforces the human-in-the-loop principle:
- User sees what was parsed or scanned
- User edits or removes lines
- Nothing is saved without an explicit "Save" action
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from budgetbook.audit import create_correlation_id
from budgetbook.budgeting import BulkBudgetEditor
from budgetbook.config import get_settings, validate_all_settings
from budgetbook.models.budget import (
    BudgetSummary,
    CategoryGroup,
    ScannedReceiptItem,
    first_of_month,
)
from budgetbook.orchestrator import (
    BudgetFlow,
    BulkSaveError,
    BulkValidationError,
    ReceiptScanFlow,
    create_app_components,
)
from budgetbook.services.storage import DuplicateError


# Page configuration
st.set_page_config(
    page_title="Budget Book",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

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
</style>
""", unsafe_allow_html=True)

GROUP_COLOURS = {
    CategoryGroup.NEEDS: "#3b82f6",
    CategoryGroup.WANTS: "#a855f7",
    CategoryGroup.SAVINGS: "#10b981",
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
    return create_app_components(use_storage=True)


def money(amount) -> str:
    return f"{get_settings().app.currency_symbol}{Decimal(amount):,.2f}"


def main():
    """Main application entry point."""
    budget_flow, receipt_flow, sheets_client = get_components()
    user_id = get_settings().app.default_user_id

    st.sidebar.title("💰 Budget Book")
    if sheets_client is None:
        st.sidebar.warning("Storage not configured: data is kept in memory only.")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Budgets", "🏷️ Categories", "🧾 Scan Receipt", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **Bulk add:** paste one line per budget, e.g.

        ```
        Pepper 40,000
        Rice 25,000
        Uber 15,000
        ```
        """
    )

    if page == "📊 Budgets":
        render_budgets_page(budget_flow, user_id)
    elif page == "🏷️ Categories":
        render_categories_page(budget_flow, user_id)
    elif page == "🧾 Scan Receipt":
        render_receipt_page(budget_flow, receipt_flow, user_id)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_budgets_page(budget_flow: BudgetFlow, user_id: str):
    """Render the budgets page: monthly list, single add and bulk add."""
    st.title("📊 Budgets")

    month = first_of_month(st.date_input("Month", value=date.today()))
    summary = run_async(budget_flow.budget_summary(user_id, month))
    category_names = [c.name for c in run_async(budget_flow.list_categories(user_id))]

    render_monthly_plan(budget_flow, user_id, summary)

    if summary.lines:
        st.markdown(
            f"**Total for {month.strftime('%B %Y')}:** {money(summary.total_spent)} "
            f"spent of {money(summary.total_limit)}"
        )
        for line in summary.lines:
            budget = line.budget
            col1, col2, col3, col4, col5 = st.columns([3, 2, 3, 1, 1])
            col1.write(budget.name or "—")
            colour = GROUP_COLOURS.get(line.group, "#6c757d")
            col2.markdown(
                f"<span style='color:{colour}'>●</span> {budget.category or 'Uncategorized'}",
                unsafe_allow_html=True,
            )
            spent = f"{money(line.spent)} / {money(budget.amount_limit)}"
            col3.write(f"🔴 {spent}" if line.over_limit else spent)
            if col4.button("Copy", key=f"dup-{budget.id}"):
                run_async(budget_flow.duplicate_budget(budget.id))
                st.rerun()
            if col5.button("Delete", key=f"del-{budget.id}"):
                run_async(budget_flow.delete_budget(budget.id))
                st.rerun()
    else:
        st.info("No budgets for this month yet.")

    st.markdown("---")
    single_tab, bulk_tab = st.tabs(["➕ Add one", "📋 Bulk add"])

    with single_tab:
        with st.form("single-budget"):
            category = st.selectbox("Category", options=[""] + category_names)
            name = st.text_input("Name (optional)", help="Defaults to the category")
            amount = st.number_input("Limit", min_value=0.0, step=100.0)
            if st.form_submit_button("Save budget", type="primary"):
                if not category and not name:
                    st.error("Please pick a category or enter a name")
                else:
                    budget = run_async(budget_flow.create_budget(
                        user_id=user_id,
                        category=category,
                        amount_limit=Decimal(str(amount)),
                        month=month,
                        name=name or None,
                    ))
                    st.success(f"Saved {budget.name}: {money(budget.amount_limit)}")
                    st.rerun()

    with bulk_tab:
        render_bulk_add(budget_flow, user_id, month, category_names)


def render_monthly_plan(budget_flow: BudgetFlow, user_id: str, summary: BudgetSummary):
    """Expected income and the needs / wants / savings split."""
    with st.expander("🗓️ Monthly plan", expanded=summary.expected_income is not None):
        with st.form("monthly-plan"):
            income = st.number_input(
                "Expected income",
                min_value=0.0,
                step=1000.0,
                value=float(summary.expected_income or 0),
            )
            if st.form_submit_button("Save plan"):
                run_async(budget_flow.set_expected_income(
                    user_id,
                    summary.month,
                    Decimal(str(income)),
                ))
                st.rerun()

        columns = st.columns(len(CategoryGroup))
        for column, group in zip(columns, CategoryGroup):
            total = summary.group_total(group)
            column.markdown(
                f"<span style='color:{GROUP_COLOURS[group]}'>●</span> "
                f"**{group.value.title()}**",
                unsafe_allow_html=True,
            )
            column.write(f"Budgeted {money(total.limit_total)}")
            if total.target is not None:
                column.write(f"Target {money(total.target)}")
                if total.over_target:
                    column.error(f"Over by {money(total.over_target)}")


def render_bulk_add(
    budget_flow: BudgetFlow,
    user_id: str,
    month: date,
    category_names: list[str],
):
    """Paste → preview → edit → save."""
    if "bulk_editor" not in st.session_state:
        st.session_state.bulk_editor = None
        st.session_state.bulk_correlation_id = None

    text = st.text_area(
        "Paste your list",
        height=200,
        placeholder="Pepper 40,000\nOnions 10,000\nTransport 20,000",
    )

    if st.button("🔍 Preview", type="primary") and text.strip():
        st.session_state.bulk_correlation_id = create_correlation_id()
        st.session_state.bulk_editor = run_async(budget_flow.preview_bulk(
            user_id,
            text,
            correlation_id=st.session_state.bulk_correlation_id,
        ))

    editor: BulkBudgetEditor = st.session_state.bulk_editor
    if editor is None:
        return

    st.markdown("### Review")
    st.markdown("*Edit any line or remove it before saving*")
    options = [""] + category_names

    for item in editor.items:
        col1, col2, col3, col4 = st.columns([3, 3, 2, 1])
        name = col1.text_input("Name", value=item.source_name, key=f"{item.item_id}-name")
        if name != item.source_name:
            editor.update_item(item.item_id, "source_name", name)

        # Keyword labels that aren't user categories still show up as options
        item_options = options if item.category in options else options + [item.category]
        category = col2.selectbox(
            "Category",
            options=item_options,
            index=item_options.index(item.category),
            key=f"{item.item_id}-category",
        )
        if category != item.category:
            editor.update_item(item.item_id, "category", category)

        amount = col3.text_input("Amount", value=item.amount, key=f"{item.item_id}-amount")
        if amount != item.amount:
            editor.update_item(item.item_id, "amount", amount)

        if col4.button("✖", key=f"{item.item_id}-remove"):
            editor.remove_item(item.item_id)
            st.rerun()

    result, message = budget_flow.validate_bulk(editor)
    if not result.is_valid:
        st.warning(message)

    col1, col2 = st.columns(2)
    with col1:
        if st.button(f"✅ Save {len(editor)} budgets", type="primary"):
            try:
                saved = run_async(budget_flow.submit_bulk(
                    user_id,
                    editor,
                    month,
                    correlation_id=st.session_state.bulk_correlation_id,
                ))
            except BulkValidationError as e:
                st.error(str(e))
            except BulkSaveError as e:
                st.markdown(f"""
                <div class="error-box">
                    <h4>❌ Nothing was saved</h4>
                    <p>{e}</p>
                </div>
                """, unsafe_allow_html=True)
            else:
                st.session_state.bulk_editor = None
                st.success(f"Saved {len(saved)} budgets for {month.strftime('%B %Y')}")
                st.rerun()
    with col2:
        if st.button("❌ Cancel"):
            st.session_state.bulk_editor = None
            st.rerun()


def render_categories_page(budget_flow: BudgetFlow, user_id: str):
    """Render the category management page."""
    st.title("🏷️ Categories")

    with st.form("add-category", clear_on_submit=True):
        col1, col2 = st.columns([3, 1])
        name = col1.text_input("New category")
        group = col2.selectbox(
            "Group",
            options=list(CategoryGroup),
            format_func=lambda g: g.value.title(),
        )
        if st.form_submit_button("Add", type="primary") and name.strip():
            try:
                run_async(budget_flow.add_category(user_id, name, group))
            except DuplicateError:
                st.error(f"You already have a category called '{name.strip()}'")
            else:
                st.rerun()

    st.markdown("---")
    for category in run_async(budget_flow.list_categories(user_id)):
        col1, col2, col3, col4 = st.columns([3, 2, 1, 1])
        new_name = col1.text_input(
            "Name",
            value=category.name,
            key=f"cat-{category.id}",
            label_visibility="collapsed",
        )
        col2.write(category.group.value.title())
        if col3.button("Rename", key=f"ren-{category.id}") and new_name != category.name:
            try:
                run_async(budget_flow.rename_category(category, new_name))
            except DuplicateError:
                st.error(f"You already have a category called '{new_name.strip()}'")
            else:
                st.rerun()
        if col4.button("Delete", key=f"delcat-{category.id}"):
            run_async(budget_flow.delete_category(category))
            st.rerun()


def render_receipt_page(
    budget_flow: BudgetFlow,
    receipt_flow: ReceiptScanFlow,
    user_id: str,
):
    """Render the receipt scanning page."""
    st.title("🧾 Scan Receipt")
    st.markdown("Take a photo of a receipt to record its items as expenses.")

    if "receipt" not in st.session_state:
        st.session_state.receipt = None
        st.session_state.receipt_correlation_id = None

    uploaded_file = st.file_uploader(
        "Choose a receipt photo",
        type=get_settings().app.supported_formats_list,
        help="Take a clear, well-lit photo of the whole receipt",
    )

    if uploaded_file and st.button("🔍 Scan Receipt", type="primary"):
        correlation_id = create_correlation_id()
        st.session_state.receipt_correlation_id = correlation_id
        image_bytes = uploaded_file.read()
        with st.spinner("Reading your receipt... Please wait."):
            try:
                url = run_async(receipt_flow.upload_receipt(
                    image_bytes,
                    uploaded_file.name,
                    uploaded_file.type,
                    correlation_id=correlation_id,
                ))
                st.session_state.receipt = run_async(receipt_flow.scan(
                    image_bytes,
                    uploaded_file.type,
                    receipt_url=url,
                    correlation_id=correlation_id,
                ))
            except Exception as e:
                st.session_state.receipt = None
                st.error(f"Could not scan the receipt: {e}")

    receipt = st.session_state.receipt
    if receipt is None:
        return

    st.markdown("---")
    st.subheader(f"📋 {receipt.store or 'Receipt'}")
    purchase_date = st.date_input("Date", value=receipt.purchase_date or date.today())
    if receipt.total is not None and receipt.total != receipt.items_total:
        st.warning(
            f"Items add up to {money(receipt.items_total)} but the receipt "
            f"total is {money(receipt.total)}. Please check the amounts."
        )

    category_names = [c.name for c in run_async(budget_flow.list_categories(user_id))]
    reviewed = []
    for index, item in enumerate(receipt.items):
        col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
        keep = col4.checkbox("Keep", value=True, key=f"keep-{index}")
        name = col1.text_input("Item", value=item.name, key=f"item-{index}")
        options = category_names if item.category in category_names else category_names + [item.category]
        category = col2.selectbox(
            "Category",
            options=options,
            index=options.index(item.category),
            key=f"itemcat-{index}",
        )
        amount = col3.number_input(
            "Amount",
            value=float(item.amount),
            min_value=0.0,
            key=f"itemamt-{index}",
        )
        if keep:
            reviewed.append(ScannedReceiptItem(
                name=name,
                category=category,
                amount=Decimal(str(amount)),
            ))

    col1, col2 = st.columns(2)
    with col1:
        if st.button(f"✅ Save {len(reviewed)} expenses", type="primary"):
            try:
                saved = run_async(receipt_flow.save_transactions(
                    user_id,
                    receipt.model_copy(update={"purchase_date": purchase_date}),
                    reviewed,
                    correlation_id=st.session_state.receipt_correlation_id,
                ))
            except Exception as e:
                st.error(f"Failed to save: {e}")
            else:
                st.session_state.receipt = None
                st.success(f"Saved {len(saved)} expenses")
    with col2:
        if st.button("❌ Discard"):
            st.session_state.receipt = None
            st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Cloudinary (Receipt images)", "cloudinary"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (Receipt scanning)", "gemini"),
        ("App", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
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
