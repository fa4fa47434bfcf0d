"""
app.py
Streamlit Community Fund Manager (admin-only).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from datetime import date

import pandas as pd
import streamlit as st

import auth
import backup
import db
import donations
import dues
import finance
import members
import notifications
import recycle
import settings
import utils
from errors import FundError
from models import ALL_MONTHS, APPROVED, MONTHLY, ONE_TIME, PAYMENT_METHODS, PENDING, Payment, Period

st.set_page_config(page_title="Community Fund Manager", layout="wide")

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("fund")


def init_once():
    # Initialize DB + default admin if needed
    default_hash = auth.hash_password("admin123")
    db.init_db(default_hash)


def require_login():
    if "logged_in" not in st.session_state:
        st.session_state.logged_in = False
    if "username" not in st.session_state:
        st.session_state.username = None


def logout():
    st.session_state.logged_in = False
    st.session_state.username = None
    st.success("Logged out.")


def login_screen():
    st.title("🔐 Fund Admin Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value="admin")
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            if auth.login(username.strip(), password):
                st.session_state.logged_in = True
                st.session_state.username = username.strip()
                st.rerun()
            else:
                st.error("Invalid username or password.")

    with col2:
        st.info(
            "First run creates a default admin:\n\n"
            "- username: **admin**\n"
            "- password: **admin123**\n\n"
            "You will be forced to change it on first login."
        )


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")

    if st.button("Update password", type="primary"):
        try:
            auth.change_password(st.session_state.username, new1, new2)
        except FundError as e:
            st.error(str(e))
            return
        st.success("Password updated. You can continue.")
        st.rerun()


def admin_name() -> str:
    return st.session_state.username or "Admin"


def member_options(status: str | None = APPROVED) -> dict[str, int]:
    return {f"{m.full_name} ({m.phone}) - ID {m.id}": m.id for m in members.list_members(status=status)}


def money(config, amount: float) -> str:
    return f"{config.currency_symbol}{amount:,.2f}"


# ---------- Pages ----------

def dashboard_page():
    st.header("📊 Dashboard")
    config = settings.load_config()

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Approved members", len(members.list_members(status=APPROVED)))
    c2.metric("Total collection", money(config, finance.total_collection()))
    c3.metric("Total expenses", money(config, finance.total_expenses()))
    c4.metric("Current balance", money(config, finance.current_balance()))

    st.divider()

    st.subheader("Collection vs expense by month")
    stats = finance.monthly_stats()
    if stats.empty:
        st.caption("No transactions yet.")
    else:
        st.bar_chart(stats.set_index("month")[["collection", "expense"]])

    st.subheader("Top contributors")
    top = finance.top_contributors()
    if top:
        st.dataframe(
            pd.DataFrame(top, columns=["member_id", "member", "total"]),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No contributions yet.")

    pending = donations.list_requests(status=PENDING)
    if pending:
        st.info(f"{len(pending)} donation request(s) waiting for verification.")


def collections_page():
    st.header("🗓️ Collections")
    config = settings.load_config()

    years = sorted(config.years) or [date.today().year]
    default_year = date.today().year if date.today().year in years else years[-1]
    year = st.selectbox("Year", years, index=years.index(default_year))
    periods = config.periods(year)

    approved = members.list_members(status=APPROVED)
    if not approved:
        st.info("No approved members yet.")
        return

    payments = finance.list_payments(kind=MONTHLY, year=year)
    cells = dues.resolve_matrix([m.id for m in approved], periods, payments)
    rows = [{"id": m.id, "full_name": m.full_name} for m in approved]
    matrix = utils.collection_matrix_frame(rows, cells, periods)
    st.dataframe(matrix, use_container_width=True, hide_index=True)

    totals = {utils.month_label(p.month): dues.period_total(payments, p) for p in periods}
    totals["Grand total"] = dues.grand_total(payments, periods)
    st.caption("Column totals")
    st.dataframe(pd.DataFrame([totals]), use_container_width=True, hide_index=True)

    st.download_button(
        f"Download collections_{year}.csv",
        data=matrix.to_csv(index=False).encode("utf-8"),
        file_name=f"collections_{year}.csv",
        mime="text/csv",
    )

    st.divider()

    st.subheader("Edit a cell")
    options = {f"{m.full_name} - ID {m.id}": m for m in approved}
    c1, c2, c3 = st.columns([2, 1, 1])
    with c1:
        chosen = options[st.selectbox("Member", list(options.keys()), key="cell_member")]
    with c2:
        month = st.selectbox("Month", [p.month for p in periods], format_func=utils.month_label, key="cell_month")
    with c3:
        value = st.text_input("Amount (blank or 0 removes)", key="cell_amount")

    if month is not None:
        summary = dues.member_summary(chosen.id, finance.list_payments(member_id=chosen.id), config)
        st.caption(
            f"{chosen.full_name}: paid {money(config, summary.total_paid)} in total, "
            f"{summary.paid_months} of {summary.passed_months} months paid, {summary.months_due} due."
        )

    if st.button("Save cell", type="primary", disabled=month is None):
        try:
            amount = utils.parse_amount(value, allow_blank=True)
            action = dues.set_period_amount(chosen.id, chosen.full_name, Period(year, month), amount, config, admin=admin_name())
            st.success(f"Cell {action}.")
            st.rerun()
        except FundError as e:
            st.error(str(e))


def _autofill_allocations(total_key: str, months: list[int]):
    allocations = {m: st.session_state.get(f"alloc_{m}", "") for m in months}
    try:
        total = utils.parse_amount(st.session_state.get(total_key, ""), allow_blank=True) or 0.0
    except FundError:
        return
    filled = dues.autofill_last_blank(total, months, {m: (v if str(v).strip() else None) for m, v in allocations.items()})
    for m, v in filled.items():
        if v is not None and not str(allocations.get(m, "")).strip():
            st.session_state[f"alloc_{m}"] = f"{float(v):g}"


def record_monthly_page():
    st.header("💳 Record Monthly Dues")
    config = settings.load_config()

    options = member_options()
    if not options:
        st.info("No approved members yet.")
        return
    label = st.selectbox("Member", list(options.keys()))
    member_id = options[label]
    member = members.get_member(member_id)

    years = sorted(config.years) or [date.today().year]
    c1, c2, c3 = st.columns(3)
    with c1:
        year = st.selectbox("Year", years, index=len(years) - 1)
    with c2:
        st.text_input("Total amount", key="monthly_total")
    with c3:
        method = st.selectbox("Method", PAYMENT_METHODS)

    active = config.active_months(year)
    months = st.multiselect(
        "Months (inactive months cannot be selected)",
        options=list(active),
        format_func=utils.month_label,
    )

    paid = [p.month for p in finance.list_payments(member_id=member_id, kind=MONTHLY, year=year) if p.month in months]
    if paid:
        st.warning(f"Already paid: {utils.month_list_label(set(paid))}. New amounts will be added on top.")

    if len(months) > 1:
        st.caption("Optional per-month amounts. Leave all blank to split evenly.")
        cols = st.columns(min(len(months), 6))
        for i, m in enumerate(months):
            with cols[i % len(cols)]:
                st.text_input(
                    utils.month_label(m),
                    key=f"alloc_{m}",
                    on_change=_autofill_allocations,
                    args=("monthly_total", months),
                )

    transaction_id = st.text_input("Transaction ID", value="")
    notes = st.text_input("Notes", value="Admin added directly")

    if st.button("Record payments", type="primary"):
        try:
            total = utils.parse_amount(st.session_state.get("monthly_total", ""), allow_zero=False)
            manual = utils.parse_allocations({m: st.session_state.get(f"alloc_{m}", "") for m in months}) if len(months) > 1 else {}
            result = dues.apply_allocation(
                member_id,
                member.full_name,
                year,
                months,
                total,
                config,
                manual_allocations=manual,
                method=method,
                transaction_id=transaction_id.strip() or None,
                notes=notes.strip() or "Admin added directly",
            )
        except FundError as e:
            st.error(str(e))
            return

        for w in result.warnings:
            st.warning(w)
        if result.written:
            st.success(f"Recorded payments for {utils.month_list_label(result.written)}.")
        if result.failed:
            st.error(f"Failed for {utils.month_list_label(result.failed)}. Retry those months only.")
        notifications.log_activity(admin_name(), "Record Monthly", f"{member.full_name}: {total:g} over {len(months)} months of {year}")


def donations_page():
    st.header("🎁 One-time Donations")
    config = settings.load_config()

    options = {"(guest / non-member)": None, **member_options()}
    c1, c2, c3 = st.columns(3)
    with c1:
        label = st.selectbox("Donor", list(options.keys()))
        guest_name = st.text_input("Donor name (guests)", value="")
    with c2:
        amount = st.text_input("Amount", value="")
        paid_on = st.date_input("Date", value=date.today()).isoformat()
    with c3:
        method = st.selectbox("Method", PAYMENT_METHODS, key="donation_method")
        notes = st.text_input("Notes", value="", key="donation_notes")

    if st.button("Record donation", type="primary"):
        member_id = options[label]
        name = members.get_member(member_id).full_name if member_id else (guest_name.strip() or "Anonymous")
        try:
            value = utils.parse_amount(amount, allow_zero=False)
        except FundError as e:
            st.error(str(e))
        else:
            finance.create_payment(
                Payment(
                    id=None,
                    member_id=member_id,
                    member_name=name,
                    amount=value,
                    date=paid_on,
                    kind=ONE_TIME,
                    method=method,
                    notes=notes.strip() or None,
                ),
                admin=admin_name(),
            )
            notifications.notify(
                member_id,
                "Donation Added",
                f"An admin has recorded a new one-time donation of {config.currency_symbol}{value:g}.",
                notifications.SUCCESS,
            )
            st.success("Donation recorded.")
            st.rerun()

    st.divider()
    rows = finance.list_payments(kind=ONE_TIME)
    if rows:
        df = pd.DataFrame([p.__dict__ for p in rows])[["id", "member_name", "amount", "date", "method", "notes"]]
        st.dataframe(df, use_container_width=True, hide_index=True)
        to_delete = st.selectbox("Remove donation", ["(none)"] + [str(p.id) for p in rows])
        if st.button("Move to recycle bin", disabled=to_delete == "(none)"):
            finance.delete_payment(int(to_delete), f"Donation #{to_delete}", admin=admin_name())
            st.success("Moved to recycle bin.")
            st.rerun()
    else:
        st.caption("No one-time donations yet.")


def requests_page():
    st.header("📥 Donation Requests")
    config = settings.load_config()

    with st.expander("Submit a request on behalf of a member"):
        options = member_options()
        if options:
            label = st.selectbox("Member", list(options.keys()), key="req_member")
            kind = st.radio("Type", [MONTHLY, ONE_TIME], horizontal=True)
            amount = st.text_input("Amount", key="req_amount")
            year = st.selectbox("Year", sorted(config.years), key="req_year") if kind == MONTHLY else None
            months = (
                st.multiselect("Months", list(config.active_months(year)), format_func=utils.month_label, key="req_months")
                if kind == MONTHLY
                else []
            )
            method = st.selectbox("Method", PAYMENT_METHODS, key="req_method")
            transaction_id = st.text_input("Transaction ID", key="req_tx")
            if st.button("Submit request"):
                member_id = options[label]
                try:
                    donations.submit_request(
                        member_id,
                        members.get_member(member_id).full_name,
                        amount,
                        kind,
                        year=year,
                        months=months,
                        method=method,
                        transaction_id=transaction_id,
                    )
                    st.success("Request submitted.")
                    st.rerun()
                except FundError as e:
                    st.error(str(e))

    pending = donations.list_requests(status=PENDING)
    if not pending:
        st.caption("No pending requests.")
    for req in pending:
        with st.container(border=True):
            what = (
                f"{utils.month_list_label(req.months)} {req.year}" if req.kind == MONTHLY else "one-time donation"
            )
            st.write(f"**{req.member_name}**: {money(config, req.amount)} for {what} via {req.method or '-'} ({req.transaction_id or 'no tx id'})")
            if req.partially_applied:
                _partly_applied_request(req, config)
                continue

            override = None
            if req.kind == MONTHLY and len(req.months) > 1:
                raw = {}
                cols = st.columns(min(len(req.months), 6))
                for i, m in enumerate(req.months):
                    default = req.allocations.get(m)
                    with cols[i % len(cols)]:
                        raw[m] = st.text_input(
                            utils.month_label(m),
                            value="" if default is None else f"{default:g}",
                            key=f"req_{req.id}_{m}",
                        )
            c1, c2, c3 = st.columns([1, 1, 2])
            with c3:
                reason = st.text_input("Rejection reason", key=f"reason_{req.id}")
            with c1:
                if st.button("Approve", key=f"approve_{req.id}", type="primary"):
                    try:
                        if req.kind == MONTHLY and len(req.months) > 1:
                            override = utils.parse_allocations(raw)
                        result = donations.approve_request(req.id, config, override_allocations=override, admin=admin_name())
                    except FundError as e:
                        st.error(str(e))
                    else:
                        if isinstance(result, dues.AllocationResult):
                            for w in result.warnings:
                                st.warning(w)
                        if isinstance(result, dues.AllocationResult) and not result.ok:
                            st.error(f"Failed for {utils.month_list_label(result.failed)}; request left pending.")
                        else:
                            st.success("Donation verified and distributed.")
                            st.rerun()
            with c2:
                if st.button("Reject", key=f"reject_{req.id}"):
                    try:
                        donations.reject_request(req.id, reason, admin=admin_name())
                    except FundError as e:
                        st.error(str(e))
                    else:
                        st.success("Donation request rejected.")
                        st.rerun()


def _partly_applied_request(req, config):
    """A monthly request whose approval wrote some months but not all."""
    missing = [m for m, amount in req.plan.items() if amount > 0 and m not in req.applied]
    st.warning(
        f"Partly applied: recorded {utils.month_list_label(req.applied) or 'nothing'}, "
        f"missing {utils.month_list_label(missing)}."
    )
    if st.button("Retry failed months", key=f"retry_btn_{req.id}", type="primary"):
        try:
            result = donations.retry_failed(req.id, config, admin=admin_name())
        except FundError as e:
            st.error(str(e))
            return
        if result.ok:
            st.success("Remaining months recorded.")
            st.rerun()
        st.error(f"Still failing: {utils.month_list_label(result.failed)}")


def members_page():
    st.header("👥 Members")

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/phone/email)")
        status_filter = st.selectbox("Status", ["All", "pending", "approved", "rejected"])

    rows = members.list_members(status=None if status_filter == "All" else status_filter, search=search)
    df = pd.DataFrame([m.__dict__ for m in rows]) if rows else pd.DataFrame(
        columns=["id", "full_name", "phone", "email", "join_date", "status"]
    )
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        selected_id = st.selectbox("Member ID", options=["(none)"] + [str(m.id) for m in rows])

    with colB:
        if selected_id != "(none)":
            member = members.get_member(int(selected_id))
            st.subheader(f"Member actions ({member.status})")
            c1, c2, c3 = st.columns(3)
            with c1:
                if st.button("Approve", disabled=member.status == APPROVED):
                    members.approve_member(member.id, admin=admin_name())
                    st.rerun()
            with c2:
                if st.button("Reject", disabled=member.status != PENDING):
                    members.reject_member(member.id, admin=admin_name())
                    st.rerun()
            with c3:
                delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    members.delete_member(member.id, admin=admin_name())
                    st.success("Member and payments moved to recycle bin.")
                    st.rerun()

            st.markdown("**Profile payment history**")
            history = finance.list_payments(member_id=member.id, visible_only=True)
            if not history:
                st.caption("No payments shown on this profile.")
            else:
                st.dataframe(
                    pd.DataFrame(
                        [
                            {"id": p.id, "date": p.date, "for": p.period.label if p.period else "One-time", "amount": p.amount}
                            for p in history
                        ]
                    ),
                    use_container_width=True,
                    hide_index=True,
                )
                to_hide = st.selectbox("Payment", [p.id for p in history], key="hide_payment_id")
                if st.button("Hide from profile", key="hide_payment_btn"):
                    finance.hide_payment(to_hide)
                    st.rerun()

    st.divider()

    st.subheader("➕ Register member")
    c1, c2, c3 = st.columns(3)
    with c1:
        full_name = st.text_input("Full name")
    with c2:
        phone = st.text_input("Phone")
    with c3:
        email = st.text_input("Email (optional)")
    errors = members.validate_member_inputs(full_name, phone, email)
    if st.button("Save", type="primary", disabled=bool(errors)):
        members.register_member(full_name, phone, email)
        st.success("Member registered (pending approval).")
        st.rerun()


def expenses_page():
    st.header("🧾 Expenses")
    config = settings.load_config()

    c1, c2, c3, c4 = st.columns([2, 1, 1, 1])
    with c1:
        title = st.text_input("Title")
    with c2:
        category = st.selectbox("Category", finance.EXPENSE_CATEGORIES)
    with c3:
        amount = st.text_input("Amount", key="expense_amount")
    with c4:
        spent_on = st.date_input("Date", value=date.today(), key="expense_date").isoformat()
    notes = st.text_input("Notes", key="expense_notes")

    if st.button("Record expense", type="primary"):
        if not title.strip():
            st.error("Title is required.")
        else:
            try:
                value = utils.parse_amount(amount, allow_zero=False)
                finance.add_expense(title, category, value, spent_on, notes.strip() or None, recorded_by=admin_name())
                st.success("Expense recorded.")
                st.rerun()
            except FundError as e:
                st.error(str(e))

    st.divider()
    rows = finance.list_expenses()
    if rows:
        st.metric("Total expenses", money(config, finance.total_expenses()))
        st.dataframe(pd.DataFrame([e.__dict__ for e in rows]), use_container_width=True, hide_index=True)
        to_delete = st.selectbox("Remove expense", ["(none)"] + [str(e.id) for e in rows])
        if st.button("Move to recycle bin", disabled=to_delete == "(none)"):
            finance.delete_expense(int(to_delete), f"Expense #{to_delete}", admin=admin_name())
            st.rerun()
    else:
        st.caption("No expenses yet.")


def announcements_page():
    st.header("📣 Announcements")
    title = st.text_input("Title")
    message = st.text_area("Message")
    if st.button("Send to all approved members", type="primary", disabled=not (title.strip() and message.strip())):
        sent = notifications.announce(title.strip(), message.strip(), admin=admin_name())
        notifications.log_activity(admin_name(), "Announcement", title.strip())
        st.success(f"Sent to {sent} member(s).")

    st.subheader("Sent announcements")
    history = notifications.list_announcements()
    if not history:
        st.caption("Nothing sent yet.")
    for h in history:
        c1, c2 = st.columns([5, 1])
        with c1:
            st.write(f"**{h['title']}** ({h['created_at']}, {h['recipients']} recipients, by {h['sent_by']})")
            st.caption(h["message"])
        with c2:
            if st.button("Delete", key=f"ann_del_{h['id']}"):
                notifications.delete_announcement(h["id"])
                st.rerun()

    st.divider()
    st.subheader("Member inbox")
    approved = members.list_members(status=APPROVED)
    if approved:
        options = {f"{m.full_name} (#{m.id})": m.id for m in approved}
        member_id = options[st.selectbox("Member", list(options.keys()), key="inbox_member")]
        st.caption(f"{notifications.unread_count(member_id)} unread")
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Mark all read", key="inbox_read_all"):
                notifications.mark_all_read(member_id)
                st.rerun()
        with c2:
            if st.button("Clear all", key="inbox_clear"):
                notifications.clear_notifications(member_id)
                st.rerun()
        for n in notifications.list_notifications(member_id):
            c1, c2 = st.columns([5, 1])
            with c1:
                marker = "" if n["read"] else "🔵 "
                st.write(f"{marker}**{n['title']}**: {n['message']}")
            with c2:
                if st.button("Delete", key=f"note_del_{n['id']}"):
                    notifications.delete_notification(n["id"])
                    st.rerun()

    st.divider()
    st.subheader("Admin activity")
    logs = notifications.list_activity()
    if logs:
        st.dataframe(pd.DataFrame([dict(r) for r in logs]), use_container_width=True, hide_index=True)
    else:
        st.caption("No activity yet.")


def recycle_bin_page():
    st.header("🗑️ Recycle Bin")
    removed = recycle.cleanup_old_items()
    st.caption(f"Items are kept for {recycle.RETENTION_DAYS} days." + (f" Cleaned up {removed} old item(s)." if removed else ""))

    items = recycle.list_items()
    if not items:
        st.caption("Recycle bin is empty.")
        return
    df = pd.DataFrame([dict(r) for r in items])[["id", "name", "item_type", "original_table", "batch_id", "deleted_by", "deleted_at"]]
    st.dataframe(df, use_container_width=True, hide_index=True)

    selected = st.selectbox("Item", ["(none)"] + [str(r["id"]) for r in items])
    c1, c2 = st.columns(2)
    with c1:
        if st.button("Restore", type="primary", disabled=selected == "(none)"):
            try:
                recycle.restore(int(selected))
                st.success("Restored.")
                st.rerun()
            except (LookupError, FundError) as e:
                st.error(str(e))
    with c2:
        if st.button("Delete permanently", disabled=selected == "(none)"):
            recycle.permanent_delete(int(selected))
            st.rerun()


def reports_page():
    st.header("📑 Reports")

    st.subheader("Export members to CSV")
    rows = db.fetch_all("SELECT * FROM members ORDER BY id DESC")
    if rows:
        st.download_button("Download members.csv", data=utils.rows_to_csv_bytes(rows), file_name="members.csv", mime="text/csv")
    else:
        st.caption("No members to export.")

    st.divider()

    st.subheader("Export payments to CSV")
    rows = db.fetch_all("SELECT * FROM payments ORDER BY date DESC, id DESC")
    if rows:
        st.download_button("Download payments.csv", data=utils.rows_to_csv_bytes(rows), file_name="payments.csv", mime="text/csv")
    else:
        st.caption("No payments to export.")

    st.divider()

    st.subheader("Export expenses to CSV")
    rows = db.fetch_all("SELECT * FROM expenses ORDER BY date DESC, id DESC")
    if rows:
        st.download_button("Download expenses.csv", data=utils.rows_to_csv_bytes(rows), file_name="expenses.csv", mime="text/csv")
    else:
        st.caption("No expenses to export.")

    st.divider()

    st.subheader("Collection vs expense by month")
    st.dataframe(finance.monthly_stats(), use_container_width=True, hide_index=True)


def settings_page():
    st.header("⚙️ Settings")
    config = settings.load_config()

    st.subheader("Collection calendar")
    c1, c2 = st.columns([1, 3])
    with c1:
        new_year = st.number_input("Add year", min_value=2000, max_value=2100, value=date.today().year + 1, step=1)
        if st.button("Add year"):
            settings.add_year(int(new_year))
            st.rerun()
    with c2:
        for year in sorted(config.years):
            with st.expander(f"{year}: {len(config.active_months(year))} active months"):
                st.caption("Disabling a month moves its payments to the recycle bin.")
                cols = st.columns(6)
                for m in ALL_MONTHS:
                    with cols[(m - 1) % 6]:
                        active = config.is_active(year, m)
                        checked = st.checkbox(utils.month_label(m), value=active, key=f"cal_{year}_{m}")
                        if checked != active:
                            settings.set_month_enabled(year, m, checked)
                            st.rerun()
                confirm = st.checkbox(f"Confirm delete {year} and ALL its payments", key=f"del_year_{year}")
                if st.button(f"Remove {year}", disabled=not confirm, key=f"remove_{year}"):
                    settings.remove_year(year)
                    st.rerun()

    symbol = st.text_input("Currency symbol", value=config.currency_symbol)
    if st.button("Save currency"):
        settings.set_currency_symbol(symbol)
        st.rerun()

    st.divider()

    st.subheader("Change password")
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        try:
            auth.change_password(st.session_state.username, p1, p2)
            st.success("Password updated.")
        except FundError as e:
            st.error(str(e))

    st.divider()

    st.subheader("Backup & restore")
    st.download_button(
        "Download backup.json",
        data=backup.export_backup(),
        file_name=f"fund-backup-{date.today().isoformat()}.json",
        mime="application/json",
    )
    uploaded = st.file_uploader("Restore from backup", type=["json"])
    if uploaded is not None and st.button("Restore backup (replaces current data)"):
        try:
            counts = backup.restore_backup(uploaded.getvalue())
            st.success(f"Restored: {counts}")
        except FundError as e:
            st.error(str(e))

    reset_confirm = st.checkbox("I understand this deletes all members, payments and requests")
    if st.button("Reset database", disabled=not reset_confirm):
        backup.reset_database()
        st.success("Database reset.")
        st.rerun()

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert 3 sample members + a few payments for testing (adds new rows each run).")
    if st.button("Insert sample data"):
        utils.insert_sample_data()
        st.success("Sample data inserted.")
        st.rerun()


PAGES = {
    "Dashboard": dashboard_page,
    "Collections": collections_page,
    "Record Monthly": record_monthly_page,
    "Donations": donations_page,
    "Requests": requests_page,
    "Members": members_page,
    "Expenses": expenses_page,
    "Announcements": announcements_page,
    "Recycle Bin": recycle_bin_page,
    "Reports": reports_page,
    "Settings": settings_page,
}


def main_app():
    st.sidebar.title("🤝 Community Fund")
    st.sidebar.caption(f"Logged in as: {st.session_state.username}")

    pages = list(PAGES)
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    PAGES[st.session_state.page]()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not st.session_state.logged_in:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
