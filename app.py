"""
app.py
Streamlit Gym Member Management (members, fee status, attendance).
Run: streamlit run app.py
"""

from __future__ import annotations

from datetime import date
import pandas as pd
import streamlit as st

import utils
from config import configure_logging, load_settings
from exceptions import GymError
from models import PAID, PLAN_MONTHS, UNPAID
from service import MembershipService
from stores import make_store
from sweep import start_sweeper

st.set_page_config(page_title="Gym Member Management", layout="wide")

PLAN_LABELS = {
    "Monthly": "Monthly",
    "Quarterly": "Quarterly (3 months)",
    "Half-Yearly": "Half-Yearly (6 months)",
    "Yearly": "Yearly",
}


@st.cache_resource
def get_service() -> MembershipService:
    # Built once per server process; the sweeper thread lives alongside it
    settings = load_settings()
    configure_logging(settings.log_level)
    service = MembershipService(make_store(settings), renewal_anchor=settings.renewal_anchor)
    service.run_overdue_sweep()
    start_sweeper(service, settings.sweep_interval)
    return service


def show_error(exc: GymError):
    errors = getattr(exc, "errors", None)
    for e in errors or [str(exc)]:
        st.error(e)


def member_label(m) -> str:
    return f"{m.name} ({m.contact}) - ID {m.id[:8]}"


def delete_confirm_key(member_id: str) -> str:
    # Keyed per member
    return f"del_confirm_{member_id}"


# ---------- Pages ----------

def dashboard_page(service: MembershipService):
    st.header("📊 Dashboard")

    stats = service.summary()
    c1, c2, c3 = st.columns(3)
    c1.metric("Total Members", stats.total)
    c2.metric("Paid Members", stats.paid)
    c3.metric("Unpaid Members", stats.unpaid)

    st.divider()

    st.subheader("Payment due in the next 7 days")
    rows = service.due_soon(days=7)
    if rows:
        st.dataframe(utils.members_frame(rows), use_container_width=True, hide_index=True)
    else:
        st.caption("No payments due in the next 7 days.")


def member_form(service: MembershipService, existing=None):
    if existing:
        st.subheader(f"✏️ Edit Member ({existing.name})")
    else:
        st.subheader("➕ Add Member")

    plans = list(PLAN_MONTHS.keys())
    key = f"edit_{existing.id}" if existing else "new"

    with st.form(key=f"member_form_{key}", clear_on_submit=not existing):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Member Name *", value=(existing.name if existing else ""))
            contact = st.text_input("WhatsApp Number *", value=(existing.contact if existing else ""))
        with col2:
            admission_date = st.date_input(
                "Admission Date *", value=(existing.admission_date if existing else date.today())
            )
            plan = st.selectbox(
                "Membership Type *",
                options=plans,
                format_func=PLAN_LABELS.get,
                index=(plans.index(existing.plan) if existing else 0),
            )
        submitted = st.form_submit_button("Update Member" if existing else "Add Member", type="primary")

    if not submitted:
        return

    errors = utils.validate_member_inputs(name, contact, admission_date, plan)
    if errors:
        st.error("Please fill in all required fields")
        return

    try:
        if existing:
            service.update_member(existing.id, name=name, contact=contact, admission_date=admission_date, plan=plan)
            st.session_state.edit_member_id = None
            st.success("Member updated.")
        else:
            service.add_member(name, contact, admission_date, plan)
            st.success("Member added.")
    except GymError as exc:
        show_error(exc)
        return
    st.rerun()


def clear_filters():
    st.session_state.search = ""
    st.session_state.status_choice = "All Members"


def members_page(service: MembershipService):
    st.header("👥 Members")

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("🔍 Search members by name or WhatsApp...", key="search")
        status_choice = st.selectbox("Status", ["All Members", "Paid Only", "Unpaid Only"], key="status_choice")
        st.button("Clear Filters", on_click=clear_filters)

    status = {"Paid Only": PAID, "Unpaid Only": UNPAID}.get(status_choice)
    members = service.list_members(search=search, status=status)
    if members:
        st.dataframe(utils.members_frame(members), use_container_width=True, hide_index=True)
    else:
        st.info("No members found")

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        options = {member_label(m): m for m in members}
        chosen = st.selectbox("Member", options=["(none)"] + list(options.keys()))

    with colB:
        if chosen != "(none)":
            m = options[chosen]
            st.subheader("Member actions")
            st.write(
                f"Status: **{m.fee_status.upper()}** | Next Payment Due: "
                f"**{m.next_payment_due.strftime('%d/%m/%Y')}**"
            )
            c1, c2, c3, c4 = st.columns(4)
            with c1:
                new_status = st.selectbox(
                    "Fee status", [PAID, UNPAID], index=[PAID, UNPAID].index(m.fee_status), format_func=str.title
                )
                if new_status != m.fee_status:
                    try:
                        service.set_fee_status(m.id, new_status)
                    except GymError as exc:
                        show_error(exc)
                    else:
                        st.rerun()
            with c2:
                if st.button("Mark paid & renew"):
                    try:
                        service.mark_paid(m.id)
                    except GymError as exc:
                        show_error(exc)
                    else:
                        st.rerun()
            with c3:
                if st.button("Edit"):
                    st.session_state.edit_member_id = m.id
                    st.rerun()
            with c4:
                delete_confirm = st.checkbox("Confirm delete", value=False, key=delete_confirm_key(m.id))
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    try:
                        service.delete_member(m.id)
                    except GymError as exc:
                        show_error(exc)
                    else:
                        st.success("Member deleted.")
                        st.rerun()

    st.divider()

    edit_id = st.session_state.get("edit_member_id")
    if edit_id:
        try:
            member_form(service, existing=service.get_member(edit_id))
        except GymError as exc:
            show_error(exc)
        if st.button("Cancel edit"):
            st.session_state.edit_member_id = None
            st.rerun()
    else:
        member_form(service, existing=None)


def attendance_page(service: MembershipService):
    st.header("🕒 Attendance")

    members = service.list_members()
    if not members:
        st.info("No members yet. Add a member first.")
        return

    options = {member_label(m): m for m in members}
    chosen = st.selectbox("Member", list(options.keys()))
    member = options[chosen]

    c1, c2 = st.columns(2)
    with c1:
        if st.button("Check in", type="primary"):
            try:
                service.check_in(member.id)
            except GymError as exc:
                show_error(exc)
            else:
                st.success(f"{member.name} checked in.")
    with c2:
        if st.button("Check out"):
            try:
                service.check_out(member.id)
            except GymError as exc:
                show_error(exc)
            else:
                st.success(f"{member.name} checked out.")

    st.divider()

    st.subheader("Today's log")
    records = service.attendance_for_day()
    if records:
        names = {m.id: m.name for m in members}
        df = utils.attendance_frame(records)
        df.insert(1, "name", [names.get(r.member_id, "") for r in records])
        st.dataframe(df, use_container_width=True, hide_index=True)
    else:
        st.caption("No check-ins today.")


def reports_page(service: MembershipService):
    st.header("🧾 Reports")

    st.subheader("Export members to CSV")
    members = service.list_members()
    if members:
        st.download_button(
            "Download members.csv",
            data=utils.members_to_csv_bytes(members),
            file_name="members.csv",
            mime="text/csv",
        )
    else:
        st.caption("No members to export.")

    st.divider()

    st.subheader("Export attendance to CSV")
    records = service.attendance_history()
    if records:
        st.download_button(
            "Download attendance.csv",
            data=utils.attendance_to_csv_bytes(records),
            file_name="attendance.csv",
            mime="text/csv",
        )
    else:
        st.caption("No attendance to export.")

    st.divider()

    st.subheader("Fee status by plan")
    df = utils.members_frame(members)
    if df.empty:
        st.caption("No members yet.")
    else:
        table = pd.crosstab(df["membershipType"], df["feeStatus"])
        st.dataframe(table, use_container_width=True)

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert 2 sample members for testing (adds new rows each run).")
    if st.button("Insert sample data"):
        utils.insert_sample_data(service)
        st.success("Sample data inserted.")
        st.rerun()


def main_app():
    service = get_service()

    st.sidebar.title("🏋️ Gym Member Management")

    pages = ["Dashboard", "Members", "Attendance", "Reports"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.session_state.page == "Dashboard":
        dashboard_page(service)
    elif st.session_state.page == "Members":
        members_page(service)
    elif st.session_state.page == "Attendance":
        attendance_page(service)
    elif st.session_state.page == "Reports":
        reports_page(service)


if __name__ == "__main__":
    main_app()
