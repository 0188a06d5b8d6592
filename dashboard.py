"""
dashboard.py
Streamlit owner dashboard over the billing store (read-only views, invoices, exports).
Run: streamlit run dashboard.py
"""

from __future__ import annotations

import pandas as pd
import streamlit as st

import auth
import billing
import db
import followups
import invoice
import utils

st.set_page_config(page_title="Gym Billing", layout="wide")

BILL_COLUMNS = [
    "memberId", "client", "contactNumber", "package", "joiningDate", "endDate",
    "price", "amountPaid", "balance", "totalPaidIncludingRenewals", "status",
]


def init_once():
    auth.seed_admin()


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
    st.title("🔐 Gym Owner Login")

    username = st.text_input("Username", value="admin")
    password = st.text_input("Password", type="password")
    if st.button("Login", type="primary"):
        if auth.login(username.strip(), password):
            st.session_state.logged_in = True
            st.session_state.username = username.strip()
            st.rerun()
        else:
            st.error("Invalid username or password.")


def password_form(required: bool):
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        if len(p1) < 6:
            st.error("Password must be at least 6 characters.")
        elif p1 != p2:
            st.error("Passwords do not match.")
        else:
            auth.change_password(st.session_state.username, p1)
            st.success("Password updated.")
            if required:
                st.rerun()


def bills_page():
    st.header("🧾 Bills")

    bills = billing.list_bills()
    if not bills:
        st.info("No bills yet.")
        return

    search = st.sidebar.text_input("Search (member ID / name / phone)").strip().lower()
    if search:
        bills = [
            b for b in bills
            if any(search in str(b.get(k) or "").lower() for k in ("memberId", "client", "contactNumber"))
        ]

    df = pd.DataFrame(bills).reindex(columns=BILL_COLUMNS)
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    options = {f"{b.get('client') or '-'} ({b['memberId']})": b for b in bills}
    if not options:
        st.caption("No bills match the search.")
        return
    chosen = options[st.selectbox("Bill", list(options.keys()))]

    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Renewal history")
        st.dataframe(pd.DataFrame(chosen.get("renewalHistory") or []), use_container_width=True, hide_index=True)
    with c2:
        st.subheader("Payment history")
        st.dataframe(pd.DataFrame(chosen.get("paymentHistory") or []), use_container_width=True, hide_index=True)

    picture = None
    if chosen.get("profilePicture"):
        picture, _ = billing.get_image(chosen["_id"])
        st.image(picture, width=96)

    st.download_button(
        "Download invoice (PDF)",
        data=invoice.render_invoice(chosen, picture),
        file_name=f"invoice-{chosen['memberId']}.pdf",
        mime="application/pdf",
    )


def reports_page():
    st.header("📈 Reports")

    bills = billing.list_bills()

    st.subheader("Export bills to CSV")
    if bills:
        st.download_button(
            "Download bills.csv",
            data=utils.bills_to_csv_bytes(bills),
            file_name="bills.csv",
            mime="text/csv",
        )
    else:
        st.caption("No bills to export.")

    st.divider()

    st.subheader("Revenue summary by month")
    st.dataframe(utils.revenue_summary_by_month(bills), use_container_width=True, hide_index=True)


def followups_page():
    st.header("⏰ Follow-ups")

    rows = followups.list_followups()
    if rows:
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    else:
        st.caption("No follow-ups scheduled.")


def main_app():
    st.sidebar.title("🏋️ Gym Billing")
    st.sidebar.caption(f"Logged in as: {st.session_state.username}")

    pages = {"Bills": bills_page, "Reports": reports_page, "Follow-ups": followups_page}
    choice = st.sidebar.radio("Navigate", list(pages.keys()))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    pages[choice]()

    with st.sidebar.expander("Change password"):
        password_form(required=False)


def run():
    init_once()
    require_login()

    if not st.session_state.logged_in:
        login_screen()
        return

    if db.is_force_password_change():
        st.title("⚠️ Change Password (Required)")
        st.warning("You must change the default password before using the dashboard.")
        password_form(required=True)
        return

    main_app()


if __name__ == "__main__":
    run()
