from __future__ import annotations

from datetime import timedelta

import pandas as pd
import streamlit as st

from igire.api.deps import get_services
from igire.config import settings
from igire.contracts.payloads import ComplaintUpdateRequest, InstitutionCreateRequest, LoginRequest
from igire.domain.models import Category, UserRole
from igire.domain.states import ComplaintStatus
from igire.logger import init_logging
from igire.services.errors import AuthError


st.set_page_config(page_title="Igire Citizen Hub", page_icon="📣", layout="wide")

init_logging(settings)
services = get_services()

st.title("Igire Citizen Hub")
st.caption("Complaint intake, routing and accountability dashboard")

with st.expander("Environment status", expanded=False):
    st.write(
        {
            "APP_ENV": settings.app_env,
            "MONGODB_CONFIGURED": settings.mongodb_configured(),
            "PERSISTENCE": "MongoDB" if services.using_remote else f"In-memory fallback ({services.persistence_error})",
            "GROQ_CONFIGURED": bool(settings.groq_api_key),
            "ASSEMBLYAI_CONFIGURED": bool(settings.assemblyai_api_key),
            "SUPABASE_STORAGE": settings.supabase_configured(),
            "PINDO_CONFIGURED": bool(settings.pindo_api_key),
        }
    )

with st.sidebar:
    st.header("Admin Sign-in")
    admin = st.session_state.get("admin")
    if admin:
        st.success(f"Signed in as {admin.get('name')} ({admin.get('role')})")
        if st.button("Sign out", use_container_width=True):
            st.session_state.pop("admin", None)
            st.rerun()
    else:
        email = st.text_input("Email", value=settings.default_admin_email)
        password = st.text_input("Password", type="password")
        if st.button("Sign in", type="primary", use_container_width=True):
            try:
                result = services.auth.login(LoginRequest(email=email, password=password))
                if result["user"].get("role") not in {UserRole.ADMIN.value, UserRole.INSTITUTION.value}:
                    st.error("Staff access required")
                else:
                    st.session_state["admin"] = result["user"]
                    st.rerun()
            except (AuthError, ValueError) as exc:
                st.error(str(exc))

    time_range = st.selectbox("Time range", ["7d", "30d", "90d"], index=1)

if not st.session_state.get("admin"):
    st.info("Sign in with a staff account to view complaints.")
    st.stop()

actor = st.session_state["admin"]


@st.fragment(run_every=timedelta(seconds=settings.dashboard_refresh_seconds))
def overview() -> None:
    snapshot = services.analytics.snapshot(time_range)
    statuses = {row["status"]: row["count"] for row in snapshot["statusDistribution"]}

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Complaints", snapshot["totalComplaints"])
    m2.metric("Submitted", statuses.get(ComplaintStatus.SUBMITTED.value, 0))
    m3.metric("In progress", statuses.get(ComplaintStatus.IN_PROGRESS.value, 0))
    m4.metric("Resolved", statuses.get(ComplaintStatus.RESOLVED.value, 0))

    c1, c2 = st.columns(2)
    with c1:
        st.subheader("By category")
        if snapshot["categoryDistribution"]:
            st.bar_chart(pd.DataFrame(snapshot["categoryDistribution"]).set_index("category"))
        else:
            st.caption("No complaints in range.")
    with c2:
        st.subheader("Average days to resolve")
        if snapshot["resolutionTimes"]:
            st.line_chart(pd.DataFrame(snapshot["resolutionTimes"]).set_index("date"))
        else:
            st.caption("No resolved complaints in range.")

    st.subheader("Latest unresolved")
    unresolved = snapshot["unresolvedComplaints"]
    if unresolved:
        df = pd.DataFrame(unresolved)
        cols = [c for c in ["id", "category", "status", "district", "assigned_agency", "submission_method", "created_at"] if c in df.columns]
        st.dataframe(df[cols], use_container_width=True, hide_index=True)
    else:
        st.caption("Everything in range is resolved.")


overview()

st.divider()

tab_complaints, tab_institutions, tab_predictions = st.tabs(["Complaints", "Institutions", "Predictions"])

with tab_complaints:
    complaints = services.complaints.list_joined()
    if not complaints:
        st.info("No complaints yet.")
    else:
        df = pd.DataFrame(complaints)
        df["submitter"] = df["user"].map(lambda u: (u or {}).get("name") or "")
        cols = [
            c
            for c in [
                "id",
                "category",
                "ai_confidence",
                "severity",
                "status",
                "assigned_agency",
                "suggested_agency",
                "district",
                "submission_method",
                "submitter",
                "phone_number",
                "created_at",
            ]
            if c in df.columns
        ]
        st.dataframe(df[cols], use_container_width=True, hide_index=True)

        st.markdown("### Update complaint")
        selected = st.selectbox("Complaint", [c["id"] for c in complaints])
        current = next(c for c in complaints if c["id"] == selected)
        st.write(
            {
                "description": current.get("description"),
                "translated": current.get("translated_description"),
                "status": current.get("status"),
                "suggested actions": current.get("suggested_actions") or [],
            }
        )
        u1, u2 = st.columns(2)
        with u1:
            new_status = st.selectbox("Status", ["", *[s.value for s in ComplaintStatus]])
        with u2:
            agency = st.text_input("Assigned agency", value=current.get("assigned_agency") or "")
        if st.button("Apply update", type="primary"):
            try:
                result = services.complaints.update(
                    selected,
                    ComplaintUpdateRequest(
                        status=new_status or None,
                        assigned_agency=agency if agency != (current.get("assigned_agency") or "") else None,
                    ),
                    actor["id"],
                )
                st.success(f"Updated {selected}: {result['updated'] or 'no change'}")
            except ValueError as exc:
                st.error(str(exc))

with tab_institutions:
    institutions = services.repo.list_institutions()
    if institutions:
        st.dataframe(
            pd.DataFrame(institutions)[["id", "name", "department", "email", "phone", "created_at"]],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.info("No institutions registered; every complaint routes to 'Not Found'.")

    if actor.get("role") == UserRole.ADMIN.value:
        with st.form("new_institution"):
            st.markdown("### Register institution")
            name = st.text_input("Name")
            department = st.selectbox("Department", [c.value for c in Category if c != Category.OTHER])
            inst_email = st.text_input("Email")
            inst_phone = st.text_input("Phone")
            if st.form_submit_button("Create"):
                try:
                    created = services.institutions.create(
                        InstitutionCreateRequest(name=name, department=department, email=inst_email, phone=inst_phone),
                        actor["id"],
                    )
                    st.success(f"Created {created['id']}. Temporary password: {created['temporaryPassword']}")
                except ValueError as exc:
                    st.error(str(exc))

with tab_predictions:
    location = st.text_input("Location", value="Kigali")
    if actor.get("role") == UserRole.ADMIN.value and st.button("Generate predictions"):
        rows = services.predictions.generate(location)
        st.success(f"Stored {len(rows)} predictions for {location}")
    predictions = services.predictions.list_for_location(location)
    if predictions:
        st.dataframe(
            pd.DataFrame(predictions)[["issue", "category", "probability", "timeframe", "created_at"]],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No predictions stored for this location.")
