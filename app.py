#!/usr/bin/env python3
"""
Run instructions
- Install dependencies:
    pip install -e .
- Run the app:
    streamlit run app.py

Notes
- Data for every user lives in one JSON file (WEIGHT_TRACKER_STORE_PATH, default
  ./weight_store.json). It is read on each rerun and rewritten after each change.
- `python generatedata.py` writes a demo user with a few months of history.
- Weights are kilograms. "Today" is taken in WEIGHT_TRACKER_TZ (default UTC).
"""
from __future__ import annotations

import logging
import sys
from datetime import date, datetime

import streamlit as st

import config
from charts import logs_frame, make_change_chart, make_trajectory_chart
from store import ProgressStoreFile, update_settings, user_names
from trajectory import GRANULARITY_STEPS, build_series, compute_summary, delete_log, upsert_log

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)


def today_local(tz=config.LOCAL_TZ) -> date:
    return datetime.now(tz).date()


# -------------------------------
# Formatting helpers
# -------------------------------

def _format_change(x: float) -> str:
    sign = "+" if x > 0 else ""
    return f"{sign}{x:.1f} kg"


# -------------------------------
# Streamlit UI helpers
# -------------------------------

def _save(store_file: ProgressStoreFile, user: str, fn, success: str) -> None:
    try:
        store_file.update(user, fn)
    except OSError as e:
        log.error("Failed to save profile for %s: %s", user, e)
        st.error(f"❌ Failed to save: {e}")
        return
    st.success(success)


def render_user_picker(store_file: ProgressStoreFile) -> str:
    names = user_names(store_file.read())
    st.session_state.setdefault("active_user", config.DEFAULT_USER)
    if st.session_state["active_user"] not in names:
        st.session_state["active_user"] = config.DEFAULT_USER

    st.selectbox("Select User", names, key="active_user")

    with st.expander("+ Add User"):
        new_user = st.text_input("Enter new user name:", key="new_user_name")
        if st.button("Create", key="create_user_btn"):
            try:
                created = store_file.add_user(new_user)
            except OSError as e:
                st.error(f"❌ Failed to save: {e}")
                created = False
            if created:
                st.session_state["pending_user"] = new_user.strip()
                st.rerun()
            else:
                st.warning("Enter a name that is not already taken.")
    return st.session_state["active_user"]


def render_settings(store_file: ProgressStoreFile, user: str) -> None:
    profile = store_file.profile(user)
    st.markdown("### Goal Settings")
    c1, c2 = st.columns(2)
    with c1:
        start_weight = st.number_input("Start weight (kg)", value=float(profile.start_weight), step=0.1, format="%.1f", key=f"sw_{user}")
        start_date = st.date_input("Start date", value=profile.start_date, key=f"sd_{user}")
    with c2:
        goal_weight = st.number_input("Goal weight (kg)", value=float(profile.goal_weight), step=0.1, format="%.1f", key=f"gw_{user}")
        goal_date = st.date_input("Goal date", value=profile.goal_date, key=f"gd_{user}")

    if st.button("Save settings", use_container_width=True):
        _save(
            store_file,
            user,
            lambda p: update_settings(p, start_weight=start_weight, goal_weight=goal_weight, start_date=start_date, goal_date=goal_date),
            "✅ Settings saved",
        )
    if goal_weight == start_weight:
        st.info("Start and goal weight are equal; progress stays at 0%.")
    if goal_date <= start_date:
        st.info("Goal date is not after the start date; the target line is a single point.")


def render_log_controls(store_file: ProgressStoreFile, user: str) -> None:
    profile = store_file.profile(user)
    st.markdown("### Log New Weight")
    entry_date = st.date_input("Date", value=today_local(), key=f"entry_date_{user}")
    last_weight = profile.logs[-1].weight if profile.logs else profile.start_weight
    entry_weight = st.number_input("Weight (kg)", value=float(last_weight), step=0.1, format="%.1f", key=f"entry_weight_{user}")

    existing = next((e for e in profile.logs if e.date == entry_date), None)
    if existing is not None:
        st.info(f"📝 Entry exists for {entry_date}: {existing.weight:.1f} kg. Saving will overwrite it.")

    if st.button("Save Entry", use_container_width=True, type="primary"):
        _save(
            store_file,
            user,
            lambda p: upsert_log(p, entry_date, entry_weight),
            f"✅ Saved {entry_weight:.1f} kg for {entry_date}",
        )

    st.markdown("### Delete Entry")
    if not profile.logs:
        st.caption("No entries yet.")
        return
    dates = [e.date.isoformat() for e in profile.logs]
    selection = st.selectbox("Select date", options=dates, index=len(dates) - 1, key=f"delete_sel_{user}")
    confirm = st.checkbox("Confirm delete", value=False, key=f"confirm_delete_{user}")
    if st.button("Delete", use_container_width=True):
        if not confirm:
            st.warning("Please check 'Confirm delete' before deleting.")
        else:
            _save(store_file, user, lambda p: delete_log(p, selection), f"✅ Deleted entry for {selection}")


def render_insights(store_file: ProgressStoreFile, user: str) -> None:
    profile = store_file.profile(user)
    summary = compute_summary(profile, today_local())

    c1, c2, c3 = st.columns(3)
    with c1:
        st.metric("Current weight", f"{summary.current_weight:.1f} kg", _format_change(summary.change_since_last))
        st.metric("Target today", f"{summary.target_today:.1f} kg")
    with c2:
        st.metric("Progress", f"{summary.weight_progress_pct:.1f}%")
        st.progress(summary.weight_progress_pct / 100.0)
    with c3:
        st.metric("Days elapsed", f"{summary.days_elapsed} / {summary.total_days}")
        st.metric("Days remaining", summary.days_remaining)

    options = list(GRANULARITY_STEPS)
    default = config.DEFAULT_GRANULARITY if config.DEFAULT_GRANULARITY in options else "daily"
    granularity = st.radio("Chart steps", options, index=options.index(default), horizontal=True)

    series = build_series(profile, granularity)
    st.plotly_chart(make_trajectory_chart(series, profile.goal_weight), use_container_width=True)
    st.plotly_chart(make_change_chart(profile), use_container_width=True)


# Main UI
def main():
    st.set_page_config(page_title="Weight Tracker", layout="wide")
    st.title("Weight Tracker")

    store_file = ProgressStoreFile(config.STORE_PATH)

    # switch to a freshly created user before the selectbox is drawn
    pending = st.session_state.pop("pending_user", None)
    if pending:
        st.session_state["active_user"] = pending

    left, right = st.columns([1, 2])
    with left:
        user = render_user_picker(store_file)
        st.divider()
        render_settings(store_file, user)
        st.divider()
        render_log_controls(store_file, user)

    with right:
        st.subheader(f"Progress for {user}")
        render_insights(store_file, user)

    st.markdown("### History")
    st.dataframe(logs_frame(store_file.profile(user)), use_container_width=True, hide_index=True)


# Call the Streamlit app entrypoint when the script is executed by Streamlit
main()
