# ui/runner.py
from __future__ import annotations
import os
from datetime import datetime as dt

import streamlit as st

from scheduling import Accepted, SchedulingContext
from scheduling.persistence import DebouncedSaver, restore


def log_line(msg: str) -> None:
    st.session_state.setdefault("log_lines", []).append(f"{dt.now():%H:%M:%S} {msg}")


def _make_saver():
    """Autosave to the sheet store when SCHEDULE_SPREADSHEET_ID is set."""
    spreadsheet_id = os.environ.get("SCHEDULE_SPREADSHEET_ID")
    if not spreadsheet_id:
        return None
    cred_file = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "service_account.json")
    delay = float(os.environ.get("SCHEDULE_SAVE_DELAY_SEC", "3"))

    from gsheets_service import _open_spreadsheet, save_to_spreadsheet

    def save(snap):
        save_to_spreadsheet(_open_spreadsheet(spreadsheet_id, cred_file), snap)

    # The timer thread cannot call into Streamlit; hand it plain lists.
    lines = st.session_state["log_lines"]
    errors = st.session_state["save_errors"]
    return DebouncedSaver(
        save,
        delay_sec=delay,
        on_error=lambda exc: errors.append(f"{dt.now():%H:%M:%S} {exc}"),
        log_func=lambda m: lines.append(f"{dt.now():%H:%M:%S} {m}"),
    )


def get_context() -> SchedulingContext:
    """The session's single SchedulingContext (created on first use)."""
    if "ctx" not in st.session_state:
        ctx = SchedulingContext(log_func=log_line)
        saver = _make_saver()
        if saver is not None:
            ctx.on_change = saver.touch
        st.session_state["ctx"] = ctx
        st.session_state["saver"] = saver
    return st.session_state["ctx"]


def load_from_sheet() -> None:
    spreadsheet_id = os.environ.get("SCHEDULE_SPREADSHEET_ID")
    if not spreadsheet_id:
        st.warning("Set SCHEDULE_SPREADSHEET_ID to load a saved board.")
        return
    from gsheets_service import _open_spreadsheet, load_from_spreadsheet

    ctx = get_context()
    cred_file = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "service_account.json")
    saver = st.session_state.get("saver")
    if saver is not None:
        saver.cancel()
    errors = restore(ctx, load_from_spreadsheet(_open_spreadsheet(spreadsheet_id, cred_file)))
    if saver is not None:
        saver.cancel()  # what was just loaded is already saved
    st.session_state["import_errors"]["sheet"] = errors
    st.success(f"Loaded board from sheet ({len(errors)} row error(s)).")


def report_outcome(outcome) -> None:
    if isinstance(outcome, Accepted):
        if not outcome.days:
            st.success("✅ Assigned (not on the timeline yet).")
            return
        msg = f"✅ Placed on days {outcome.days[0]}-{outcome.days[-1]}."
        if outcome.clamped:
            msg += f" Start moved to day {outcome.start_day} so the course fits the event."
        st.success(msg)
    else:
        st.error(f"❌ {outcome.reason.value}: {outcome.message}")
