import streamlit as st
import pandas as pd
from .helpers import read_csv
from .runner import get_context, load_from_sheet

from scheduling.records import (
    courses_from_df,
    events_from_df,
    placement_rows_from_df,
    unavailability_from_df,
)

UPLOADS = [
    ("events",         "📅 Events CSV",          "Event_ID, Event, First Day, Last Day (or Total Days), Rooms"),
    ("courses",        "📚 Courses CSV",         "Course_ID, Instructor, Course_Name, Duration_Days, Topic"),
    ("unavailability", "🚫 Unavailability CSV",  "Instructor, Start, End"),
    ("schedule",       "🗓️ Schedule CSV",        "courseId, durationDays, firstDay, lastDay, eventId, roomNumber, draft"),
]


def _apply(kind: str, df: pd.DataFrame) -> None:
    """Parse one uploaded table and replace that part of the board."""
    ctx = get_context()
    errors: list[str] = []
    if kind == "events":
        events, errors = events_from_df(df)
        errors += ctx.load_events(events)
    elif kind == "courses":
        courses, errors = courses_from_df(df)
        dups = ctx.load_courses(courses)
        if dups:
            st.warning(f"Duplicate course IDs need a manual merge: {', '.join(dups)}")
    elif kind == "unavailability":
        entries, errors = unavailability_from_df(df)
        ctx.load_unavailability(entries)
    elif kind == "schedule":
        rows, errors = placement_rows_from_df(df)
        result = ctx.import_placement_rows(rows)
        errors += result.errors
        st.info(f"Schedule import: {result.success_count} row(s) applied.")
    st.session_state["import_errors"][kind] = errors


def _load_once(kind: str, key: str, src) -> None:
    # Streamlit re-runs the script on every click; only parse new sources.
    if st.session_state["_loaded_files"].get(kind) == key:
        return
    try:
        df = read_csv(src)
        _apply(kind, df)
    except ValueError as e:
        st.error(f"Failed to load {kind} CSV: {e}")
        return
    st.session_state["_loaded_files"][kind] = key


def render_uploads():
    st.markdown("### 📁 Upload Events, Courses & Unavailability")

    use_links = st.toggle(
        "Use links instead of file upload",
        key="use_links",
        help="Switch to provide URLs pointing to the CSV files.",
    )

    cols = st.columns(len(UPLOADS))
    for (kind, label, hint), col in zip(UPLOADS, cols):
        with col:
            if use_links:
                url = st.text_input(label, key=f"{kind}_url", placeholder=f"https://example.com/{kind}.csv", help=hint)
                if url:
                    _load_once(kind, url, url)
            else:
                f = st.file_uploader(label, type="csv", key=f"{kind}_file", help=hint)
                if f is not None:
                    _load_once(kind, f"{f.name}:{f.size}", f)

    c1, _ = st.columns([1, 3])
    with c1:
        if st.button("☁️ Load saved board from sheet"):
            load_from_sheet()

    for kind, errors in st.session_state["import_errors"].items():
        if errors:
            with st.expander(f"⚠️ {kind}: {len(errors)} row(s) skipped", expanded=False):
                for e in errors:
                    st.write(f"• {e}")
