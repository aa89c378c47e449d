import streamlit as st

# --- Ensure local packages (ui/, scheduling/) are importable ------------------
import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
# -----------------------------------------------------------------------------

from ui.helpers import ensure_session_keys
from ui.upload import render_uploads
from ui.sections import (
    render_stats,
    render_assignment_grid,
    render_placement_form,
    render_timeline,
    render_room_counts,
    render_drafts,
    render_course_editor,
    render_downloads,
    render_logs,
)

st.set_page_config(
    page_title="Schedule Board",
    layout="wide",
    initial_sidebar_state="collapsed",
)

st.title("🗓️ Course Schedule Board")

# init session keys
ensure_session_keys()

# Uploads (events, courses, unavailability, schedule)
render_uploads()

render_stats()

# Sections
render_assignment_grid()
render_placement_form()
render_timeline()
render_room_counts()
render_drafts()
render_course_editor()
render_downloads()
render_logs()
