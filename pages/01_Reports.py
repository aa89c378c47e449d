import streamlit as st
import sys
from pathlib import Path

# Make sure we can import local packages when running from /pages
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ui.helpers import ensure_session_keys
from ui.sections import render_reports

st.set_page_config(page_title="Reports", layout="wide")
st.title("📊 Schedule Reports")

ensure_session_keys()

render_reports()
