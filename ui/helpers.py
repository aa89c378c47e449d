from __future__ import annotations
import streamlit as st
import pandas as pd
from urllib.request import urlopen

from scheduling.utils import _course_sort_key, format_date

# ----------------- Session & CSV helpers -----------------

def ensure_session_keys() -> None:
    """Create all session_state keys used by the app if missing."""
    defaults = [
        ("log_lines",      []),
        ("save_errors",    []),
        ("import_errors",  {}),
        ("_loaded_files",  {}),
        ("pending_shrink", None),
    ]
    for k, v in defaults:
        if k not in st.session_state:
            st.session_state[k] = v


def _peek_start(src, size: int = 1024) -> bytes:
    """Return up to ``size`` bytes from the start of ``src`` without consuming it."""
    try:
        if hasattr(src, "read") and hasattr(src, "seek") and hasattr(src, "tell"):
            pos = src.tell()
            data = src.read(size)
            src.seek(pos)
            return data
        if isinstance(src, str):
            if src.startswith(("http://", "https://")):
                with urlopen(src) as resp:
                    return resp.read(size)
            with open(src, "rb") as fh:
                return fh.read(size)
    except OSError:
        pass
    return b""


def read_csv(src):
    """Read CSV from an uploaded file or a URL.

    Uses UTF‑8‑SIG decoding and avoids converting empty cells to ``"nan"``.
    ``src`` may be a file-like object (e.g. ``BytesIO``) or a string/URL.
    Automatically detects common delimiters, checks for HTML responses, and
    provides user-friendly errors.
    """
    start = _peek_start(src)
    if b"<html" in start.lower():
        raise ValueError("The provided source returned HTML, not CSV. Check the URL or file.")
    try:
        return pd.read_csv(
            src,
            encoding="utf-8-sig",
            keep_default_na=False,
            na_filter=False,
            sep=None,
            engine="python",
            dtype=str,
        )
    except pd.errors.ParserError as exc:
        raise ValueError(
            "Could not parse CSV. The file may be invalid or use an unexpected delimiter."
        ) from exc
    except UnicodeDecodeError:
        # Some exports omit the BOM and are not UTF-8 at all.
        if hasattr(src, "seek"):
            src.seek(0)
        try:
            return pd.read_csv(
                src,
                encoding="latin-1",
                keep_default_na=False,
                na_filter=False,
                sep=None,
                engine="python",
                dtype=str,
            )
        except pd.errors.ParserError as exc:
            raise ValueError(
                "Could not parse CSV. The file may be invalid or use an unexpected delimiter."
            ) from exc


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8-sig")


# ----------------- Display helpers -----------------

def course_label(ctx, course_id: str) -> str:
    c = ctx.courses.get(course_id)
    if c is None:
        return course_id
    return f"{c.course_id} · {c.instructor} – {c.name} ({c.duration_days:g}d)"


def event_label(ctx, event_id: str) -> str:
    ev = ctx.events.get(event_id)
    if ev is None:
        return event_id
    span = ""
    if ev.has_dates:
        span = f", {format_date(ev.first_day)}–{format_date(ev.last_day)}"
    return f"{ev.name} ({ev.total_days} days{span})"


def sorted_course_ids(ctx) -> list[str]:
    return sorted(ctx.courses, key=_course_sort_key)


def day_header(ctx, event_id: str, day: int) -> str:
    on = ctx.date_for(event_id, day)
    return f"Day {day}" + (f" · {format_date(on)}" if on else "")


def timeline_frame(ctx, event_id: str) -> pd.DataFrame:
    """Rooms × days grid of course ids; drafts are suffixed with '*'."""
    ev = ctx.events[event_id]
    cols = [day_header(ctx, event_id, d) for d in range(1, ev.total_days + 1)]
    grid = pd.DataFrame("", index=[f"Room {r}" for r in range(1, ev.room_count + 1)], columns=cols)
    loose = []
    for p in ctx.store.placements_for_event(event_id):
        if not p.days:
            continue
        if p.room is None:
            loose.append(p)
            continue
        tag = p.course_id + ("*" if p.draft else "")
        for d in p.days:
            cell = grid.iat[p.room - 1, d - 1]
            grid.iat[p.room - 1, d - 1] = f"{cell}, {tag}" if cell else tag
    if loose:
        row = [""] * ev.total_days
        for p in loose:
            for d in p.days:
                row[d - 1] = f"{row[d - 1]}, {p.course_id}" if row[d - 1] else p.course_id
        grid.loc["No room"] = row
    return grid


__all__ = [
    "ensure_session_keys",
    "read_csv",
    "to_csv_bytes",
    "course_label",
    "event_label",
    "sorted_course_ids",
    "day_header",
    "timeline_frame",
]
