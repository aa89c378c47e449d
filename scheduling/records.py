"""
Edge adapter between uploaded tables and typed records.

Every table is validated here once; the engine never sees raw rows.
Readers return (records, errors) where errors are "Row N: ..." strings.
A missing required column raises ValueError for the whole table.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .calendar import CalendarError, expand_event_days
from .models import Course, Event, UnavailabilityEntry
from .utils import _clean_opt, _norm_id, _parse_date, format_date

COURSE_COLUMNS: Dict[str, Sequence[str]] = {
    "course_id": ("Course_ID", "course_id", "courseId", "Course ID", "id"),
    "instructor": ("Instructor", "instructor"),
    "name": ("Course_Name", "course_name", "Course Name", "name"),
    "duration_days": ("Duration_Days", "duration_days", "durationDays", "Duration"),
    "topic": ("Topic", "topic"),
}
EVENT_COLUMNS: Dict[str, Sequence[str]] = {
    "event_id": ("Event_ID", "event_id", "eventId", "Event ID", "id"),
    "name": ("Event", "event", "name", "Event Name"),
    "total_days": ("Total Days", "total_days", "totalDays"),
    "room_count": ("Rooms", "room_count", "roomCount", "Room Count"),
    "first_day": ("First Day", "first_day", "firstDay", "Start Date"),
    "last_day": ("Last Day", "last_day", "lastDay", "End Date"),
    "location": ("Location", "location"),
    "notes": ("Notes", "notes"),
}
UNAVAILABILITY_COLUMNS: Dict[str, Sequence[str]] = {
    "instructor": ("Instructor", "instructor"),
    "start": ("Start", "start", "Start Date", "start_date", "From"),
    "end": ("End", "end", "End Date", "end_date", "To"),
}
PLACEMENT_COLUMNS: Dict[str, Sequence[str]] = {
    "courseId": ("courseId", "Course_ID", "course_id"),
    "durationDays": ("durationDays", "Duration_Days", "duration_days"),
    "firstDay": ("firstDay", "First Day", "first_day"),
    "lastDay": ("lastDay", "Last Day", "last_day"),
    "eventId": ("eventId", "Event_ID", "event_id"),
    "roomNumber": ("roomNumber", "Room", "room", "room_number"),
    "draft": ("draft", "Draft"),
    "startDay": ("startDay", "Start Day", "start_day"),
}
PLACEMENT_EXPORT_COLUMNS = ["courseId", "durationDays", "firstDay", "lastDay", "eventId", "roomNumber", "draft", "startDay"]


def _first_col(df: pd.DataFrame, *candidates: str) -> Optional[str]:
    for c in candidates:
        if c in df.columns:
            return c
    return None


def _resolve_columns(df: pd.DataFrame, aliases: Dict[str, Sequence[str]], required: Sequence[str], what: str) -> Dict[str, Optional[str]]:
    cols = {key: _first_col(df, *alts) for key, alts in aliases.items()}
    for key in required:
        if cols[key] is None:
            raise ValueError(f"Missing '{aliases[key][0]}' column in {what} CSV.")
    return cols


def _cell(row, col: Optional[str]) -> str:
    return "" if col is None else _clean_opt(row.get(col, ""))


def _date_cell(row, col: Optional[str]):
    """Raw date value (may already be a Timestamp) or "" when blank."""
    if col is None:
        return ""
    value = row.get(col, "")
    return value if _clean_opt(value) else ""


def _number(text: str) -> float:
    return float(str(text).strip())


def _truthy(val) -> bool:
    s = str(val).strip().lower()
    return s in {"1", "true", "yes", "y", "✓", "draft"}


# ---------- readers ----------------------------------------------------------

def courses_from_df(df: pd.DataFrame) -> Tuple[List[Course], List[str]]:
    cols = _resolve_columns(df, COURSE_COLUMNS, ["course_id", "instructor", "name", "duration_days"], "courses")
    courses: List[Course] = []
    errors: List[str] = []
    for n, (_, row) in enumerate(df.iterrows(), start=1):
        cid = _norm_id(_cell(row, cols["course_id"]))
        if not cid:
            errors.append(f"Row {n}: missing course ID.")
            continue
        raw = _cell(row, cols["duration_days"])
        try:
            duration = _number(raw)
        except ValueError:
            errors.append(f"Row {n}: course {cid} has a non-numeric duration '{raw}'.")
            continue
        if not duration > 0:
            errors.append(f"Row {n}: course {cid} needs a positive duration, got '{raw}'.")
            continue
        courses.append(Course(
            course_id=cid,
            instructor=_cell(row, cols["instructor"]),
            name=_cell(row, cols["name"]),
            duration_days=duration,
            topic=_cell(row, cols["topic"]),
        ))
    return courses, errors


def events_from_df(df: pd.DataFrame) -> Tuple[List[Event], List[str]]:
    cols = _resolve_columns(df, EVENT_COLUMNS, ["event_id"], "events")
    if cols["total_days"] is None and (cols["first_day"] is None or cols["last_day"] is None):
        raise ValueError("Events CSV needs either 'Total Days' or both 'First Day' and 'Last Day' columns.")
    events: List[Event] = []
    errors: List[str] = []
    for n, (_, row) in enumerate(df.iterrows(), start=1):
        eid = _norm_id(_cell(row, cols["event_id"]))
        if not eid:
            errors.append(f"Row {n}: missing event ID.")
            continue
        try:
            override = _cell(row, cols["total_days"])
            total = int(_number(override)) if override else None
            rooms_raw = _cell(row, cols["room_count"])
            rooms = int(_number(rooms_raw)) if rooms_raw else 1
        except ValueError:
            errors.append(f"Row {n}: event {eid} has a non-numeric day or room count.")
            continue
        if rooms < 1:
            errors.append(f"Row {n}: event {eid} needs at least one room.")
            continue

        first_raw, last_raw = _date_cell(row, cols["first_day"]), _date_cell(row, cols["last_day"])
        first = last = None
        if first_raw or last_raw:
            try:
                days = expand_event_days(eid, first_raw, last_raw, total)
            except CalendarError as exc:
                errors.append(f"Row {n}: {exc} (event skipped).")
                continue
            first, last = days[0].date, days[-1].date
            total = len(days)
        if total is None or total < 1:
            errors.append(f"Row {n}: event {eid} needs a date range or a total day count of at least 1.")
            continue

        events.append(Event(
            event_id=eid,
            name=_cell(row, cols["name"]) or eid,
            total_days=total,
            room_count=rooms,
            first_day=first,
            last_day=last,
            location=_cell(row, cols["location"]),
            notes=_cell(row, cols["notes"]),
        ))
    return events, errors


def unavailability_from_df(df: pd.DataFrame) -> Tuple[List[UnavailabilityEntry], List[str]]:
    cols = _resolve_columns(df, UNAVAILABILITY_COLUMNS, ["instructor", "start"], "unavailability")
    entries: List[UnavailabilityEntry] = []
    errors: List[str] = []
    for n, (_, row) in enumerate(df.iterrows(), start=1):
        who = _cell(row, cols["instructor"])
        if not who:
            errors.append(f"Row {n}: missing instructor.")
            continue
        try:
            start = _parse_date(_date_cell(row, cols["start"]))
            end_raw = _date_cell(row, cols["end"])
            end = _parse_date(end_raw) if end_raw else start
        except ValueError as exc:
            errors.append(f"Row {n}: {who}: {exc}.")
            continue
        if end < start:
            errors.append(f"Row {n}: {who}: end {format_date(end)} is before start {format_date(start)}.")
            continue
        entries.append(UnavailabilityEntry(instructor=who, start=start, end=end))
    return entries, errors


def placement_rows_from_df(df: pd.DataFrame) -> Tuple[List[dict], List[str]]:
    """Schedule rows for SchedulingContext.import_placement_rows."""
    cols = _resolve_columns(df, PLACEMENT_COLUMNS, ["courseId"], "schedule")
    rows: List[dict] = []
    errors: List[str] = []
    for n, (_, row) in enumerate(df.iterrows(), start=1):
        cid = _norm_id(_cell(row, cols["courseId"]))
        if not cid:
            errors.append(f"Row {n}: missing course ID.")
            continue
        try:
            first_raw, last_raw = _date_cell(row, cols["firstDay"]), _date_cell(row, cols["lastDay"])
            first = _parse_date(first_raw) if first_raw else None
            last = _parse_date(last_raw) if last_raw else None
        except ValueError as exc:
            errors.append(f"Row {n}: {cid}: malformed date ({exc}).")
            continue
        room_raw = _cell(row, cols["roomNumber"])
        start_raw = _cell(row, cols["startDay"])
        dur_raw = _cell(row, cols["durationDays"])
        try:
            room = int(_number(room_raw)) if room_raw else None
            start = int(_number(start_raw)) if start_raw else None
            duration = _number(dur_raw) if dur_raw else None
        except ValueError:
            errors.append(f"Row {n}: {cid}: room, start day and duration must be numbers.")
            continue
        rows.append({
            "courseId": cid,
            "durationDays": duration,
            "firstDay": first,
            "lastDay": last,
            "eventId": _cell(row, cols["eventId"]),
            "roomNumber": room,
            "draft": _truthy(_cell(row, cols["draft"])),
            "startDay": start,
        })
    return rows, errors


# ---------- writers ----------------------------------------------------------

def placements_to_df(rows: List[dict]) -> pd.DataFrame:
    out = pd.DataFrame(rows, columns=PLACEMENT_EXPORT_COLUMNS)
    if out.empty:
        return out
    for c in ("firstDay", "lastDay"):
        out[c] = out[c].map(lambda d: format_date(d) if d is not None and d == d else "")
    for c in ("roomNumber", "startDay"):
        out[c] = out[c].map(lambda v: "" if v is None or v != v else int(v))
    return out


def courses_to_df(courses) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Course_ID": c.course_id, "Instructor": c.instructor, "Course_Name": c.name,
          "Duration_Days": c.duration_days, "Topic": c.topic} for c in courses],
        columns=["Course_ID", "Instructor", "Course_Name", "Duration_Days", "Topic"],
    )


def events_to_df(events) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Event_ID": e.event_id, "Event": e.name, "Total Days": e.total_days, "Rooms": e.room_count,
          "First Day": format_date(e.first_day), "Last Day": format_date(e.last_day),
          "Location": e.location, "Notes": e.notes} for e in events],
        columns=["Event_ID", "Event", "Total Days", "Rooms", "First Day", "Last Day", "Location", "Notes"],
    )


def unavailability_to_df(entries) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Instructor": u.instructor, "Start": format_date(u.start), "End": format_date(u.end)} for u in entries],
        columns=["Instructor", "Start", "End"],
    )


def day_sheet_df(ctx) -> pd.DataFrame:
    """One row per event day and course on it; empty days get a 'No' row."""
    rows: List[dict] = []
    for ev in ctx.events.values():
        placements = [p for p in ctx.store.placements_for_event(ev.event_id) if p.days]
        for day in range(1, ev.total_days + 1):
            on_day = sorted((p for p in placements if day in p.days), key=lambda p: (p.room or 0, p.course_id))
            base = {
                "Event_ID": ev.event_id,
                "Event": ev.name,
                "Day": day,
                "Date": format_date(ctx.date_for(ev.event_id, day)),
            }
            if not on_day:
                rows.append({**base, "Course_ID": "", "Instructor": "", "Course_Name": "",
                             "Duration_Days": "", "Room": "", "Configured": "No"})
                continue
            for p in on_day:
                c = ctx.courses.get(p.course_id)
                rows.append({
                    **base,
                    "Course_ID": p.course_id,
                    "Instructor": c.instructor if c else "",
                    "Course_Name": c.name if c else "",
                    "Duration_Days": c.duration_days if c else "",
                    "Room": p.room if p.room is not None else "",
                    "Configured": "Draft" if p.draft else "Yes",
                })
    return pd.DataFrame(rows, columns=[
        "Event_ID", "Event", "Day", "Date", "Course_ID", "Instructor",
        "Course_Name", "Duration_Days", "Room", "Configured",
    ])


def courses_template_df() -> pd.DataFrame:
    return pd.DataFrame(
        [
            ("C001", "Alfred", "Mapmaking", 3),
            ("C002", "Betty", "Cooking Basics", 2),
            ("C003", "Charlie", "Advanced Photography", 4),
            ("C004", "Diana", "Web Design", 3.5),
            ("C005", "Edward", "Public Speaking", 1),
        ],
        columns=["Course_ID", "Instructor", "Course_Name", "Duration_Days"],
    )
