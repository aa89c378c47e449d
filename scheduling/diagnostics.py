# scheduling/diagnostics.py

from __future__ import annotations
from typing import List

import pandas as pd

from .utils import _course_sort_key, contiguous_runs, format_date

CONFLICT_COLUMNS = ["eventId", "courseId", "instructor", "scheduledDays", "conflictDays"]


def conflict_report(ctx) -> List[dict]:
    """Placed courses whose days hit their instructor's blocked days."""
    rows: List[dict] = []
    for p in ctx.store.all():
        course = ctx.courses.get(p.course_id)
        if course is None or not p.days:
            continue
        blocked = set(ctx.index.blocked_days_for_course(course, p.event_id))
        clash = sorted(blocked & set(p.days))
        if clash:
            rows.append({
                "eventId": p.event_id,
                "courseId": p.course_id,
                "instructor": course.instructor,
                "scheduledDays": [p.days[0], p.days[-1]],
                "conflictDays": clash,
            })
    return rows


def conflicts_to_df(rows: List[dict]) -> pd.DataFrame:
    out = pd.DataFrame(rows, columns=CONFLICT_COLUMNS)
    if out.empty:
        return out
    out["scheduledDays"] = out["scheduledDays"].map(lambda r: f"{r[0]}-{r[1]}")
    out["conflictDays"] = out["conflictDays"].map(lambda ds: ", ".join(map(str, ds)))
    return out


def fill_rates(ctx) -> pd.DataFrame:
    rows = []
    for ev in ctx.events.values():
        occupied = ctx.store.occupied_room_days(ev.event_id)
        capacity = ev.total_days * ev.room_count
        rows.append({
            "event_id": ev.event_id,
            "event": ev.name,
            "days": ev.total_days,
            "rooms": ev.room_count,
            "fill_rate": round(ctx.store.fill_rate(ev.event_id, ev.total_days), 3),
            "room_days_booked": len(occupied),
            "room_days_total": capacity,
            "fully_booked": len(occupied) >= capacity,
        })
    return pd.DataFrame(rows, columns=[
        "event_id", "event", "days", "rooms", "fill_rate",
        "room_days_booked", "room_days_total", "fully_booked",
    ])


def fully_booked_events(ctx) -> List[str]:
    df = fill_rates(ctx)
    if df.empty:
        return []
    return list(df.loc[df["fully_booked"], "event_id"])


def unbooked_room_days(ctx) -> pd.DataFrame:
    """Free (room, day-run) blocks per event, one row per run."""
    rows = []
    for ev in ctx.events.values():
        free = ctx.store.unbooked_room_days(ev.event_id, ev.total_days, ev.room_count)
        for room in range(1, ev.room_count + 1):
            for run in contiguous_runs(d for r, d in free if r == room):
                rows.append({
                    "event_id": ev.event_id,
                    "room": room,
                    "first_day": run[0],
                    "last_day": run[-1],
                    "length": len(run),
                    "dates": (
                        f"{format_date(ctx.date_for(ev.event_id, run[0]))} – "
                        f"{format_date(ctx.date_for(ev.event_id, run[-1]))}"
                        if ctx.calendar.get(ev.event_id) else ""
                    ),
                })
    return pd.DataFrame(rows, columns=["event_id", "room", "first_day", "last_day", "length", "dates"])


def duplicates_report(ctx) -> pd.DataFrame:
    rows = []
    for cid in sorted(ctx.duplicate_courses, key=_course_sort_key):
        for i, c in enumerate(ctx.duplicate_courses[cid]):
            rows.append({
                "course_id": cid,
                "record": i + 1,
                "instructor": c.instructor,
                "name": c.name,
                "duration_days": c.duration_days,
                "topic": c.topic,
                "in_use": i == 0,
            })
    return pd.DataFrame(rows, columns=["course_id", "record", "instructor", "name", "duration_days", "topic", "in_use"])


def instructor_capacity(ctx) -> pd.DataFrame:
    """Per assigned course: blocked days and whether enough free days remain."""
    rows = []
    for p in ctx.store.all():
        course = ctx.courses.get(p.course_id)
        ev = ctx.events.get(p.event_id)
        if course is None or ev is None:
            continue
        blocked = ctx.index.blocked_days_for_course(course, p.event_id)
        rows.append({
            "event_id": p.event_id,
            "course_id": p.course_id,
            "instructor": course.instructor,
            "blocked_days": ", ".join(map(str, blocked)),
            "has_capacity": (ev.total_days - len(blocked)) >= course.days_needed,
        })
    return pd.DataFrame(rows, columns=["event_id", "course_id", "instructor", "blocked_days", "has_capacity"])
