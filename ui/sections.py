from __future__ import annotations
import streamlit as st
import pandas as pd

from .helpers import (
    course_label,
    event_label,
    sorted_course_ids,
    timeline_frame,
    to_csv_bytes,
)
from .runner import get_context, report_outcome
from scheduling import Course, Slot, validate_constraints
from scheduling.diagnostics import (
    conflict_report,
    conflicts_to_df,
    duplicates_report,
    fill_rates,
    fully_booked_events,
    instructor_capacity,
    unbooked_room_days,
)
from scheduling.records import courses_template_df, day_sheet_df, placements_to_df


def _guard(ctx) -> bool:
    if not ctx.events or not ctx.courses:
        st.info("Load events and courses to begin.")
        return False
    return True


# ---------- Stats -------------------------------------------------------------
def render_stats():
    ctx = get_context()
    s = ctx.stats()
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Courses", s["total_courses"])
    c2.metric("Assigned", s["assigned_courses"])
    c3.metric("On timeline", s["configured_courses"])
    c4.metric("Events", s["total_events"])
    c5.metric("Drafts", s["drafts"])

    errors = st.session_state.get("save_errors") or []
    if errors:
        st.error(f"Last save failed: {errors[-1]}")


# ---------- Assignment grid ---------------------------------------------------
def render_assignment_grid():
    ctx = get_context()
    st.markdown("## ✅ Offer Courses at Events")
    if not _guard(ctx):
        return

    event_ids = list(ctx.events)
    rows = []
    for cid in sorted_course_ids(ctx):
        row = {"course": course_label(ctx, cid)}
        for eid in event_ids:
            row[eid] = ctx.store.get(eid, cid) is not None
        rows.append(row)
    grid = pd.DataFrame(rows, index=sorted_course_ids(ctx))

    edited = st.data_editor(
        grid,
        disabled=["course"],
        use_container_width=True,
        column_config={eid: st.column_config.CheckboxColumn(ctx.events[eid].name) for eid in event_ids},
        key="assignment_grid",
    )

    changed = False
    with ctx.batch():
        for cid in grid.index:
            for eid in event_ids:
                before, after = bool(grid.at[cid, eid]), bool(edited.at[cid, eid])
                if after and not before:
                    ctx.assign(eid, cid)
                    changed = True
                elif before and not after:
                    ctx.unassign(eid, cid)
                    changed = True
    if changed:
        st.rerun()


# ---------- Placement ---------------------------------------------------------
def render_placement_form():
    ctx = get_context()
    st.markdown("---")
    st.markdown("## 🧩 Place a Course")
    if not _guard(ctx):
        return

    c1, c2 = st.columns(2)
    with c1:
        event_id = st.selectbox("Event", list(ctx.events), format_func=lambda e: event_label(ctx, e), key="place_event")
    ev = ctx.events[event_id]
    offered = [p.course_id for p in ctx.store.placements_for_event(event_id)]
    only_offered = st.toggle("Only courses offered at this event", value=bool(offered), key="place_only_offered")
    choices = [c for c in sorted_course_ids(ctx) if not only_offered or c in offered]
    if not choices:
        st.info("No courses offered at this event yet.")
        return
    with c2:
        course_id = st.selectbox("Course", choices, format_func=lambda c: course_label(ctx, c), key="place_course")

    c3, c4, c5 = st.columns(3)
    with c3:
        room = st.selectbox(
            "Room",
            [None] + list(range(1, ev.room_count + 1)),
            format_func=lambda r: "No room" if r is None else f"Room {r}",
            key="place_room",
        )
    with c4:
        start_day = st.number_input("Start day", min_value=1, max_value=ev.total_days, value=1, step=1, key="place_start")
    with c5:
        draft = st.checkbox("Keep as draft", help="Drafts may overlap other placements until finalized.", key="place_draft")

    blocked = ctx.blocked_days(course_id, event_id)
    if blocked:
        st.caption(f"🚫 Instructor unavailable on day(s): {', '.join(map(str, blocked))}")

    b1, b2, b3, b4 = st.columns(4)
    if b1.button("🔎 Check"):
        report_outcome(ctx.validate(event_id, course_id, room, int(start_day), draft=draft))
    if b2.button("📌 Place"):
        report_outcome(ctx.place(event_id, course_id, room, int(start_day), draft=draft))
    if b3.button("↩️ Unplace"):
        if ctx.unplace(event_id, course_id) is not None:
            st.success("Course taken off the timeline (still offered).")
    if b4.button("🗑️ Remove from event"):
        if ctx.remove(event_id, course_id) is not None:
            st.success("Course removed from the event.")


# ---------- Timeline ----------------------------------------------------------
def render_timeline():
    ctx = get_context()
    st.markdown("---")
    st.markdown("## 🗓️ Event Timelines")
    if not ctx.events:
        st.info("No events loaded.")
        return
    for eid, ev in ctx.events.items():
        placements = ctx.store.placements_for_event(eid)
        rate = ctx.store.fill_rate(eid, ev.total_days)
        with st.expander(f"{event_label(ctx, eid)} · {ev.room_count} room(s) · {rate:.0%} filled", expanded=False):
            st.dataframe(timeline_frame(ctx, eid), use_container_width=True)
            unplaced = [p.course_id for p in placements if not p.days]
            if unplaced:
                st.caption("Offered but not placed: " + ", ".join(unplaced))
            if any(p.draft for p in placements):
                st.caption("* draft (overlaps a placement in the same room)")


# ---------- Room counts -------------------------------------------------------
def render_room_counts():
    ctx = get_context()
    st.markdown("---")
    with st.expander("🏫 Rooms per event", expanded=False):
        if not ctx.events:
            st.info("No events loaded.")
            return
        event_id = st.selectbox("Event", list(ctx.events), format_func=lambda e: event_label(ctx, e), key="rooms_event")
        ev = ctx.events[event_id]
        new_count = st.number_input("Rooms", min_value=1, value=ev.room_count, step=1, key=f"rooms_{event_id}")
        if st.button("Apply room count"):
            change = ctx.set_room_count(event_id, int(new_count))
            if change.applied:
                st.success(f"{event_id} now has {change.new_count} room(s).")
            else:
                st.session_state["pending_shrink"] = (event_id, int(new_count), change.affected)

        pending = st.session_state.get("pending_shrink")
        if pending and pending[0] == event_id:
            _, count, affected = pending
            st.warning(
                f"Reducing to {count} room(s) takes these courses off the timeline "
                f"(they stay offered): {', '.join(affected)}"
            )
            c1, c2 = st.columns(2)
            if c1.button("Confirm reduction"):
                ctx.set_room_count(event_id, count, confirm=True)
                st.session_state["pending_shrink"] = None
                st.rerun()
            if c2.button("Cancel"):
                st.session_state["pending_shrink"] = None
                st.rerun()


# ---------- Drafts ------------------------------------------------------------
def render_drafts():
    ctx = get_context()
    st.markdown("---")
    with st.expander("📝 Free slots & draft candidates", expanded=False):
        if not _guard(ctx):
            return
        c1, c2 = st.columns(2)
        with c1:
            event_id = st.selectbox("Event", list(ctx.events), format_func=lambda e: event_label(ctx, e), key="gap_event")
        ev = ctx.events[event_id]
        with c2:
            room = st.selectbox("Room", list(range(1, ev.room_count + 1)), key="gap_room")

        gaps = ctx.gaps(event_id, room)
        if not gaps:
            st.info("This room is fully booked.")
        else:
            gap = st.selectbox(
                "Free block",
                gaps,
                format_func=lambda g: f"Days {g.start_day}-{g.end_day} ({g.length} day(s))",
                key="gap_pick",
            )
            candidates = ctx.gap_candidates(gap)
            if not candidates:
                st.caption("No course fits this block.")
            else:
                cid = st.selectbox("Candidate", [c.course_id for c in candidates],
                                   format_func=lambda c: course_label(ctx, c), key="gap_candidate")
                start = st.number_input("Start day", min_value=gap.start_day, max_value=gap.end_day,
                                        value=gap.start_day, step=1, key="gap_start")
                if st.button("➕ Add to slot"):
                    try:
                        ctx.drafts.add_candidate(Slot.from_gap(gap), ctx.courses[cid], int(start))
                    except ValueError as e:
                        st.error(str(e))

        for slot in ctx.drafts.slots():
            st.markdown(f"**{slot.label}**")
            for i, cand in enumerate(ctx.drafts.pending(slot)):
                c1, c2, c3 = st.columns([4, 1, 1])
                c1.write(f"{course_label(ctx, cand.course_id)} from day {cand.start_day}")
                if c2.button("Promote", key=f"promote_{slot}_{i}"):
                    outcome = ctx.drafts.promote(ctx, slot, i)
                    report_outcome(outcome)
                    if outcome.ok:
                        st.rerun()
                if c3.button("Discard", key=f"discard_{slot}_{i}"):
                    ctx.drafts.discard(slot, i)
                    st.rerun()


# ---------- Course editor -----------------------------------------------------
def render_course_editor():
    ctx = get_context()
    st.markdown("---")
    with st.expander("✏️ Edit courses", expanded=False):
        existing = sorted_course_ids(ctx)
        target = st.selectbox("Course", ["(new course)"] + existing,
                              format_func=lambda c: c if c == "(new course)" else course_label(ctx, c),
                              key="edit_course")
        cur = ctx.courses.get(target)
        with st.form("course_form"):
            cid = st.text_input("Course ID", value=cur.course_id if cur else "", disabled=cur is not None)
            instructor = st.text_input("Instructor(s)", value=cur.instructor if cur else "",
                                       help="Separate several instructors with commas.")
            name = st.text_input("Name", value=cur.name if cur else "")
            duration = st.number_input("Duration (days)", min_value=0.5, step=0.5,
                                       value=float(cur.duration_days) if cur else 1.0)
            topic = st.text_input("Topic", value=cur.topic if cur else "")
            saved = st.form_submit_button("💾 Save")
        if saved:
            try:
                course = Course(course_id=(cur.course_id if cur else cid.strip()), instructor=instructor.strip(),
                                name=name.strip(), duration_days=float(duration), topic=topic.strip())
                if cur:
                    ctx.update_course(course)
                else:
                    if not course.course_id:
                        raise ValueError("Course ID is required.")
                    ctx.add_course(course)
                st.success(f"Saved {course.course_id}.")
            except ValueError as e:
                st.error(str(e))
        if cur and st.button(f"🗑️ Delete {cur.course_id}"):
            removed = ctx.delete_course(cur.course_id)
            st.success(f"Deleted {cur.course_id} and {len(removed)} placement(s).")
            st.rerun()

        dups = ctx.duplicate_course_ids()
        if dups:
            st.markdown("#### Duplicate course IDs")
            st.dataframe(duplicates_report(ctx), use_container_width=True)
            dup_id = st.selectbox("Merge", dups, key="merge_dup")
            recs = ctx.duplicate_courses[dup_id]
            keep = st.radio("Keep record", list(range(len(recs))),
                            format_func=lambda i: f"{i + 1}: {recs[i].instructor} – {recs[i].name} ({recs[i].duration_days:g}d)",
                            key="merge_keep")
            if st.button("Merge duplicates"):
                ctx.merge_duplicate_course(dup_id, keep)
                st.rerun()


# ---------- Reports -----------------------------------------------------------
def render_reports():
    ctx = get_context()
    st.markdown("## 📊 Reports")
    if not ctx.events:
        st.info("No events loaded.")
        return

    hard_ok, violations = validate_constraints(ctx.store, ctx.events, ctx.courses, ctx.index)
    if hard_ok:
        st.success("No hard-constraint violations.")
    else:
        st.error(f"{len(violations)} hard-constraint violation(s):")
        for v in violations:
            st.write(f"• {v}")

    st.subheader("Instructor conflicts")
    conflicts = conflicts_to_df(conflict_report(ctx))
    if conflicts.empty:
        st.caption("No placement falls on an instructor's unavailable day.")
    else:
        st.dataframe(conflicts, use_container_width=True)
        st.download_button("📥 Download conflict report", to_csv_bytes(conflicts), "conflicts.csv", "text/csv")

    st.subheader("Fill rates")
    st.dataframe(fill_rates(ctx), use_container_width=True)
    full = fully_booked_events(ctx)
    if full:
        st.caption("Fully booked: " + ", ".join(full))

    st.subheader("Unbooked room-days")
    free = unbooked_room_days(ctx)
    st.dataframe(free, use_container_width=True)
    st.download_button("📥 Download unbooked room-days", to_csv_bytes(free), "unbooked_room_days.csv", "text/csv")

    st.subheader("Instructor capacity")
    st.dataframe(instructor_capacity(ctx), use_container_width=True)


# ---------- Downloads ---------------------------------------------------------
def render_downloads():
    ctx = get_context()
    st.markdown("---")
    st.markdown("### 📥 Export")
    c1, c2, c3 = st.columns(3)
    with c1:
        st.download_button("Schedule (re-importable)", to_csv_bytes(placements_to_df(ctx.export_placement_rows())),
                           "schedule.csv", "text/csv", disabled=not len(ctx.store))
    with c2:
        st.download_button("Day-by-day sheet", to_csv_bytes(day_sheet_df(ctx)),
                           "schedule_export.csv", "text/csv", disabled=not ctx.events)
    with c3:
        st.download_button("Courses template", to_csv_bytes(courses_template_df()),
                           "courses_template.csv", "text/csv")


# ---------- Logs --------------------------------------------------------------
def render_logs():
    if not st.session_state.get("log_lines"):
        return
    st.markdown("---")
    st.markdown("### 🐞 Change Log")

    n = st.slider("Show last N lines", min_value=20, max_value=1000, value=200, step=20)
    tail = st.session_state["log_lines"][-n:]
    st.text_area("Log (compact)", value="\n".join(tail), height=200, label_visibility="collapsed")

    log_bytes = "\n".join(st.session_state["log_lines"]).encode("utf-8-sig")
    st.download_button("📥 Download Log", log_bytes, file_name="schedule.log", mime="text/plain")
