from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

from .calendar import CalendarError, date_for_day, day_for_date, expand_event_days
from .drafts import DraftBoard, Gap, candidates_for_gap, find_gaps, finalize_drafts
from .models import Course, Day, Event, Placement, UnavailabilityEntry
from .schedule_store import ScheduleStore
from .unavailability import UnavailabilityIndex
from .utils import _clean_opt, _course_sort_key, _norm_id, _parse_date, days_needed
from .validate import Accepted, Outcome, Rejected, validate_placement


@dataclass
class RoomCountChange:
    event_id: str
    old_count: int
    new_count: int
    affected: List[str]
    applied: bool


@dataclass
class ImportResult:
    success_count: int = 0
    errors: List[str] = field(default_factory=list)


class SchedulingContext:
    """
    Everything one board session knows: events, their calendars, courses,
    instructor unavailability, the schedule and pending drafts.

    Every mutator leaves the Assignment index, drafts and the derived
    occupancy consistent before returning.
    """

    def __init__(self, log_func: Callable[[str], None] = print, on_change: Optional[Callable] = None):
        self.events: Dict[str, Event] = {}
        self.calendar: Dict[str, List[Day]] = {}
        self.courses: Dict[str, Course] = {}
        self.duplicate_courses: Dict[str, List[Course]] = {}
        self.unavailability: List[UnavailabilityEntry] = []
        self.index = UnavailabilityIndex()
        self.store = ScheduleStore()
        self.drafts = DraftBoard()
        self.log = log_func
        self.on_change = on_change
        self._batch_depth = 0
        self._dirty = False

    # ---------- bulk loads (replace wholesale) ------------------------------
    def load_events(self, events: Iterable[Event]) -> List[str]:
        """Replace all events. Returns skipped-event errors."""
        errors: List[str] = []
        new_events: Dict[str, Event] = {}
        new_calendar: Dict[str, List[Day]] = {}
        for ev in events:
            if ev.event_id in new_events:
                errors.append(f"Event {ev.event_id}: duplicate event ID, skipped.")
                continue
            days: List[Day] = []
            if ev.has_dates:
                try:
                    days = expand_event_days(ev.event_id, ev.first_day, ev.last_day, ev.total_days)
                except CalendarError as exc:
                    errors.append(str(exc))
                    self.log(f"❌ {exc}")
                    continue
                if len(days) != ev.total_days:
                    self.log(
                        f"⚠️ {ev.event_id}: {ev.total_days} day(s) requested but the date range "
                        f"yields {len(days)}; using {len(days)}."
                    )
                    ev = replace(ev, total_days=len(days))
            new_events[ev.event_id] = ev
            new_calendar[ev.event_id] = days

        self.events = new_events
        self.calendar = new_calendar
        self._rebuild_index()

        with self.batch():
            for p in self.store.all():
                ev = self.events.get(p.event_id)
                if ev is None:
                    self.store.remove(p.event_id, p.course_id)
                    self.log(f"ℹ️ {p.course_id}: event {p.event_id} no longer exists, removed.")
                elif (p.days and p.days[-1] > ev.total_days) or (p.room is not None and p.room > ev.room_count):
                    self.store.unplace(p.event_id, p.course_id)
                    self.log(f"⚠️ {p.event_id}/{p.course_id}: no longer fits the event, unplaced.")
            self._reconcile_drafts()
            self._dirty = True
        self.log(f"ℹ️ Loaded {len(self.events)} event(s), {len(errors)} skipped.")
        return errors

    def load_courses(self, courses: Iterable[Course]) -> List[str]:
        """Replace all courses. Returns the duplicate course IDs found."""
        new_courses: Dict[str, Course] = {}
        dups: Dict[str, List[Course]] = {}
        for c in courses:
            if c.course_id in new_courses:
                dups.setdefault(c.course_id, [new_courses[c.course_id]]).append(c)
                continue
            new_courses[c.course_id] = c
        self.courses = new_courses
        self.duplicate_courses = dups
        for cid, recs in dups.items():
            self.log(f"⚠️ Duplicate course ID {cid}: {len(recs)} records need a manual merge.")

        with self.batch():
            for p in self.store.all():
                course = self.courses.get(p.course_id)
                if course is None:
                    self.store.remove(p.event_id, p.course_id)
                    self.drafts.drop_course(p.course_id)
                    self.log(f"ℹ️ {p.course_id}: course no longer exists, removed from {p.event_id}.")
                elif p.days and len(p.days) != course.days_needed:
                    self._revalidate(p, course)
            self._reconcile_drafts()
            self._dirty = True
        self.log(f"ℹ️ Loaded {len(self.courses)} course(s).")
        return sorted(dups, key=_course_sort_key)

    def load_unavailability(self, entries: Iterable[UnavailabilityEntry]) -> None:
        self.unavailability = list(entries)
        self._rebuild_index()
        self._after_mutation()
        self.log(f"ℹ️ Loaded {len(self.unavailability)} unavailability entr(ies).")

    def _rebuild_index(self) -> None:
        self.index = UnavailabilityIndex.build(self.unavailability, self.calendar)

    # ---------- course edits ------------------------------------------------
    def add_course(self, course: Course) -> None:
        if course.course_id in self.courses:
            raise ValueError(f"Course {course.course_id} already exists.")
        self.courses[course.course_id] = course
        self.log(f"✅ Added course {course.course_id}.")
        self._after_mutation()

    def update_course(self, course: Course) -> None:
        if course.course_id not in self.courses:
            raise ValueError(f"Unknown course {course.course_id}.")
        self.courses[course.course_id] = course
        self.log(f"✏️ Updated course {course.course_id}.")
        with self.batch():
            for p in self.store.all():
                if p.course_id == course.course_id and p.days:
                    self._revalidate(p, course)
            self._reconcile_drafts()
            self._dirty = True

    def delete_course(self, course_id: str) -> List[Placement]:
        if course_id not in self.courses:
            raise ValueError(f"Unknown course {course_id}.")
        removed = self.store.remove_course(course_id)
        self.drafts.drop_course(course_id)
        del self.courses[course_id]
        self.duplicate_courses.pop(course_id, None)
        self.log(f"🗑️ Deleted course {course_id} ({len(removed)} placement(s) removed).")
        self._after_mutation()
        return removed

    def duplicate_course_ids(self) -> List[str]:
        return sorted(self.duplicate_courses, key=_course_sort_key)

    def merge_duplicate_course(self, course_id: str, keep: int) -> Course:
        """Resolve a duplicate ID by keeping record `keep` (0-based, in load order)."""
        recs = self.duplicate_courses.get(course_id)
        if not recs:
            raise ValueError(f"Course {course_id} has no duplicates to merge.")
        if not 0 <= keep < len(recs):
            raise ValueError(f"Course {course_id} has {len(recs)} records; cannot keep record {keep + 1}.")
        chosen = recs[keep]
        del self.duplicate_courses[course_id]
        self.log(f"✅ {course_id}: kept record {keep + 1} of {len(recs)} ({chosen.name}).")
        self.update_course(chosen)
        return chosen

    def _revalidate(self, p: Placement, course: Course) -> None:
        ev = self.events[p.event_id]
        outcome = validate_placement(
            self.store, ev, course, p.room, p.start_day,
            blocked_days=self.index.blocked_days_for_course(course, p.event_id),
            draft=p.draft,
        )
        if isinstance(outcome, Accepted) and outcome.days:
            self.store.set(replace(p, start_day=outcome.start_day, days=outcome.days))
        else:
            self.store.unplace(p.event_id, p.course_id)
            self.log(f"⚠️ {p.event_id}/{p.course_id}: no longer fits after the course changed, unplaced.")

    # ---------- placement actions ------------------------------------------
    def _require(self, event_id: str, course_id: str):
        ev = self.events.get(event_id)
        if ev is None:
            raise ValueError(f"Unknown event {event_id}.")
        course = self.courses.get(course_id)
        if course is None:
            raise ValueError(f"Unknown course {course_id}.")
        return ev, course

    def _check_room(self, ev: Event, room: Optional[int]) -> None:
        if room is not None and not (1 <= int(room) <= ev.room_count):
            raise ValueError(f"Room {room} is out of range for {ev.event_id} (1-{ev.room_count}).")

    def blocked_days(self, course_id: str, event_id: str) -> List[int]:
        return self.index.blocked_days_for_course(self.courses[course_id], event_id)

    def has_capacity(self, instructor: str, event_id: str, duration_days: float) -> bool:
        return self.index.has_capacity(instructor, event_id, duration_days, self.events[event_id].total_days)

    def validate(self, event_id: str, course_id: str, room: Optional[int], start_day: Optional[int],
                 draft: bool = False) -> Outcome:
        """Dry run: what `place` would decide, without writing anything."""
        ev, course = self._require(event_id, course_id)
        self._check_room(ev, room)
        return validate_placement(
            self.store, ev, course, room, start_day,
            blocked_days=self.index.blocked_days_for_course(course, event_id),
            draft=draft,
        )

    def assign(self, event_id: str, course_id: str) -> Placement:
        """Offer a course at an event (no room or days yet)."""
        self._require(event_id, course_id)
        p = self.store.assign(event_id, course_id)
        self._after_mutation()
        return p

    def place(self, event_id: str, course_id: str, room: Optional[int], start_day: Optional[int],
              draft: bool = False) -> Outcome:
        outcome = self.validate(event_id, course_id, room, start_day, draft=draft)
        if isinstance(outcome, Rejected):
            self.log(f"❌ {event_id}/{course_id}: {outcome.message}")
            return outcome

        if outcome.start_day is None:
            room = None
        self.store.set(Placement(
            event_id=event_id,
            course_id=course_id,
            start_day=outcome.start_day,
            days=outcome.days,
            room=None if room is None else int(room),
            draft=bool(draft),
        ))
        if outcome.clamped:
            self.log(f"ℹ️ {event_id}/{course_id}: start moved from day {start_day} to {outcome.start_day} to fit the event.")
        where = f"room {room}, " if room is not None else ""
        if outcome.days:
            span = f"days {outcome.days[0]}-{outcome.days[-1]}"
            self.log(f"✅ {event_id}/{course_id}: {where}{span}{' (draft)' if draft else ''}")
        self._after_mutation()
        return outcome

    def unplace(self, event_id: str, course_id: str) -> Optional[Placement]:
        """Take a course off the timeline but keep it offered at the event."""
        p = self.store.unplace(event_id, course_id)
        if p is not None:
            self.log(f"↩️ {event_id}/{course_id}: unplaced.")
            self._after_mutation()
        return p

    def remove(self, event_id: str, course_id: str) -> Optional[Placement]:
        p = self.store.remove(event_id, course_id)
        if p is not None:
            self.log(f"🗑️ {event_id}/{course_id}: removed.")
            self._after_mutation()
        return p

    unassign = remove

    def preview_room_count_change(self, event_id: str, new_count: int) -> List[str]:
        """Courses that would lose their room if the event shrank to `new_count` rooms."""
        return sorted(
            (p.course_id for p in self.store.placements_for_event(event_id)
             if p.room is not None and p.room > new_count),
            key=_course_sort_key,
        )

    def set_room_count(self, event_id: str, new_count: int, confirm: bool = False) -> RoomCountChange:
        """
        Change an event's room count. If placements would be displaced and
        `confirm` is False nothing is applied; the caller shows the affected
        list and calls again with confirm=True.
        """
        ev = self.events.get(event_id)
        if ev is None:
            raise ValueError(f"Unknown event {event_id}.")
        if int(new_count) < 1:
            raise ValueError("Room count must be at least 1.")
        new_count = int(new_count)
        affected = self.preview_room_count_change(event_id, new_count)
        change = RoomCountChange(event_id, ev.room_count, new_count, affected, applied=False)
        if affected and not confirm:
            self.log(f"⚠️ {event_id}: reducing to {new_count} room(s) would unplace {', '.join(affected)}.")
            return change

        with self.batch():
            self.events[event_id] = replace(ev, room_count=new_count)
            for course_id in affected:
                self.store.unplace(event_id, course_id)
                self.log(f"⚠️ {event_id}/{course_id}: room removed, course stays assigned.")
            self._reconcile_drafts()
            self._dirty = True
        change.applied = True
        return change

    # ---------- drafts ------------------------------------------------------
    def _reconcile_drafts(self) -> None:
        dropped = self.drafts.reconcile(self.events, self.courses)
        if dropped:
            self.log(f"ℹ️ Dropped {dropped} draft candidate(s) that no longer fit the board.")

    def gaps(self, event_id: str, room: int) -> List[Gap]:
        return find_gaps(self.store, self.events[event_id], room)

    def gap_candidates(self, gap: Gap) -> List[Course]:
        return candidates_for_gap(gap, self.courses.values(), self.index, self.store)

    # ---------- mutation bookkeeping ---------------------------------------
    @contextmanager
    def batch(self):
        """Defer draft finalization and change notification to the outermost exit."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._dirty = False
                self._after_mutation()

    def _after_mutation(self) -> None:
        if self._batch_depth > 0:
            self._dirty = True
            return
        for course_id in finalize_drafts(self.store, self.events, self.courses, self.index):
            self.log(f"✅ {course_id}: draft no longer conflicts, finalized.")
        problems = self.store.check_consistency()
        if problems:
            for msg in problems:
                self.log(f"⚠️ Assignment index drift: {msg}")
            self.store.rebuild_assignments()
        if self.on_change is not None:
            self.on_change(self)

    # ---------- stats & schedule rows --------------------------------------
    def stats(self) -> Dict[str, int]:
        return {
            "total_courses": len(self.courses),
            "assigned_courses": len(self.store.assigned_course_ids()),
            "configured_courses": self.store.configured_count(),
            "total_events": len(self.events),
            "drafts": len(self.store.drafts()),
            "pending_candidates": len(self.drafts),
        }

    def date_for(self, event_id: str, day_number: int) -> Optional[date]:
        return date_for_day(self.calendar.get(event_id, []), day_number)

    def export_placement_rows(self) -> List[dict]:
        """Inverse of the schedule: one row per (event, course) placement."""
        rows: List[dict] = []
        for p in self.store.all():
            course = self.courses.get(p.course_id)
            rows.append({
                "courseId": p.course_id,
                "durationDays": course.duration_days if course else None,
                "firstDay": self.date_for(p.event_id, min(p.days)) if p.days else None,
                "lastDay": self.date_for(p.event_id, max(p.days)) if p.days else None,
                "eventId": p.event_id,
                "roomNumber": p.room,
                "draft": p.draft,
                "startDay": p.start_day,
            })
        return rows

    def _event_for_date(self, on: date) -> List[str]:
        return [eid for eid, days in self.calendar.items() if day_for_date(days, on) is not None]

    def import_placement_rows(self, rows: Iterable[dict], replace_all: bool = True) -> ImportResult:
        """
        Apply schedule rows through the validator. Non-draft rows go first so
        drafts are judged against the full schedule; bad rows are collected,
        never fatal.
        """
        result = ImportResult()
        numbered = list(enumerate(rows, start=1))
        numbered.sort(key=lambda item: bool(item[1].get("draft")))

        with self.batch():
            if replace_all:
                self.store.clear()
                self.drafts.clear()
                self._dirty = True
            for n, row in numbered:
                err = self._import_row(row)
                if err:
                    result.errors.append(f"Row {n}: {err}")
                else:
                    result.success_count += 1
        self.log(f"ℹ️ Schedule import: {result.success_count} row(s) applied, {len(result.errors)} error(s).")
        return result

    def _import_row(self, row: dict) -> Optional[str]:
        course_id = _norm_id(row.get("courseId", ""))
        course = self.courses.get(course_id)
        if course is None:
            return f"unknown course ID '{course_id}'."

        try:
            first_day = _opt_date(row.get("firstDay"))
            last_day = _opt_date(row.get("lastDay"))
        except ValueError as exc:
            return f"malformed date ({exc})."
        event_id = _clean_opt(row.get("eventId"))
        if event_id:
            if event_id not in self.events:
                return f"unknown event '{event_id}'."
        elif first_day is not None:
            matches = self._event_for_date(first_day)
            if not matches:
                return f"no event covers {first_day}."
            if len(matches) > 1:
                return f"{first_day} falls in several events ({', '.join(sorted(matches))}); give an event ID."
            event_id = matches[0]
        else:
            return "needs an event ID or a first day."
        ev = self.events[event_id]

        room = row.get("roomNumber")
        if _clean_opt(room) == "":
            room = None
        else:
            try:
                room = int(float(room))
            except (TypeError, ValueError):
                return f"room number '{room}' is not a number."
        if room is not None and not (1 <= int(room) <= ev.room_count):
            return f"room {room} is out of range for {event_id} (1-{ev.room_count})."

        start = None
        if first_day is not None:
            start = day_for_date(self.calendar.get(event_id, []), first_day)
            if start is None:
                return f"{first_day} is not a day of {event_id}."
        elif _clean_opt(row.get("startDay")) != "":
            try:
                start = int(float(row["startDay"]))
            except (TypeError, ValueError):
                return f"start day '{row['startDay']}' is not a number."

        stated = _clean_opt(row.get("durationDays"))
        if stated and _safe_days_needed(stated) != course.days_needed:
            self.log(f"⚠️ {course_id}: row says {stated} day(s), course record says {course.duration_days}; using the record.")
        if start is not None and last_day is not None:
            end = day_for_date(self.calendar.get(event_id, []), last_day)
            if end != start + course.days_needed - 1:
                self.log(f"⚠️ {course_id}: last day {last_day} disagrees with its duration; using the duration.")

        if start is None:
            self.store.assign(event_id, course_id)
            self._after_mutation()
            return None
        outcome = self.place(event_id, course_id, room, start, draft=bool(row.get("draft")))
        if isinstance(outcome, Rejected):
            return outcome.message
        return None


def _opt_date(value) -> Optional[date]:
    if value is None or _clean_opt(value) == "":
        return None
    return _parse_date(value)


def _safe_days_needed(value) -> Optional[int]:
    try:
        return days_needed(value)
    except (TypeError, ValueError):
        return None
