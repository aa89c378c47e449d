from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .models import Course, Event, Placement
from .schedule_store import ScheduleStore
from .unavailability import UnavailabilityIndex


class RejectReason(str, Enum):
    TOO_LONG = "TooLong"
    INSTRUCTOR_UNAVAILABLE = "InstructorUnavailable"
    ROOM_CONFLICT = "RoomConflict"


@dataclass(frozen=True)
class Accepted:
    start_day: Optional[int]
    days: Tuple[int, ...]
    clamped: bool = False

    ok = True


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    message: str
    conflicting_days: Tuple[int, ...] = field(default_factory=tuple)
    conflicting_course_ids: Tuple[str, ...] = field(default_factory=tuple)

    ok = False


Outcome = Union[Accepted, Rejected]


def clamp_start(start_day: int, needed: int, total_days: int) -> Optional[int]:
    """Latest legal start is total_days - needed + 1; None when nothing fits."""
    if needed > total_days:
        return None
    last_valid = total_days - needed + 1
    return max(1, min(int(start_day), last_valid))


def validate_placement(
    store: ScheduleStore,
    event: Event,
    course: Course,
    room: Optional[int],
    start_day: Optional[int],
    blocked_days: Iterable[int] = (),
    draft: bool = False,
) -> Outcome:
    """
    Decide whether `course` may occupy `room` from `start_day` in `event`.

    Checks run in order and the first failure wins: fit, instructor
    availability, then room overlap (non-draft proposals with a room only).
    """
    needed = course.days_needed

    # 1) fit
    if needed > event.total_days:
        return Rejected(
            reason=RejectReason.TOO_LONG,
            message=(
                f"{course.course_id} needs {needed} day(s) but {event.event_id} "
                f"only has {event.total_days}."
            ),
        )
    if start_day is None:
        return Accepted(start_day=None, days=())

    start = clamp_start(start_day, needed, event.total_days)
    days = tuple(range(start, start + needed))

    # 2) instructor
    clash = sorted(set(days) & set(blocked_days))
    if clash:
        return Rejected(
            reason=RejectReason.INSTRUCTOR_UNAVAILABLE,
            message=(
                f"{course.instructor} is unavailable at {event.event_id} on "
                f"day(s) {', '.join(map(str, clash))}."
            ),
            conflicting_days=tuple(clash),
        )

    # 3) room
    if room is not None and not draft:
        others = [
            p.course_id
            for p in store.placements_for_event(event.event_id)
            if p.course_id != course.course_id
            and not p.draft
            and p.room == room
            and set(p.days) & set(days)
        ]
        if others:
            return Rejected(
                reason=RejectReason.ROOM_CONFLICT,
                message=(
                    f"Room {room} at {event.event_id} is taken on days "
                    f"{days[0]}-{days[-1]} by {', '.join(others)}."
                ),
                conflicting_course_ids=tuple(sorted(others)),
            )

    return Accepted(start_day=start, days=days, clamped=(start != start_day))


def validate_constraints(
    store: ScheduleStore,
    events: Dict[str, Event],
    courses: Dict[str, Course],
    index: UnavailabilityIndex,
):
    """
    Audit the whole schedule.

    Returns:
      hard_ok (bool),
      violations (list[str])
    """
    violations: List[str] = []

    for p in store.all():
        ev = events.get(p.event_id)
        if ev is None:
            violations.append(f"{p.course_id}: placed at unknown event {p.event_id}.")
            continue
        if p.course_id not in courses:
            violations.append(f"{p.event_id}: placement for unknown course {p.course_id}.")
            continue
        if p.days and (p.days[0] < 1 or p.days[-1] > ev.total_days):
            violations.append(f"{p.event_id}/{p.course_id}: days {p.days[0]}-{p.days[-1]} outside 1-{ev.total_days}.")
        if p.days and len(p.days) != courses[p.course_id].days_needed:
            violations.append(f"{p.event_id}/{p.course_id}: occupies {len(p.days)} day(s), needs {courses[p.course_id].days_needed}.")
        if p.room is not None and p.room > ev.room_count:
            violations.append(f"{p.event_id}/{p.course_id}: room {p.room} exceeds room count {ev.room_count}.")
        if p.days and not p.draft:
            blocked = set(index.blocked_days_for_course(courses[p.course_id], p.event_id))
            clash = sorted(blocked & set(p.days))
            if clash:
                violations.append(f"{p.event_id}/{p.course_id}: instructor unavailable on day(s) {clash}.")

    # no overlaps per (event, room) among non-drafts
    by_room: Dict[Tuple[str, int], List[Placement]] = {}
    for p in store.all():
        if p.draft or p.room is None or not p.days:
            continue
        by_room.setdefault((p.event_id, p.room), []).append(p)
    for (event_id, room), grp in by_room.items():
        grp.sort(key=lambda p: p.days[0])
        for i in range(1, len(grp)):
            if grp[i - 1].overlaps(grp[i]):
                violations.append(
                    f"{event_id} room {room}: {grp[i - 1].course_id} and {grp[i].course_id} overlap."
                )

    violations.extend(store.check_consistency())
    return not violations, violations
