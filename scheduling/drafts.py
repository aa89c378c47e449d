from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional

from .models import Course, Event
from .schedule_store import ScheduleStore
from .unavailability import UnavailabilityIndex
from .utils import _course_sort_key, contiguous_runs
from .validate import Accepted, Rejected, RejectReason, validate_placement


@dataclass(frozen=True)
class Gap:
    event_id: str
    room: int
    start_day: int
    end_day: int

    @property
    def length(self) -> int:
        return self.end_day - self.start_day + 1

    @property
    def days(self) -> List[int]:
        return list(range(self.start_day, self.end_day + 1))


@dataclass(frozen=True)
class Slot:
    """A named free room/day-range that candidates are collected for."""
    event_id: str
    room: int
    start_day: int
    length: int

    @classmethod
    def from_gap(cls, gap: Gap) -> "Slot":
        return cls(gap.event_id, gap.room, gap.start_day, gap.length)

    @property
    def end_day(self) -> int:
        return self.start_day + self.length - 1

    @property
    def label(self) -> str:
        return f"{self.event_id} · room {self.room} · days {self.start_day}-{self.end_day}"


@dataclass(frozen=True)
class DraftCandidate:
    course_id: str
    start_day: int


def find_gaps(store: ScheduleStore, event: Event, room: int) -> List[Gap]:
    """Maximal runs of days in `room` not covered by a non-draft placement."""
    taken = {d for r, d in store.occupied_room_days(event.event_id) if r == room}
    free = [d for d in range(1, event.total_days + 1) if d not in taken]
    return [Gap(event.event_id, room, run[0], run[-1]) for run in contiguous_runs(free)]


def candidates_for_gap(
    gap: Gap,
    courses: Iterable[Course],
    index: UnavailabilityIndex,
    store: ScheduleStore,
) -> List[Course]:
    """Courses that fit the gap, are free throughout it, and are not placed at the event yet."""
    window = set(gap.days)
    out: List[Course] = []
    for c in courses:
        if c.days_needed > gap.length:
            continue
        if window & set(index.blocked_days_for_course(c, gap.event_id)):
            continue
        current = store.get(gap.event_id, c.course_id)
        if current is not None and current.is_placed and not current.draft:
            continue
        out.append(c)
    # offered-at-event courses first
    out.sort(key=lambda c: (store.get(gap.event_id, c.course_id) is None, _course_sort_key(c.course_id)))
    return out


class DraftBoard:
    """Pending candidates per slot. Nothing here is written to the schedule."""

    def __init__(self):
        self._pending: Dict[Slot, List[DraftCandidate]] = {}

    def slots(self) -> List[Slot]:
        return [s for s, cands in self._pending.items() if cands]

    def pending(self, slot: Slot) -> List[DraftCandidate]:
        return list(self._pending.get(slot, []))

    def add_candidate(self, slot: Slot, course: Course, start_day: Optional[int] = None) -> DraftCandidate:
        start = slot.start_day if start_day is None else int(start_day)
        if start < slot.start_day or start + course.days_needed - 1 > slot.end_day:
            raise ValueError(
                f"{course.course_id} ({course.days_needed} day(s)) does not fit {slot.label} from day {start}."
            )
        cand = DraftCandidate(course.course_id, start)
        bucket = self._pending.setdefault(slot, [])
        if cand not in bucket:
            bucket.append(cand)
        return cand

    def discard(self, slot: Slot, candidate_index: int) -> DraftCandidate:
        bucket = self._pending.get(slot, [])
        cand = bucket.pop(candidate_index)
        if not bucket:
            self._pending.pop(slot, None)
        return cand

    def promote(self, ctx, slot: Slot, candidate_index: int):
        """
        Re-validate the candidate and commit it as a non-draft placement.

        The gap may have been taken, shortened or removed since the candidate
        was added; on rejection the candidate stays pending and the Rejected
        is returned. Nothing is written unless the days land inside the slot.
        """
        cand = self._pending[slot][candidate_index]
        ev = ctx.events.get(slot.event_id)
        if ev is not None and slot.room > ev.room_count:
            return Rejected(
                reason=RejectReason.ROOM_CONFLICT,
                message=f"Room {slot.room} no longer exists at {slot.event_id} (1-{ev.room_count}).",
            )
        try:
            outcome = ctx.validate(slot.event_id, cand.course_id, slot.room, cand.start_day, draft=False)
        except ValueError as exc:
            # event or course gone from the board
            return Rejected(reason=RejectReason.TOO_LONG, message=str(exc))
        if isinstance(outcome, Rejected):
            return outcome
        if outcome.days[0] < slot.start_day or outcome.days[-1] > slot.end_day:
            return Rejected(
                reason=RejectReason.TOO_LONG,
                message=(
                    f"{cand.course_id} would land on days {outcome.days[0]}-{outcome.days[-1]}, "
                    f"outside {slot.label}."
                ),
            )
        outcome = ctx.place(slot.event_id, cand.course_id, slot.room, cand.start_day, draft=False)
        if isinstance(outcome, Rejected):
            return outcome
        self.drop_course(cand.course_id)
        return outcome

    def reconcile(self, events: Dict[str, Event], courses: Dict[str, Course]) -> int:
        """
        Drop candidates whose slot or course no longer exists, or that no
        longer fit their slot. Returns how many went.
        """
        dropped = 0
        for slot in list(self._pending):
            ev = events.get(slot.event_id)
            slot_ok = ev is not None and slot.room <= ev.room_count and slot.end_day <= ev.total_days
            keep = []
            for cand in self._pending[slot]:
                course = courses.get(cand.course_id)
                if slot_ok and course is not None and cand.start_day + course.days_needed - 1 <= slot.end_day:
                    keep.append(cand)
            dropped += len(self._pending[slot]) - len(keep)
            if keep:
                self._pending[slot] = keep
            else:
                self._pending.pop(slot)
        return dropped

    def drop_course(self, course_id: str) -> int:
        """Remove every pending candidate for `course_id`; returns how many went."""
        dropped = 0
        for slot in list(self._pending):
            keep = [c for c in self._pending[slot] if c.course_id != course_id]
            dropped += len(self._pending[slot]) - len(keep)
            if keep:
                self._pending[slot] = keep
            else:
                self._pending.pop(slot)
        return dropped

    def drop_event(self, event_id: str) -> None:
        for slot in [s for s in self._pending if s.event_id == event_id]:
            self._pending.pop(slot)

    def clear(self) -> None:
        self._pending = {}

    def __len__(self) -> int:
        return sum(len(v) for v in self._pending.values())


def finalize_drafts(store: ScheduleStore, events: Dict[str, Event], courses: Dict[str, Course],
                    index: UnavailabilityIndex) -> List[str]:
    """
    Clear the draft flag on every draft that would now validate as a
    non-draft. Runs in a fixed order so a finalized draft blocks the next.
    """
    finalized: List[str] = []
    for p in store.drafts():
        ev = events.get(p.event_id)
        course = courses.get(p.course_id)
        if ev is None or course is None:
            continue
        outcome = validate_placement(
            store, ev, course, p.room, p.start_day,
            blocked_days=index.blocked_days_for_course(course, p.event_id),
            draft=False,
        )
        if isinstance(outcome, Accepted) and outcome.days == p.days:
            store.set(replace(p, draft=False))
            finalized.append(p.course_id)
    return finalized
