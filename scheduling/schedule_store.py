from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .models import Placement, PlacementKey


class ScheduleStore:
    """
    Authoritative (event_id, course_id) -> Placement map.

    The Assignment index (course_id -> event_ids) is derived from it and only
    touched by the mutators below.
    """

    def __init__(self):
        self._placements: Dict[PlacementKey, Placement] = {}
        self._assignments: Dict[str, Set[str]] = {}

    # ---------- mutators ----------------------------------------------------
    def set(self, placement: Placement) -> None:
        self._placements[placement.key] = placement
        self._assignments.setdefault(placement.course_id, set()).add(placement.event_id)

    def assign(self, event_id: str, course_id: str) -> Placement:
        """Offer a course at an event without placing it. Idempotent."""
        existing = self._placements.get((event_id, course_id))
        if existing is not None:
            return existing
        p = Placement(event_id=event_id, course_id=course_id)
        self.set(p)
        return p

    def unplace(self, event_id: str, course_id: str) -> Optional[Placement]:
        p = self._placements.get((event_id, course_id))
        if p is None:
            return None
        stripped = p.unplaced()
        self._placements[p.key] = stripped
        return stripped

    def remove(self, event_id: str, course_id: str) -> Optional[Placement]:
        p = self._placements.pop((event_id, course_id), None)
        if p is not None:
            events = self._assignments.get(course_id, set())
            events.discard(event_id)
            if not events:
                self._assignments.pop(course_id, None)
        return p

    def remove_course(self, course_id: str) -> List[Placement]:
        keys = [k for k in self._placements if k[1] == course_id]
        return [self.remove(*k) for k in keys]

    def remove_event(self, event_id: str) -> List[Placement]:
        keys = [k for k in self._placements if k[0] == event_id]
        return [self.remove(*k) for k in keys]

    def replace_all(self, placements: Iterable[Placement]) -> None:
        self._placements = {p.key: p for p in placements}
        self.rebuild_assignments()

    def clear(self) -> None:
        self._placements = {}
        self._assignments = {}

    def rebuild_assignments(self) -> None:
        """Rebuild the Assignment index from the placements (source of truth)."""
        idx: Dict[str, Set[str]] = {}
        for event_id, course_id in self._placements:
            idx.setdefault(course_id, set()).add(event_id)
        self._assignments = idx

    # ---------- reads -------------------------------------------------------
    def get(self, event_id: str, course_id: str) -> Optional[Placement]:
        return self._placements.get((event_id, course_id))

    def __contains__(self, key: PlacementKey) -> bool:
        return key in self._placements

    def __len__(self) -> int:
        return len(self._placements)

    def all(self) -> List[Placement]:
        return sorted(self._placements.values(), key=lambda p: (p.event_id, p.start_day or 0, p.course_id))

    def placements_for_event(self, event_id: str) -> List[Placement]:
        return [p for p in self.all() if p.event_id == event_id]

    def events_for_course(self, course_id: str) -> List[str]:
        return sorted(self._assignments.get(course_id, set()))

    def is_assigned(self, course_id: str) -> bool:
        return bool(self._assignments.get(course_id))

    def assigned_course_ids(self) -> Set[str]:
        return {c for c, evs in self._assignments.items() if evs}

    def configured_count(self) -> int:
        """Placements that sit on the timeline."""
        return sum(1 for p in self._placements.values() if p.is_placed)

    def drafts(self) -> List[Placement]:
        return [p for p in self.all() if p.draft]

    def occupied_room_days(self, event_id: str) -> Set[Tuple[int, int]]:
        """(room, day) pairs held by non-draft placements."""
        out: Set[Tuple[int, int]] = set()
        for p in self._placements.values():
            if p.event_id != event_id or p.draft or p.room is None:
                continue
            out.update((p.room, d) for d in p.days)
        return out

    def unbooked_room_days(self, event_id: str, total_days: int, room_count: int) -> List[Tuple[int, int]]:
        taken = self.occupied_room_days(event_id)
        return [
            (room, day)
            for room in range(1, room_count + 1)
            for day in range(1, total_days + 1)
            if (room, day) not in taken
        ]

    def filled_days(self, event_id: str) -> Set[int]:
        out: Set[int] = set()
        for p in self._placements.values():
            if p.event_id == event_id:
                out.update(p.days)
        return out

    def fill_rate(self, event_id: str, total_days: int) -> float:
        """Share of days covered by any placement in any room."""
        if total_days <= 0:
            return 0.0
        filled = {d for d in self.filled_days(event_id) if 1 <= d <= total_days}
        return len(filled) / total_days

    def check_consistency(self) -> List[str]:
        """Describe any drift between placements and the Assignment index."""
        problems: List[str] = []
        expected: Dict[str, Set[str]] = {}
        for event_id, course_id in self._placements:
            expected.setdefault(course_id, set()).add(event_id)
        for course_id in sorted(set(expected) | set(self._assignments)):
            have = self._assignments.get(course_id, set())
            want = expected.get(course_id, set())
            if have != want:
                problems.append(
                    f"{course_id}: index lists {sorted(have)} but schedule holds {sorted(want)}"
                )
        return problems
