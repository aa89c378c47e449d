from __future__ import annotations
from typing import Dict, Iterable, List, Set, Tuple

from .models import Course, Day, UnavailabilityEntry
from .utils import _norm_name, days_needed, split_instructors

# (normalized instructor, event_id) -> sorted unique blocked day numbers
BlockedMap = Dict[Tuple[str, str], List[int]]


def build_unavailability_index(
    entries: Iterable[UnavailabilityEntry],
    calendar: Dict[str, List[Day]],
) -> BlockedMap:
    """Pure function of its inputs; always rebuilt in full, never patched."""
    acc: Dict[Tuple[str, str], Set[int]] = {}
    for entry in entries:
        who = _norm_name(entry.instructor)
        for event_id, days in calendar.items():
            hits = {d.number for d in days if entry.start <= d.date <= entry.end}
            if hits:
                acc.setdefault((who, event_id), set()).update(hits)
    return {key: sorted(nums) for key, nums in acc.items()}


class UnavailabilityIndex:
    def __init__(self, blocked: BlockedMap | None = None):
        self._blocked: BlockedMap = dict(blocked or {})

    @classmethod
    def build(cls, entries, calendar) -> "UnavailabilityIndex":
        return cls(build_unavailability_index(entries, calendar))

    def as_dict(self) -> BlockedMap:
        return {k: list(v) for k, v in self._blocked.items()}

    def blocked_days(self, instructor: str, event_id: str) -> List[int]:
        return list(self._blocked.get((_norm_name(instructor), event_id), []))

    def blocked_days_for_course(self, course: Course, event_id: str) -> List[int]:
        """Union over every instructor listed on the course."""
        out: Set[int] = set()
        for name in split_instructors(course.instructor):
            out.update(self.blocked_days(name, event_id))
        return sorted(out)

    def has_capacity(self, instructor: str, event_id: str, duration_days: float, total_days: int) -> bool:
        """Enough free days in total; says nothing about contiguity."""
        free = total_days - len(self.blocked_days(instructor, event_id))
        return free >= days_needed(duration_days)

    def __eq__(self, other) -> bool:
        return isinstance(other, UnavailabilityIndex) and self._blocked == other._blocked

    def __len__(self) -> int:
        return len(self._blocked)
