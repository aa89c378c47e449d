"""Typed records for the scheduling board."""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, Tuple

from .utils import days_needed

PlacementKey = Tuple[str, str]  # (event_id, course_id)


@dataclass
class Event:
    event_id: str
    name: str
    total_days: int
    room_count: int = 1
    first_day: Optional[date] = None
    last_day: Optional[date] = None
    location: str = ""
    notes: str = ""

    def __post_init__(self) -> None:
        if self.total_days < 1:
            raise ValueError(f"Event {self.event_id}: total days must be at least 1, got {self.total_days}")
        if self.room_count < 1:
            raise ValueError(f"Event {self.event_id}: room count must be at least 1, got {self.room_count}")

    @property
    def has_dates(self) -> bool:
        return self.first_day is not None and self.last_day is not None


@dataclass(frozen=True)
class Day:
    event_id: str
    number: int
    date: date


@dataclass
class Course:
    course_id: str
    instructor: str
    name: str
    duration_days: float
    topic: str = ""

    def __post_init__(self) -> None:
        if not self.duration_days or float(self.duration_days) <= 0:
            raise ValueError(f"Course {self.course_id}: duration must be positive, got {self.duration_days}")

    @property
    def days_needed(self) -> int:
        return days_needed(self.duration_days)


@dataclass(frozen=True)
class Placement:
    """
    A course's binding within an event.

    start_day None with empty days is an assigned-but-unplaced course;
    room None means no room chosen yet.
    """
    event_id: str
    course_id: str
    start_day: Optional[int] = None
    days: Tuple[int, ...] = field(default_factory=tuple)
    room: Optional[int] = None
    draft: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "days", tuple(self.days))
        if (self.start_day is None) != (len(self.days) == 0):
            raise ValueError(
                f"{self.event_id}/{self.course_id}: days must be empty exactly when start_day is unset"
            )
        if self.days:
            expected = tuple(range(self.start_day, self.start_day + len(self.days)))
            if self.days != expected:
                raise ValueError(f"{self.event_id}/{self.course_id}: days {self.days} are not contiguous from {self.start_day}")

    @property
    def key(self) -> PlacementKey:
        return (self.event_id, self.course_id)

    @property
    def is_placed(self) -> bool:
        return bool(self.days)

    def overlaps(self, other: "Placement") -> bool:
        return bool(set(self.days) & set(other.days))

    def unplaced(self) -> "Placement":
        return replace(self, start_day=None, days=(), room=None, draft=False)


@dataclass(frozen=True)
class UnavailabilityEntry:
    instructor: str
    start: date
    end: date
