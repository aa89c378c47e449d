# scheduling/__init__.py
from .calendar import CalendarError, build_calendar, expand_event_days
from .context import ImportResult, RoomCountChange, SchedulingContext
from .drafts import DraftBoard, DraftCandidate, Gap, Slot
from .models import Course, Day, Event, Placement, UnavailabilityEntry
from .schedule_store import ScheduleStore
from .unavailability import UnavailabilityIndex, build_unavailability_index
from .validate import Accepted, Rejected, RejectReason, validate_constraints, validate_placement

__all__ = [
    "Accepted",
    "CalendarError",
    "Course",
    "Day",
    "DraftBoard",
    "DraftCandidate",
    "Event",
    "Gap",
    "ImportResult",
    "Placement",
    "Rejected",
    "RejectReason",
    "RoomCountChange",
    "ScheduleStore",
    "SchedulingContext",
    "Slot",
    "UnavailabilityEntry",
    "UnavailabilityIndex",
    "build_calendar",
    "build_unavailability_index",
    "expand_event_days",
    "validate_constraints",
    "validate_placement",
]
