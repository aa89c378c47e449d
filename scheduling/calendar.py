from __future__ import annotations
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from .models import Day, Event
from .utils import _parse_date


class CalendarError(ValueError):
    """An event's date range cannot be expanded; the event must be skipped."""


def expand_event_days(
    event_id: str,
    first_day,
    last_day,
    total_days: Optional[int] = None,
) -> List[Day]:
    """
    One Day per calendar day in [first_day, last_day], numbered from 1.

    With a total_days override, generation stops at whichever bound is hit
    first: the override count or the cursor passing last_day.
    """
    try:
        start = _parse_date(first_day)
        end = _parse_date(last_day)
    except ValueError as exc:
        raise CalendarError(f"Event {event_id}: {exc}") from exc
    if end < start:
        raise CalendarError(f"Event {event_id}: last day {end} is before first day {start}")
    if total_days is not None and int(total_days) < 1:
        raise CalendarError(f"Event {event_id}: total days override must be at least 1")

    limit = int(total_days) if total_days is not None else None
    days: List[Day] = []
    cursor = start
    while cursor <= end:
        if limit is not None and len(days) >= limit:
            break
        days.append(Day(event_id=event_id, number=len(days) + 1, date=cursor))
        cursor += timedelta(days=1)
    return days


def build_calendar(events: Iterable[Event]) -> Dict[str, List[Day]]:
    """event_id -> ordered days. Dateless events map to an empty list."""
    calendar: Dict[str, List[Day]] = {}
    for ev in events:
        if ev.has_dates:
            calendar[ev.event_id] = expand_event_days(ev.event_id, ev.first_day, ev.last_day, ev.total_days)
        else:
            calendar[ev.event_id] = []
    return calendar


def date_for_day(days: List[Day], number: int) -> Optional[date]:
    if 1 <= number <= len(days):
        return days[number - 1].date
    return None


def day_for_date(days: List[Day], on: date) -> Optional[int]:
    if not days:
        return None
    offset = (on - days[0].date).days
    if 0 <= offset < len(days):
        return days[offset].number
    return None
