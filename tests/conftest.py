from datetime import date

import pytest

from scheduling import Course, Event, SchedulingContext, UnavailabilityEntry


@pytest.fixture
def log_lines():
    return []


@pytest.fixture
def events():
    return [
        Event("ATL", "Atlanta", total_days=5, room_count=3,
              first_day=date(2026, 3, 2), last_day=date(2026, 3, 6)),
        Event("BOS", "Boston", total_days=4, room_count=1),
    ]


@pytest.fixture
def courses():
    return [
        Course("C001", "Alfred", "Mapmaking", 3),
        Course("C002", "Betty", "Cooking Basics", 1),
        Course("C003", "Charlie", "Advanced Photography", 2),
        Course("C004", "Alfred", "Orienteering", 2),
        Course("C005", "Diana", "Web Design", 6),
    ]


@pytest.fixture
def ctx(events, courses, log_lines):
    c = SchedulingContext(log_func=log_lines.append)
    c.load_events(events)
    c.load_courses(courses)
    return c


@pytest.fixture
def alfred_away(ctx):
    # 3/3 and 3/4 are ATL days 2 and 3
    ctx.load_unavailability([UnavailabilityEntry("Alfred", date(2026, 3, 3), date(2026, 3, 4))])
    return ctx
