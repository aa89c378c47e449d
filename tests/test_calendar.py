from datetime import date

import pytest

from scheduling import CalendarError, Event, build_calendar, expand_event_days
from scheduling.calendar import date_for_day, day_for_date
from scheduling.utils import format_date


def test_three_day_event_expands_to_numbered_days():
    days = expand_event_days("ATL", "2026-03-01", "2026-03-03")

    assert [d.number for d in days] == [1, 2, 3]
    assert [format_date(d.date) for d in days] == ["3/1/2026", "3/2/2026", "3/3/2026"]
    assert all(d.event_id == "ATL" for d in days)


def test_display_format_is_accepted_on_input():
    days = expand_event_days("ATL", "3/1/2026", "3/3/2026")
    assert days[-1].date == date(2026, 3, 3)


def test_single_day_event():
    days = expand_event_days("ONE", date(2026, 5, 1), date(2026, 5, 1))
    assert len(days) == 1 and days[0].number == 1


def test_override_shorter_than_range_stops_at_override():
    days = expand_event_days("ATL", "2026-03-01", "2026-03-10", total_days=4)
    assert [d.number for d in days] == [1, 2, 3, 4]
    assert days[-1].date == date(2026, 3, 4)


def test_override_longer_than_range_stops_at_last_day():
    days = expand_event_days("ATL", "2026-03-01", "2026-03-03", total_days=10)
    assert len(days) == 3


def test_last_before_first_is_rejected():
    with pytest.raises(CalendarError):
        expand_event_days("ATL", "2026-03-05", "2026-03-01")


def test_unparseable_date_is_rejected():
    with pytest.raises(CalendarError, match="ATL"):
        expand_event_days("ATL", "not a date", "2026-03-01")


def test_calendar_error_is_a_value_error():
    with pytest.raises(ValueError):
        expand_event_days("ATL", "", "2026-03-01")


def test_build_calendar_gives_dateless_events_no_days():
    cal = build_calendar([
        Event("ATL", "Atlanta", 3, first_day=date(2026, 3, 1), last_day=date(2026, 3, 3)),
        Event("BOS", "Boston", 4),
    ])
    assert len(cal["ATL"]) == 3
    assert cal["BOS"] == []


def test_date_and_day_lookups():
    days = expand_event_days("ATL", "2026-03-01", "2026-03-03")
    assert date_for_day(days, 2) == date(2026, 3, 2)
    assert date_for_day(days, 4) is None
    assert day_for_date(days, date(2026, 3, 3)) == 3
    assert day_for_date(days, date(2026, 2, 28)) is None
    assert day_for_date([], date(2026, 3, 1)) is None
