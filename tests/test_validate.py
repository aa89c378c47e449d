import pytest

from scheduling import Accepted, Course, Event, Rejected, RejectReason, ScheduleStore, validate_placement
from scheduling.models import Placement
from scheduling.validate import clamp_start


@pytest.fixture
def atl():
    return Event("ATL", "Atlanta", total_days=5, room_count=2)


@pytest.fixture
def store():
    s = ScheduleStore()
    s.set(Placement("ATL", "C001", start_day=1, days=(1, 2, 3), room=1))
    return s


def test_start_is_clamped_so_the_course_fits(atl):
    outcome = validate_placement(ScheduleStore(), atl, Course("C001", "Alfred", "Mapmaking", 3), 1, 4)

    assert isinstance(outcome, Accepted)
    assert outcome.start_day == 3
    assert outcome.days == (3, 4, 5)
    assert outcome.clamped


def test_start_below_one_is_clamped_up(atl):
    outcome = validate_placement(ScheduleStore(), atl, Course("C002", "Betty", "Cooking", 1), 1, 0)
    assert outcome.days == (1,)


def test_fractional_duration_rounds_up(atl):
    outcome = validate_placement(ScheduleStore(), atl, Course("C004", "Diana", "Web", 3.5), None, 1)
    assert outcome.days == (1, 2, 3, 4)
    assert not outcome.clamped


def test_course_longer_than_event_is_too_long(atl):
    outcome = validate_placement(ScheduleStore(), atl, Course("C005", "Diana", "Web", 6), 1, 1)
    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectReason.TOO_LONG
    assert outcome.reason.value == "TooLong"


def test_course_exactly_as_long_as_event_fits(atl):
    outcome = validate_placement(ScheduleStore(), atl, Course("C006", "Ed", "Speaking", 5), 1, 3)
    assert outcome.days == (1, 2, 3, 4, 5)


def test_instructor_unavailable_days_are_reported(atl):
    course = Course("C004", "Alfred", "Orienteering", 2)
    outcome = validate_placement(ScheduleStore(), atl, course, 1, 2, blocked_days=[2, 3])

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectReason.INSTRUCTOR_UNAVAILABLE
    assert outcome.conflicting_days == (2, 3)


def test_room_conflict_names_the_occupant(atl, store):
    outcome = validate_placement(store, atl, Course("C002", "Betty", "Cooking", 1), 1, 2)

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectReason.ROOM_CONFLICT
    assert outcome.conflicting_course_ids == ("C001",)


def test_other_room_is_free(atl, store):
    outcome = validate_placement(store, atl, Course("C002", "Betty", "Cooking", 1), 2, 2)
    assert isinstance(outcome, Accepted)


def test_draft_bypasses_room_check(atl, store):
    outcome = validate_placement(store, atl, Course("C002", "Betty", "Cooking", 1), 1, 2, draft=True)
    assert isinstance(outcome, Accepted)


def test_drafts_do_not_block_other_placements(atl, store):
    store.set(Placement("ATL", "C002", start_day=2, days=(2,), room=1, draft=True))

    outcome = validate_placement(store, atl, Course("C003", "Charlie", "Photo", 1), 1, 2)

    assert outcome.reason is RejectReason.ROOM_CONFLICT
    assert outcome.conflicting_course_ids == ("C001",)


def test_instructor_check_runs_before_room_check(atl, store):
    outcome = validate_placement(store, atl, Course("C002", "Betty", "Cooking", 1), 1, 2, blocked_days=[2])
    assert outcome.reason is RejectReason.INSTRUCTOR_UNAVAILABLE


def test_moving_a_course_within_its_own_room(atl, store):
    outcome = validate_placement(store, atl, Course("C001", "Alfred", "Mapmaking", 3), 1, 2)
    assert outcome.days == (2, 3, 4)


def test_no_start_day_is_accepted_unplaced(atl):
    outcome = validate_placement(ScheduleStore(), atl, Course("C002", "Betty", "Cooking", 1), None, None)
    assert isinstance(outcome, Accepted)
    assert outcome.days == ()


def test_clamp_start():
    assert clamp_start(4, 3, 5) == 3
    assert clamp_start(-2, 1, 5) == 1
    assert clamp_start(1, 6, 5) is None
