from datetime import date

import pytest

from scheduling import Accepted, Course, Event, Rejected, RejectReason, SchedulingContext, validate_constraints
from scheduling.models import Placement


def test_scenario_clamped_placement(ctx, log_lines):
    outcome = ctx.place("ATL", "C001", 1, 4)

    assert isinstance(outcome, Accepted)
    assert ctx.store.get("ATL", "C001").days == (3, 4, 5)
    assert any("moved from day 4 to 3" in line for line in log_lines)


def test_instructor_rejection_writes_nothing(alfred_away):
    outcome = alfred_away.place("ATL", "C004", 1, 2)

    assert isinstance(outcome, Rejected)
    assert outcome.conflicting_days == (2, 3)
    assert alfred_away.store.get("ATL", "C004") is None


def test_room_conflict_through_the_context(ctx):
    ctx.place("ATL", "C001", 1, 1)
    outcome = ctx.place("ATL", "C002", 1, 2)
    assert outcome.reason is RejectReason.ROOM_CONFLICT
    assert outcome.conflicting_course_ids == ("C001",)


def test_validate_is_a_dry_run(ctx):
    outcome = ctx.validate("ATL", "C001", 1, 1)
    assert isinstance(outcome, Accepted)
    assert len(ctx.store) == 0


def test_unknown_ids_and_rooms_raise(ctx):
    with pytest.raises(ValueError):
        ctx.place("XXX", "C001", 1, 1)
    with pytest.raises(ValueError):
        ctx.place("ATL", "C999", 1, 1)
    with pytest.raises(ValueError):
        ctx.place("ATL", "C001", 4, 1)


def test_placing_without_a_start_day_only_assigns(ctx):
    ctx.place("ATL", "C001", 2, None)
    p = ctx.store.get("ATL", "C001")
    assert p.room is None and not p.is_placed
    assert ctx.store.is_assigned("C001")


def test_unplace_and_remove(ctx):
    ctx.place("ATL", "C001", 1, 1)
    ctx.unplace("ATL", "C001")
    assert ctx.store.is_assigned("C001")

    ctx.unassign("ATL", "C001")
    assert not ctx.store.is_assigned("C001")
    assert ctx.unplace("ATL", "C001") is None


def test_room_count_shrink_waits_for_confirmation(ctx):
    ctx.place("ATL", "C003", 2, 1)
    ctx.place("ATL", "C001", 1, 1)

    change = ctx.set_room_count("ATL", 1)

    assert not change.applied
    assert change.affected == ["C003"]
    assert ctx.events["ATL"].room_count == 3
    assert ctx.store.get("ATL", "C003").room == 2

    change = ctx.set_room_count("ATL", 1, confirm=True)

    assert change.applied
    assert ctx.events["ATL"].room_count == 1
    p = ctx.store.get("ATL", "C003")
    assert p.room is None and p.days == ()
    assert "ATL" in ctx.store.events_for_course("C003")
    assert ctx.store.get("ATL", "C001").room == 1


def test_room_count_change_without_casualties_applies_directly(ctx):
    assert ctx.preview_room_count_change("ATL", 2) == []
    assert ctx.set_room_count("ATL", 2).applied
    assert ctx.set_room_count("ATL", 5).applied
    assert ctx.events["ATL"].room_count == 5


def test_room_count_must_be_positive(ctx):
    with pytest.raises(ValueError):
        ctx.set_room_count("ATL", 0)


def test_delete_course_cascades(ctx):
    from scheduling import Slot

    ctx.place("ATL", "C001", 1, 1)
    ctx.assign("BOS", "C001")
    ctx.drafts.add_candidate(Slot("ATL", 2, 1, 5), ctx.courses["C001"])

    removed = ctx.delete_course("C001")

    assert len(removed) == 2
    assert "C001" not in ctx.courses
    assert not ctx.store.is_assigned("C001")
    assert len(ctx.drafts) == 0


def test_add_course_rejects_existing_id(ctx):
    with pytest.raises(ValueError):
        ctx.add_course(Course("C001", "Someone", "Again", 1))
    ctx.add_course(Course("C010", "Someone", "New", 1))
    assert "C010" in ctx.courses


def test_longer_course_is_moved_back_to_fit(ctx):
    ctx.place("ATL", "C001", 1, 3)
    ctx.update_course(Course("C001", "Alfred", "Mapmaking", 4))
    assert ctx.store.get("ATL", "C001").days == (2, 3, 4, 5)


def test_course_that_no_longer_fits_is_unplaced(ctx, log_lines):
    ctx.place("BOS", "C002", None, 1)
    ctx.update_course(Course("C002", "Betty", "Cooking Basics", 5))

    p = ctx.store.get("BOS", "C002")
    assert not p.is_placed and ctx.store.is_assigned("C002")
    assert any("unplaced" in line for line in log_lines)


def test_duplicate_course_ids_keep_first_until_merged(events):
    ctx = SchedulingContext(log_func=lambda m: None)
    ctx.load_events(events)
    dups = ctx.load_courses([
        Course("C001", "Alfred", "Mapmaking", 3),
        Course("C001", "Alfred", "Mapmaking II", 2),
        Course("C002", "Betty", "Cooking", 1),
    ])

    assert dups == ["C001"]
    assert ctx.courses["C001"].name == "Mapmaking"
    assert len(ctx.duplicate_courses["C001"]) == 2

    with pytest.raises(ValueError):
        ctx.merge_duplicate_course("C001", 2)
    with pytest.raises(ValueError):
        ctx.merge_duplicate_course("C001", -1)
    assert ctx.courses["C001"].name == "Mapmaking"

    ctx.merge_duplicate_course("C001", 1)

    assert ctx.courses["C001"].name == "Mapmaking II"
    assert ctx.duplicate_course_ids() == []
    with pytest.raises(ValueError):
        ctx.merge_duplicate_course("C001", 0)


def test_reloading_courses_drops_placements_of_missing_courses(ctx):
    ctx.place("ATL", "C001", 1, 1)
    ctx.place("ATL", "C002", 2, 1)

    ctx.load_courses([Course("C002", "Betty", "Cooking Basics", 1)])

    assert ctx.store.get("ATL", "C001") is None
    assert ctx.store.get("ATL", "C002").days == (1,)


def test_reloading_events_prunes_and_unplaces(ctx, events):
    ctx.place("BOS", "C002", 1, 4)
    ctx.place("ATL", "C003", 3, 1)

    ctx.load_events([Event("BOS", "Boston", total_days=2, room_count=1)])

    assert ctx.store.get("ATL", "C003") is None
    p = ctx.store.get("BOS", "C002")
    assert p is not None and not p.is_placed


def test_event_day_count_follows_the_date_range(log_lines):
    ctx = SchedulingContext(log_func=log_lines.append)
    ctx.load_events([Event("ATL", "Atlanta", total_days=10, room_count=1,
                           first_day=date(2026, 3, 1), last_day=date(2026, 3, 3))])

    assert ctx.events["ATL"].total_days == 3
    assert len(ctx.calendar["ATL"]) == 3
    assert any(line.startswith("⚠️ ATL") for line in log_lines)


def test_bad_event_range_is_skipped(log_lines):
    ctx = SchedulingContext(log_func=log_lines.append)
    errors = ctx.load_events([
        Event("BAD", "Backwards", total_days=2, first_day=date(2026, 3, 5), last_day=date(2026, 3, 1)),
        Event("OK", "Fine", total_days=2),
    ])
    assert len(errors) == 1 and "BAD" in errors[0]
    assert list(ctx.events) == ["OK"]


def test_batch_notifies_once(ctx):
    calls = []
    ctx.on_change = calls.append

    with ctx.batch():
        ctx.assign("ATL", "C001")
        ctx.assign("ATL", "C002")
        ctx.place("ATL", "C003", 1, 1)
        assert calls == []

    assert calls == [ctx]
    ctx.assign("BOS", "C001")
    assert len(calls) == 2


def test_index_drift_is_repaired_after_a_mutation(ctx, log_lines):
    ctx.assign("ATL", "C001")
    ctx.store._assignments["C002"] = {"ATL"}

    ctx.assign("ATL", "C003")

    assert ctx.store.check_consistency() == []
    assert any("drift" in line for line in log_lines)


def test_stats(ctx):
    ctx.place("ATL", "C001", 1, 1)
    ctx.place("ATL", "C002", 1, 2, draft=True)
    ctx.assign("BOS", "C003")

    assert ctx.stats() == {
        "total_courses": 5,
        "assigned_courses": 3,
        "configured_courses": 2,
        "total_events": 2,
        "drafts": 1,
        "pending_candidates": 0,
    }


def test_schedule_stays_sound_after_mixed_operations(alfred_away):
    ctx = alfred_away
    ctx.place("ATL", "C001", 1, 3)
    ctx.place("ATL", "C002", 1, 1)
    ctx.place("ATL", "C003", 1, 2)
    ctx.place("ATL", "C003", 2, 2)
    ctx.place("ATL", "C004", 2, 4)
    ctx.place("ATL", "C002", 2, 4, draft=True)
    ctx.remove("ATL", "C004")
    ctx.place("BOS", "C004", 1, 1)
    ctx.set_room_count("ATL", 1, confirm=True)

    hard_ok, violations = validate_constraints(ctx.store, ctx.events, ctx.courses, ctx.index)
    assert hard_ok, violations
    for course_id in ctx.courses:
        assert ctx.store.is_assigned(course_id) == bool(ctx.store.events_for_course(course_id))


def test_validate_constraints_flags_forced_overlaps(ctx):
    ctx.place("ATL", "C001", 1, 1)
    ctx.store.set(Placement("ATL", "C002", start_day=2, days=(2,), room=1))

    hard_ok, violations = validate_constraints(ctx.store, ctx.events, ctx.courses, ctx.index)

    assert not hard_ok
    assert any("overlap" in v for v in violations)


def test_validate_constraints_flags_instructor_days(alfred_away):
    alfred_away.place("ATL", "C004", 2, 4)
    alfred_away.store.set(Placement("ATL", "C004", start_day=2, days=(2, 3), room=2))

    hard_ok, violations = validate_constraints(
        alfred_away.store, alfred_away.events, alfred_away.courses, alfred_away.index)

    assert not hard_ok
    assert any("instructor unavailable" in v for v in violations)
