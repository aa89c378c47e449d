from scheduling import ScheduleStore
from scheduling.models import Placement


def _placed(event_id, course_id, start, length, room=1, draft=False):
    return Placement(event_id, course_id, start_day=start, days=tuple(range(start, start + length)),
                     room=room, draft=draft)


def test_assign_is_idempotent_and_unplaced():
    store = ScheduleStore()
    first = store.assign("ATL", "C001")
    second = store.assign("ATL", "C001")

    assert first is second
    assert not first.is_placed
    assert store.is_assigned("C001")
    assert store.events_for_course("C001") == ["ATL"]


def test_assign_keeps_an_existing_placement():
    store = ScheduleStore()
    store.set(_placed("ATL", "C001", 1, 3))
    assert store.assign("ATL", "C001").days == (1, 2, 3)


def test_unplace_keeps_the_course_assigned():
    store = ScheduleStore()
    store.set(_placed("ATL", "C001", 1, 3, room=2))

    p = store.unplace("ATL", "C001")

    assert p.room is None and p.days == () and p.start_day is None
    assert store.is_assigned("C001")


def test_remove_drops_the_assignment():
    store = ScheduleStore()
    store.set(_placed("ATL", "C001", 1, 3))
    store.assign("BOS", "C001")

    store.remove("ATL", "C001")
    assert store.events_for_course("C001") == ["BOS"]
    store.remove("BOS", "C001")
    assert not store.is_assigned("C001")
    assert store.remove("BOS", "C001") is None


def test_remove_course_and_event():
    store = ScheduleStore()
    store.assign("ATL", "C001")
    store.assign("BOS", "C001")
    store.assign("ATL", "C002")

    assert len(store.remove_course("C001")) == 2
    assert store.assigned_course_ids() == {"C002"}
    store.remove_event("ATL")
    assert len(store) == 0


def test_occupancy_ignores_drafts_and_roomless_placements():
    store = ScheduleStore()
    store.set(_placed("ATL", "C001", 1, 2, room=1))
    store.set(_placed("ATL", "C002", 2, 1, room=1, draft=True))
    store.set(_placed("ATL", "C003", 4, 1, room=None))

    assert store.occupied_room_days("ATL") == {(1, 1), (1, 2)}
    assert store.unbooked_room_days("ATL", total_days=3, room_count=2) == [
        (1, 3), (2, 1), (2, 2), (2, 3),
    ]


def test_fill_rate_counts_days_covered_in_any_room():
    store = ScheduleStore()
    store.set(_placed("ATL", "C001", 1, 2, room=1))
    store.set(_placed("ATL", "C002", 2, 2, room=2))
    store.assign("ATL", "C003")

    assert store.filled_days("ATL") == {1, 2, 3}
    assert store.fill_rate("ATL", 4) == 0.75
    assert store.fill_rate("ATL", 0) == 0.0


def test_configured_count_and_drafts():
    store = ScheduleStore()
    store.set(_placed("ATL", "C001", 1, 2))
    store.set(_placed("ATL", "C002", 1, 1, draft=True))
    store.assign("ATL", "C003")

    assert store.configured_count() == 2
    assert [p.course_id for p in store.drafts()] == ["C002"]


def test_consistency_check_reports_and_rebuild_repairs_drift():
    store = ScheduleStore()
    store.assign("ATL", "C001")
    store._assignments["C009"] = {"ATL"}

    problems = store.check_consistency()
    assert len(problems) == 1 and "C009" in problems[0]

    store.rebuild_assignments()
    assert store.check_consistency() == []


def test_replace_all_rebuilds_the_index():
    store = ScheduleStore()
    store.assign("ATL", "C001")
    store.replace_all([_placed("BOS", "C002", 1, 1)])

    assert not store.is_assigned("C001")
    assert store.events_for_course("C002") == ["BOS"]
