from __future__ import annotations
import threading
from typing import Callable, Dict, List, Optional

import pandas as pd

from .records import (
    courses_from_df,
    courses_to_df,
    events_from_df,
    events_to_df,
    placement_rows_from_df,
    placements_to_df,
    unavailability_from_df,
    unavailability_to_df,
)

# Table names double as worksheet titles in the sheet store.
TABLES = ("courses", "events", "unavailability", "schedule")


def snapshot(ctx) -> Dict[str, pd.DataFrame]:
    """Bulk, replace-all view of everything the board persists."""
    return {
        "courses": courses_to_df(ctx.courses.values()),
        "events": events_to_df(ctx.events.values()),
        "unavailability": unavailability_to_df(ctx.unavailability),
        "schedule": placements_to_df(ctx.export_placement_rows()),
    }


def restore(ctx, snap: Dict[str, pd.DataFrame]) -> List[str]:
    """Replace the context's state from a snapshot. Returns row errors."""
    errors: List[str] = []
    with ctx.batch():
        if snap.get("events") is not None and not snap["events"].empty:
            events, errs = events_from_df(snap["events"])
            errors += [f"events: {e}" for e in errs]
            errors += [f"events: {e}" for e in ctx.load_events(events)]
        if snap.get("courses") is not None and not snap["courses"].empty:
            courses, errs = courses_from_df(snap["courses"])
            errors += [f"courses: {e}" for e in errs]
            ctx.load_courses(courses)
        if snap.get("unavailability") is not None and not snap["unavailability"].empty:
            entries, errs = unavailability_from_df(snap["unavailability"])
            errors += [f"unavailability: {e}" for e in errs]
            ctx.load_unavailability(entries)
        if snap.get("schedule") is not None and not snap["schedule"].empty:
            rows, errs = placement_rows_from_df(snap["schedule"])
            errors += [f"schedule: {e}" for e in errs]
            result = ctx.import_placement_rows(rows, replace_all=True)
            errors += [f"schedule: {e}" for e in result.errors]
    return errors


class DebouncedSaver:
    """
    Saves a snapshot after `delay_sec` of quiet. Each touch resets the single
    pending timer instead of queueing another save.

    Failures go to `on_error` and are not retried; in-memory state is never
    touched by a save.
    """

    def __init__(
        self,
        save_func: Callable[[Dict[str, pd.DataFrame]], None],
        delay_sec: float = 3.0,
        on_error: Optional[Callable[[Exception], None]] = None,
        log_func: Callable[[str], None] = print,
    ):
        self.save_func = save_func
        self.delay_sec = delay_sec
        self.on_error = on_error
        self.log = log_func
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[Dict[str, pd.DataFrame]] = None
        self._lock = threading.Lock()

    def touch(self, ctx) -> None:
        """Record a mutation. Usable directly as SchedulingContext.on_change."""
        snap = snapshot(ctx)
        with self._lock:
            self._pending = snap
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay_sec, self.flush)
            self._timer.daemon = True
            self._timer.start()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None

    def flush(self) -> bool:
        """Save the pending snapshot now. Returns True when something was saved."""
        with self._lock:
            snap, self._pending = self._pending, None
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
        if snap is None:
            return False
        try:
            self.save_func(snap)
        except Exception as exc:
            self.log(f"❌ Save failed: {exc}")
            if self.on_error is not None:
                self.on_error(exc)
            return False
        self.log("💾 Schedule saved.")
        return True
