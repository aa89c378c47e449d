from __future__ import annotations
import math
import re
from datetime import date, datetime as dt
from typing import List, Optional

# Display format used across the board (3/1/2026); ISO is accepted on input.
DATE_FMT = "%m/%d/%Y"
INPUT_DATE_FMTS = ("%Y-%m-%d", DATE_FMT, "%m/%d/%y")


def _parse_date(s) -> date:
    """Parse a date cell. Raises ValueError for anything unparseable."""
    if isinstance(s, dt):
        return s.date()
    if isinstance(s, date):
        return s
    if hasattr(s, "to_pydatetime"):  # pandas Timestamp
        if s != s:  # NaT
            raise ValueError("missing date")
        return s.to_pydatetime().date()
    text = str(s).strip()
    if not text:
        raise ValueError("missing date")
    for fmt in INPUT_DATE_FMTS:
        try:
            return dt.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unparseable date '{text}'")


def format_date(d: Optional[date]) -> str:
    """3/1/2026 style, no zero padding."""
    if d is None:
        return ""
    return f"{d.month}/{d.day}/{d.year}"


def days_needed(duration_days: float) -> int:
    """Occupied day count: fractional durations round up (0.5 -> 1)."""
    return int(math.ceil(float(duration_days)))


def _norm_id(x) -> str:
    return str(x).strip()


def _norm_name(name) -> str:
    """Instructor key: collapsed whitespace, case-folded."""
    return " ".join(str(name).split()).casefold()


def split_instructors(instructor: str) -> List[str]:
    """'Alfred, Betty' -> ['Alfred', 'Betty']."""
    if not instructor:
        return []
    return [p.strip() for p in str(instructor).split(",") if p.strip()]


def _clean_opt(v) -> str:
    if v is None:
        return ""
    s = str(v).strip()
    return "" if s.lower() in {"", "nan", "nat", "none", "null"} else s


def _course_sort_key(course_id: str):
    """Natural order for ids like C2 < C10."""
    s = _norm_id(course_id)
    m = re.search(r"\d+", s)
    return (re.sub(r"\d+", "", s), int(m.group()) if m else -1, s)


def contiguous_runs(numbers) -> List[List[int]]:
    """[1,2,3,5,6] -> [[1,2,3],[5,6]]."""
    runs: List[List[int]] = []
    for n in sorted(set(numbers)):
        if runs and n == runs[-1][-1] + 1:
            runs[-1].append(n)
        else:
            runs.append([n])
    return runs
