from __future__ import annotations

import calendar as pycal
import re
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from django.utils import timezone

from staffing.utils import _get_setting

DateLike = Union[date, str]

ISO_DATE_FMT = "%Y-%m-%d"
_TIME_RE = re.compile(r"^(\d{2}):(\d{2})(?::(\d{2}))?$")

# ========= Grid policy =========

def _weekdays_only(flag: Optional[bool]) -> bool:
    """Resolves the grid policy: explicit flag, else CALENDAR_WEEKDAYS_ONLY."""
    if flag is None:
        return bool(_get_setting("CALENDAR_WEEKDAYS_ONLY", False))
    return flag

def _first_weekday() -> int:
    return int(_get_setting("CALENDAR_FIRST_WEEKDAY", pycal.SUNDAY))

# ========= ISO conversions =========

def to_iso_date_string(d: date) -> str:
    """Formats a date as YYYY-MM-DD."""
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()

def from_iso_date_string(value: str) -> date:
    """Parses a YYYY-MM-DD string.

    Raises:
        ValueError: If the string is not a valid calendar date.
    """
    return date.fromisoformat(value)

def coerce_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return from_iso_date_string(value)

# ========= Ranges =========

def is_date_in_range(d: DateLike, start: Optional[DateLike], end: Optional[DateLike]) -> bool:
    """Inclusive containment; False whenever a bound is missing."""
    if not start or not end:
        return False
    return coerce_date(start) <= coerce_date(d) <= coerce_date(end)

def do_ranges_overlap(start_a: DateLike, end_a: DateLike, start_b: DateLike, end_b: DateLike) -> bool:
    """Checks whether two inclusive date ranges share at least one day.

    Touching ranges (end of one == start of the other) overlap.

    Args:
        start_a (DateLike): Start of the first range.
        end_a (DateLike): End of the first range.
        start_b (DateLike): Start of the second range.
        end_b (DateLike): End of the second range.

    Returns:
        bool: True if the ranges overlap.
    """
    return coerce_date(start_a) <= coerce_date(end_b) and coerce_date(start_b) <= coerce_date(end_a)

def iter_days(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)

def get_date_range(start: DateLike, end: DateLike) -> List[str]:
    """Every day from start to end inclusive, as ascending ISO strings.

    Args:
        start (DateLike): First day.
        end (DateLike): Last day.

    Returns:
        List[str]: ISO dates; a single element when start == end, empty when start > end.
    """
    return [to_iso_date_string(d) for d in iter_days(coerce_date(start), coerce_date(end))]

def get_project_duration(start: Optional[DateLike], end: Optional[DateLike]) -> int:
    """Inclusive day count of a project span; 0 when a bound is missing."""
    if not start or not end:
        return 0
    return max((coerce_date(end) - coerce_date(start)).days + 1, 0)

def is_date_excluded(d: DateLike, excluded: Iterable[DateLike]) -> bool:
    target = coerce_date(d)
    return any(coerce_date(x) == target for x in excluded)

# ========= Formatting =========

def format_date(d: DateLike, fmt: Optional[str] = None) -> str:
    """Formats as "Jan 15, 2024", or with an explicit strftime pattern."""
    d = coerce_date(d)
    if fmt:
        return d.strftime(fmt)
    return f"{d:%b} {d.day}, {d.year}"

def _month_day(d: date) -> str:
    return f"{d:%b} {d.day}"

def format_date_range(start: Optional[DateLike], end: Optional[DateLike]) -> str:
    """Human-readable range.

    Examples: "Jan 15, 2024", "Jan 15 - 20, 2024", "Jan 30, 2024 - Feb 2, 2024".
    """
    if not start or not end:
        return "Dates not set"
    s, e = coerce_date(start), coerce_date(end)
    if s == e:
        return format_date(s)
    if (s.year, s.month) == (e.year, e.month):
        return f"{_month_day(s)} - {e.day}, {e.year}"
    return f"{format_date(s)} - {format_date(e)}"

def format_assignment_dates(days: Iterable) -> str:
    """Summarises scheduled days, e.g. "Jan 15" or "Jan 15 - Jan 20 (5 days)".

    Args:
        days (Iterable): Objects with a ``work_date`` attribute, dates or ISO strings.

    Returns:
        str: Summary text.
    """
    dates = sorted(coerce_date(getattr(d, "work_date", d)) for d in days)
    if not dates:
        return "No dates scheduled"
    if len(dates) == 1:
        return _month_day(dates[0])
    return f"{_month_day(dates[0])} - {_month_day(dates[-1])} ({len(dates)} days)"

# ========= Times =========

def parse_time(value: Union[str, time]) -> time:
    """Parses "HH:MM" or "HH:MM:SS".

    Raises:
        ValueError: On any other shape or an out-of-range component.
    """
    if isinstance(value, time):
        return value
    m = _TIME_RE.match(str(value))
    if not m:
        raise ValueError(f"Invalid time format (HH:MM or HH:MM:SS): {value!r}")
    hh, mm, ss = m.groups()
    return time(int(hh), int(mm), int(ss or 0))

def format_time(t: time) -> str:
    return f"{t:%H:%M}"

def adjust_time(value: Union[str, time], hours: int) -> str:
    """Shifts a wall-clock time by whole hours, clamping the hour to 00..23."""
    t = parse_time(value)
    hour = min(max(t.hour + hours, 0), 23)
    return f"{hour:02d}:{t.minute:02d}"

# ========= Month / week grids =========

def get_calendar_days(d: date, *, weekdays_only: Optional[bool] = None) -> List[date]:
    """Days shown in a month grid, padded to whole weeks.

    Args:
        d (date): Any day of the month to display.
        weekdays_only (Optional[bool], optional): Keep Mon-Fri only. Defaults to
            the CALENDAR_WEEKDAYS_ONLY setting.

    Returns:
        List[date]: Grid days in order.
    """
    cal = pycal.Calendar(firstweekday=_first_weekday())
    days = list(cal.itermonthdates(d.year, d.month))
    if _weekdays_only(weekdays_only):
        days = [x for x in days if is_weekday(x)]
    return days

def get_month_view_range(d: date) -> Tuple[date, date]:
    """First and last day of the padded month grid."""
    days = get_calendar_days(d, weekdays_only=False)
    return days[0], days[-1]

def get_week_view_days(start: DateLike, end: DateLike, *, weekdays_only: Optional[bool] = None) -> List[date]:
    days = list(iter_days(coerce_date(start), coerce_date(end)))
    if _weekdays_only(weekdays_only):
        days = [x for x in days if is_weekday(x)]
    return days

def get_weeks_in_range(start: DateLike, end: DateLike, *, weekdays_only: Optional[bool] = None) -> List[List[date]]:
    """Splits a range into Monday-started weeks clipped to the range.

    Args:
        start (DateLike): First day of the range.
        end (DateLike): Last day of the range.
        weekdays_only (Optional[bool], optional): Keep Mon-Fri only. Defaults to
            the CALENDAR_WEEKDAYS_ONLY setting.

    Returns:
        List[List[date]]: One list per week; weeks left empty are dropped.
    """
    s, e = coerce_date(start), coerce_date(end)
    span = 5 if _weekdays_only(weekdays_only) else 7
    weeks: List[List[date]] = []
    week_start = s - timedelta(days=s.weekday())
    while week_start <= e:
        week = [
            week_start + timedelta(days=i)
            for i in range(span)
            if s <= week_start + timedelta(days=i) <= e
        ]
        if week:
            weeks.append(week)
        week_start += timedelta(days=7)
    return weeks

def get_week_number(d: DateLike, project_start: DateLike) -> int:
    """1-based index of d's Monday-started week counted from the project's first week."""
    d = coerce_date(d)
    s = coerce_date(project_start)
    d_monday = d - timedelta(days=d.weekday())
    s_monday = s - timedelta(days=s.weekday())
    return (d_monday - s_monday).days // 7 + 1

# ========= Navigation =========

def _add_months(d: date, months: int) -> date:
    idx = d.year * 12 + (d.month - 1) + months
    year, month = divmod(idx, 12)
    month += 1
    last = pycal.monthrange(year, month)[1]
    return date(year, month, min(d.day, last))

def get_next_month(d: date) -> date:
    return _add_months(d, 1)

def get_previous_month(d: date) -> date:
    return _add_months(d, -1)

def get_next_week(d: date) -> date:
    return d + timedelta(days=7)

def get_previous_week(d: date) -> date:
    return d - timedelta(days=7)

def is_weekday(d: date) -> bool:
    return d.weekday() < 5

def is_current_month(d: date, current: date) -> bool:
    return (d.year, d.month) == (current.year, current.month)

def is_today(d: date) -> bool:
    return d == timezone.localdate()
