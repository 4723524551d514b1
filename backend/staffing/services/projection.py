from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from staffing.domain.models import STATUS_ORDER, Assignment
from staffing.domain.repositories import (
    ActiveDay,
    AssignmentDayRepository,
    AssignmentRepository,
    active_work_days,
)
from staffing.services.calendar import DateLike, coerce_date, iter_days, to_iso_date_string

# =========================
# View types
# =========================

@dataclass(frozen=True)
class CalendarEvent:
    """One assignment on one active day, as shown in a calendar grid."""
    id: str
    title: str
    date: date
    start_time: Optional[time]
    end_time: Optional[time]
    assignment_id: int
    project_id: int
    project_name: str
    user_id: int
    user_name: str
    booking_status: str
    excluded_dates: Tuple[str, ...] = ()

@dataclass
class UserScheduleDay:
    date: date
    assignments: List[ActiveDay] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return len({a.assignment_id for a in self.assignments}) > 1

@dataclass(frozen=True)
class AssignmentBlock:
    """A maximal run of consecutive work dates."""
    start_date: date
    end_date: date
    days: Tuple = ()

    @property
    def length(self) -> int:
        return (self.end_date - self.start_date).days + 1

@dataclass
class GanttRow:
    assignment_id: int
    user_id: int
    user_name: str
    project_id: int
    project_name: str
    project_start_date: Optional[date]
    project_end_date: Optional[date]
    booking_status: str
    notes: Optional[str]
    blocks: List[AssignmentBlock] = field(default_factory=list)

def _user_name(user) -> str:
    return user.get_full_name() or user.username

# =========================
# Calendar events
# =========================

def to_calendar_events(
    assignments: Iterable[Assignment],
    excluded_dates_by_assignment: Optional[Mapping[int, Iterable[DateLike]]] = None,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> List[CalendarEvent]:
    """Expands assignments into one event per active day.

    Day-model assignments produce an event on each scheduled day. Legacy ones
    produce one per day of the project span minus their excluded dates; an
    entry in ``excluded_dates_by_assignment`` replaces the stored exclusions.

    Args:
        assignments (Iterable[Assignment]): Assignments with project and user loaded.
        excluded_dates_by_assignment (Optional[Mapping[int, Iterable[DateLike]]], optional):
            Legacy excluded dates keyed by assignment id. Defaults to None.
        start (Optional[DateLike], optional): Inclusive lower bound. Defaults to None.
        end (Optional[DateLike], optional): Inclusive upper bound. Defaults to None.

    Returns:
        List[CalendarEvent]: Events ordered by date, status, project name and assignment id.
    """
    lo = coerce_date(start) if start else None
    hi = coerce_date(end) if end else None
    overrides = excluded_dates_by_assignment or {}

    events: List[CalendarEvent] = []
    for a in assignments:
        excluded = None
        if a.id in overrides:
            excluded = [coerce_date(x) for x in overrides[a.id]]
        days = active_work_days(a, lo, hi, excluded=excluded)
        if a.uses_day_model:
            shown_excluded: Tuple[str, ...] = ()
        elif excluded is not None:
            shown_excluded = tuple(to_iso_date_string(x) for x in sorted(excluded))
        else:
            shown_excluded = tuple(to_iso_date_string(x.excluded_date) for x in a.excluded_dates.all())
        user_name = _user_name(a.user)
        for d in days:
            events.append(CalendarEvent(
                id=f"{a.id}-{to_iso_date_string(d.work_date)}",
                title=f"{d.project_name} - {user_name}",
                date=d.work_date,
                start_time=d.start_time,
                end_time=d.end_time,
                assignment_id=a.id,
                project_id=d.project_id,
                project_name=d.project_name,
                user_id=a.user_id,
                user_name=user_name,
                booking_status=d.booking_status,
                excluded_dates=shown_excluded,
            ))
    events.sort(key=lambda e: (e.date, _status_rank(e.booking_status), e.project_name, e.assignment_id))
    return events

def calendar_events_in_range(start: DateLike, end: DateLike, project_id: Optional[int] = None) -> List[CalendarEvent]:
    s, e = coerce_date(start), coerce_date(end)
    return to_calendar_events(AssignmentRepository.in_range(s, e, project_id=project_id), start=s, end=e)

def _status_rank(status: str) -> int:
    try:
        return STATUS_ORDER.index(status)
    except ValueError:
        return len(STATUS_ORDER)

def get_events_for_day(events: Iterable[CalendarEvent], day: DateLike) -> List[CalendarEvent]:
    target = coerce_date(day)
    return [e for e in events if e.date == target]

def sort_events_by_status(events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
    """Confirmed first, then pending confirmation, then tentative; stable otherwise."""
    return sorted(events, key=lambda e: _status_rank(e.booking_status))

def group_events_by_user(events: Iterable[CalendarEvent]) -> Dict[int, List[CalendarEvent]]:
    out: Dict[int, List[CalendarEvent]] = defaultdict(list)
    for e in events:
        out[e.user_id].append(e)
    return dict(out)

def group_events_by_project(events: Iterable[CalendarEvent]) -> Dict[int, List[CalendarEvent]]:
    out: Dict[int, List[CalendarEvent]] = defaultdict(list)
    for e in events:
        out[e.project_id].append(e)
    return dict(out)

# =========================
# Per-user schedule
# =========================

def to_user_schedule(user_id: int, range_start: DateLike, range_end: DateLike) -> List[UserScheduleDay]:
    """Occupancy of every day in the range for one person.

    Args:
        user_id (int): The person.
        range_start (DateLike): First day.
        range_end (DateLike): Last day.

    Returns:
        List[UserScheduleDay]: One entry per day, empty ones included; ``has_conflict``
            is set where more than one assignment claims the day.
    """
    s, e = coerce_date(range_start), coerce_date(range_end)
    by_date: Dict[date, List[ActiveDay]] = defaultdict(list)
    for d in AssignmentDayRepository.for_user_in_range(user_id, s, e):
        by_date[d.work_date].append(d)
    return [UserScheduleDay(date=day, assignments=by_date.get(day, [])) for day in iter_days(s, e)]

# =========================
# Gantt
# =========================

DayLike = Union[ActiveDay, date, str]

def _day_date(item) -> date:
    return coerce_date(getattr(item, "work_date", item))

def to_gantt_blocks(assignment_or_days: Union[Assignment, Sequence[DayLike]]) -> List[AssignmentBlock]:
    """Groups work dates into maximal runs of consecutive calendar days.

    Input order does not matter: days are sorted before grouping, so the same
    set of days always yields the same blocks. A date given twice keeps its
    first record.

    Args:
        assignment_or_days (Union[Assignment, Sequence[DayLike]]): An assignment, or
            its day records (AssignmentDay, ActiveDay, dates or ISO strings).

    Returns:
        List[AssignmentBlock]: Blocks in date order.
    """
    if isinstance(assignment_or_days, Assignment):
        items = list(active_work_days(assignment_or_days))
    else:
        items = list(assignment_or_days)
    items.sort(key=_day_date)

    blocks: List[AssignmentBlock] = []
    run: List = []
    for item in items:
        if run and _day_date(item) == _day_date(run[-1]):
            continue
        if run and _day_date(item) - _day_date(run[-1]) > timedelta(days=1):
            blocks.append(AssignmentBlock(_day_date(run[0]), _day_date(run[-1]), tuple(run)))
            run = []
        run.append(item)
    if run:
        blocks.append(AssignmentBlock(_day_date(run[0]), _day_date(run[-1]), tuple(run)))
    return blocks

def build_gantt_rows(project_id: int) -> List[GanttRow]:
    """One Gantt row per assignment of a project, in creation order."""
    rows: List[GanttRow] = []
    for a in AssignmentRepository.for_project(project_id):
        rows.append(GanttRow(
            assignment_id=a.id,
            user_id=a.user_id,
            user_name=_user_name(a.user),
            project_id=a.project_id,
            project_name=a.project.name,
            project_start_date=a.project.start_date,
            project_end_date=a.project.end_date,
            booking_status=a.booking_status,
            notes=a.notes,
            blocks=to_gantt_blocks(a),
        ))
    return rows
