from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from django.contrib.auth.models import User
from django.db import IntegrityError

from staffing.domain.models import (
    STATUS_CYCLE,
    Assignment,
    AssignmentDay,
    AssignmentExcludedDate,
    BookingConflict,
    BookingStatus,
    Project,
)
from staffing.domain.repositories import (
    AssignmentDayRepository,
    AssignmentRepository,
    ConflictRepository,
    ExcludedDateRepository,
    ProjectRepository,
    StatusHistoryRepository,
    active_work_days,
)
from staffing.domain.results import (
    ScheduleNotFoundError,
    ScheduleValidationError,
    scheduling_action,
)
from staffing.services.audit import audit, snapshot_instance
from staffing.services.calendar import format_date_range, to_iso_date_string
from staffing.services.conflicts import ConflictCheckResult, new_conflict_rows
from staffing.services.validation import (
    AddDaysSerializer,
    AddExcludedDatesSerializer,
    AssignmentRefSerializer,
    CreateAssignmentSerializer,
    OverrideConflictSerializer,
    ProjectDatesSerializer,
    RemoveDaysSerializer,
    RemoveExcludedDatesSerializer,
    UpdateDaySerializer,
    UpdateStatusSerializer,
    UserRefSerializer,
    validate_input,
)
from staffing.utils import default_day_end, default_day_start

log = logging.getLogger(__name__)

INITIAL_HISTORY_NOTE = "Initial assignment"

# ==========================================================
# Lookups
# ==========================================================

def _assignment_for_update(assignment_id: int) -> Assignment:
    a = AssignmentRepository.get_for_update(assignment_id)
    if a is None:
        raise ScheduleNotFoundError("Assignment not found")
    return a

def _require_project_span(project: Project) -> None:
    if project.start_date is None or project.end_date is None:
        raise ScheduleValidationError("Project must have start and end dates before assigning users")

def _iso_list(dates: Iterable[date]) -> List[str]:
    return [to_iso_date_string(d) for d in sorted(dates)]

def _record_overlaps(assignment: Assignment, dates: List[date]) -> List[BookingConflict]:
    """Persists conflicts between the assignment and the user's other bookings on ``dates``."""
    wanted = set(dates)
    others = AssignmentDayRepository.for_user_in_range(
        assignment.user_id, min(wanted), max(wanted), exclude_assignment_id=assignment.id
    )
    keys = [(assignment.id, o.assignment_id, o.work_date) for o in others if o.work_date in wanted]
    rows = new_conflict_rows(assignment.user_id, keys)
    if rows:
        rows = ConflictRepository.insert_many(rows)
        log.info("Assignment %s: recorded %d conflict(s)", assignment.id, len(rows))
    return rows

# ==========================================================
# Assignments
# ==========================================================

@scheduling_action
def create_assignment(
    project_id: int,
    user_id: int,
    initial_status: Optional[str] = None,
    notes: Optional[str] = None,
    actor: Optional[User] = None,
) -> Assignment:
    """Books a person on a project.

    No conflict detection runs here; callers check first with ``check_conflicts``.

    Args:
        project_id (int): The project.
        user_id (int): The person.
        initial_status (Optional[str], optional): Starting booking status. Defaults to tentative.
        notes (Optional[str], optional): Free text, up to 1000 characters.
        actor (Optional[User], optional): Who creates the booking.

    Returns:
        Assignment: The new assignment (wrapped in an ActionResult).
    """
    data = validate_input(CreateAssignmentSerializer, {
        "project_id": project_id,
        "user_id": user_id,
        "booking_status": initial_status or BookingStatus.TENTATIVE,
        "notes": notes,
    })
    project = ProjectRepository.get(data["project_id"])
    if project is None:
        raise ScheduleNotFoundError("Project not found")
    _require_project_span(project)
    user = User.objects.filter(pk=data["user_id"]).first()
    if user is None:
        raise ScheduleNotFoundError("User not found")
    if AssignmentRepository.exists(project, user):
        raise ScheduleValidationError("User is already assigned to this project")

    a = AssignmentRepository.insert(
        project, user, data["booking_status"], data.get("notes"), created_by=actor
    )
    StatusHistoryRepository.append(a.id, None, a.booking_status, actor, INITIAL_HISTORY_NOTE)
    log.info("Assignment %s created: user %s on project %s (%s)", a.id, user.id, project.id, a.booking_status)
    return a

@scheduling_action
def cycle_status(assignment_id: int, actor: Optional[User] = None, note: Optional[str] = None) -> Assignment:
    """Advances tentative -> pending_confirmation -> confirmed -> tentative and logs one history row."""
    data = validate_input(AssignmentRefSerializer, {"assignment_id": assignment_id, "note": note})
    a = _assignment_for_update(data["assignment_id"])
    old = a.booking_status
    new = STATUS_CYCLE[BookingStatus(old)]
    AssignmentRepository.update_status(a, new, actor)
    StatusHistoryRepository.append(a.id, old, new, actor, data.get("note"))
    return a

@scheduling_action
def update_assignment_status(
    assignment_id: int,
    new_status: str,
    actor: Optional[User] = None,
    note: Optional[str] = None,
) -> Assignment:
    """Sets a booking status directly; every call appends one history row."""
    data = validate_input(UpdateStatusSerializer, {
        "assignment_id": assignment_id,
        "new_status": new_status,
        "note": note,
    })
    a = _assignment_for_update(data["assignment_id"])
    old = a.booking_status
    AssignmentRepository.update_status(a, data["new_status"], actor)
    StatusHistoryRepository.append(a.id, old, data["new_status"], actor, data.get("note"))
    return a

@scheduling_action
def remove_assignment(assignment_id: int, actor: Optional[User] = None) -> int:
    """Deletes an assignment with its days and excluded dates.

    Unresolved conflicts involving it go too; status history and resolved
    conflicts stay as the permanent record.
    """
    data = validate_input(AssignmentRefSerializer, {"assignment_id": assignment_id})
    a = _assignment_for_update(data["assignment_id"])
    dropped = ConflictRepository.delete_unresolved_for_assignment(a.id)
    AssignmentRepository.delete(a, actor)
    log.info("Assignment %s removed (%d open conflict(s) dropped)", data["assignment_id"], dropped)
    return data["assignment_id"]

# ==========================================================
# Work days
# ==========================================================

@scheduling_action
def add_assignment_days(
    assignment_id: int,
    days: List[Dict[str, Any]],
    actor: Optional[User] = None,
    track_conflicts: bool = False,
) -> List[AssignmentDay]:
    """Schedules a batch of work days on an assignment.

    The batch is all-or-nothing: a bad time range, a date outside the
    project dates, a repeated date or one already scheduled rejects every day.

    Args:
        assignment_id (int): The assignment.
        days (List[Dict[str, Any]]): Items ``{"date", "start_time"?, "end_time"?}``.
        actor (Optional[User], optional): Who schedules the days.
        track_conflicts (bool, optional): Record a BookingConflict for every
            overlap with the user's other assignments. Defaults to False.

    Returns:
        List[AssignmentDay]: The inserted rows.
    """
    data = validate_input(AddDaysSerializer, {"assignment_id": assignment_id, "days": days})
    a = _assignment_for_update(data["assignment_id"])
    if not a.uses_day_model:
        raise ScheduleValidationError(
            "Assignment uses excluded dates; convert it to the day model before adding days"
        )

    dates = [d["date"] for d in data["days"]]
    project = a.project
    _require_project_span(project)
    outside = [d for d in dates if not project.start_date <= d <= project.end_date]
    if outside:
        raise ScheduleValidationError(
            f"Date outside the project dates ({format_date_range(project.start_date, project.end_date)}): "
            f"{', '.join(_iso_list(outside))}"
        )
    clash = AssignmentDayRepository.existing_dates(a.id, dates)
    if clash:
        raise ScheduleValidationError(
            f"Date already scheduled for this assignment: {', '.join(_iso_list(clash))}"
        )

    rows = [
        AssignmentDay(
            assignment=a,
            work_date=d["date"],
            start_time=d["start_time"],
            end_time=d["end_time"],
            created_by=actor,
        )
        for d in data["days"]
    ]
    try:
        created = AssignmentDayRepository.insert_many(rows)
    except IntegrityError:
        # concurrent writer inserted one of the dates first
        raise ScheduleValidationError("Date already scheduled for this assignment")

    audit(
        "add_days", a,
        after={"dates": _iso_list(dates)},
        author=actor,
        table=AssignmentDay._meta.db_table,
        record_id=str(a.id),
    )
    if track_conflicts:
        _record_overlaps(a, dates)
    return created

@scheduling_action
def update_assignment_day(
    day_id: int,
    start_time,
    end_time,
    actor: Optional[User] = None,
) -> AssignmentDay:
    """Changes the hours of one work day; other assignments are not re-checked."""
    data = validate_input(UpdateDaySerializer, {
        "day_id": day_id,
        "start_time": start_time,
        "end_time": end_time,
    })
    day = AssignmentDayRepository.get(data["day_id"])
    if day is None:
        raise ScheduleNotFoundError("Assignment day not found")
    before = snapshot_instance(day)
    AssignmentDayRepository.update_times(day, data["start_time"], data["end_time"])
    audit("update", day, before=before, after=snapshot_instance(day), author=actor)
    return day

@scheduling_action
def remove_assignment_days(day_ids: List[int], actor: Optional[User] = None) -> int:
    """Deletes work days by id; ids that do not exist are ignored."""
    data = validate_input(RemoveDaysSerializer, {"day_ids": day_ids})
    doomed = list(AssignmentDayRepository.by_ids(data["day_ids"]))
    by_assignment: Dict[int, List[AssignmentDay]] = defaultdict(list)
    for d in doomed:
        by_assignment[d.assignment_id].append(d)

    deleted = AssignmentDayRepository.delete_many(data["day_ids"])
    for aid, items in by_assignment.items():
        audit(
            "remove_days", items[0],
            before={"dates": _iso_list(d.work_date for d in items)},
            author=actor,
            record_id=str(aid),
        )
    return deleted

# ==========================================================
# Conflicts
# ==========================================================

@scheduling_action
def override_conflict(conflict_id: int, reason: str, actor: Optional[User] = None) -> BookingConflict:
    """Acknowledges a double booking as intentional; the schedules are untouched."""
    data = validate_input(OverrideConflictSerializer, {"conflict_id": conflict_id, "reason": reason})
    c = ConflictRepository.get(data["conflict_id"])
    if c is None:
        raise ScheduleNotFoundError("Conflict not found")
    ConflictRepository.resolve(c, data["reason"], actor)
    log.info("Conflict %s overridden by %s", c.id, getattr(actor, "pk", None))
    return c

@scheduling_action
def record_conflicts(assignment_id: int, result: ConflictCheckResult, user_id: int) -> List[BookingConflict]:
    """Persists a detection result as unresolved conflicts against an assignment.

    Pairs already on record, in either orientation, are skipped.
    """
    data = validate_input(AssignmentRefSerializer, {"assignment_id": assignment_id})
    if result.error:
        raise ScheduleValidationError(result.error)
    a = _assignment_for_update(data["assignment_id"])
    if a.user_id != user_id:
        raise ScheduleValidationError("Assignment does not belong to this user")
    keys = [(a.id, c.assignment_id, c.conflict_date) for c in result.conflicts]
    rows = new_conflict_rows(user_id, keys)
    return ConflictRepository.insert_many(rows) if rows else []

@scheduling_action
def list_unresolved_conflicts(user_id: Optional[int] = None) -> List[BookingConflict]:
    data = validate_input(UserRefSerializer, {"user_id": user_id})
    return list(ConflictRepository.unresolved(data.get("user_id")))

# ==========================================================
# Legacy excluded dates
# ==========================================================

@scheduling_action
def add_excluded_dates(
    assignment_id: int,
    dates: List,
    reason: Optional[str] = None,
    actor: Optional[User] = None,
) -> List[AssignmentExcludedDate]:
    """Marks dates of a legacy assignment's project span as not worked."""
    data = validate_input(AddExcludedDatesSerializer, {
        "assignment_id": assignment_id,
        "dates": dates,
        "reason": reason,
    })
    a = _assignment_for_update(data["assignment_id"])
    if a.uses_day_model:
        raise ScheduleValidationError("Excluded dates apply only to legacy assignments")
    if ExcludedDateRepository.existing_dates(a.id, data["dates"]):
        raise ScheduleValidationError("Some dates are already excluded")

    rows = ExcludedDateRepository.insert_many([
        AssignmentExcludedDate(
            assignment=a,
            excluded_date=d,
            reason=data.get("reason") or None,
            created_by=actor,
        )
        for d in data["dates"]
    ])
    audit(
        "add_excluded_dates", a,
        after={"dates": _iso_list(data["dates"])},
        author=actor,
        table=AssignmentExcludedDate._meta.db_table,
        record_id=str(a.id),
    )
    return rows

@scheduling_action
def remove_excluded_dates(excluded_date_ids: List[int], actor: Optional[User] = None) -> int:
    data = validate_input(RemoveExcludedDatesSerializer, {"excluded_date_ids": excluded_date_ids})
    doomed = list(AssignmentExcludedDate.objects.filter(id__in=data["excluded_date_ids"]))
    deleted = ExcludedDateRepository.delete_many(data["excluded_date_ids"])
    for x in doomed:
        audit("delete", x, before=snapshot_instance(x), author=actor)
    return deleted

@scheduling_action
def convert_to_day_model(assignment_id: int, actor: Optional[User] = None) -> List[AssignmentDay]:
    """Turns a legacy assignment into explicit day rows with the default hours.

    Every date of the project span that is not excluded becomes one day.
    """
    data = validate_input(AssignmentRefSerializer, {"assignment_id": assignment_id})
    a = _assignment_for_update(data["assignment_id"])
    if a.uses_day_model:
        raise ScheduleValidationError("Assignment already uses the day model")

    start, end = default_day_start(), default_day_end()
    rows = [
        AssignmentDay(assignment=a, work_date=d.work_date, start_time=start, end_time=end, created_by=actor)
        for d in active_work_days(a)
    ]
    created = AssignmentDayRepository.insert_many(rows) if rows else []
    AssignmentRepository.set_day_model(a, actor)
    log.info("Assignment %s converted to day model (%d day(s))", a.id, len(created))
    return created

# ==========================================================
# Projects
# ==========================================================

@scheduling_action
def update_project_dates(project_id: int, start_date, end_date, actor: Optional[User] = None) -> Project:
    data = validate_input(ProjectDatesSerializer, {
        "project_id": project_id,
        "start_date": start_date,
        "end_date": end_date,
    })
    project = ProjectRepository.get(data["project_id"])
    if project is None:
        raise ScheduleNotFoundError("Project not found")
    return ProjectRepository.update_dates(project, data["start_date"], data["end_date"], actor)
