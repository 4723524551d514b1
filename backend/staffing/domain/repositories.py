from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from django.contrib.auth.models import User
from django.db.models import Count, Prefetch, Q, QuerySet
from django.utils import timezone

from staffing.domain.models import (
    Assignment,
    AssignmentDay,
    AssignmentExcludedDate,
    BookingConflict,
    BookingStatusHistory,
    ConfirmationRequest,
    ConfirmationRequestAssignment,
    ConfirmationStatus,
    Project,
)

# ==========================================================
# Active work days (day model and legacy span model)
# ==========================================================
@dataclass(frozen=True)
class ActiveDay:
    """One worked date of an assignment, whichever representation produced it."""
    assignment_id: int
    project_id: int
    project_name: str
    user_id: int
    booking_status: str
    work_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    day_id: Optional[int] = None

def _clip(start: Optional[date], end: Optional[date], lo: Optional[date], hi: Optional[date]) -> Tuple[Optional[date], Optional[date]]:
    if lo is not None and (start is None or lo > start):
        start = lo
    if hi is not None and (end is None or hi < end):
        end = hi
    return start, end

def active_work_days(
    assignment: Assignment,
    start: Optional[date] = None,
    end: Optional[date] = None,
    *,
    excluded: Optional[Iterable[date]] = None,
) -> List[ActiveDay]:
    """Returns the dates an assignment actually works, sorted, clipped to [start, end].

    Day-model assignments use their AssignmentDay rows. Legacy assignments
    use the project span minus their excluded dates (``excluded`` overrides
    the stored ones); a project without both dates yields nothing.

    Args:
        assignment (Assignment): The assignment, ideally with ``project``,
            ``days`` and ``excluded_dates`` already loaded.
        start (Optional[date]): Inclusive lower bound. Defaults to None.
        end (Optional[date]): Inclusive upper bound. Defaults to None.
        excluded (Optional[Iterable[date]]): Legacy excluded dates to use
            instead of the stored ones. Defaults to None.

    Returns:
        List[ActiveDay]: Active days in ascending date order.
    """
    project = assignment.project
    base = dict(
        assignment_id=assignment.id,
        project_id=project.id,
        project_name=project.name,
        user_id=assignment.user_id,
        booking_status=assignment.booking_status,
    )

    if assignment.uses_day_model:
        out = [
            ActiveDay(
                work_date=d.work_date,
                start_time=d.start_time,
                end_time=d.end_time,
                day_id=d.id,
                **base,
            )
            for d in assignment.days.all()
            if (start is None or d.work_date >= start) and (end is None or d.work_date <= end)
        ]
        out.sort(key=lambda a: a.work_date)
        return out

    if project.start_date is None or project.end_date is None:
        return []
    lo, hi = _clip(project.start_date, project.end_date, start, end)
    if lo > hi:
        return []
    if excluded is None:
        skip: Set[date] = {x.excluded_date for x in assignment.excluded_dates.all()}
    else:
        skip = set(excluded)
    out = []
    current = lo
    while current <= hi:
        if current not in skip:
            out.append(ActiveDay(work_date=current, **base))
        current += timedelta(days=1)
    return out

# ==========================================================
# Project Repository
# ==========================================================
class ProjectRepository:
    """Data access for Project."""

    @classmethod
    def get(cls, project_id: int) -> Optional[Project]:
        return Project.objects.filter(id=project_id).first()

    @classmethod
    def update_dates(cls, project: Project, start: Optional[date], end: Optional[date], actor: Optional[User] = None) -> Project:
        project.start_date = start
        project.end_date = end
        project._actor = actor
        project.save(update_fields=["start_date", "end_date", "updated_at"])
        return project

# ==========================================================
# Assignment Repository
# ==========================================================
class AssignmentRepository:
    """Data access for Assignment, joined with its day and excluded-date collections."""

    @classmethod
    def _base_qs(cls) -> QuerySet[Assignment]:
        return (
            Assignment.objects
            .select_related("project", "user")
            .prefetch_related("days", "excluded_dates")
        )

    @classmethod
    def get(cls, assignment_id: int) -> Optional[Assignment]:
        """Returns the assignment with project, user, days and excluded dates, or None."""
        return cls._base_qs().filter(id=assignment_id).first()

    @classmethod
    def get_for_update(cls, assignment_id: int) -> Optional[Assignment]:
        """Returns the assignment row, with its project, locked for the current transaction, or None."""
        return (
            Assignment.objects
            .select_for_update(of=("self",))
            .select_related("project")
            .filter(id=assignment_id)
            .first()
        )

    @classmethod
    def get_many_for_update(cls, assignment_ids: Iterable[int]) -> List[Assignment]:
        return list(Assignment.objects.select_for_update().filter(id__in=list(assignment_ids)).order_by("id"))

    @classmethod
    def exists(cls, project: Project, user: User) -> bool:
        return Assignment.objects.filter(project=project, user=user).exists()

    @classmethod
    def for_project(cls, project_id: int) -> QuerySet[Assignment]:
        return cls._base_qs().filter(project_id=project_id).order_by("created_at", "id")

    @classmethod
    def for_user(cls, user_id: int) -> QuerySet[Assignment]:
        return cls._base_qs().filter(user_id=user_id).order_by("created_at", "id")

    @classmethod
    def user_ids(cls) -> List[int]:
        """Distinct ids of users holding at least one assignment."""
        return list(Assignment.objects.order_by("user_id").values_list("user_id", flat=True).distinct())

    @classmethod
    def in_range(cls, start: date, end: date, project_id: Optional[int] = None) -> QuerySet[Assignment]:
        """Assignments with at least one possible work day inside [start, end].

        Day-model assignments qualify through their day rows, legacy ones
        through an overlapping project span.
        """
        day_hit = Q(uses_day_model=True, days__work_date__gte=start, days__work_date__lte=end)
        span_hit = Q(
            uses_day_model=False,
            project__start_date__isnull=False,
            project__end_date__isnull=False,
            project__start_date__lte=end,
            project__end_date__gte=start,
        )
        qs = cls._base_qs().filter(day_hit | span_hit).distinct()
        if project_id is not None:
            qs = qs.filter(project_id=project_id)
        return qs.order_by("project__start_date", "project__name", "id")

    @classmethod
    def insert(
        cls,
        project: Project,
        user: User,
        booking_status: str,
        notes: Optional[str],
        created_by: Optional[User],
        *,
        uses_day_model: bool = True,
    ) -> Assignment:
        a = Assignment(
            project=project,
            user=user,
            booking_status=booking_status,
            notes=notes,
            uses_day_model=uses_day_model,
            created_by=created_by,
        )
        a._actor = created_by
        a.save()
        return a

    @classmethod
    def update_status(cls, assignment: Assignment, booking_status: str, actor: Optional[User] = None) -> Assignment:
        assignment.booking_status = booking_status
        assignment._actor = actor
        assignment.save(update_fields=["booking_status", "updated_at"])
        return assignment

    @classmethod
    def set_day_model(cls, assignment: Assignment, actor: Optional[User] = None) -> Assignment:
        assignment.uses_day_model = True
        assignment._actor = actor
        assignment.save(update_fields=["uses_day_model", "updated_at"])
        return assignment

    @classmethod
    def delete(cls, assignment: Assignment, actor: Optional[User] = None) -> None:
        """Deletes the assignment; days and excluded dates cascade."""
        assignment._actor = actor
        assignment.delete()

# ==========================================================
# AssignmentDay Repository
# ==========================================================
class AssignmentDayRepository:
    """Data access for AssignmentDay."""

    @classmethod
    def for_assignment(cls, assignment_id: int) -> QuerySet[AssignmentDay]:
        return AssignmentDay.objects.filter(assignment_id=assignment_id).order_by("work_date")

    @classmethod
    def get(cls, day_id: int) -> Optional[AssignmentDay]:
        return AssignmentDay.objects.select_related("assignment").filter(id=day_id).first()

    @classmethod
    def by_ids(cls, day_ids: Iterable[int]) -> QuerySet[AssignmentDay]:
        return AssignmentDay.objects.filter(id__in=list(day_ids))

    @classmethod
    def existing_dates(cls, assignment_id: int, dates: Iterable[date]) -> Set[date]:
        """Returns which of the given dates already have a day row for the assignment."""
        return set(
            AssignmentDay.objects
            .filter(assignment_id=assignment_id, work_date__in=list(dates))
            .values_list("work_date", flat=True)
        )

    @classmethod
    def for_user_in_range(
        cls,
        user_id: int,
        start: date,
        end: date,
        exclude_assignment_id: Optional[int] = None,
    ) -> List[ActiveDay]:
        """Every active work day of the user's assignments inside [start, end].

        Args:
            user_id (int): The person whose schedule is read.
            start (date): Inclusive lower bound.
            end (date): Inclusive upper bound.
            exclude_assignment_id (Optional[int], optional): Assignment to leave out. Defaults to None.

        Returns:
            List[ActiveDay]: Active days ordered by date, project name and assignment id.
        """
        qs = (
            Assignment.objects
            .filter(user_id=user_id)
            .select_related("project")
            .prefetch_related(
                Prefetch(
                    "days",
                    queryset=AssignmentDay.objects.filter(work_date__gte=start, work_date__lte=end),
                ),
                "excluded_dates",
            )
        )
        if exclude_assignment_id is not None:
            qs = qs.exclude(id=exclude_assignment_id)

        out: List[ActiveDay] = []
        for a in qs:
            out.extend(active_work_days(a, start, end))
        out.sort(key=lambda d: (d.work_date, d.project_name, d.assignment_id))
        return out

    @classmethod
    def insert_many(cls, days: Sequence[AssignmentDay]) -> List[AssignmentDay]:
        """Inserts a batch of day rows in a single statement."""
        return AssignmentDay.objects.bulk_create(list(days))

    @classmethod
    def update_times(cls, day: AssignmentDay, start: time, end: time) -> AssignmentDay:
        day.start_time = start
        day.end_time = end
        day.save(update_fields=["start_time", "end_time", "updated_at"])
        return day

    @classmethod
    def delete_many(cls, day_ids: Iterable[int]) -> int:
        """Deletes the given day rows; ids that no longer exist are ignored."""
        deleted, _ = AssignmentDay.objects.filter(id__in=list(day_ids)).delete()
        return deleted

# ==========================================================
# Excluded date Repository (legacy)
# ==========================================================
class ExcludedDateRepository:
    """Data access for AssignmentExcludedDate."""

    @classmethod
    def for_assignment(cls, assignment_id: int) -> QuerySet[AssignmentExcludedDate]:
        return AssignmentExcludedDate.objects.filter(assignment_id=assignment_id).order_by("excluded_date")

    @classmethod
    def existing_dates(cls, assignment_id: int, dates: Iterable[date]) -> Set[date]:
        return set(
            AssignmentExcludedDate.objects
            .filter(assignment_id=assignment_id, excluded_date__in=list(dates))
            .values_list("excluded_date", flat=True)
        )

    @classmethod
    def insert_many(cls, rows: Sequence[AssignmentExcludedDate]) -> List[AssignmentExcludedDate]:
        return AssignmentExcludedDate.objects.bulk_create(list(rows))

    @classmethod
    def delete_many(cls, ids: Iterable[int]) -> int:
        deleted, _ = AssignmentExcludedDate.objects.filter(id__in=list(ids)).delete()
        return deleted

# ==========================================================
# Conflict Repository
# ==========================================================
class ConflictRepository:
    """Data access for BookingConflict."""

    @classmethod
    def get(cls, conflict_id: int) -> Optional[BookingConflict]:
        return BookingConflict.objects.filter(id=conflict_id).first()

    @classmethod
    def recorded_keys(cls, user_id: int) -> Set[Tuple[int, int, date]]:
        """Recorded (assignment, conflicting assignment, date) triples for a user, both orientations."""
        keys: Set[Tuple[int, int, date]] = set()
        rows = BookingConflict.objects.filter(user_id=user_id).values_list(
            "assignment_id", "conflicting_assignment_id", "conflict_date"
        )
        for a1, a2, d in rows:
            keys.add((a1, a2, d))
            keys.add((a2, a1, d))
        return keys

    @classmethod
    def insert_many(cls, rows: Sequence[BookingConflict]) -> List[BookingConflict]:
        return BookingConflict.objects.bulk_create(list(rows))

    @classmethod
    def resolve(cls, conflict: BookingConflict, reason: str, who: Optional[User]) -> BookingConflict:
        conflict.override_reason = reason
        conflict.overridden_by = who
        conflict.overridden_at = timezone.now()
        conflict.is_resolved = True
        conflict._actor = who
        conflict.save(update_fields=["override_reason", "overridden_by", "overridden_at", "is_resolved"])
        return conflict

    @classmethod
    def unresolved(cls, user_id: Optional[int] = None) -> QuerySet[BookingConflict]:
        qs = BookingConflict.objects.filter(is_resolved=False).select_related("user")
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        return qs.order_by("conflict_date", "id")

    @classmethod
    def delete_unresolved_for_assignment(cls, assignment_id: int) -> int:
        deleted, _ = BookingConflict.objects.filter(
            Q(assignment_id=assignment_id) | Q(conflicting_assignment_id=assignment_id),
            is_resolved=False,
        ).delete()
        return deleted

# ==========================================================
# Status history Repository
# ==========================================================
class StatusHistoryRepository:
    """Append-only access to BookingStatusHistory."""

    @classmethod
    def append(
        cls,
        assignment_id: int,
        old_status: Optional[str],
        new_status: str,
        changed_by: Optional[User],
        note: Optional[str] = None,
    ) -> BookingStatusHistory:
        return BookingStatusHistory.objects.create(
            assignment_id=assignment_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            note=note,
        )

    @classmethod
    def for_assignment(cls, assignment_id: int) -> QuerySet[BookingStatusHistory]:
        return BookingStatusHistory.objects.filter(assignment_id=assignment_id).order_by("changed_at", "id")

# ==========================================================
# Confirmation request Repository
# ==========================================================
class ConfirmationRepository:
    """Data access for ConfirmationRequest and its assignment links."""

    @classmethod
    def get_for_update(cls, request_id: int) -> Optional[ConfirmationRequest]:
        return ConfirmationRequest.objects.select_for_update().filter(id=request_id).first()

    @classmethod
    def get_by_token(cls, token: str, *, for_update: bool = False) -> Optional[ConfirmationRequest]:
        qs = ConfirmationRequest.objects.all()
        if for_update:
            qs = qs.select_for_update()
        return qs.filter(token=token).first()

    @classmethod
    def insert(
        cls,
        project: Project,
        assignments: Sequence[Assignment],
        sent_to_email: str,
        sent_to_name: Optional[str],
        created_by: Optional[User],
    ) -> ConfirmationRequest:
        """Creates a pending request and links it to the given assignments."""
        req = ConfirmationRequest(
            project=project,
            sent_to_email=sent_to_email,
            sent_to_name=sent_to_name,
            created_by=created_by,
        )
        req._actor = created_by
        req.save()
        ConfirmationRequestAssignment.objects.bulk_create([
            ConfirmationRequestAssignment(confirmation_request=req, assignment=a) for a in assignments
        ])
        return req

    @classmethod
    def linked_assignments(cls, request: ConfirmationRequest) -> List[Assignment]:
        """Assignments linked to the request, locked for the current transaction."""
        return list(
            Assignment.objects
            .select_for_update()
            .filter(id__in=request.links.values("assignment_id"))
            .order_by("id")
        )

    @classmethod
    def set_response(
        cls,
        request: ConfirmationRequest,
        status: str,
        decline_reason: Optional[str] = None,
    ) -> ConfirmationRequest:
        request.status = status
        request.responded_at = timezone.now()
        request.decline_reason = decline_reason
        request.save(update_fields=["status", "responded_at", "decline_reason"])
        return request

    @classmethod
    def expire_overdue(cls) -> int:
        """Marks pending requests past their expiry as expired; returns how many changed."""
        return ConfirmationRequest.objects.filter(
            status=ConfirmationStatus.PENDING, expires_at__lt=timezone.now()
        ).update(status=ConfirmationStatus.EXPIRED)

    @classmethod
    def pending(cls) -> QuerySet[ConfirmationRequest]:
        """Pending requests with project and assignment count, soonest expiry first."""
        return (
            ConfirmationRequest.objects
            .filter(status=ConfirmationStatus.PENDING)
            .select_related("project")
            .annotate(assignment_count=Count("links"))
            .order_by("expires_at", "id")
        )

    @classmethod
    def schedule_for(cls, request: ConfirmationRequest) -> QuerySet[AssignmentDay]:
        """Work days of every linked assignment, with the assignee loaded."""
        return (
            AssignmentDay.objects
            .filter(assignment__in=request.links.values("assignment_id"))
            .select_related("assignment__user")
            .order_by("work_date", "start_time", "end_time", "assignment_id")
        )

    @classmethod
    def delete(cls, request: ConfirmationRequest, actor: Optional[User] = None) -> None:
        """Deletes the request; its assignment links cascade."""
        request._actor = actor
        request.delete()
