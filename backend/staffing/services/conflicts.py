from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from django.db import DatabaseError, transaction

from staffing.domain.models import BookingConflict
from staffing.domain.repositories import (
    ActiveDay,
    AssignmentDayRepository,
    AssignmentRepository,
    ConflictRepository,
    active_work_days,
)
from staffing.domain.results import ScheduleValidationError
from staffing.services.calendar import to_iso_date_string
from staffing.services.validation import CheckConflictsSerializer, validate_input

log = logging.getLogger(__name__)

# =========================
# Result types
# =========================

@dataclass(frozen=True)
class ConflictDescriptor:
    """An existing work day of the user that falls inside the checked range."""
    project_id: int
    project_name: str
    conflict_date: date
    assignment_id: int

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "project_name": self.project_name,
            "conflict_date": to_iso_date_string(self.conflict_date),
            "assignment_id": self.assignment_id,
        }

@dataclass
class ConflictCheckResult:
    has_conflicts: bool
    conflicts: List[ConflictDescriptor] = field(default_factory=list)
    error: Optional[str] = None

# =========================
# Detection
# =========================

def check_conflicts(
    user_id: int,
    start_date,
    end_date,
    exclude_assignment_id: Optional[int] = None,
) -> ConflictCheckResult:
    """Lists every active work day of a user inside an inclusive date range.

    All booking statuses count. The person is the collision key, so days of
    different projects collide. Pass the id of the assignment being edited as
    ``exclude_assignment_id`` to keep it from reporting against itself.

    Args:
        user_id (int): The person to check.
        start_date (str | date): First day of the proposed range (YYYY-MM-DD).
        end_date (str | date): Last day of the proposed range (YYYY-MM-DD).
        exclude_assignment_id (Optional[int], optional): Assignment to ignore. Defaults to None.

    Returns:
        ConflictCheckResult: Descriptors sorted by date, project name and assignment id.
            Malformed input and store failures populate ``error`` instead of raising.
    """
    try:
        data = validate_input(CheckConflictsSerializer, {
            "user_id": user_id,
            "start_date": start_date,
            "end_date": end_date,
            "exclude_assignment_id": exclude_assignment_id,
        })
    except ScheduleValidationError as exc:
        return ConflictCheckResult(has_conflicts=False, error=exc.message)

    try:
        days = AssignmentDayRepository.for_user_in_range(
            data["user_id"],
            data["start_date"],
            data["end_date"],
            exclude_assignment_id=data.get("exclude_assignment_id"),
        )
    except DatabaseError as exc:
        log.exception("Conflict check failed for user %s", user_id)
        return ConflictCheckResult(has_conflicts=False, error=str(exc) or "Data store error")

    conflicts = [
        ConflictDescriptor(
            project_id=d.project_id,
            project_name=d.project_name,
            conflict_date=d.work_date,
            assignment_id=d.assignment_id,
        )
        for d in days
    ]
    return ConflictCheckResult(has_conflicts=bool(conflicts), conflicts=conflicts)

# =========================
# Recording
# =========================

ConflictKey = Tuple[int, int, date]

def new_conflict_rows(user_id: int, keys: Iterable[ConflictKey]) -> List[BookingConflict]:
    """Builds BookingConflict rows for keys not already recorded in either orientation.

    Self-pairs and repeated keys are dropped.
    """
    known: Set[ConflictKey] = ConflictRepository.recorded_keys(user_id)
    rows: List[BookingConflict] = []
    for a1, a2, d in keys:
        if a1 == a2 or (a1, a2, d) in known:
            continue
        known.add((a1, a2, d))
        known.add((a2, a1, d))
        rows.append(BookingConflict(
            user_id=user_id,
            assignment_id=a1,
            conflicting_assignment_id=a2,
            conflict_date=d,
        ))
    return rows

def _collisions(days: Iterable[ActiveDay]) -> List[ConflictKey]:
    by_date: Dict[date, List[int]] = defaultdict(list)
    for d in days:
        by_date[d.work_date].append(d.assignment_id)
    keys: List[ConflictKey] = []
    for work_date in sorted(by_date):
        ids = sorted(set(by_date[work_date]))
        for i, a1 in enumerate(ids):
            for a2 in ids[i + 1:]:
                keys.append((a1, a2, work_date))
    return keys

def scan_conflicts(user_id: Optional[int] = None) -> int:
    """Re-runs detection over stored schedules and records conflicts not yet recorded.

    Discovers double bookings that slipped past the advisory check, e.g. two
    concurrent writers that both passed it.

    Args:
        user_id (Optional[int], optional): Limit the scan to one person. Defaults to None (everyone).

    Returns:
        int: Number of BookingConflict rows created.
    """
    user_ids = [user_id] if user_id is not None else AssignmentRepository.user_ids()
    created = 0
    with transaction.atomic():
        for uid in user_ids:
            days: List[ActiveDay] = []
            for a in AssignmentRepository.for_user(uid):
                days.extend(active_work_days(a))
            rows = new_conflict_rows(uid, _collisions(days))
            if rows:
                ConflictRepository.insert_many(rows)
                created += len(rows)
                log.info("Recorded %d new conflict(s) for user %s", len(rows), uid)
    return created
