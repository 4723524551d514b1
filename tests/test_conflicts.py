from datetime import date

import pytest
from django.db import DatabaseError

from staffing.domain.repositories import AssignmentDayRepository, ExcludedDateRepository
from staffing.models import AssignmentExcludedDate, BookingConflict
from staffing.services import lifecycle
from staffing.services.conflicts import check_conflicts, scan_conflicts


@pytest.mark.django_db
def test_conflict_detection_and_self_exclusion(assignment, user, day_inputs):
    lifecycle.update_assignment_status(assignment.id, "confirmed")
    assert lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-10", "2024-01-15")).success

    res = check_conflicts(user.id, "2024-01-12", "2024-01-20")
    assert res.error is None
    assert res.has_conflicts
    assert [c.conflict_date for c in res.conflicts] == [date(2024, 1, d) for d in (12, 13, 14, 15)]
    assert {c.assignment_id for c in res.conflicts} == {assignment.id}
    assert res.conflicts[0].to_dict()["conflict_date"] == "2024-01-12"
    assert res.conflicts[0].project_name == "Alpha"

    excluded = check_conflicts(user.id, "2024-01-12", "2024-01-20", exclude_assignment_id=assignment.id)
    assert excluded.error is None
    assert not excluded.has_conflicts
    assert excluded.conflicts == []


@pytest.mark.django_db
def test_person_is_the_collision_key(assignment, user, other_user, other_project, actor, day_inputs):
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-10", "2024-01-11"))
    beta = lifecycle.create_assignment(other_project.id, user.id, actor=actor).data
    lifecycle.add_assignment_days(beta.id, day_inputs("2024-01-11", "2024-01-12"))
    bob = lifecycle.create_assignment(other_project.id, other_user.id, actor=actor).data
    lifecycle.add_assignment_days(bob.id, day_inputs("2024-01-10", "2024-01-12"))

    res = check_conflicts(user.id, "2024-01-10", "2024-01-12")
    got = [(c.conflict_date.day, c.project_name) for c in res.conflicts]
    # tentative bookings count too; ordered by date then project name
    assert got == [(10, "Alpha"), (11, "Alpha"), (11, "Beta"), (12, "Beta")]


@pytest.mark.django_db
def test_legacy_assignments_use_span_minus_excluded(legacy_assignment, user):
    ExcludedDateRepository.insert_many([
        AssignmentExcludedDate(assignment=legacy_assignment, excluded_date=date(2024, 1, 11)),
    ])
    res = check_conflicts(user.id, "2024-01-01", "2024-01-12")
    assert [c.conflict_date.day for c in res.conflicts] == [10, 12]


@pytest.mark.django_db
def test_invalid_input_is_reported_not_raised(user):
    res = check_conflicts(user.id, "2024-01-20", "2024-01-12")
    assert not res.has_conflicts
    assert res.error == "Start date must be before or equal to end date"

    res = check_conflicts(user.id, "2024-13-01", "2024-01-12")
    assert res.error == "Invalid date format (YYYY-MM-DD)"

    res = check_conflicts("abc", "2024-01-01", "2024-01-12")
    assert res.error == "Invalid ID format"


@pytest.mark.django_db
def test_store_failure_is_reported(user, monkeypatch):
    def boom(*args, **kwargs):
        raise DatabaseError("connection lost")

    monkeypatch.setattr(AssignmentDayRepository, "for_user_in_range", boom)
    res = check_conflicts(user.id, "2024-01-01", "2024-01-12")
    assert not res.has_conflicts
    assert res.error == "connection lost"


@pytest.mark.django_db
def test_end_to_end_scenario(project, other_project, user, actor, day_inputs):
    a = lifecycle.create_assignment(project.id, user.id, initial_status="tentative", actor=actor).data
    assert lifecycle.add_assignment_days(a.id, day_inputs("2024-02-01", "2024-02-05")).success

    # only one assignment: without exclusion its own days are reported,
    # passing its own id hides them
    alone = check_conflicts(user.id, "2024-02-03", "2024-02-10")
    assert [c.conflict_date.day for c in alone.conflicts] == [3, 4, 5]
    assert not check_conflicts(user.id, "2024-02-03", "2024-02-10", exclude_assignment_id=a.id).has_conflicts

    b = lifecycle.create_assignment(other_project.id, user.id, actor=actor).data
    lifecycle.add_assignment_days(b.id, [{"date": "2024-02-03"}])
    res = check_conflicts(user.id, "2024-02-01", "2024-02-10", exclude_assignment_id=a.id)
    assert len(res.conflicts) == 1
    assert res.conflicts[0].conflict_date == date(2024, 2, 3)
    assert res.conflicts[0].assignment_id == b.id


@pytest.mark.django_db
def test_record_conflicts_skips_known_pairs(assignment, other_project, user, actor, day_inputs):
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-10", "2024-01-12"))
    beta = lifecycle.create_assignment(other_project.id, user.id, actor=actor).data
    lifecycle.add_assignment_days(beta.id, day_inputs("2024-01-12", "2024-01-13"))

    result = check_conflicts(user.id, "2024-01-12", "2024-01-13", exclude_assignment_id=beta.id)
    first = lifecycle.record_conflicts(beta.id, result, user.id)
    assert first.success
    assert len(first.data) == 1
    row = first.data[0]
    assert (row.assignment_id, row.conflicting_assignment_id, row.conflict_date) == (beta.id, assignment.id, date(2024, 1, 12))

    again = lifecycle.record_conflicts(beta.id, result, user.id)
    assert again.success and again.data == []
    assert BookingConflict.objects.count() == 1


@pytest.mark.django_db
def test_add_days_can_track_conflicts(assignment, other_project, user, actor, day_inputs):
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-10", "2024-01-12"))
    beta = lifecycle.create_assignment(other_project.id, user.id, actor=actor).data
    res = lifecycle.add_assignment_days(beta.id, day_inputs("2024-01-11", "2024-01-14"), track_conflicts=True)
    assert res.success
    dates = sorted(BookingConflict.objects.filter(is_resolved=False).values_list("conflict_date", flat=True))
    assert dates == [date(2024, 1, 11), date(2024, 1, 12)]


@pytest.mark.django_db
def test_scan_records_each_double_booking_once(assignment, other_project, user, actor, day_inputs):
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-10", "2024-01-12"))
    beta = lifecycle.create_assignment(other_project.id, user.id, actor=actor).data
    lifecycle.add_assignment_days(beta.id, day_inputs("2024-01-12", "2024-01-13"), track_conflicts=True)
    assert BookingConflict.objects.count() == 1

    lifecycle.add_assignment_days(beta.id, [{"date": "2024-01-10"}])
    assert scan_conflicts() == 1
    assert scan_conflicts(user.id) == 0
    assert sorted(BookingConflict.objects.values_list("conflict_date", flat=True)) == [
        date(2024, 1, 10), date(2024, 1, 12),
    ]
