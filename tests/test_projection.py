import random
from datetime import date

import pytest

from staffing.domain.repositories import AssignmentRepository, active_work_days
from staffing.services import lifecycle
from staffing.services.projection import (
    build_gantt_rows,
    calendar_events_in_range,
    get_events_for_day,
    group_events_by_project,
    group_events_by_user,
    sort_events_by_status,
    to_calendar_events,
    to_gantt_blocks,
    to_user_schedule,
)


def test_gantt_blocks_split_on_gaps_and_ignore_order():
    days = ["2024-01-15", "2024-01-16", "2024-01-17", "2024-01-20", "2024-01-21"]
    blocks = to_gantt_blocks(days)
    assert [(b.start_date.day, b.end_date.day) for b in blocks] == [(15, 17), (20, 21)]
    assert [b.length for b in blocks] == [3, 2]

    shuffled = days[:]
    random.Random(7).shuffle(shuffled)
    assert to_gantt_blocks(shuffled) == to_gantt_blocks(list(reversed(days))) == blocks
    assert to_gantt_blocks([]) == []


def test_gantt_blocks_count_a_repeated_date_once():
    blocks = to_gantt_blocks(["2024-01-15", "2024-01-16", date(2024, 1, 15)])
    assert len(blocks) == 1
    assert (blocks[0].start_date, blocks[0].end_date) == (date(2024, 1, 15), date(2024, 1, 16))
    assert blocks[0].length == len(blocks[0].days) == 2
    assert blocks[0].days[0] == "2024-01-15"


@pytest.mark.django_db
def test_gantt_blocks_from_assignment(assignment):
    lifecycle.add_assignment_days(
        assignment.id,
        [{"date": f"2024-01-{d}"} for d in (21, 15, 20, 17, 16)],
    )
    a = AssignmentRepository.get(assignment.id)
    blocks = to_gantt_blocks(a)
    assert [(b.start_date, b.end_date) for b in blocks] == [
        (date(2024, 1, 15), date(2024, 1, 17)),
        (date(2024, 1, 20), date(2024, 1, 21)),
    ]
    assert [d.work_date.day for d in blocks[0].days] == [15, 16, 17]

    rows = build_gantt_rows(assignment.project_id)
    assert len(rows) == 1
    assert rows[0].user_name == "Alice Smith"
    assert rows[0].blocks == blocks


@pytest.mark.django_db
def test_calendar_events_day_model(assignment, day_inputs):
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-15", "2024-01-16"))
    events = to_calendar_events([AssignmentRepository.get(assignment.id)])
    assert [e.date.day for e in events] == [15, 16]
    assert events[0].title == "Alpha - Alice Smith"
    assert events[0].id == f"{assignment.id}-2024-01-15"
    assert events[0].start_time is not None
    assert events[0].excluded_dates == ()


@pytest.mark.django_db
def test_calendar_events_without_days(assignment):
    assert to_calendar_events([AssignmentRepository.get(assignment.id)]) == []


@pytest.mark.django_db
def test_calendar_events_legacy_span(legacy_assignment):
    lifecycle.add_excluded_dates(legacy_assignment.id, ["2024-01-12"])
    a = AssignmentRepository.get(legacy_assignment.id)

    events = to_calendar_events([a])
    assert [e.date.day for e in events] == [10, 11, 13, 14]
    assert events[0].excluded_dates == ("2024-01-12",)

    overridden = to_calendar_events([a], {a.id: ["2024-01-10", "2024-01-11"]})
    assert [e.date.day for e in overridden] == [12, 13, 14]

    clipped = to_calendar_events([a], start="2024-01-13", end="2024-01-20")
    assert [e.date.day for e in clipped] == [13, 14]


@pytest.mark.django_db
def test_event_helpers(assignment, other_project, other_user, actor, day_inputs):
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-15", "2024-01-16"))
    bob = lifecycle.create_assignment(other_project.id, other_user.id, initial_status="confirmed", actor=actor).data
    lifecycle.add_assignment_days(bob.id, day_inputs("2024-01-16", "2024-01-17"))

    events = calendar_events_in_range("2024-01-01", "2024-01-31")
    assert len(events) == 4

    on_16 = get_events_for_day(events, "2024-01-16")
    assert len(on_16) == 2
    assert [e.booking_status for e in sort_events_by_status(reversed(on_16))] == ["confirmed", "tentative"]

    by_user = group_events_by_user(events)
    assert {k: len(v) for k, v in by_user.items()} == {assignment.user_id: 2, other_user.id: 2}
    by_project = group_events_by_project(events)
    assert set(by_project) == {assignment.project_id, other_project.id}

    only_beta = calendar_events_in_range("2024-01-01", "2024-01-31", project_id=other_project.id)
    assert {e.assignment_id for e in only_beta} == {bob.id}


@pytest.mark.django_db
def test_user_schedule_flags_double_bookings(assignment, other_project, user, actor, day_inputs):
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-15", "2024-01-16"))
    beta = lifecycle.create_assignment(other_project.id, user.id, actor=actor).data
    lifecycle.add_assignment_days(beta.id, [{"date": "2024-01-16"}])

    schedule = to_user_schedule(user.id, "2024-01-14", "2024-01-17")
    assert [s.date.day for s in schedule] == [14, 15, 16, 17]
    assert [len(s.assignments) for s in schedule] == [0, 1, 2, 0]
    assert [s.has_conflict for s in schedule] == [False, False, True, False]


@pytest.mark.django_db
def test_active_work_days_clips_to_range(legacy_assignment):
    days = active_work_days(AssignmentRepository.get(legacy_assignment.id), date(2024, 1, 12), date(2024, 2, 1))
    assert [d.work_date.day for d in days] == [12, 13, 14]
