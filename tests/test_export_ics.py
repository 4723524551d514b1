from datetime import date, timedelta

import pytest
from icalendar import Calendar

from staffing.services import lifecycle
from staffing.services.exporters.export_ics import export_project_ics, export_user_ics


def _events(payload: bytes):
    return list(Calendar.from_ical(payload).walk("VEVENT"))


@pytest.mark.django_db
def test_project_feed_has_one_all_day_event_per_work_day(assignment, day_inputs):
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-15", "2024-01-16"))
    cal = Calendar.from_ical(export_project_ics(assignment.project_id))
    assert str(cal["X-WR-CALNAME"]) == "Alpha"

    events = _events(export_project_ics(assignment.project_id))
    assert len(events) == 2
    first = events[0]
    assert first.decoded("dtstart") == date(2024, 1, 15)
    assert first.decoded("dtend") == date(2024, 1, 15) + timedelta(days=1)
    assert str(first["summary"]) == "[Tentative] Alpha - Alice Smith"
    assert str(first["status"]) == "TENTATIVE"


@pytest.mark.django_db
def test_user_feed_maps_confirmed_status(assignment, user, day_inputs):
    lifecycle.update_assignment_status(assignment.id, "confirmed")
    lifecycle.add_assignment_days(assignment.id, day_inputs("2024-01-15", "2024-01-20"))

    events = _events(export_user_ics(user.id, start="2024-01-18"))
    assert [e.decoded("dtstart").day for e in events] == [18, 19, 20]
    assert all(str(e["status"]) == "CONFIRMED" for e in events)
    assert "Hours: 07:00 - 16:00" in str(events[0]["description"])


@pytest.mark.django_db
def test_empty_feed(user):
    assert _events(export_user_ics(user.id)) == []
