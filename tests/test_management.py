from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from staffing.apps import staffing_settings_check
from staffing.models import BookingConflict
from staffing.services import lifecycle


@pytest.mark.django_db
def test_scan_conflicts_command(assignment, other_project, user, actor):
    lifecycle.add_assignment_days(assignment.id, [{"date": "2024-01-10"}])
    beta = lifecycle.create_assignment(other_project.id, user.id, actor=actor).data
    lifecycle.add_assignment_days(beta.id, [{"date": "2024-01-10"}])

    out = StringIO()
    call_command("scan_conflicts", "--list", stdout=out)
    assert "1 new conflict(s)" in out.getvalue()
    assert "2024-01-10 alice" in out.getvalue()
    assert BookingConflict.objects.count() == 1

    out = StringIO()
    call_command("scan_conflicts", "--user", "alice", stdout=out)
    assert "0 new conflict(s)" in out.getvalue()

    with pytest.raises(CommandError):
        call_command("scan_conflicts", "--user", "nobody")


def test_settings_check_passes_with_defaults():
    assert staffing_settings_check(None) == []


def test_settings_check_flags_bad_values(settings):
    settings.DEFAULT_DAY_START_TIME = "7am"
    settings.CALENDAR_FIRST_WEEKDAY = 9
    settings.MAX_DAYS_PER_BATCH = 0
    settings.CONFIRMATION_EXPIRY_DAYS = "a week"
    ids = {e.id for e in staffing_settings_check(None)}
    assert ids == {"staffing.E001", "staffing.E004", "staffing.E005", "staffing.E006"}

    settings.DEFAULT_DAY_START_TIME = "17:00"
    ids = {e.id for e in staffing_settings_check(None)}
    assert "staffing.E003" in ids
