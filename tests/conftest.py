from datetime import date

import pytest
from django.contrib.auth.models import User

from staffing.domain.repositories import AssignmentRepository
from staffing.models import Project
from staffing.services import lifecycle
from staffing.services.calendar import get_date_range


def _day_inputs(start, end, **times):
    """Day payloads for every date from start to end inclusive."""
    return [{"date": d, **times} for d in get_date_range(start, end)]


@pytest.fixture
def actor(db):
    return User.objects.create_user("admin", "admin@example.com", "pw", first_name="Ada", last_name="Admin")


@pytest.fixture
def user(db):
    return User.objects.create_user("alice", "alice@example.com", "pw", first_name="Alice", last_name="Smith")


@pytest.fixture
def other_user(db):
    return User.objects.create_user("bob", "bob@example.com", "pw")


@pytest.fixture
def project(db):
    return Project.objects.create(name="Alpha", start_date=date(2024, 1, 1), end_date=date(2024, 3, 31))


@pytest.fixture
def other_project(db):
    return Project.objects.create(name="Beta", start_date=date(2024, 1, 1), end_date=date(2024, 3, 31))


@pytest.fixture
def assignment(project, user, actor):
    res = lifecycle.create_assignment(project.id, user.id, actor=actor)
    assert res.success, res.error
    return res.data


@pytest.fixture
def legacy_assignment(db, user):
    p = Project.objects.create(name="Legacy", start_date=date(2024, 1, 10), end_date=date(2024, 1, 14))
    return AssignmentRepository.insert(p, user, "confirmed", None, None, uses_day_model=False)


@pytest.fixture
def day_inputs():
    return _day_inputs
