from datetime import date, time, timedelta

import pytest

from staffing.services.calendar import (
    adjust_time,
    do_ranges_overlap,
    format_assignment_dates,
    format_date,
    format_date_range,
    from_iso_date_string,
    get_calendar_days,
    get_date_range,
    get_month_view_range,
    get_next_month,
    get_next_week,
    get_previous_month,
    get_previous_week,
    get_project_duration,
    get_week_number,
    get_week_view_days,
    get_weeks_in_range,
    is_current_month,
    is_date_excluded,
    is_date_in_range,
    is_weekday,
    parse_time,
    to_iso_date_string,
)


@pytest.mark.parametrize("d", [date(2024, 2, 29), date(1999, 12, 31), date(2000, 1, 1), date(1, 1, 1), date(9999, 12, 31)])
def test_iso_round_trip(d):
    s = to_iso_date_string(d)
    assert len(s) == 10
    assert from_iso_date_string(s) == d


def test_iso_rejects_malformed():
    with pytest.raises(ValueError):
        from_iso_date_string("2024-02-30")


def test_overlap_is_inclusive_and_symmetric():
    assert do_ranges_overlap("2024-01-10", "2024-01-15", "2024-01-15", "2024-01-20")
    assert not do_ranges_overlap("2024-01-10", "2024-01-14", "2024-01-15", "2024-01-20")

    base = date(2024, 1, 1)
    spans = [(base + timedelta(days=a), base + timedelta(days=a + n)) for a in range(0, 6) for n in range(0, 3)]
    for s1, e1 in spans:
        for s2, e2 in spans:
            assert do_ranges_overlap(s1, e1, s2, e2) == do_ranges_overlap(s2, e2, s1, e1)


def test_is_date_in_range():
    assert is_date_in_range("2024-01-10", "2024-01-10", "2024-01-12")
    assert is_date_in_range(date(2024, 1, 12), "2024-01-10", "2024-01-12")
    assert not is_date_in_range("2024-01-13", "2024-01-10", "2024-01-12")
    assert not is_date_in_range("2024-01-10", None, "2024-01-12")
    assert not is_date_in_range("2024-01-10", "2024-01-10", None)


def test_get_date_range():
    assert get_date_range("2024-02-27", "2024-03-01") == ["2024-02-27", "2024-02-28", "2024-02-29", "2024-03-01"]
    assert get_date_range("2024-01-05", "2024-01-05") == ["2024-01-05"]
    assert get_date_range("2024-01-06", "2024-01-05") == []


def test_project_duration():
    assert get_project_duration("2024-01-10", "2024-01-15") == 6
    assert get_project_duration("2024-01-10", "2024-01-10") == 1
    assert get_project_duration(None, "2024-01-10") == 0
    assert get_project_duration("2024-01-10", None) == 0
    assert get_project_duration("2024-01-10", "2024-01-01") == 0


def test_formatting():
    assert format_date("2024-01-05") == "Jan 5, 2024"
    assert format_date("2024-01-05", "%d/%m/%Y") == "05/01/2024"
    assert format_date_range("2024-01-15", "2024-01-15") == "Jan 15, 2024"
    assert format_date_range("2024-01-15", "2024-01-20") == "Jan 15 - 20, 2024"
    assert format_date_range("2024-01-30", "2024-02-02") == "Jan 30, 2024 - Feb 2, 2024"
    assert format_date_range(None, "2024-02-02") == "Dates not set"

    assert format_assignment_dates([]) == "No dates scheduled"
    assert format_assignment_dates(["2024-01-15"]) == "Jan 15"
    assert format_assignment_dates(["2024-01-20", "2024-01-15", "2024-01-16"]) == "Jan 15 - Jan 20 (3 days)"


def test_month_grid_starts_on_sunday_and_pads_weeks():
    days = get_calendar_days(date(2024, 2, 14))
    assert days[0] == date(2024, 1, 28)
    assert days[-1] == date(2024, 3, 2)
    assert len(days) == 35
    assert get_month_view_range(date(2024, 2, 1)) == (date(2024, 1, 28), date(2024, 3, 2))


def test_month_grid_weekdays_only():
    days = get_calendar_days(date(2024, 2, 14), weekdays_only=True)
    assert len(days) == 25
    assert all(is_weekday(d) for d in days)


def test_grid_policy_follows_setting(settings):
    settings.CALENDAR_WEEKDAYS_ONLY = True
    assert all(is_weekday(d) for d in get_calendar_days(date(2024, 2, 14)))
    assert get_week_view_days("2024-01-05", "2024-01-08") == [date(2024, 1, 5), date(2024, 1, 8)]
    assert len(get_week_view_days("2024-01-05", "2024-01-08", weekdays_only=False)) == 4


def test_weeks_in_range():
    weeks = get_weeks_in_range("2024-01-03", "2024-01-16")
    assert [len(w) for w in weeks] == [5, 7, 2]
    assert weeks[0][0] == date(2024, 1, 3)
    assert weeks[1][0] == date(2024, 1, 8)
    assert weeks[-1][-1] == date(2024, 1, 16)

    weekdays = get_weeks_in_range("2024-01-03", "2024-01-16", weekdays_only=True)
    assert [len(w) for w in weekdays] == [3, 5, 2]
    assert get_weeks_in_range("2024-01-06", "2024-01-07", weekdays_only=True) == []


def test_week_number():
    assert get_week_number("2024-01-10", "2024-01-03") == 2
    assert get_week_number("2024-01-07", "2024-01-03") == 1
    assert get_week_number(date(2024, 1, 29), "2024-01-03") == 5


def test_navigation():
    assert get_next_month(date(2024, 1, 31)) == date(2024, 2, 29)
    assert get_previous_month(date(2024, 3, 31)) == date(2024, 2, 29)
    assert get_next_month(date(2024, 12, 15)) == date(2025, 1, 15)
    assert get_previous_month(date(2024, 1, 15)) == date(2023, 12, 15)
    assert get_next_week(date(2024, 1, 29)) == date(2024, 2, 5)
    assert get_previous_week(date(2024, 1, 3)) == date(2023, 12, 27)
    assert is_current_month(date(2024, 1, 3), date(2024, 1, 31))
    assert not is_current_month(date(2024, 1, 3), date(2023, 1, 3))


def test_is_date_excluded():
    excluded = ["2024-01-11", date(2024, 1, 13)]
    assert is_date_excluded("2024-01-11", excluded)
    assert is_date_excluded(date(2024, 1, 13), excluded)
    assert not is_date_excluded("2024-01-12", excluded)


def test_time_helpers():
    assert parse_time("07:30") == time(7, 30)
    assert parse_time("07:30:15") == time(7, 30, 15)
    for bad in ("7:30", "25:00", "07-30", ""):
        with pytest.raises(ValueError):
            parse_time(bad)
    assert adjust_time("22:30", 3) == "23:30"
    assert adjust_time("01:15", -3) == "00:15"
    assert adjust_time("09:45", 2) == "11:45"
