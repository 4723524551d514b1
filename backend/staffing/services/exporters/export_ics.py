from __future__ import annotations

from datetime import timedelta
from typing import Iterable, Optional

from django.utils.timezone import get_current_timezone_name, now as tz_now
from icalendar import Calendar, Event

from staffing.domain.models import BookingStatus, Project
from staffing.domain.repositories import AssignmentRepository
from staffing.services.calendar import DateLike, coerce_date, format_date_range
from staffing.services.projection import CalendarEvent, to_calendar_events
from staffing.utils import _get_setting

def _ical_status(status: str) -> str:
    return "CONFIRMED" if status == BookingStatus.CONFIRMED else "TENTATIVE"

def _status_label(status: str) -> str:
    try:
        return BookingStatus(status).label
    except ValueError:
        return status

def build_calendar(name: str, events: Iterable[CalendarEvent], description: Optional[str] = None) -> Calendar:
    """Builds a VCALENDAR with one all-day VEVENT per event.

    Args:
        name (str): Calendar display name.
        events (Iterable[CalendarEvent]): Events from the schedule projection.
        description (Optional[str], optional): Calendar description. Defaults to None.

    Returns:
        Calendar: The icalendar object.
    """
    cal = Calendar()
    cal.add("prodid", _get_setting("ICS_PRODID", "-//Staffing Scheduler//Project Calendar//EN"))
    cal.add("version", "2.0")
    cal.add("X-WR-CALNAME", name)
    cal.add("X-WR-TIMEZONE", get_current_timezone_name())
    if description:
        cal.add("X-WR-CALDESC", description)

    loc = _get_setting("CALENDAR_LOCATION", None)
    now = tz_now()

    for e in events:
        label = _status_label(e.booking_status)
        ev = Event()
        ev.add("uid", f"{e.id}@staffing-scheduler.local")
        ev.add("dtstamp", now)
        # all-day: DTEND is the day after
        ev.add("dtstart", e.date)
        ev.add("dtend", e.date + timedelta(days=1))
        ev.add("summary", f"[{label}] {e.title}")
        ev.add("status", _ical_status(e.booking_status))
        ev.add("categories", [label, e.project_name])

        desc_lines = [
            f"Project: {e.project_name}",
            f"Assigned To: {e.user_name}",
            f"Status: {label}",
        ]
        if e.start_time and e.end_time:
            desc_lines.append(f"Hours: {e.start_time:%H:%M} - {e.end_time:%H:%M}")
        ev.add("description", "\n".join(desc_lines))
        if loc:
            ev.add("location", loc)

        cal.add_component(ev)
    return cal

def export_user_ics(user_id: int, start: Optional[DateLike] = None, end: Optional[DateLike] = None) -> bytes:
    """Personal feed: every active work day of one person, optionally clipped to a range."""
    assignments = AssignmentRepository.for_user(user_id)
    events = to_calendar_events(
        assignments,
        start=coerce_date(start) if start else None,
        end=coerce_date(end) if end else None,
    )
    base = _get_setting("ICS_CALENDAR_NAME", "Project Calendar")
    return build_calendar(f"{base} - My Schedule", events).to_ical()

def export_project_ics(project_id: int) -> bytes:
    """Project feed: every active work day of everyone booked on the project."""
    project = Project.objects.filter(id=project_id).first()
    name = project.name if project else f"Project {project_id}"
    events = to_calendar_events(AssignmentRepository.for_project(project_id))
    desc = format_date_range(project.start_date, project.end_date) if project else None
    return build_calendar(name, events, description=desc).to_ical()
