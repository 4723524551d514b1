from __future__ import annotations

import logging
from typing import List

from django.apps import AppConfig
from django.core.checks import Error, Tags, register

from staffing.utils import _get_setting

log = logging.getLogger(__name__)

# =========================
# System checks (settings validation)
# =========================

def _parse_hhmm(value) -> tuple[int, int] | None:
    try:
        hh, mm = str(value).split(":")
        h, m = int(hh), int(mm)
    except ValueError:
        return None
    if not (0 <= h <= 23 and 0 <= m <= 59):
        return None
    return h, m

@register(Tags.compatibility)
def staffing_settings_check(app_configs, **kwargs):
    """Ensures the scheduler settings are usable."""
    errors: List[Error] = []

    start_raw = _get_setting("DEFAULT_DAY_START_TIME", "07:00")
    end_raw = _get_setting("DEFAULT_DAY_END_TIME", "16:00")
    start = _parse_hhmm(start_raw)
    end = _parse_hhmm(end_raw)
    if start is None:
        errors.append(Error(
            f"DEFAULT_DAY_START_TIME must be HH:MM (e.g. '07:00'). Current value: {start_raw!r}",
            id="staffing.E001",
        ))
    if end is None:
        errors.append(Error(
            f"DEFAULT_DAY_END_TIME must be HH:MM (e.g. '16:00'). Current value: {end_raw!r}",
            id="staffing.E002",
        ))
    if start is not None and end is not None and start >= end:
        errors.append(Error(
            "DEFAULT_DAY_START_TIME must be earlier than DEFAULT_DAY_END_TIME.",
            id="staffing.E003",
        ))

    first = _get_setting("CALENDAR_FIRST_WEEKDAY", 6)
    if not isinstance(first, int) or not (0 <= first <= 6):
        errors.append(Error(
            "CALENDAR_FIRST_WEEKDAY must be an integer in 0..6 (0 = Monday).",
            id="staffing.E004",
        ))

    batch = _get_setting("MAX_DAYS_PER_BATCH", 366)
    if not isinstance(batch, int) or batch < 1:
        errors.append(Error(
            "MAX_DAYS_PER_BATCH must be an integer >= 1.",
            id="staffing.E005",
        ))

    expiry = _get_setting("CONFIRMATION_EXPIRY_DAYS", 7)
    if not isinstance(expiry, int) or expiry < 1:
        errors.append(Error(
            "CONFIRMATION_EXPIRY_DAYS must be an integer >= 1.",
            id="staffing.E006",
        ))

    return errors

# =========================
# AppConfig
# =========================

class StaffingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "staffing"
    verbose_name = "Staffing Scheduler"

    def ready(self):
        """Connects the audit signals."""
        try:
            from .domain import signals  # noqa: F401
        except ImportError:  # pragma: no cover
            log.exception("Failed to import staffing.domain.signals")
