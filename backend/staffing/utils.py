import secrets
from datetime import datetime, time, timedelta
from typing import Any

from django.conf import settings
from django.utils import timezone

# =========================
# Helpers
# =========================

def _get_setting(name: str, default: Any = None) -> Any:
    """Reads a Django setting, falling back to a default."""
    return getattr(settings, name, default)

def _hhmm_to_time(value: str | time) -> time:
    """Converts an "HH:MM" or "HH:MM:SS" string to a time object."""
    if isinstance(value, time):
        return value
    parts = [int(p) for p in str(value).split(":")]
    return time(*parts)

def default_day_start() -> time:
    """Default start of a scheduled work day."""
    return _hhmm_to_time(_get_setting("DEFAULT_DAY_START_TIME", "07:00"))

def default_day_end() -> time:
    """Default end of a scheduled work day."""
    return _hhmm_to_time(_get_setting("DEFAULT_DAY_END_TIME", "16:00"))

def new_confirmation_token() -> str:
    """Random 32-byte token, hex encoded, for customer confirmation links."""
    return secrets.token_hex(32)

def default_confirmation_expiry() -> datetime:
    """Expiry of a new confirmation request, CONFIRMATION_EXPIRY_DAYS from now."""
    return timezone.now() + timedelta(days=int(_get_setting("CONFIRMATION_EXPIRY_DAYS", 7)))
