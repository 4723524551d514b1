from .settings import *  # noqa: F401,F403

DEBUG = False
TIME_ZONE = "UTC"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

DEFAULT_DAY_START_TIME = "07:00"
DEFAULT_DAY_END_TIME = "16:00"
CALENDAR_WEEKDAYS_ONLY = False
CALENDAR_FIRST_WEEKDAY = 6
MAX_DAYS_PER_BATCH = 366
CONFIRMATION_EXPIRY_DAYS = 7
CALENDAR_LOCATION = None

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.StreamHandler"},
    },
    "loggers": {
        "staffing": {"handlers": ["console"], "level": "WARNING"},
    },
}
