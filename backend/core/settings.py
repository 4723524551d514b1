import os
from pathlib import Path
import environ

BASE_DIR = Path(__file__).resolve().parent.parent
env = environ.Env(
    DJANGO_DEBUG=(bool, True),
    DJANGO_SECRET_KEY=(str, "insecure-key"),
    DJANGO_ALLOWED_HOSTS=(str, "localhost,127.0.0.1"),
    TIME_ZONE=(str, "America/New_York"),

    DEFAULT_DAY_START_TIME=(str, "07:00"),
    DEFAULT_DAY_END_TIME=(str, "16:00"),
    CALENDAR_WEEKDAYS_ONLY=(bool, False),
    CALENDAR_FIRST_WEEKDAY=(int, 6),
    MAX_DAYS_PER_BATCH=(int, 366),
    CONFIRMATION_EXPIRY_DAYS=(int, 7),

    ICS_PRODID=(str, "-//Staffing Scheduler//Project Calendar//EN"),
    ICS_CALENDAR_NAME=(str, "Project Calendar"),
    CALENDAR_LOCATION=(str, ""),

    POSTGRES_DB=(str, "staffing"),
    POSTGRES_USER=(str, "staffing_user"),
    POSTGRES_PASSWORD=(str, "staffing_pass"),
    POSTGRES_HOST=(str, "db"),
    POSTGRES_PORT=(int, 5432),

    LOG_LEVEL=(str, "INFO"),
)
environ.Env.read_env(os.path.join(BASE_DIR.parent, ".env"))

SECRET_KEY = env("DJANGO_SECRET_KEY")
DEBUG = env("DJANGO_DEBUG")
ALLOWED_HOSTS = [h.strip() for h in env("DJANGO_ALLOWED_HOSTS").split(",")]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "rest_framework",
    "staffing",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": env("POSTGRES_DB"),
        "USER": env("POSTGRES_USER"),
        "PASSWORD": env("POSTGRES_PASSWORD"),
        "HOST": env("POSTGRES_HOST"),
        "PORT": env("POSTGRES_PORT"),
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = env("TIME_ZONE")
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ==== Scheduler settings ====
DEFAULT_DAY_START_TIME = env("DEFAULT_DAY_START_TIME")
DEFAULT_DAY_END_TIME = env("DEFAULT_DAY_END_TIME")
CALENDAR_WEEKDAYS_ONLY = env("CALENDAR_WEEKDAYS_ONLY")
CALENDAR_FIRST_WEEKDAY = env("CALENDAR_FIRST_WEEKDAY")  # 0=Mon ... 6=Sun
MAX_DAYS_PER_BATCH = env("MAX_DAYS_PER_BATCH")
CONFIRMATION_EXPIRY_DAYS = env("CONFIRMATION_EXPIRY_DAYS")

ICS_PRODID = env("ICS_PRODID")
ICS_CALENDAR_NAME = env("ICS_CALENDAR_NAME")
CALENDAR_LOCATION = env("CALENDAR_LOCATION") or None

LOG_DIR = BASE_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "detailed": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "detailed"},
        "rotating_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": LOG_DIR / "app.log",
            "maxBytes": 1024 * 1024 * 5,  # 5 MB
            "backupCount": 5,
            "formatter": "detailed",
            "delay": True,
        }
    },
    "loggers": {
        "staffing": {"handlers": ["console", "rotating_file"], "level": env("LOG_LEVEL")},

        "django": {"handlers": ["console", "rotating_file"], "level": "INFO", "propagate": True},
        "django.db.backends": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}
