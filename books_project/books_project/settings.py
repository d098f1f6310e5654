import json
import os
from pathlib import Path

import dj_database_url
from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY") or "dev-key"


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.lower() in {"1", "true", "yes", "on"}


def _get_json_env(name: str, default):
    raw_value = os.getenv(name)
    if not raw_value:
        return default
    return json.loads(raw_value)


DEBUG = _get_bool_env("DJANGO_DEBUG", True)
ALLOWED_HOSTS = ["localhost", "127.0.0.1"]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # Project apps
    "books_core",
]

# No HTTP surface: the app is driven by services, Celery and manage.py
MIDDLEWARE = []

default_db = "sqlite:///" + str((BASE_DIR / "db.sqlite3").resolve())
database_url = os.getenv("DATABASE_URL", default_db)
DATABASES = {"default": dj_database_url.parse(database_url)}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "Asia/Kolkata")
USE_I18N = True
USE_TZ = True


# ===================================
# Celery
# ===================================
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = _get_bool_env("CELERY_TASK_ALWAYS_EAGER", False)

# Every day at 09:00 local time
CELERY_BEAT_SCHEDULE = {
    "recurring-documents-daily": {
        "task": "books_core.tasks.run_recurring_generation",
        "schedule": crontab(hour=9, minute=0),
    },
}


# ===================================
# Email (recurring invoice notifications)
# ===================================
EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = _get_bool_env("EMAIL_USE_TLS", True)
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "billing@localhost")

# In development, use console backend if SMTP is not configured
if DEBUG and not EMAIL_HOST:
    EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"
else:
    EMAIL_BACKEND = "django.core.mail.backends.smtp.EmailBackend"


# ===================================
# Bookkeeping engine
# ===================================
# Single currency every Revenue / Payment amount is stored in
BOOKS_REPORTING_CURRENCY = os.getenv("BOOKS_REPORTING_CURRENCY", "INR")

# Operator-maintained fallback rates: 1 unit of currency = N reporting units.
# Override with a JSON object, e.g. BOOKS_DEFAULT_EXCHANGE_RATES='{"USD": "83.5"}'
BOOKS_DEFAULT_EXCHANGE_RATES = _get_json_env(
    "BOOKS_DEFAULT_EXCHANGE_RATES",
    {
        "USD": "90.13",
        "CAD": "67",
        "AUD": "60",
    },
)
# Rate for a currency missing from the table above. Unset means such a
# conversion raises UnknownCurrencyError instead of guessing.
BOOKS_FALLBACK_EXCHANGE_RATE = os.getenv("BOOKS_FALLBACK_EXCHANGE_RATE") or None

# Sequence numbers: <PREFIX><YYYY><zero-padded counter>
BOOKS_INVOICE_PREFIX = os.getenv("BOOKS_INVOICE_PREFIX", "INV")
BOOKS_EXPENSE_PREFIX = os.getenv("BOOKS_EXPENSE_PREFIX", "EXP")
BOOKS_PAYMENT_PREFIX = os.getenv("BOOKS_PAYMENT_PREFIX", "PAY")
BOOKS_SEQUENCE_WIDTH = int(os.getenv("BOOKS_SEQUENCE_WIDTH", "4"))
BOOKS_SEQUENCE_MAX_RETRIES = int(os.getenv("BOOKS_SEQUENCE_MAX_RETRIES", "10"))

# Callable(document_data, recipient, attachment_path) -> NotificationResult
BOOKS_NOTIFIER = os.getenv(
    "BOOKS_NOTIFIER", "books_core.notifications.send_document_email"
)
# Where a rendered PDF for a generated invoice would live, if a renderer wrote one
BOOKS_ATTACHMENT_DIR = Path(os.getenv("BOOKS_ATTACHMENT_DIR", BASE_DIR / "temp"))

BOOKS_LOG_LEVEL = os.getenv("BOOKS_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "books_core": {
            "handlers": ["console"],
            "level": BOOKS_LOG_LEVEL,
        },
    },
}
