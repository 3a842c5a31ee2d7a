import os
import secrets
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Union

DB_PATH = os.environ.get("ADHERENCE_DB_PATH", "adherence.db")
SECRET_KEY_PATH = Path(".app_secret_key")
SESSION_TTL_SECONDS = 60 * 60 * 24 * 14
SESSION_COOKIE_NAME = "adherence_session"
CSRF_COOKIE_NAME = "csrf_token"

# Every day-boundary computation uses this zone.
APP_TIMEZONE = timezone.utc
TREND_DAYS = 7
CLINICIAN_RECENT_LOG_LIMIT = 30

INTAKE_STATUSES = ("taken", "missed", "late")
ROLES = ("patient", "clinician")
MIN_SEVERITY = 1
MAX_SEVERITY = 5

PUBLIC_PATHS = {"/", "/login", "/signup", "/logout"}


def _utc_now() -> datetime:
    return datetime.now(APP_TIMEZONE)


def _parse_day(value: Union[str, date, datetime]) -> date:
    """Normalize a date-ish value to its calendar day in APP_TIMEZONE.

    Accepts ``YYYY-MM-DD``, ISO datetimes (naive ones are read as UTC) and
    date/datetime objects. Anything else raises ValueError.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value
    else:
        raw = (value or "").strip()
        if not raw:
            raise ValueError("Date is required")
        if len(raw) == 10:
            return date.fromisoformat(raw)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=APP_TIMEZONE)
    return dt.astimezone(APP_TIMEZONE).date()


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=APP_TIMEZONE)


def _end_of_day(day: date) -> datetime:
    # 23:59:59.999, millisecond precision like the stored timestamps
    return _start_of_day(day) + timedelta(days=1) - timedelta(milliseconds=1)


def _day_label(day: date) -> str:
    return f"{day:%a}, {day:%b} {day.day}"


def _load_secret_key() -> str:
    env_key = os.environ.get("APP_SECRET_KEY", "").strip()
    if env_key:
        return env_key
    if SECRET_KEY_PATH.exists():
        return SECRET_KEY_PATH.read_text(encoding="utf-8").strip()
    key = secrets.token_hex(32)
    SECRET_KEY_PATH.write_text(key, encoding="utf-8")
    return key


SECRET_KEY = _load_secret_key()
