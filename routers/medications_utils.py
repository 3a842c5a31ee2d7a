"""Shared helpers for the JSON routers.

Payload validation primitives plus the dashboard loader, which both the
patient dashboard and the clinician detail view use.
"""
from datetime import date
from typing import Optional

from fastapi.responses import JSONResponse

from analysis import DashboardSummary, _compute_dashboard
from config import _parse_day
from store import (
    find_events_by_medication_ids,
    find_medications_by_owner,
    find_side_effects_by_medication_ids,
)

MAX_NAME_LEN = 120
MAX_DOSAGE_LEN = 80
MAX_FREQUENCY_LEN = 80
MAX_NOTES_LEN = 1000


class PayloadError(ValueError):
    """Invalid request payload; the message is safe to show to the user."""


def _json_error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


def _text(payload: dict, key: str, label: str, max_len: int, required: bool = False) -> str:
    value = str(payload.get(key) or "").strip()
    if required and not value:
        raise PayloadError(f"{label} is required")
    if len(value) > max_len:
        raise PayloadError(f"{label} must be {max_len} characters or fewer")
    return value


def _day(payload: dict, key: str, label: str) -> date:
    try:
        return _parse_day(str(payload.get(key) or ""))
    except ValueError:
        raise PayloadError(f"Invalid {label.lower()}") from None


def _optional_day(payload: dict, key: str, label: str) -> Optional[date]:
    """Blank means "ongoing"."""
    if not str(payload.get(key) or "").strip():
        return None
    return _day(payload, key, label)


def _int(payload: dict, key: str, label: str) -> int:
    """Whole numbers only: 4.9 and true are rejected rather than coerced."""
    value = payload.get(key)
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise PayloadError(f"{label} must be a whole number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise PayloadError(f"{label} must be a whole number") from None


def _dashboard_for_owner(conn, owner_id: int, today: date, active_only: bool = False) -> DashboardSummary:
    """Load one owner's records and summarize them.

    The medication-id scope is captured once here so every figure in the
    summary is computed from the same snapshot.
    """
    medications = find_medications_by_owner(conn, owner_id)
    scope = [m.id for m in medications if m.is_active or not active_only]
    events = find_events_by_medication_ids(conn, scope)
    side_effects = find_side_effects_by_medication_ids(conn, [m.id for m in medications])
    return _compute_dashboard(medications, events, side_effects, today)
