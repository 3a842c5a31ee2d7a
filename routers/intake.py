from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from config import INTAKE_STATUSES, _end_of_day, _parse_day, _start_of_day
from context import RequestContext, require_patient
from db import get_db
from models import _to_json
from routers.medications_utils import (
    MAX_NOTES_LEN,
    PayloadError,
    _day,
    _int,
    _json_error,
    _text,
)
from store import (
    delete_event,
    find_events_by_medication_ids,
    find_medications_by_owner,
    get_event_for_owner,
    get_medication,
    update_event,
    upsert_event,
)

router = APIRouter()


def _status(payload: dict, required: bool = True) -> str:
    status = str(payload.get("status") or "").strip().lower()
    if not status and not required:
        return ""
    if status not in INTAKE_STATUSES:
        raise PayloadError("Status must be one of: " + ", ".join(INTAKE_STATUSES))
    return status


@router.get("/api/intake")
def api_intake_day(date: str = "", ctx: RequestContext = Depends(require_patient)):
    """Active medications with the intake logged for one day (today by default)."""
    try:
        day = _parse_day(date) if date.strip() else ctx.today
    except ValueError:
        return _json_error("Invalid date")
    with get_db() as conn:
        medications = find_medications_by_owner(conn, ctx.user_id, active_only=True)
        events = find_events_by_medication_ids(
            conn, [m.id for m in medications], (_start_of_day(day), _end_of_day(day))
        )
    by_med = {e.medication_id: e for e in events}
    return JSONResponse({
        "date": day.isoformat(),
        "medications": [
            {
                **_to_json(m),
                "event": _to_json(by_med[m.id]) if m.id in by_med else None,
            }
            for m in medications
        ],
    })


@router.post("/api/intake")
def api_intake_log(payload: dict = Body(...), ctx: RequestContext = Depends(require_patient)):
    try:
        medication_id = _int(payload, "medication_id", "Medication")
        day = _day(payload, "date", "Date")
        status = _status(payload)
        notes = _text(payload, "notes", "Notes", MAX_NOTES_LEN)
    except PayloadError as exc:
        return _json_error(str(exc))
    with get_db() as conn:
        if get_medication(conn, ctx.user_id, medication_id) is None:
            return _json_error("Medication not found", 404)
        event = upsert_event(conn, medication_id, day, status, notes)
    return JSONResponse({"ok": True, "event": _to_json(event)})


@router.post("/api/intake/{event_id}/edit")
def api_intake_edit(event_id: int, payload: dict = Body(...), ctx: RequestContext = Depends(require_patient)):
    try:
        status = _status(payload, required=False)
        notes = _text(payload, "notes", "Notes", MAX_NOTES_LEN)
    except PayloadError as exc:
        return _json_error(str(exc))
    with get_db() as conn:
        existing = get_event_for_owner(conn, ctx.user_id, event_id)
        if existing is None:
            return _json_error("Intake log not found", 404)
        if "notes" not in payload:
            notes = existing.notes
        event = update_event(conn, event_id, status or existing.status, notes)
    return JSONResponse({"ok": True, "event": _to_json(event)})


@router.post("/api/intake/{event_id}/delete")
def api_intake_delete(event_id: int, ctx: RequestContext = Depends(require_patient)):
    with get_db() as conn:
        existing = get_event_for_owner(conn, ctx.user_id, event_id)
        if existing is None:
            return _json_error("Intake log not found", 404)
        delete_event(conn, event_id)
    return JSONResponse({"ok": True, "date": existing.date.isoformat()})
