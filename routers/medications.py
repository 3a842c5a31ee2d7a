import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from context import RequestContext, require_patient
from db import get_db
from models import _to_json
from routers.medications_utils import (
    MAX_DOSAGE_LEN,
    MAX_FREQUENCY_LEN,
    MAX_NAME_LEN,
    MAX_NOTES_LEN,
    PayloadError,
    _day,
    _json_error,
    _optional_day,
    _text,
)
from store import (
    create_medication,
    deactivate_medication,
    find_medications_by_owner,
    get_medication,
    update_medication,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _validate_medication_payload(payload: dict, existing=None) -> dict:
    """Clean a create/edit payload.

    On edit, blank name/dosage/frequency/start_date keep their stored value,
    and instructions/end_date are only changed when the key is sent (an
    explicit blank clears them).
    """
    required = existing is None
    fields = {
        "name": _text(payload, "name", "Medication name", MAX_NAME_LEN, required),
        "dosage": _text(payload, "dosage", "Dosage", MAX_DOSAGE_LEN, required),
        "frequency": _text(payload, "frequency", "Frequency", MAX_FREQUENCY_LEN, required),
        "instructions": _text(payload, "instructions", "Instructions", MAX_NOTES_LEN),
        "end_date": _optional_day(payload, "end_date", "End date"),
    }
    if required or str(payload.get("start_date") or "").strip():
        fields["start_date"] = _day(payload, "start_date", "Start date")
    else:
        fields["start_date"] = existing.start_date
    if existing is not None:
        for key in ("name", "dosage", "frequency"):
            fields[key] = fields[key] or getattr(existing, key)
        for key in ("instructions", "end_date"):
            if key not in payload:
                fields[key] = getattr(existing, key)
        is_active = payload.get("is_active", existing.is_active)
        fields["is_active"] = is_active in (True, 1, "true", "on", "1")
    if fields["end_date"] and fields["end_date"] < fields["start_date"]:
        raise PayloadError("End date cannot be before start date")
    return fields


@router.get("/api/medications")
def api_medications(show_inactive: bool = False, ctx: RequestContext = Depends(require_patient)):
    with get_db() as conn:
        medications = find_medications_by_owner(conn, ctx.user_id, active_only=not show_inactive)
    return JSONResponse({
        "medications": [_to_json(m) for m in medications],
        "show_inactive": show_inactive,
    })


@router.post("/api/medications")
def api_medications_create(payload: dict = Body(...), ctx: RequestContext = Depends(require_patient)):
    try:
        fields = _validate_medication_payload(payload)
    except PayloadError as exc:
        return _json_error(str(exc))
    with get_db() as conn:
        medication = create_medication(conn, ctx.user_id, **fields)
    logger.info("User %s added medication %s", ctx.user_id, medication.id)
    return JSONResponse({"ok": True, "medication": _to_json(medication)})


@router.get("/api/medications/{med_id}")
def api_medications_get(med_id: int, ctx: RequestContext = Depends(require_patient)):
    with get_db() as conn:
        medication = get_medication(conn, ctx.user_id, med_id)
    if medication is None:
        return _json_error("Medication not found", 404)
    return JSONResponse({"ok": True, "medication": _to_json(medication)})


@router.post("/api/medications/{med_id}/edit")
def api_medications_edit(
    med_id: int, payload: dict = Body(...), ctx: RequestContext = Depends(require_patient)
):
    with get_db() as conn:
        existing = get_medication(conn, ctx.user_id, med_id)
        if existing is None:
            return _json_error("Medication not found", 404)
        try:
            fields = _validate_medication_payload(payload, existing)
        except PayloadError as exc:
            return _json_error(str(exc))
        medication = update_medication(conn, ctx.user_id, med_id, **fields)
    return JSONResponse({"ok": True, "medication": _to_json(medication)})


@router.post("/api/medications/{med_id}/deactivate")
def api_medications_deactivate(med_id: int, ctx: RequestContext = Depends(require_patient)):
    with get_db() as conn:
        if not deactivate_medication(conn, ctx.user_id, med_id):
            return _json_error("Medication not found", 404)
    logger.info("User %s deactivated medication %s", ctx.user_id, med_id)
    return JSONResponse({"ok": True})
