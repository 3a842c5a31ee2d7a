from typing import Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from config import MAX_SEVERITY, MIN_SEVERITY
from context import RequestContext, require_patient
from db import get_db
from models import _to_json
from routers.medications_utils import (
    MAX_NAME_LEN,
    MAX_NOTES_LEN,
    PayloadError,
    _day,
    _int,
    _json_error,
    _optional_day,
    _text,
)
from store import (
    create_side_effect,
    delete_side_effect,
    find_medications_by_owner,
    find_side_effects_by_medication_ids,
    get_medication,
    get_side_effect_for_owner,
    update_side_effect,
)

router = APIRouter()


def _validate_side_effect_payload(payload: dict, existing=None) -> dict:
    required = existing is None
    effect = _text(payload, "effect", "Effect", MAX_NAME_LEN, required)
    if required or payload.get("severity") not in (None, ""):
        severity = _int(payload, "severity", "Severity")
        if not MIN_SEVERITY <= severity <= MAX_SEVERITY:
            raise PayloadError(f"Severity must be between {MIN_SEVERITY} and {MAX_SEVERITY}")
    else:
        severity = existing.severity
    if required or str(payload.get("start_date") or "").strip():
        start_date = _day(payload, "start_date", "Start date")
    else:
        start_date = existing.start_date
    # On edit, end_date and notes change only when the key is sent
    if required or "end_date" in payload:
        end_date = _optional_day(payload, "end_date", "End date")
    else:
        end_date = existing.end_date
    if required or "notes" in payload:
        notes = _text(payload, "notes", "Notes", MAX_NOTES_LEN)
    else:
        notes = existing.notes
    if end_date and end_date < start_date:
        raise PayloadError("End date cannot be before start date")
    return {
        "effect": effect or existing.effect,
        "severity": severity,
        "start_date": start_date,
        "end_date": end_date,
        "notes": notes,
    }


@router.get("/api/side-effects")
def api_side_effects(medication_id: Optional[int] = None, ctx: RequestContext = Depends(require_patient)):
    """Side effects across all of the user's medications, inactive ones included."""
    with get_db() as conn:
        medications = find_medications_by_owner(conn, ctx.user_id)
        names = {m.id: m.name for m in medications}
        scope = list(names)
        if medication_id is not None:
            scope = [medication_id] if medication_id in names else []
        side_effects = find_side_effects_by_medication_ids(conn, scope)
    return JSONResponse({
        "side_effects": [
            {**_to_json(se), "medication_name": names[se.medication_id]} for se in side_effects
        ],
        "medication_id": medication_id,
    })


@router.post("/api/side-effects")
def api_side_effects_create(payload: dict = Body(...), ctx: RequestContext = Depends(require_patient)):
    try:
        medication_id = _int(payload, "medication_id", "Medication")
        fields = _validate_side_effect_payload(payload)
    except PayloadError as exc:
        return _json_error(str(exc))
    with get_db() as conn:
        if get_medication(conn, ctx.user_id, medication_id) is None:
            return _json_error("Medication not found", 404)
        side_effect = create_side_effect(conn, medication_id, **fields)
    return JSONResponse({"ok": True, "side_effect": _to_json(side_effect)})


@router.get("/api/side-effects/{se_id}")
def api_side_effects_get(se_id: int, ctx: RequestContext = Depends(require_patient)):
    with get_db() as conn:
        side_effect = get_side_effect_for_owner(conn, ctx.user_id, se_id)
    if side_effect is None:
        return _json_error("Side effect not found", 404)
    return JSONResponse({"ok": True, "side_effect": _to_json(side_effect)})


@router.post("/api/side-effects/{se_id}/edit")
def api_side_effects_edit(se_id: int, payload: dict = Body(...), ctx: RequestContext = Depends(require_patient)):
    with get_db() as conn:
        existing = get_side_effect_for_owner(conn, ctx.user_id, se_id)
        if existing is None:
            return _json_error("Side effect not found", 404)
        try:
            fields = _validate_side_effect_payload(payload, existing)
        except PayloadError as exc:
            return _json_error(str(exc))
        side_effect = update_side_effect(conn, se_id, **fields)
    return JSONResponse({"ok": True, "side_effect": _to_json(side_effect)})


@router.post("/api/side-effects/{se_id}/delete")
def api_side_effects_delete(se_id: int, ctx: RequestContext = Depends(require_patient)):
    with get_db() as conn:
        existing = get_side_effect_for_owner(conn, ctx.user_id, se_id)
        if existing is None:
            return _json_error("Side effect not found", 404)
        delete_side_effect(conn, se_id)
    return JSONResponse({"ok": True, "medication_id": existing.medication_id})
