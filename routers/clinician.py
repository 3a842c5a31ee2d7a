import logging

from fastapi import APIRouter, Depends, Form
from fastapi.responses import JSONResponse

from config import CLINICIAN_RECENT_LOG_LIMIT
from context import RequestContext, require_clinician
from db import get_db
from models import _to_json
from routers.medications_utils import _dashboard_for_owner, _json_error
from store import (
    assign_patient,
    find_assigned_patients,
    find_events_by_medication_ids,
    find_medications_by_owner,
    find_patient_by_share_code,
    find_side_effects_by_medication_ids,
    get_assigned_patient,
    unassign_patient,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/clinician/patients")
def clinician_patients(ctx: RequestContext = Depends(require_clinician)):
    with get_db() as conn:
        patients = find_assigned_patients(conn, ctx.user_id)
    return JSONResponse({"patients": [dict(p) for p in patients]})


@router.post("/api/clinician/patients/add")
def clinician_patients_add(share_code: str = Form(""), ctx: RequestContext = Depends(require_clinician)):
    code = share_code.strip().upper()
    if not code:
        return _json_error("Share code is required")
    with get_db() as conn:
        patient = find_patient_by_share_code(conn, code)
        if not patient:
            return _json_error("No patient found with that share code", 404)
        assign_patient(conn, ctx.user_id, patient["id"])
    logger.info("Clinician %s assigned patient %s", ctx.user_id, patient["id"])
    return JSONResponse({"ok": True, "patient": {"id": patient["id"], "username": patient["username"]}})


@router.post("/api/clinician/patients/{patient_id}/remove")
def clinician_patients_remove(patient_id: int, ctx: RequestContext = Depends(require_clinician)):
    with get_db() as conn:
        unassign_patient(conn, ctx.user_id, patient_id)
    return JSONResponse({"ok": True})


@router.get("/api/clinician/patients/{patient_id}")
def clinician_patient_detail(patient_id: int, ctx: RequestContext = Depends(require_clinician)):
    """Read-only view of one assigned patient's records and summary."""
    with get_db() as conn:
        patient = get_assigned_patient(conn, ctx.user_id, patient_id)
        if patient is None:
            return _json_error("Patient not found or not assigned to you", 404)
        medications = find_medications_by_owner(conn, patient_id)
        med_ids = [m.id for m in medications]
        events = find_events_by_medication_ids(conn, med_ids)[:CLINICIAN_RECENT_LOG_LIMIT]
        side_effects = find_side_effects_by_medication_ids(conn, med_ids)
        summary = _dashboard_for_owner(conn, patient_id, ctx.today)
    names = {m.id: m.name for m in medications}
    return JSONResponse({
        "patient": dict(patient),
        "medications": [_to_json(m) for m in medications],
        "intake_events": [{**_to_json(e), "medication_name": names[e.medication_id]} for e in events],
        "side_effects": [{**_to_json(se), "medication_name": names[se.medication_id]} for se in side_effects],
        "summary": summary.to_json(),
    })
