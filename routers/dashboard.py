from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from context import RequestContext, require_patient
from db import get_db
from routers.medications_utils import _dashboard_for_owner

router = APIRouter()


@router.get("/api/dashboard")
def api_dashboard(active_only: bool = False, ctx: RequestContext = Depends(require_patient)):
    with get_db() as conn:
        summary = _dashboard_for_owner(conn, ctx.user_id, ctx.today, active_only=active_only)
    return JSONResponse({**summary.to_json(), "today": ctx.today.isoformat()})
