import logging
import sqlite3

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import PUBLIC_PATHS
from db import init_db
from routers import auth, clinician, dashboard, intake, medications, side_effects
from security import (
    _csrf_header_valid,
    _ensure_csrf_cookie,
    _get_authenticated_user,
    _is_same_origin,
)

logger = logging.getLogger(__name__)

init_db()

app = FastAPI(title="Medication Adherence Tracker")


def _store_unavailable() -> JSONResponse:
    return JSONResponse({"error": "store unavailable"}, status_code=503)


@app.exception_handler(sqlite3.DatabaseError)
async def database_error_handler(request: Request, exc: sqlite3.DatabaseError):
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return _store_unavailable()


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    path = request.url.path
    if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
        if not _is_same_origin(request):
            return JSONResponse({"error": "forbidden"}, status_code=403)
        if path.startswith("/api/") and not _csrf_header_valid(request):
            return JSONResponse({"error": "forbidden"}, status_code=403)

    if path in PUBLIC_PATHS or path in {"/docs", "/openapi.json"}:
        return _ensure_csrf_cookie(request, await call_next(request))

    try:
        user = _get_authenticated_user(request)
    except sqlite3.DatabaseError:
        logger.exception("Store failure while authenticating %s", path)
        return _store_unavailable()
    if not user:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    request.state.user = user
    return _ensure_csrf_cookie(request, await call_next(request))


app.include_router(auth.router)
app.include_router(medications.router)
app.include_router(intake.router)
app.include_router(side_effects.router)
app.include_router(dashboard.router)
app.include_router(clinician.router)
