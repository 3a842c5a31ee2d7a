import secrets
import sqlite3

from fastapi import APIRouter, Form, Request
from fastapi.responses import JSONResponse

from config import ROLES, SESSION_COOKIE_NAME
from db import get_db
from routers.medications_utils import _json_error
from security import _hash_password, _set_session_cookie, _verify_password
from store import create_user, find_user_by_username

router = APIRouter()

MIN_PASSWORD_LEN = 8


def _user_json(row) -> dict:
    data = {"id": row["id"], "username": row["username"], "role": row["role"]}
    if row["role"] == "patient":
        data["share_code"] = row["share_code"]
    return data


@router.get("/")
def root():
    return JSONResponse({"ok": True, "service": "medication-adherence"})


@router.post("/signup")
def signup_post(
    request: Request,
    username: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    role: str = Form("patient"),
):
    username = username.strip()
    role = (role or "patient").strip().lower()
    if not username:
        return _json_error("Username is required")
    if role not in ROLES:
        return _json_error("Role must be patient or clinician")
    if len(new_password) < MIN_PASSWORD_LEN:
        return _json_error(f"Password must be at least {MIN_PASSWORD_LEN} characters")
    if new_password != confirm_password:
        return _json_error("Passwords do not match")
    pw_hash = _hash_password(new_password)
    share_code = secrets.token_hex(4).upper() if role == "patient" else ""
    with get_db() as conn:
        if find_user_by_username(conn, username):
            return _json_error("Username already taken")
        try:
            user = create_user(conn, username, pw_hash, role, share_code)
        except sqlite3.IntegrityError:
            # lost a race with a concurrent signup for the same name
            return _json_error("Username already taken")
    resp = JSONResponse({"ok": True, "user": _user_json(user)})
    _set_session_cookie(resp, request, username, pw_hash)
    return resp


@router.post("/login")
def login_post(request: Request, username: str = Form(""), password: str = Form("")):
    with get_db() as conn:
        row = find_user_by_username(conn, username.strip())
    if not row or not _verify_password(password, row["password_hash"]):
        return _json_error("Incorrect username or password", 401)
    resp = JSONResponse({"ok": True, "user": _user_json(row)})
    _set_session_cookie(resp, request, row["username"], row["password_hash"])
    return resp


@router.post("/logout")
def logout():
    resp = JSONResponse({"ok": True})
    resp.delete_cookie(SESSION_COOKIE_NAME)
    return resp
