import hashlib
import hmac
import logging
import secrets
from time import time

from fastapi import Request

from config import (
    SESSION_COOKIE_NAME,
    SESSION_TTL_SECONDS,
    CSRF_COOKIE_NAME,
    SECRET_KEY,
)
from db import get_db

logger = logging.getLogger(__name__)


def _request_origin_host(request: Request) -> str:
    header = request.headers.get("origin") or request.headers.get("referer") or ""
    if "://" not in header:
        return ""
    return header.split("://", 1)[1].split("/", 1)[0].lower()


def _is_same_origin(request: Request) -> bool:
    origin_host = _request_origin_host(request)
    if not origin_host:
        return False
    return origin_host == request.url.netloc.lower()


def _ensure_csrf_cookie(request: Request, response):
    if request.cookies.get(CSRF_COOKIE_NAME):
        return response
    response.set_cookie(
        CSRF_COOKIE_NAME,
        secrets.token_urlsafe(32),
        httponly=False,
        samesite="lax",
        secure=request.url.scheme == "https",
    )
    return response


def _csrf_header_valid(request: Request) -> bool:
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME, "")
    header_token = request.headers.get("x-csrf-token", "")
    return bool(cookie_token) and hmac.compare_digest(cookie_token, header_token)


def _hash_password(plaintext: str) -> str:
    salt = secrets.token_bytes(32)
    dk = hashlib.pbkdf2_hmac("sha256", plaintext.encode(), salt, 480_000)
    return salt.hex() + ":" + dk.hex()


def _verify_password(plaintext: str, stored: str) -> bool:
    try:
        salt_hex, dk_hex = stored.split(":")
        expected = bytes.fromhex(dk_hex)
        dk = hashlib.pbkdf2_hmac("sha256", plaintext.encode(), bytes.fromhex(salt_hex), 480_000)
    except ValueError:
        return False
    return hmac.compare_digest(dk, expected)


def _sign(payload: str, password_hash: str) -> str:
    return hmac.new(SECRET_KEY.encode(), f"{payload}:{password_hash}".encode(), "sha256").hexdigest()


def _make_session_token(username: str, password_hash: str) -> str:
    exp = int(time()) + SESSION_TTL_SECONDS
    nonce = secrets.token_urlsafe(16)
    payload = f"{username}:{exp}:{nonce}"
    return f"{payload}:{_sign(payload, password_hash)}"


def _verify_session_token(token: str, username: str, password_hash: str) -> bool:
    """Signature is bound to the password hash, so a password change logs out old sessions."""
    parts = token.split(":", 3)
    if len(parts) != 4:
        return False
    token_username, exp_s, nonce, sig = parts
    if token_username != username or not exp_s.isdigit() or int(exp_s) < int(time()):
        return False
    return hmac.compare_digest(sig, _sign(f"{token_username}:{exp_s}:{nonce}", password_hash))


def _set_session_cookie(response, request: Request, username: str, password_hash: str):
    response.set_cookie(
        SESSION_COOKIE_NAME,
        _make_session_token(username, password_hash),
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
        max_age=SESSION_TTL_SECONDS,
    )
    return response


def _get_authenticated_user(request: Request):
    """Extract username from session token; look up the user row. Returns Row or None."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME, "")
    if not cookie:
        return None
    token_username = cookie.split(":", 1)[0]
    with get_db() as conn:
        row = conn.execute(
            "SELECT id, username, role, password_hash FROM users WHERE username = ?",
            (token_username,),
        ).fetchone()
    if not row:
        return None
    if not _verify_session_token(cookie, token_username, row["password_hash"]):
        logger.warning("Rejected session token for %r", token_username)
        return None
    return row
