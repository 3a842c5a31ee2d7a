"""Per-request context handed to route handlers.

The middleware in ``main`` authenticates the caller and leaves the user row
on ``request.state.user``. Handlers then depend on ``get_request_context``,
which freezes identity and "today" once for the whole request.
"""
from dataclasses import dataclass
from datetime import date, datetime

from fastapi import Depends, HTTPException, Request

from config import _parse_day, _utc_now


@dataclass(frozen=True)
class RequestContext:
    user_id: int
    username: str
    role: str
    today: date

    @property
    def is_clinician(self) -> bool:
        return self.role == "clinician"


def get_clock() -> datetime:
    """Wall clock for the request. Tests override this dependency to pin "today"."""
    return _utc_now()


def get_request_context(request: Request, now: datetime = Depends(get_clock)) -> RequestContext:
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=401, detail="unauthorized")
    return RequestContext(
        user_id=user["id"],
        username=user["username"],
        role=user["role"],
        today=_parse_day(now),
    )


def require_patient(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if ctx.role != "patient":
        raise HTTPException(status_code=403, detail="forbidden")
    return ctx


def require_clinician(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if not ctx.is_clinician:
        raise HTTPException(status_code=403, detail="forbidden")
    return ctx
