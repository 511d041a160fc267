from __future__ import annotations

from fastapi import Header, HTTPException
from fastapi.responses import JSONResponse

from app.application.exceptions import BookingError


def get_optional_user_id(x_user_id: str | None = Header(None)) -> int | None:
    """Caller identity as forwarded by the authentication layer in front of this service."""
    if not x_user_id:
        return None
    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_current_user_id(x_user_id: str | None = Header(None)) -> int:
    user_id = get_optional_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


def error_response(errors: list[BookingError]) -> JSONResponse:
    first = errors[0]
    return JSONResponse(
        status_code=first.status_code,
        content={"error": first.message, "errors": [e.to_dict() for e in errors]},
    )
