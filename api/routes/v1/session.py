"""
api/routes/v1/session.py -- Cookie-bound session endpoints.

Routes:
  GET    /api/v1/session        -- current session data (creates a session + cookie if needed)
  PUT    /api/v1/session/{key}  -- store a value in the session (PRINCIPAL_KEY is refused)
  DELETE /api/v1/session        -- expire the cookie and destroy the session

The session id itself is never returned in a body -- only an 8-character
prefix, useful for correlating logs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import SessionResponse, SessionValue
from auth.dependencies import get_session
from auth.models import Session
from auth.sessions import PRINCIPAL_KEY, SessionManager

router = APIRouter()


def _to_response(session: Session) -> SessionResponse:
    return SessionResponse(session_id_prefix=session.id[:8], data=session.snapshot())


@router.get("/session", response_model=SessionResponse)
def read_session(session: Session = Depends(get_session)) -> SessionResponse:
    return _to_response(session)


@router.put("/session/{key}", response_model=SessionResponse)
def write_session(key: str, body: SessionValue, session: Session = Depends(get_session)) -> SessionResponse:
    if key == PRINCIPAL_KEY:
        raise HTTPException(
            status_code=403,
            detail={"code": "reserved_key", "message": "This session key cannot be set by clients."},
        )
    session.set(key, body.value)
    return _to_response(session)


@router.delete("/session", status_code=204)
def destroy_session(request: Request) -> Response:
    """Destroy the session named by the request cookie.

    The 204 response is built here, so removal cookies are appended to it
    directly rather than through an injected Response.
    """
    manager: SessionManager = request.app.state.session_manager
    response = Response(status_code=204)
    manager.destroy(
        request.headers.get("cookie"),
        lambda value: response.headers.append("set-cookie", value),
    )
    return response
