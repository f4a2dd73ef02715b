"""
auth/dependencies.py -- FastAPI Depends() helpers for sessions and bearer tokens.

Two independent mechanisms:
  1. Cookie session -- get_session() resumes or creates the server-side
     Session for the request and queues any Set-Cookie on the response.
     get_principal() requires an existing session that a login flow has
     bound to a principal (PRINCIPAL_KEY); it never creates a session.
  2. Bearer token   -- try_get_claims() / get_claims() validate the
     Authorization: Bearer <token> header with the app's TokenCodec.

Both read their collaborators from app.state (session_manager, token_codec),
which the api lifespan populates.

try_get_claims() is the soft variant (returns None on failure).
get_claims() wraps it and raises HTTP 401 if unauthenticated. The 401 body is
the same for every failure reason.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request/Response)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, Request, Response

from auth.models import Session
from auth.sessions import PRINCIPAL_KEY, SessionManager
from auth.tokens import TokenCodec

_UNAUTHORIZED = {"code": "unauthorized", "message": "Authentication required."}


def get_session(request: Request, response: Response) -> Session:
    """Return the Session bound to this request, creating one if needed.

    Use as a FastAPI dependency:
        @router.get("/cart")
        async def route(session: Session = Depends(get_session)): ...

    A new session adds a Set-Cookie header to the response. Route handlers
    must return plain data (not a Response object) for FastAPI to merge it.
    """
    manager: SessionManager = request.app.state.session_manager
    return manager.start(
        request.headers.get("cookie"),
        lambda value: response.headers.append("set-cookie", value),
    )


def get_principal(request: Request) -> Any:
    """Require a cookie session carrying an authenticated principal. Raises HTTP 401 otherwise.

    The principal is written under PRINCIPAL_KEY by the application's login
    flow, never by the client. Unknown or anonymous sessions are rejected
    without creating a session or emitting a cookie.
    """
    manager: SessionManager = request.app.state.session_manager
    session = manager.find(request.headers.get("cookie"))
    principal = session.get(PRINCIPAL_KEY) if session is not None else None
    if principal is None or principal == "":
        raise HTTPException(status_code=401, detail=_UNAUTHORIZED)
    return principal


def bearer_token(request: Request) -> Optional[str]:
    """Return the credentials of an "Authorization: Bearer" header, or None.

    The scheme name is matched case-insensitively (RFC 7235).
    """
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


def try_get_claims(request: Request) -> Optional[dict[str, Any]]:
    """Return the verified bearer-token claims, or None. Never raises."""
    token = bearer_token(request)
    if not token:
        return None
    codec: TokenCodec = request.app.state.token_codec
    return codec.verify(token)


def get_claims(request: Request) -> dict[str, Any]:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: dict = Depends(get_claims)): ...
    """
    claims = try_get_claims(request)
    if claims is None:
        raise HTTPException(
            status_code=401,
            detail=_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims
