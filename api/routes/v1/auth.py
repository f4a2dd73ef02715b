"""
api/routes/v1/auth.py -- Bearer token issuance and validation endpoints.

Routes:
  POST /api/v1/auth/token  -- exchange an authenticated cookie session for a bearer token
  GET  /api/v1/auth/me     -- echo the verified claims (requires Bearer token)

Security:
  Tokens are issued only to a session that the application's login flow has
  bound to a principal. The claims are derived server-side ("sub" is the
  principal); nothing from the request body is signed.
  Cache-Control: no-store on token responses so intermediaries never cache a
  credential. Every verification failure produces the same 401 body.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, Response

from api.models import ClaimsResponse, TokenResponse
from auth.dependencies import get_claims, get_principal
from auth.tokens import TokenCodec

router = APIRouter()


@router.post("/auth/token", response_model=TokenResponse)
def issue_token(request: Request, response: Response, principal: Any = Depends(get_principal)) -> TokenResponse:
    """Sign a token for the session's principal and return it."""
    codec: TokenCodec = request.app.state.token_codec
    token = codec.generate({"sub": principal})
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(access_token=token, expires_in=codec.expires_in)


@router.get("/auth/me", response_model=ClaimsResponse)
def me(claims: dict[str, Any] = Depends(get_claims)) -> ClaimsResponse:
    """Return the claims of the presented bearer token."""
    return ClaimsResponse(claims=claims)
