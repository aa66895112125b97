"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login   -- email/password login; sets session cookie
  POST /api/v1/auth/logout  -- clears cookie; 200
  GET  /api/v1/auth/me      -- current session claims (requires auth)

Security:
  [H2] POST /login is rate-limited to 10 requests/minute per IP.
  [C1] AuthService.login() goes through CredentialAuthenticator, which
       equalizes timing for unknown emails -- never inline a store lookup here.
  [M5] Cache-Control: no-store on login responses.

  login is a plain def handler: FastAPI runs it in the threadpool, so slow
  KDF rounds never block the event loop for unrelated requests.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_LIMIT, limiter
from api.models import LoginRequest, LoginResponse, MeResponse
from auth.dependencies import get_current_session
from auth.models import AuthFailure, SessionClaims
from auth.service import AuthService
from auth.tokens import clear_session_cookie, set_session_cookie

# Auth policy:
# - POST /api/v1/auth/login:   public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:  public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/me:      requires auth (get_current_session)
router = APIRouter()


@limiter.limit(LOGIN_LIMIT)  # [H2] must sit ABOVE @router so FastAPI still sees the real signature
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Every credential problem (unknown email, inactive account, wrong password)
    returns the same 401 body to avoid leaking account existence.
    """
    auth: AuthService = request.app.state.auth
    result = auth.login(body.email, body.password)
    if isinstance(result, AuthFailure):
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": result.code, "message": result.message}},
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=result.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=auth.issuer.ttl_seconds,
            role=result.claims.role,
            merchant_id=result.claims.merchant_id,
            home=result.home,
        ).model_dump(mode="json"),
    )
    set_session_cookie(resp, result.token, auth.settings)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the session cookie. The token itself simply expires."""
    resp = JSONResponse(content={"message": "Logged out."})
    clear_session_cookie(resp)
    return resp


@router.get("/auth/me", response_model=MeResponse)
async def me(session: SessionClaims = Depends(get_current_session)) -> MeResponse:
    """Return the claims carried by the caller's session."""
    return MeResponse(
        account_id=session.account_id,
        display_name=session.display_name,
        email=session.email,
        role=session.role,
        merchant_id=session.merchant_id,
        issued_at=session.issued_at.isoformat(),
        expires_at=session.expires_at.isoformat(),
        display=session.display,
    )
