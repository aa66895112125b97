"""
auth/dependencies.py -- FastAPI request helpers for sessions and role guards.

Two token sources are checked in priority order:
  1. Session cookie ("access_token") -- set by the web login flow.
  2. Authorization: Bearer <token> header -- API clients.

try_get_session() is the soft variant (returns None on failure).
get_current_session() wraps it and raises HTTP 401 for JSON API routes.
require_roles() builds the page guard used by server-rendered routes: it
returns a RedirectResponse or None, never an error page.

Layer rule: auth/dependencies.py may import from fastapi because this module
is part of the FastAPI dependency injection system. No imports from web/ or
api/.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import quote

from fastapi import HTTPException, Request
from fastapi.responses import RedirectResponse

from auth.models import Role, SessionClaims
from auth.service import AuthService
from auth.tokens import COOKIE_NAME


def _auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def _token_from_request(request: Request) -> str | None:
    token: str | None = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def try_get_session(request: Request) -> SessionClaims | None:
    """Return the request's SessionClaims, or None if absent, forged or expired.

    Never raises -- callers that need a hard 401 should use get_current_session().
    """
    return _auth_service(request).issuer.try_read(_token_from_request(request))


def get_current_session(request: Request) -> SessionClaims:
    """Require a valid session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: SessionClaims = Depends(get_current_session)): ...
    """
    session = try_get_session(request)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return session


def require_roles(request: Request, allowed: Iterable[Role]) -> RedirectResponse | None:
    """Run AccessGate for a page route.

    Returns a 302 RedirectResponse when the gate rejects the request (anonymous
    callers get ?next=<path>), None when the handler may render. Call at the
    top of protected handlers:
        if redirect := require_roles(request, ADMIN_ROLES):
            return redirect
    """
    decision = _auth_service(request).gate.authorize(try_get_session(request), allowed)
    if decision.passed:
        return None
    if decision.reason == "anonymous":
        # Only anonymous callers are sent back after login; a wrong role gets no next.
        return RedirectResponse(f"{decision.redirect_to}?next={quote(request.url.path)}", status_code=302)
    return RedirectResponse(decision.redirect_to, status_code=302)
