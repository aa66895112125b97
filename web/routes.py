"""
web/routes.py -- Jinja2 template routes for the vendportal back office.

These routes serve server-rendered HTML. They share app.state.auth with the
API routes but return HTML and redirects instead of JSON.

Every protected page declares its allowed roles and calls require_roles() at
the top of the handler. The only observable outcomes of a guard are "render"
or "302 to a safe target" -- never an error page, so restricted areas are not
advertised to the wrong role.

Routes:
  GET  /                 -- send the caller to their role's home (or /login)
  GET  /login            -- login form
  POST /login            -- handle email/password login, redirect to role home
  POST /logout           -- clear cookie, redirect /login
  GET  /admin/dashboard  -- admin landing page (superadmin, admin)
  GET  /dashboard        -- merchant landing page (merchant)
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import require_roles, try_get_session
from auth.gate import ADMIN_ROLES, MERCHANT_ROLES, rule_for
from auth.models import AuthFailure
from auth.service import AuthService
from auth.tokens import clear_session_cookie, set_session_cookie

logger = logging.getLogger("vendportal.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# Expose try_get_session as a Jinja2 global so layout.html can render the
# header without every handler passing the session explicitly.
templates.env.globals["try_get_session"] = try_get_session
router = APIRouter()

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= query params on /login [M3].
# The raw query param is NEVER passed to templates -- only the message from
# this dict is. Prevents reflected XSS via crafted error query strings.
_ERROR_MESSAGES: dict[str, str] = {
    "invalid_credentials": "Invalid email or password.",
}


def _safe_next(next_url: Optional[str]) -> Optional[str]:
    """Validate a post-login redirect target. Only accept relative paths. [C2]

    Rejects absolute URLs and protocol-relative URLs (//host), both of which
    would redirect off-site after login. Returns None when the value is unsafe
    or absent so the caller falls back to the role's home.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//") and "\\" not in next_url:
        return next_url
    return None


# ---------------------------------------------------------------------------
# GET / -- role home dispatcher
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> RedirectResponse:
    auth: AuthService = request.app.state.auth
    session = try_get_session(request)
    if session is None:
        return RedirectResponse(auth.settings.login_path, status_code=302)
    return RedirectResponse(auth.gate.home_for(session.role), status_code=302)


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page. Signed-in users with a home go straight there."""
    auth: AuthService = request.app.state.auth
    session = try_get_session(request)
    if session is not None:
        home = auth.gate.home_for(session.role)
        if home != auth.settings.login_path:
            return RedirectResponse(home, status_code=302)

    # Map ?error= query param through whitelist [M3]
    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""), None)
    return templates.TemplateResponse(
        request,
        "login.html",
        {"error_msg": error_msg, "next": _safe_next(request.query_params.get("next"))},
    )


@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
) -> RedirectResponse:
    """Handle the login form.

    On success the caller is sent to ?next= when it is a safe local path the
    new role may open, otherwise to the role's home. On failure the caller
    goes back to the form, which shows the one generic message.
    """
    auth: AuthService = request.app.state.auth
    result = auth.login(email, password)
    if isinstance(result, AuthFailure):
        return RedirectResponse(f"{auth.settings.login_path}?error={result.code}", status_code=302)

    target = result.home
    next_url = _safe_next(request.query_params.get("next"))  # [C2]
    if next_url is not None:
        if auth.gate.authorize(result.claims, _allowed_for(next_url)).passed:
            target = next_url

    logger.info("Web login for account %s as %s", result.claims.account_id, result.claims.role.value)
    resp = RedirectResponse(target, status_code=302)
    set_session_cookie(resp, result.token, auth.settings)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and redirect to the login page."""
    auth: AuthService = request.app.state.auth
    resp = RedirectResponse(auth.settings.login_path, status_code=302)
    clear_session_cookie(resp)
    return resp


def _allowed_for(path: str) -> frozenset:
    rule = rule_for(path)
    return rule.allowed if rule is not None else frozenset()


# ---------------------------------------------------------------------------
# Role-guarded landing pages
# ---------------------------------------------------------------------------


@router.get("/admin/dashboard", response_class=HTMLResponse)
def admin_dashboard(request: Request) -> HTMLResponse:
    if redirect := require_roles(request, ADMIN_ROLES):
        return redirect
    return templates.TemplateResponse(
        request,
        "admin_dashboard.html",
        {"session": try_get_session(request)},
    )


@router.get("/dashboard", response_class=HTMLResponse)
def merchant_dashboard(request: Request) -> HTMLResponse:
    if redirect := require_roles(request, MERCHANT_ROLES):
        return redirect
    return templates.TemplateResponse(
        request,
        "merchant_dashboard.html",
        {"session": try_get_session(request)},
    )
