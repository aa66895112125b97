"""
auth/gate.py -- Role-based access decisions for protected views.

AccessGate.authorize() looks at one request's session (or its absence) and the
route's allowed roles and answers either "pass" or "redirect to X". It never
raises and never renders an error page: a role mismatch is indistinguishable
from being logged out, so restricted areas are not advertised.

Nothing is remembered between requests. Every request re-evaluates from the
token it carries.

The user role has no destination in this application; it is rejected on
every route even if a route mistakenly lists it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from auth.models import Role, SessionClaims

logger = logging.getLogger("vendportal.auth.gate")

ADMIN_ROLES: frozenset[Role] = frozenset({Role.SUPERADMIN, Role.ADMIN})
MERCHANT_ROLES: frozenset[Role] = frozenset({Role.MERCHANT})

# Where each role lands after login. user has no home.
ROLE_HOMES: dict[Role, str] = {
    Role.SUPERADMIN: "/admin/dashboard",
    Role.ADMIN: "/admin/dashboard",
    Role.MERCHANT: "/dashboard",
}


@dataclass(frozen=True)
class RouteRule:
    """A protected path prefix and the roles allowed under it."""

    prefix: str
    allowed: frozenset[Role]

    def matches(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix.rstrip("/") + "/")


ROUTE_RULES: tuple[RouteRule, ...] = (
    RouteRule("/admin", ADMIN_ROLES),
    RouteRule("/dashboard", MERCHANT_ROLES),
    RouteRule("/merchant", MERCHANT_ROLES),
)


def rule_for(path: str, rules: Iterable[RouteRule] = ROUTE_RULES) -> RouteRule | None:
    """Return the first rule covering path, or None for unprotected paths."""
    for rule in rules:
        if rule.matches(path):
            return rule
    return None


@dataclass(frozen=True)
class GateDecision:
    """Outcome of one authorize() call.

    reason is for logs only: "anonymous" or "role_not_permitted".
    """

    passed: bool
    redirect_to: str | None = None
    reason: str | None = None


class AccessGate:
    """Decides pass-through or redirect for a session and an allowed-role set.

    redirect_to_home=False sends every rejected session to the login page.
    redirect_to_home=True sends an authenticated session whose role is not
    allowed to that role's own home instead (the user role still goes to the
    login page).
    """

    def __init__(self, login_path: str = "/login", redirect_to_home: bool = False) -> None:
        self.login_path = login_path
        self.redirect_to_home = redirect_to_home

    def home_for(self, role: Role) -> str:
        return ROLE_HOMES.get(role, self.login_path)

    def authorize(self, session: SessionClaims | None, allowed: Iterable[Role]) -> GateDecision:
        if session is None:
            return GateDecision(passed=False, redirect_to=self.login_path, reason="anonymous")

        allowed_roles = frozenset(allowed)
        if session.role is not Role.USER and session.role in allowed_roles:
            return GateDecision(passed=True)

        logger.info("Role %s not permitted here; redirecting account %s", session.role.value, session.account_id)
        target = self.home_for(session.role) if self.redirect_to_home else self.login_path
        return GateDecision(passed=False, redirect_to=target, reason="role_not_permitted")
