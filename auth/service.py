"""
auth/service.py -- Wires the auth components together from one Settings value.

AuthService is built once at application startup (api/main.py lifespan) and
stored on app.state. Routes reach every component through it, so no component
reads process-wide configuration on its own.

login() is the full sign-in cycle: authenticate -> look up merchant link ->
resolve role -> mint token. A role or scope change only ever takes effect
through a new login().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from auth.authenticator import CredentialAuthenticator
from auth.gate import AccessGate
from auth.hashers import HashVerifier
from auth.models import AuthFailure, FailureReason, SessionClaims
from auth.roles import resolve
from auth.store import AccountStore
from auth.tokens import SessionIssuer
from core.config import Settings

logger = logging.getLogger("vendportal.auth.service")


@dataclass(frozen=True)
class SessionGrant:
    """A freshly minted token plus the claims it carries."""

    token: str
    claims: SessionClaims
    home: str


class AuthService:
    def __init__(self, settings: Settings, store: AccountStore, issuer: SessionIssuer | None = None) -> None:
        self.settings = settings
        self.store = store
        self.verifier = HashVerifier()
        self.authenticator = CredentialAuthenticator(store, self.verifier)
        self.issuer = issuer or SessionIssuer(settings)
        self.gate = AccessGate(login_path=settings.login_path, redirect_to_home=settings.redirect_to_role_home)

    def login(self, email: str, password: str) -> SessionGrant | AuthFailure:
        """Authenticate and mint a session. Returns AuthFailure on any credential problem."""
        result = self.authenticator.authenticate(email, password)
        if isinstance(result, AuthFailure):
            return result

        try:
            merchant_id = self.store.get_merchant_id(result.account_id)
        except SQLAlchemyError:
            logger.warning("Login rejected for account %s: merchant lookup failed", result.account_id, exc_info=True)
            return AuthFailure(reason=FailureReason.STORE_ERROR)

        role, scope = resolve(result, merchant_id)
        token = self.issuer.mint(result, role, scope)
        claims = self.issuer.read(token)
        return SessionGrant(token=token, claims=claims, home=self.gate.home_for(role))
