"""
auth/authenticator.py -- Email/password authentication with a typed result.

authenticate() never raises. It returns an Identity on success and the one
generic AuthFailure otherwise. Unknown email, inactive account and wrong
password look identical to the caller; the distinction only reaches the
operator log, keyed by account id, never by secret or hash.

Timing equalization [C1]: when no active account matches, the verifier still
runs against a dummy bcrypt hash so response time does not reveal whether an
email is registered.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from auth.hashers import HashVerifier, hash_password, needs_rehash
from auth.models import AuthFailure, FailureReason, Identity
from auth.store import AccountStore

logger = logging.getLogger("vendportal.auth")

# Computed once at module load so the first failed login is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("vendportal_timing_dummy")


class CredentialAuthenticator:
    """Looks up an account, checks activation and secret, records the login.

    Usage:
        authenticator = CredentialAuthenticator(store, HashVerifier())
        result = authenticator.authenticate("ops@example.com", "s3cret")
        if isinstance(result, AuthFailure):
            ...
    """

    def __init__(self, store: AccountStore, verifier: HashVerifier) -> None:
        self._store = store
        self._verifier = verifier

    def authenticate(self, identifier: str, secret: str) -> Identity | AuthFailure:
        if not identifier or not secret:
            return AuthFailure(reason=FailureReason.MISSING_INPUT)

        email = identifier.strip()
        try:
            account = self._store.get_active_by_email(email)
        except SQLAlchemyError:
            logger.warning("Login rejected: account lookup failed", exc_info=True)
            return AuthFailure(reason=FailureReason.STORE_ERROR)
        if account is None:
            self._verifier.verify(secret, _DUMMY_HASH)
            logger.info("Login rejected: no active account for the submitted email")
            return AuthFailure(reason=FailureReason.NOT_FOUND)

        if not self._verifier.verify(secret, account.password_hash):
            logger.info("Login rejected for account %s: secret mismatch", account.id)
            return AuthFailure(reason=FailureReason.BAD_SECRET)

        self._record_login(account.id)
        if needs_rehash(account.password_hash):
            logger.info("Account %s still uses a legacy password hash", account.id)

        return Identity(
            account_id=account.id,
            email=account.email or account.username,
            display_name=account.display_name,
            is_superuser=account.is_superuser,
            is_staff=account.is_staff,
        )

    def _record_login(self, account_id: int) -> None:
        """Best-effort last_login_at stamp. A failed write never fails the login."""
        try:
            self._store.update_last_login(account_id)
        except SQLAlchemyError:
            logger.warning("Could not record last login for account %s", account_id, exc_info=True)
