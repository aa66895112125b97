"""
auth/tokens.py -- Session token minting and validation.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with Settings.secret_key and
       carry account id, display name, email, role, optional merchant scope,
       issue time and expiry. The key reaches SessionIssuer through its
       constructor; nothing here reads configuration at import time.

  Read order: signature first, then expiry. A forged token is reported as
       SessionInvalid even if its exp is in the past, so an attacker learns
       nothing from the error kind.

  Immutability: claims are never refreshed or edited in place. A role or
       scope change means a new login and a new token.

  Display enrichment: an optional enricher derives presentation-only values
       (first name, role label) at mint time and again at read time. They live
       in SessionClaims.display and are never consulted by AccessGate.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import SessionExpired, SessionInvalid
from auth.models import Identity, Role, SessionClaims
from core.config import Settings

logger = logging.getLogger("vendportal.auth.tokens")

_ALGORITHM = "HS256"
COOKIE_NAME = "access_token"

Enricher = Callable[[SessionClaims], dict[str, str]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def display_fields(claims: SessionClaims) -> dict[str, str]:
    """Default enricher: values the header templates and /me consume."""
    first = claims.display_name.split()[0] if claims.display_name.split() else claims.email
    return {"first_name": first, "role_label": claims.role.label}


class SessionIssuer:
    """Mints and re-validates signed session tokens.

    Usage:
        issuer = SessionIssuer(settings)
        token = issuer.mint(identity, Role.MERCHANT, 42)
        claims = issuer.read(token)       # raises SessionInvalid / SessionExpired
        claims = issuer.try_read(token)   # None on any failure
    """

    def __init__(
        self,
        settings: Settings,
        enricher: Enricher | None = display_fields,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret = settings.secret_key
        self._ttl = timedelta(seconds=settings.token_expire_seconds)
        self._enricher = enricher
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    # ------------------------------------------------------------------
    # Mint
    # ------------------------------------------------------------------

    def mint(self, identity: Identity, role: Role, scope: int | None = None) -> str:
        """Encode a signed token for an authenticated identity and its resolved role."""
        issued_at = self._clock().replace(microsecond=0)
        claims = SessionClaims(
            account_id=identity.account_id,
            display_name=identity.display_name,
            email=identity.email,
            role=Role(role),
            merchant_id=scope,
            issued_at=issued_at,
            expires_at=issued_at + self._ttl,
        )
        payload: dict = {
            "sub": str(claims.account_id),
            "name": claims.display_name,
            "email": claims.email,
            "role": claims.role.value,
            "iat": int(claims.issued_at.timestamp()),
            "exp": int(claims.expires_at.timestamp()),
        }
        if claims.merchant_id is not None:
            payload["merchant_id"] = claims.merchant_id
        if self._enricher is not None:
            payload["ext"] = self._enricher(claims)
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read(self, token: str) -> SessionClaims:
        """Verify signature, then expiry, then return the claims.

        Raises SessionInvalid on a bad signature or malformed claims and
        SessionExpired once exp has passed.
        """
        if not token:
            raise SessionInvalid("empty token")
        try:
            # Expiry is checked below against the injected clock, after the
            # signature has been verified.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as exc:
            raise SessionInvalid("signature verification failed") from exc

        claims = self._claims_from_payload(payload)
        if claims.expires_at <= self._clock():
            raise SessionExpired("session expired")

        if self._enricher is None:
            return claims
        display = dict(payload.get("ext") or {})
        display.update(self._enricher(claims))
        return SessionClaims(
            account_id=claims.account_id,
            display_name=claims.display_name,
            email=claims.email,
            role=claims.role,
            merchant_id=claims.merchant_id,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
            display=display,
        )

    def try_read(self, token: str | None) -> SessionClaims | None:
        """Soft variant of read(): None on any failure. Request guards use this."""
        if not token:
            return None
        try:
            return self.read(token)
        except SessionExpired:
            logger.debug("Rejected expired session token")
            return None
        except SessionInvalid:
            logger.debug("Rejected invalid session token")
            return None

    @staticmethod
    def _claims_from_payload(payload: dict) -> SessionClaims:
        try:
            merchant_id = payload.get("merchant_id")
            return SessionClaims(
                account_id=int(payload["sub"]),
                display_name=str(payload.get("name", "")),
                email=str(payload.get("email", "")),
                role=Role(payload["role"]),
                merchant_id=int(merchant_id) if merchant_id is not None else None,
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            raise SessionInvalid("claims have the wrong shape") from exc


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, settings: Settings) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the token expiry so both expire together.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.token_expire_seconds,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME)
