"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost zero logic). The stores and
components do the work; these classes own the domain shape.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of roles, declared highest precedence first.

    The str mixin lets a Role be written straight into JWT claims and
    compared with the lowercase strings stored in older sessions.
    """

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    MERCHANT = "merchant"
    USER = "user"

    @property
    def rank(self) -> int:
        """Higher rank wins precedence. superadmin=3 ... user=0."""
        return _RANKS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


_RANKS = {Role.SUPERADMIN: 3, Role.ADMIN: 2, Role.MERCHANT: 1, Role.USER: 0}
_LABELS = {
    Role.SUPERADMIN: "Super Admin",
    Role.ADMIN: "Admin",
    Role.MERCHANT: "Merchant",
    Role.USER: "User",
}


@dataclass
class Account:
    """A login-capable account.

    Accounts are created and edited by the user-management screens; this
    package only reads them and stamps last_login_at after a successful login.

    password_hash is opaque: either a legacy pbkdf2_sha256$... record minted by
    the previous platform or a native bcrypt hash.
    """

    username: str
    email: str
    password_hash: str
    id: int | None = None
    first_name: str = ""
    last_name: str = ""
    is_active: bool = True
    is_superuser: bool = False
    is_staff: bool = False
    last_login_at: str | None = None  # ISO 8601, advisory only

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.username


@dataclass
class MerchantLink:
    """Optional 1:1 association between an account and a merchant."""

    account_id: int
    name: str
    merchant_id: int | None = None


@dataclass(frozen=True)
class Identity:
    """Result of a successful credential check.

    Callers outside auth/ should treat everything but account_id,
    display_name and email as opaque. The flags are carried for RoleResolver.
    """

    account_id: int
    email: str
    display_name: str
    is_superuser: bool = False
    is_staff: bool = False


class FailureReason(str, Enum):
    """Internal reason behind an AuthFailure. Logged, never shown."""

    MISSING_INPUT = "missing_input"
    NOT_FOUND = "not_found"  # also covers inactive accounts
    BAD_SECRET = "bad_secret"
    STORE_ERROR = "store_error"


@dataclass(frozen=True)
class AuthFailure:
    """The single externally visible authentication failure.

    code and message are the same for every cause so callers cannot tell an
    unknown email from a wrong password. reason is kept out of repr and
    equality; only operator logs should read it.
    """

    reason: FailureReason = field(default=FailureReason.BAD_SECRET, repr=False, compare=False)
    code: str = "invalid_credentials"
    message: str = "Invalid email or password."


@dataclass(frozen=True)
class SessionClaims:
    """Immutable claims carried by a session token.

    role and merchant_id are the only authoritative fields for access
    decisions. display holds derived presentation values (see
    SessionIssuer enricher) and is excluded from equality.
    """

    account_id: int
    display_name: str
    email: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    merchant_id: int | None = None
    display: dict[str, str] = field(default_factory=dict, compare=False, repr=False)
