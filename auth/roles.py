"""
auth/roles.py -- Role resolution by fixed precedence.

resolve() maps account flags and an optional merchant link to exactly one
Role plus an optional merchant scope. The precedence table below is the whole
rule: entries are tried top to bottom and the first predicate that holds
wins. The final entry always holds, so every input resolves.

    is_superuser      -> superadmin   (no scope)
    is_staff          -> admin        (no scope)
    merchant linked   -> merchant     (scope = merchant id)
    otherwise         -> user         (no scope)

Administrative flags dominate the merchant link: a superuser who also owns a
merchant is a superadmin, never a merchant.
"""

from __future__ import annotations

from collections.abc import Callable

from auth.models import Identity, Role

_Predicate = Callable[[Identity, "int | None"], bool]

_PRECEDENCE: tuple[tuple[_Predicate, Role, bool], ...] = (
    (lambda identity, merchant_id: identity.is_superuser, Role.SUPERADMIN, False),
    (lambda identity, merchant_id: identity.is_staff, Role.ADMIN, False),
    (lambda identity, merchant_id: merchant_id is not None, Role.MERCHANT, True),
    (lambda identity, merchant_id: True, Role.USER, False),
)


def resolve(identity: Identity, merchant_id: int | None) -> tuple[Role, int | None]:
    """Return (role, scope) for an authenticated identity. Pure and total."""
    for predicate, role, scoped in _PRECEDENCE:
        if predicate(identity, merchant_id):
            return role, (merchant_id if scoped else None)
    raise AssertionError("role precedence table has no catch-all entry")  # pragma: no cover
