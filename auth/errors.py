"""
auth/errors.py -- Exception taxonomy for the auth package.

Only session reads and configuration raise. Credential checks return typed
results (see auth/models.py AuthFailure) so every call site handles failure
explicitly; role mismatches become redirects in auth/gate.py.

MalformedHash never leaves auth/hashers.py -- HashVerifier catches it at its
boundary and reports "verification failed".
"""


class AuthError(Exception):
    """Base class for auth package errors."""


class MalformedHash(AuthError):
    """A stored hash looked like a legacy record but could not be parsed."""


class SessionError(AuthError):
    """A session token could not be turned into SessionClaims."""


class SessionInvalid(SessionError):
    """Bad signature, unknown algorithm, or claims of the wrong shape."""


class SessionExpired(SessionError):
    """Signature is valid but the token is past its exp claim."""
