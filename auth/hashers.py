"""
auth/hashers.py -- Password hash verification across legacy and native formats.

Two formats live side by side in the accounts table:

  Legacy:  pbkdf2_sha256$<iterations>$<salt>$<base64 digest>
           Minted by the previous platform. PBKDF2-HMAC-SHA256, 32-byte key,
           standard base64 alphabet. Some records kept the trailing "=" and
           some did not; both verify.

  Native:  bcrypt ($2a$/$2b$/$2y$...). Self-salting, cost embedded in the
           string. Verified by the bcrypt library directly -- same choice as
           the rest of this codebase, no passlib wrapper.

The format is detected from the string's structure, never configured. A
record that cannot be parsed is a failed verification, never an exception:
HashVerifier.verify() is fail-closed.

Logging: nothing derived from the secret or the stored hash (salt, digest,
intermediate keys) is ever logged, at any level. Only the fact that a record
was malformed.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

import bcrypt

from auth.errors import MalformedHash

logger = logging.getLogger("vendportal.auth.hashers")

LEGACY_ALGORITHM = "pbkdf2_sha256"
_DELIMITER = "$"
_KEY_LENGTH = 32


# ---------------------------------------------------------------------------
# PBKDF2 helpers
# ---------------------------------------------------------------------------


def pbkdf2_sha256_digest(secret: str, salt: str, iterations: int) -> str:
    """Return the base64 (padded) PBKDF2-HMAC-SHA256 digest for a legacy record."""
    key = hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt.encode("utf-8"), iterations, dklen=_KEY_LENGTH)
    return base64.b64encode(key).decode("ascii")


def encode_legacy_hash(secret: str, salt: str, iterations: int) -> str:
    """Build a pbkdf2_sha256$... record. Used for fixtures and data imports."""
    digest = pbkdf2_sha256_digest(secret, salt, iterations)
    return _DELIMITER.join((LEGACY_ALGORITHM, str(iterations), salt, digest))


def hash_password(plain: str, rounds: int = 12) -> str:
    """Return a native bcrypt hash. Lower rounds only in tests."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _parse_iterations(raw: str) -> int:
    try:
        iterations = int(raw, 10)
    except ValueError as exc:
        raise MalformedHash("iteration count is not an integer") from exc
    if iterations <= 0:
        raise MalformedHash("iteration count must be positive")
    return iterations


def _normalize_digest(digest: str) -> bytes:
    """Return the stored digest as padded ASCII bytes.

    Raises MalformedHash for empty digests or non-ASCII text, which could
    never match a base64 value anyway.
    """
    if not digest:
        raise MalformedHash("digest segment is empty")
    try:
        raw = digest.encode("ascii")
    except UnicodeEncodeError as exc:
        raise MalformedHash("digest segment is not ASCII") from exc
    missing = -len(raw) % 4
    return raw + b"=" * missing


def identify(stored_hash: str) -> str:
    """Return "pbkdf2_sha256" for legacy records, "native" for everything else."""
    parts = stored_hash.split(_DELIMITER)
    if len(parts) >= 4 and parts[0] == LEGACY_ALGORITHM:
        return LEGACY_ALGORITHM
    return "native"


def needs_rehash(stored_hash: str) -> bool:
    """True when the record still uses the previous platform's format."""
    return identify(stored_hash) == LEGACY_ALGORITHM


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------


class HashVerifier:
    """Validates a plaintext secret against a stored hash of either format.

    Stateless; one instance is shared by every request.

    Usage:
        verifier = HashVerifier()
        verifier.verify("s3cret", account.password_hash)  # -> bool
    """

    def verify(self, secret: str, stored_hash: str) -> bool:
        """Return True only if secret matches stored_hash. Never raises."""
        if not isinstance(secret, str) or not isinstance(stored_hash, str) or not stored_hash:
            return False

        if _DELIMITER not in stored_hash:
            return self._verify_native(secret, stored_hash)

        parts = stored_hash.split(_DELIMITER)
        if len(parts) < 4:
            return self._verify_native(secret, stored_hash)

        algorithm, iterations, salt, digest = parts[0], parts[1], parts[2], parts[3]
        if algorithm != LEGACY_ALGORITHM:
            return self._verify_native(secret, stored_hash)

        try:
            return self._verify_legacy(secret, iterations, salt, digest)
        except MalformedHash as exc:
            logger.warning("Rejecting malformed %s record: %s", LEGACY_ALGORITHM, exc)
            return False
        except (ValueError, OverflowError):
            logger.warning("Rejecting %s record that could not be derived", LEGACY_ALGORITHM)
            return False

    def _verify_legacy(self, secret: str, iterations: str, salt: str, digest: str) -> bool:
        rounds = _parse_iterations(iterations)
        expected = _normalize_digest(digest)
        computed = pbkdf2_sha256_digest(secret, salt, rounds).encode("ascii")
        return hmac.compare_digest(computed, expected)

    def _verify_native(self, secret: str, stored_hash: str) -> bool:
        """bcrypt check. Any library error (bad salt, >72 bytes, garbage) is False."""
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), stored_hash.encode("utf-8"))
        except Exception:
            return False
