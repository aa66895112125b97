"""Unit tests for auth/authenticator.py -- CredentialAuthenticator.

Covers:
- Legacy and native hashes both authenticate
- Unknown email, wrong password and inactive account yield the same AuthFailure
- Inactive accounts fail even with the correct secret
- last_login_at is stamped on success only, and a failed stamp does not fail the login
- Database errors during account or merchant lookup become the same generic failure
- The secret never reaches the log
"""

import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from auth.authenticator import CredentialAuthenticator
from auth.hashers import HashVerifier, encode_legacy_hash
from auth.models import Account, AuthFailure, FailureReason, Identity
from auth.service import AuthService
from conftest import PASSWORD, make_settings


@pytest.fixture
def authenticator(store, seeded) -> CredentialAuthenticator:
    return CredentialAuthenticator(store, HashVerifier())


class TestSuccess:
    def test_legacy_hash_account(self, authenticator, seeded):
        result = authenticator.authenticate("merchant@example.com", PASSWORD)
        assert isinstance(result, Identity)
        assert result.account_id == seeded.ids["merchant"]
        assert result.display_name == "Musa Bello"
        assert result.email == "merchant@example.com"

    def test_native_hash_account_carries_flags(self, authenticator, seeded):
        result = authenticator.authenticate("admin@example.com", PASSWORD)
        assert isinstance(result, Identity)
        assert result.is_staff is True
        assert result.is_superuser is False

    def test_surrounding_whitespace_in_email_ignored(self, authenticator):
        assert isinstance(authenticator.authenticate("  merchant@example.com ", PASSWORD), Identity)

    def test_last_login_stamped(self, authenticator, store, seeded):
        assert store.get_by_id(seeded.ids["merchant"]).last_login_at is None
        authenticator.authenticate("merchant@example.com", PASSWORD)
        assert store.get_by_id(seeded.ids["merchant"]).last_login_at is not None


class TestFailure:
    def test_wrong_password(self, authenticator):
        result = authenticator.authenticate("merchant@example.com", "nope")
        assert isinstance(result, AuthFailure)
        assert result.code == "invalid_credentials"
        assert result.reason is FailureReason.BAD_SECRET

    def test_unknown_email(self, authenticator):
        result = authenticator.authenticate("ghost@example.com", PASSWORD)
        assert isinstance(result, AuthFailure)
        assert result.reason is FailureReason.NOT_FOUND

    def test_inactive_with_correct_secret(self, authenticator, store, seeded):
        result = authenticator.authenticate("inactive@example.com", PASSWORD)
        assert isinstance(result, AuthFailure)
        assert store.get_by_id(seeded.ids["inactive"]).last_login_at is None

    def test_failures_indistinguishable(self, authenticator):
        unknown = authenticator.authenticate("ghost@example.com", PASSWORD)
        wrong = authenticator.authenticate("merchant@example.com", "nope")
        inactive = authenticator.authenticate("inactive@example.com", PASSWORD)
        assert unknown == wrong == inactive
        assert repr(unknown) == repr(wrong) == repr(inactive)
        assert unknown.message == "Invalid email or password."

    @pytest.mark.parametrize("email,password", [("", PASSWORD), ("merchant@example.com", ""), ("", "")])
    def test_missing_input(self, authenticator, email, password):
        result = authenticator.authenticate(email, password)
        assert isinstance(result, AuthFailure)
        assert result.reason is FailureReason.MISSING_INPUT

    def test_no_last_login_on_failure(self, authenticator, store, seeded):
        authenticator.authenticate("merchant@example.com", "nope")
        assert store.get_by_id(seeded.ids["merchant"]).last_login_at is None

    def test_malformed_stored_hash_is_failure(self, store):
        account_id = store.create_account(
            Account(username="broken", email="broken@example.com", password_hash="pbkdf2_sha256$x$salt$digest")
        )
        result = CredentialAuthenticator(store, HashVerifier()).authenticate("broken@example.com", "anything")
        assert isinstance(result, AuthFailure)
        assert store.get_by_id(account_id).last_login_at is None


def test_last_login_write_failure_does_not_block_login():
    account = Account(
        id=9,
        username="shop",
        email="shop@example.com",
        password_hash=encode_legacy_hash("pw", "salt", 10),
    )
    store = MagicMock()
    store.get_active_by_email.return_value = account
    store.update_last_login.side_effect = OperationalError("UPDATE accounts", {}, Exception("database is locked"))

    result = CredentialAuthenticator(store, HashVerifier()).authenticate("shop@example.com", "pw")

    assert isinstance(result, Identity)
    assert result.account_id == 9
    store.update_last_login.assert_called_once_with(9)


def test_secret_not_logged(authenticator, caplog):
    with caplog.at_level(logging.DEBUG, logger="vendportal"):
        authenticator.authenticate("merchant@example.com", "wrong-but-distinctive")
        authenticator.authenticate("ghost@example.com", "wrong-but-distinctive")
    assert caplog.records
    assert all("wrong-but-distinctive" not in r.getMessage() for r in caplog.records)


def test_account_lookup_failure_is_generic_failure():
    store = MagicMock()
    store.get_active_by_email.side_effect = OperationalError(
        "SELECT accounts", {}, Exception("no such table: accounts")
    )

    result = CredentialAuthenticator(store, HashVerifier()).authenticate("shop@example.com", "pw")

    assert isinstance(result, AuthFailure)
    assert result.reason is FailureReason.STORE_ERROR
    assert result == AuthFailure(reason=FailureReason.NOT_FOUND)
    store.update_last_login.assert_not_called()


def test_merchant_lookup_failure_is_generic_failure():
    store = MagicMock()
    store.get_active_by_email.return_value = Account(
        id=9,
        username="shop",
        email="shop@example.com",
        password_hash=encode_legacy_hash("pw", "salt", 10),
    )
    store.get_merchant_id.side_effect = OperationalError("SELECT merchants", {}, Exception("disk I/O error"))

    result = AuthService(make_settings(), store).login("shop@example.com", "pw")

    assert isinstance(result, AuthFailure)
    assert result.reason is FailureReason.STORE_ERROR
    assert result.code == "invalid_credentials"
