"""
tests/conftest.py -- Shared test fixtures for vendportal tests.

This module provides:
  - make_settings(): Settings with a fixed test signing key
  - seed_accounts(): one account per role shape, legacy and native hashes
  - _patch_lifespan(): wires a test AuthService into app.state
  - api_client / web_client: module-scoped TestClients over the real app
  - api / web: function-scoped views of those clients with a clean cookie jar

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

SECRET_KEY must be in the environment before any api/ import so that nothing
that reads Settings at startup can fail. Tests still pass Settings explicitly
to every component.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: Set SECRET_KEY before any api/core import.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-vendportal-0123456789")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.hashers import encode_legacy_hash, hash_password
from auth.models import Account, Identity, MerchantLink, Role
from auth.service import AuthService
from auth.store import AccountStore
from core.config import Settings

TEST_SECRET = "test-secret-key-for-vendportal-0123456789"
PASSWORD = "correct horse battery staple"
# Low iteration count keeps the suite fast; the 260000-round fixture lives in
# test_hashers.py.
LEGACY_ITERATIONS = 1000

# Mount the web router once.
if not any(getattr(route, "path", None) == "/login" for route in app.routes):
    from web.routes import router as web_router

    app.include_router(web_router, tags=["Web UI"])

# Rate limiting is exercised by slowapi's own tests; disable it so login
# tests do not trip the 10/minute budget.
limiter.enabled = False


def make_settings(**overrides) -> Settings:
    values = {"secret_key": TEST_SECRET, "token_expire_seconds": 3600}
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


@dataclass
class Seeded:
    """Account ids and merchant ids created by seed_accounts()."""

    ids: dict[str, int] = field(default_factory=dict)
    merchants: dict[str, int] = field(default_factory=dict)


def _legacy(secret: str, salt: str) -> str:
    return encode_legacy_hash(secret, salt, LEGACY_ITERATIONS)


def seed_accounts(store: AccountStore) -> Seeded:
    """Create one account per interesting flag combination.

    super:    superuser + staff + merchant link  -> superadmin
    admin:    staff + merchant link (bcrypt)     -> admin
    merchant: merchant link (legacy hash)        -> merchant
    plain:    no flags                           -> user
    inactive: merchant link, is_active=False     -> never authenticates
    """
    seeded = Seeded()
    accounts = {
        "super": Account(
            username="root",
            email="super@example.com",
            first_name="Ada",
            last_name="Root",
            password_hash=_legacy(PASSWORD, "supersalt"),
            is_superuser=True,
            is_staff=True,
        ),
        "admin": Account(
            username="ops",
            email="admin@example.com",
            first_name="Grace",
            last_name="Ops",
            password_hash=hash_password(PASSWORD, rounds=4),
            is_staff=True,
        ),
        "merchant": Account(
            username="corner-shop",
            email="merchant@example.com",
            first_name="Musa",
            last_name="Bello",
            password_hash=_legacy(PASSWORD, "shopsalt"),
        ),
        "plain": Account(
            username="plain",
            email="user@example.com",
            password_hash=_legacy(PASSWORD, "plainsalt"),
        ),
        "inactive": Account(
            username="gone",
            email="inactive@example.com",
            password_hash=_legacy(PASSWORD, "gonesalt"),
            is_active=False,
        ),
    }
    for key, account in accounts.items():
        seeded.ids[key] = store.create_account(account)
    for key in ("super", "admin", "merchant", "inactive"):
        seeded.merchants[key] = store.link_merchant(MerchantLink(account_id=seeded.ids[key], name=f"{key} merchant"))
    return seeded


# ---------------------------------------------------------------------------
# App wiring
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test AuthService into app.state so routes see the
    isolated test database rather than the configured one.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth = service
        yield

    return test_lifespan


@dataclass
class Portal:
    """Everything a route test needs: the client, the wired service, seed ids."""

    client: TestClient
    service: AuthService
    seeded: Seeded

    def token_for(self, key: str, role: Role) -> str:
        """Mint a session for a seeded account without going through login."""
        merchant_id = self.seeded.merchants.get(key) if role is Role.MERCHANT else None
        identity = Identity(
            account_id=self.seeded.ids[key],
            email=f"{key}@example.com",
            display_name=key.title(),
        )
        return self.service.issuer.mint(identity, role, merchant_id)


def _portal(db_suffix: str, **client_kwargs) -> Generator[Portal, None, None]:
    # Unique name per fixture instance: several modules share each fixture.
    db_name = f"test_auth_{db_suffix}_{uuid.uuid4().hex[:8]}"
    store = AccountStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    seeded = seed_accounts(store)
    service = AuthService(make_settings(), store)
    app.router.lifespan_context = _patch_lifespan(service)
    with TestClient(app, raise_server_exceptions=True, **client_kwargs) as client:
        yield Portal(client=client, service=service, seeded=seeded)
    store.close()


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[Portal, None, None]:
    yield from _portal("api")


@pytest.fixture(scope="module")
def web_client() -> Generator[Portal, None, None]:
    """follow_redirects=False is essential: tests assert on Location headers."""
    yield from _portal("web", follow_redirects=False)


@pytest.fixture
def api(api_client: Portal) -> Generator[Portal, None, None]:
    api_client.client.cookies.clear()
    yield api_client
    api_client.client.cookies.clear()


@pytest.fixture
def web(web_client: Portal) -> Generator[Portal, None, None]:
    web_client.client.cookies.clear()
    yield web_client
    web_client.client.cookies.clear()


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def seeded(store: AccountStore) -> Seeded:
    return seed_accounts(store)
