"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts and merchant links.

Pattern: Repository + Data Mapper.
AccountStore is the repository; _row_to_account / _row_to_merchant are the
mappers. Components and routes never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  get_active_by_email() filters on email AND is_active in one predicate, so
  an inactive account is indistinguishable from a missing one to every
  caller.

Concurrency:
  update_last_login() is the only write the auth flow performs. Concurrent
  logins for the same account race on it harmlessly (last writer wins); the
  column is advisory and never read by authorization.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Engine

from auth.models import Account, MerchantLink

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(150), nullable=False, unique=True),
    Column("email", String(254), nullable=False, unique=True),
    Column("first_name", String(150), nullable=False, server_default=""),
    Column("last_name", String(150), nullable=False, server_default=""),
    Column("password_hash", Text, nullable=False),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("is_superuser", Boolean, nullable=False, server_default="0"),
    Column("is_staff", Boolean, nullable=False, server_default="0"),
    Column("last_login_at", String(32)),  # ISO 8601 timestamp of last successful auth
)

_merchants = Table(
    "merchants",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", Integer, ForeignKey("accounts.id"), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so login reads do not block on last_login writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account and MerchantLink entities.

    Usage:
        store = AccountStore("sqlite:///vendportal_auth.db")
        account = store.get_active_by_email("ops@example.com")
        merchant_id = store.get_merchant_id(account.id)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------

    def get_active_by_email(self, email: str) -> Account | None:
        """Return the active account with this exact email, or None.

        Inactive and nonexistent accounts both return None.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _accounts.select().where((_accounts.c.email == email) & (_accounts.c.is_active.is_(True)))
            ).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key regardless of activation state."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def create_account(self, account: Account) -> int:
        """Insert an account and return its id.

        Account management is owned by the admin screens; this exists for
        fixtures, imports and tests. Raises sqlalchemy.exc.IntegrityError on a
        duplicate username or email.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    username=account.username,
                    email=account.email,
                    first_name=account.first_name,
                    last_name=account.last_name,
                    password_hash=account.password_hash,
                    is_active=account.is_active,
                    is_superuser=account.is_superuser,
                    is_staff=account.is_staff,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_last_login(self, account_id: int) -> None:
        """Stamp the current UTC timestamp as last_login_at for the account."""
        with self.engine.connect() as conn:
            conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(last_login_at=_now_iso()))
            conn.commit()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        with self.engine.connect() as conn:
            conn.execute(select(func.count()).select_from(_accounts)).scalar()
        return True

    # ------------------------------------------------------------------
    # Merchant links
    # ------------------------------------------------------------------

    def link_merchant(self, link: MerchantLink) -> int:
        """Attach a merchant to an account and return the merchant id.

        Raises IntegrityError if the account already has a merchant.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_merchants.insert().values(account_id=link.account_id, name=link.name))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_merchant(self, account_id: int) -> MerchantLink | None:
        with self.engine.connect() as conn:
            row = conn.execute(_merchants.select().where(_merchants.c.account_id == account_id)).fetchone()
        return _row_to_merchant(row) if row is not None else None

    def get_merchant_id(self, account_id: int) -> int | None:
        """Return the linked merchant id, or None when the account has no merchant."""
        link = self.get_merchant(account_id)
        return link.merchant_id if link is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        email=row.email,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        password_hash=row.password_hash,
        is_active=bool(row.is_active),
        is_superuser=bool(row.is_superuser),
        is_staff=bool(row.is_staff),
        last_login_at=row.last_login_at,
    )


def _row_to_merchant(row) -> MerchantLink:
    return MerchantLink(merchant_id=row.id, account_id=row.account_id, name=row.name)
