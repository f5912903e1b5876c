"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts and sessions.

Pattern: Repository + Data Mapper.
AuthStore is the repository; _row_to_account / _row_to_session are the mappers.
Credential and session services never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(username) is enforced by the database, not by a read-then-write
  check in code. insert_account() relies on the IntegrityError from the
  constraint so that two concurrent registrations for the same name cannot
  both succeed -- the second INSERT fails atomically.

  Session rows store HMAC digests of tokens, never raw tokens.

Failure mapping:
  IntegrityError on insert_account -> None (duplicate username, expected).
  Any other SQLAlchemyError        -> StorageUnavailable (hard failure).

One AuthStore is built at process start (api/main.py lifespan) and injected
into CredentialVerifier and SessionManager. There is no module-level engine.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, create_engine, event, func, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import StorageUnavailable
from auth.models import Account, Session

logger = logging.getLogger("sessionauth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", String(60), nullable=False),  # bcrypt output is 60 chars
    Column("created_at", String(32), nullable=False),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("token_hash", String(64), primary_key=True),  # HMAC-SHA256 hex
    # No ForeignKey: a dangling account_id resolves to "unauthenticated".
    Column("account_id", Integer, nullable=False, index=True),
    Column("created_at", Float, nullable=False),
    Column("expires_at", Float, nullable=False, index=True),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthStore:
    """Repository for Account and Session entities.

    Usage:
        store = AuthStore("sqlite:///auth.db")
        account = store.insert_account("alice", hash_password("secret123"))
        same = store.find_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            self.engine.dispose()
            raise StorageUnavailable("Could not initialise the auth database.") from exc

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Yield a pooled connection, translating driver faults to StorageUnavailable.

        IntegrityError passes through untouched -- it is an expected outcome
        that individual methods interpret.
        """
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Auth database operation failed")
            raise StorageUnavailable("The auth database is unavailable.") from exc

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------

    def find_by_username(self, username: str) -> Account | None:
        """Look up an account by exact username (case-sensitive). Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.username == username)).fetchone()
        return _row_to_account(row) if row is not None else None

    def find_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def insert_account(self, username: str, password_hash: str) -> Account | None:
        """Insert a new account and return it, or None if the username is taken.

        The UNIQUE constraint is the single authority on duplicates. There is
        no existence pre-check; a losing concurrent writer gets IntegrityError
        from the database and this method turns it into None.
        """
        created_at = _now_iso()
        with self._connect() as conn:
            try:
                result = conn.execute(
                    _accounts.insert().values(
                        username=username,
                        password_hash=password_hash,
                        created_at=created_at,
                    )
                )
                conn.commit()
            except IntegrityError:
                conn.rollback()
                return None
        return Account(
            id=result.inserted_primary_key[0],
            username=username,
            password_hash=password_hash,
            created_at=created_at,
        )

    def count_accounts(self) -> int:
        """Return the number of stored accounts."""
        with self._connect() as conn:
            result = conn.execute(select(func.count()).select_from(_accounts)).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Session queries
    # ------------------------------------------------------------------

    def insert_session(self, session: Session) -> None:
        """Persist a new session row."""
        with self._connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    token_hash=session.token_hash,
                    account_id=session.account_id,
                    created_at=session.created_at,
                    expires_at=session.expires_at,
                )
            )
            conn.commit()

    def get_session(self, token_hash: str) -> Session | None:
        """Look up a session by token digest. O(1) via the primary key."""
        with self._connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.token_hash == token_hash)).fetchone()
        return _row_to_session(row) if row is not None else None

    def delete_session(self, token_hash: str) -> bool:
        """Delete a session. Returns True if a row was removed, False if it did not exist."""
        with self._connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.token_hash == token_hash))
            conn.commit()
        return result.rowcount > 0

    def delete_expired_sessions(self, now: float) -> int:
        """Delete every session with expires_at <= now. Returns number of rows removed."""
        with self._connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= now))
            conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Run a trivial query to verify the database is reachable."""
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except StorageUnavailable:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )


def _row_to_session(row) -> Session:
    return Session(
        token_hash=row.token_hash,
        account_id=row.account_id,
        created_at=row.created_at,
        expires_at=row.expires_at,
    )
