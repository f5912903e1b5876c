"""Unit tests for auth/store.py -- AuthStore repository methods.

Covers:
- insert_account / find_by_username / find_by_id round out an Account
- insert_account returns None on a UNIQUE violation instead of raising
- session insert / get / delete / expired purge
- database faults surface as StorageUnavailable, chained to the driver error
"""

import time

import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import StorageUnavailable
from auth.models import Session
from auth.store import AuthStore


class TestAccounts:
    def test_insert_and_find(self, store: AuthStore) -> None:
        created = store.insert_account("alice", "$2b$04$hash")
        assert created.id is not None
        assert store.find_by_username("alice") == created
        assert store.find_by_id(created.id) == created

    def test_find_missing(self, store: AuthStore) -> None:
        assert store.find_by_username("ghost") is None
        assert store.find_by_id(999) is None

    def test_duplicate_insert_returns_none(self, store: AuthStore) -> None:
        assert store.insert_account("bob", "h1") is not None
        assert store.insert_account("bob", "h2") is None
        assert store.count_accounts() == 1
        assert store.find_by_username("bob").password_hash == "h1"

    def test_store_usable_after_duplicate(self, store: AuthStore) -> None:
        store.insert_account("bob", "h1")
        store.insert_account("bob", "h2")
        assert store.insert_account("carol", "h3") is not None
        assert store.count_accounts() == 2


class TestSessions:
    def test_insert_get_delete(self, store: AuthStore) -> None:
        now = time.time()
        session = Session(token_hash="a" * 64, account_id=1, created_at=now, expires_at=now + 60)
        store.insert_session(session)
        assert store.get_session("a" * 64) == session
        assert store.delete_session("a" * 64) is True
        assert store.delete_session("a" * 64) is False
        assert store.get_session("a" * 64) is None

    def test_delete_expired_sessions(self, store: AuthStore) -> None:
        now = time.time()
        store.insert_session(Session(token_hash="old", account_id=1, created_at=now - 10, expires_at=now - 1))
        store.insert_session(Session(token_hash="new", account_id=1, created_at=now, expires_at=now + 60))
        assert store.delete_expired_sessions(now) == 1
        assert store.get_session("old") is None
        assert store.get_session("new") is not None


class TestStorageFailures:
    def test_unopenable_database_raises(self, tmp_path) -> None:
        missing_dir = tmp_path / "does-not-exist" / "auth.db"
        with pytest.raises(StorageUnavailable) as exc_info:
            AuthStore(f"sqlite:///{missing_dir}")
        assert isinstance(exc_info.value.__cause__, SQLAlchemyError)

    def test_query_failure_raises_storage_unavailable(self, store: AuthStore) -> None:
        with store.engine.connect() as conn:
            conn.execute(text("DROP TABLE accounts"))
            conn.commit()
        with pytest.raises(StorageUnavailable):
            store.find_by_username("alice")
        with pytest.raises(StorageUnavailable):
            store.insert_account("alice", "h")

    def test_ping(self, store: AuthStore) -> None:
        assert store.ping() is True
