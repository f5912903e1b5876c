"""
auth/sessions.py -- Server-side session identity: token <-> account id.

Lifecycle per session:
  Anonymous --(verify ok + create_session)--> Authenticated
  Authenticated --(destroy_session or expiry)--> Anonymous

The client holds the raw token; the store holds HMAC(token) -> account_id
plus an absolute expiry. resolve() re-reads both the session row and the
account row on every call. There is no in-process cache, so a deleted
account or revoked session takes effect on the very next request.

resolve() fails closed: a missing, unknown, expired or orphaned token is
None, never an exception. StorageUnavailable still propagates -- an
unreachable database is not "logged out".

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
import time

from auth.models import Account, Session
from auth.store import AuthStore
from auth.tokens import generate_session_token, hash_session_token

logger = logging.getLogger("sessionauth.auth")


class SessionManager:
    """Mints, resolves and destroys session tokens against an AuthStore."""

    def __init__(self, store: AuthStore, ttl_seconds: int, secret_key: str) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._secret_key = secret_key

    def _digest(self, token: str) -> str:
        return hash_session_token(token, self._secret_key)

    def create_session(self, account_id: int) -> str:
        """Bind a fresh random token to account_id and return the raw token.

        The raw token is returned exactly once; only its digest is stored.
        """
        token = generate_session_token()
        now = time.time()
        self.store.insert_session(
            Session(
                token_hash=self._digest(token),
                account_id=account_id,
                created_at=now,
                expires_at=now + self.ttl_seconds,
            )
        )
        logger.info("Session created for account_id=%d", account_id)
        return token

    def resolve(self, token: str | None) -> Account | None:
        """Return the Account bound to token, or None if unauthenticated."""
        if not token:
            return None
        token_hash = self._digest(token)
        session = self.store.get_session(token_hash)
        if session is None:
            return None
        if session.expires_at <= time.time():
            self.store.delete_session(token_hash)
            logger.info("Session expired for account_id=%d", session.account_id)
            return None
        account = self.store.find_by_id(session.account_id)
        if account is None:
            # Stale session for an account that no longer exists.
            self.store.delete_session(token_hash)
            return None
        return account

    def destroy_session(self, token: str | None) -> None:
        """Invalidate token. Idempotent -- unknown or already-destroyed tokens are fine."""
        if not token:
            return
        if self.store.delete_session(self._digest(token)):
            logger.info("Session destroyed")

    def purge_expired(self) -> int:
        """Delete every expired session row. Returns the number removed."""
        removed = self.store.delete_expired_sessions(time.time())
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed
