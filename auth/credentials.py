"""
auth/credentials.py -- Account registration and password verification.

Both operations return an AuthResult. Rejections (unknown user, wrong
password, duplicate or invalid username, invalid password) are values the
caller branches on; only StorageUnavailable is raised.

Timing equalization [C1]:
  verify() always runs exactly one bcrypt comparison. An unknown or empty
  username is checked against a dummy hash generated at the same cost factor
  as real hashes, so "no such user" and "wrong password" take the same time.
  Do NOT inline find_by_username() + verify_password() in route handlers --
  that re-introduces the timing attack.

Passwords are never logged. Failure logs carry the reason code only.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
import secrets

from auth.models import AuthFailure, AuthResult
from auth.store import AuthStore
from auth.tokens import DEFAULT_BCRYPT_ROUNDS, hash_password, password_too_long, verify_password

logger = logging.getLogger("sessionauth.auth")

USERNAME_MAX_LEN = 255


class CredentialVerifier:
    """Checks username/password pairs against the account store and creates accounts.

    Usage:
        verifier = CredentialVerifier(store, bcrypt_rounds=12)
        result = verifier.register("alice", "secret123")
        result = verifier.verify("alice", "secret123")
        if result.ok:
            account = result.account
    """

    def __init__(self, store: AuthStore, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self.store = store
        self.bcrypt_rounds = bcrypt_rounds
        # Random plaintext: nothing can ever match this hash.
        self._dummy_hash = hash_password(secrets.token_hex(16), rounds=bcrypt_rounds)

    def verify(self, username: str, password: str) -> AuthResult:
        """Authenticate a username/password pair.

        Returns AuthResult.success(account) on a match. Unknown and empty
        usernames yield unknown_user, a mismatch yields wrong_password. Both
        paths perform one bcrypt comparison. Read-only.
        """
        account = self.store.find_by_username(username) if username else None
        if account is None:
            # Equalize timing -- do NOT return before running bcrypt [C1]
            verify_password(password, self._dummy_hash)
            logger.info("Login rejected: unknown_user")
            return AuthResult.rejected(AuthFailure.unknown_user)
        if not verify_password(password, account.password_hash):
            logger.info("Login rejected: wrong_password (account_id=%d)", account.id)
            return AuthResult.rejected(AuthFailure.wrong_password)
        return AuthResult.success(account)

    def register(self, username: str, password: str) -> AuthResult:
        """Create an account with a bcrypt-hashed password.

        The username is stripped of surrounding whitespace. Duplicate names
        are detected by the store's UNIQUE constraint, never by a prior
        lookup, so concurrent registrations cannot both win.
        """
        username = username.strip()
        if not username or len(username) > USERNAME_MAX_LEN:
            return AuthResult.rejected(AuthFailure.invalid_username)
        if not password or password_too_long(password):
            return AuthResult.rejected(AuthFailure.invalid_password)

        password_hash = hash_password(password, rounds=self.bcrypt_rounds)
        account = self.store.insert_account(username, password_hash)
        if account is None:
            logger.info("Registration rejected: duplicate_username")
            return AuthResult.rejected(AuthFailure.duplicate_username)
        logger.info("Registered account_id=%d", account.id)
        return AuthResult.success(account)
