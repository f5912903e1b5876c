"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services
do the work; these only own the domain shape.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class Account:
    """A stored identity: a unique username and a bcrypt password hash.

    password_hash is excluded from repr() so an Account can appear in a log
    line or traceback without leaking the hash. Callers must also never copy
    it into a response model -- api/models.py has no field for it.
    """

    id: int
    username: str
    password_hash: str = field(repr=False)
    created_at: str = ""


@dataclass
class Session:
    """Server-side binding of a session token to an account id.

    token_hash is HMAC-SHA256(SECRET_KEY, raw_token). The raw token lives only
    in the client's cookie. account_id is a weak reference -- the Account is
    re-read on every resolve, never cached here.

    created_at / expires_at are epoch seconds (float), compared numerically.
    """

    token_hash: str
    account_id: int
    created_at: float
    expires_at: float


class AuthFailure(str, Enum):
    """Expected, user-facing rejection reasons. Never raised -- returned."""

    unknown_user = "unknown_user"
    wrong_password = "wrong_password"
    duplicate_username = "duplicate_username"
    invalid_username = "invalid_username"
    invalid_password = "invalid_password"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of verify() or register().

    Exactly one of account / failure is set. Infrastructure faults are not
    represented here; they propagate as StorageUnavailable.
    """

    account: Account | None = None
    failure: AuthFailure | None = None

    @property
    def ok(self) -> bool:
        return self.account is not None

    @property
    def is_bad_credentials(self) -> bool:
        """True for unknown_user and wrong_password.

        The transport layer reports both as the same generic error so the
        response does not reveal which usernames exist.
        """
        return self.failure in (AuthFailure.unknown_user, AuthFailure.wrong_password)

    @classmethod
    def success(cls, account: Account) -> AuthResult:
        return cls(account=account)

    @classmethod
    def rejected(cls, failure: AuthFailure) -> AuthResult:
        return cls(failure=failure)
