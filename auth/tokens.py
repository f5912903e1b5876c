"""
auth/tokens.py -- Password hashing, session token, and cookie utilities.

Security design decisions:
  Passwords: bcrypt with a per-hash random salt and a configurable cost factor.
       bcrypt.checkpw compares digests in constant time. CredentialVerifier
       keeps a dummy hash at the same cost factor so response time does not
       reveal whether a username exists [C1].

  Session tokens: secrets.token_urlsafe(32) gives 256 bits of entropy --
       brute-force is computationally infeasible. We store
       HMAC-SHA256(SECRET_KEY, raw_token) so lookup is O(1) and a copy of the
       sessions table cannot be replayed as live cookies. bcrypt's intentional
       slowness is unnecessary for high-entropy tokens.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

import bcrypt

# bcrypt only reads the first 72 bytes of its input. Longer passwords are
# rejected at registration and never verify, rather than silently truncated.
MAX_PASSWORD_BYTES = 72

DEFAULT_BCRYPT_ROUNDS = 12

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    if password_too_long(plain):
        raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Malformed hashes and over-long inputs return False instead of raising.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    """Generate a new opaque session token (43 URL-safe chars, 256 bits)."""
    return secrets.token_urlsafe(32)


def hash_session_token(raw_token: str, secret_key: str) -> str:
    """Return HMAC-SHA256(secret_key, raw_token) as a hex string.

    Deterministic, so the store can look sessions up by digest.
    """
    return hmac.new(
        secret_key.encode(),
        raw_token.encode(),
        hashlib.sha256,
    ).hexdigest()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, name: str, token: str, max_age: int, secure: bool = False) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation for most cases.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the server-side session expiry so both end together.
    """
    response.set_cookie(
        name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=max_age,
    )


def clear_session_cookie(response, name: str) -> None:
    response.delete_cookie(name, httponly=True, samesite="lax")
