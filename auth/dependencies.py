"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session token is read from, in priority order:
  1. The session cookie (SESSION_COOKIE_NAME) -- set by login.
  2. Authorization: Bearer <token> header -- API clients.

try_get_current_account() is the soft variant (returns None on failure).
get_current_account() wraps it and raises HTTP 401 if unauthenticated.

Both read the SessionManager from request.app.state.sessions, which the
application lifespan builds once and tests replace with isolated stores.

Layer rule: no imports from api/ or web/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Account
from auth.sessions import SessionManager
from core.config import get_settings


def get_session_token(request: Request) -> str | None:
    """Return the presented session token, or None if the request carries none."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def try_get_current_account(request: Request) -> Account | None:
    """Resolve the request's session token to an Account.

    Returns None for anonymous, expired or stale sessions. StorageUnavailable
    propagates so the API can answer 503 instead of a misleading 401.
    """
    sessions: SessionManager = request.app.state.sessions
    return sessions.resolve(get_session_token(request))


def get_current_account(request: Request) -> Account:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(account: Account = Depends(get_current_account)): ...
    """
    account = try_get_current_account(request)
    if account is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return account
