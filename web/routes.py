"""
web/routes.py -- Form-post routes for browser sign-up, log-in and log-out.

These routes accept application/x-www-form-urlencoded bodies (the shape a
plain HTML form submits) and answer with redirects. Rendering the forms
themselves is outside this service; GET / reports the current identity as
JSON so a front end can decide what to show.

They share app.state with the API routes (same verifier, same sessions).

Routes:
  GET  /          -- current identity ({"user": null} when anonymous)
  POST /sign-up   -- create account, 303 -> /log-in
  POST /log-in    -- verify + create session, 303 -> next or /
  POST /log-out   -- destroy session, 303 -> /

Log-out is POST only: a state change over GET could be triggered by any
cross-site <img> or link prefetch. POST /log-in shares the login rate limit
with POST /api/v1/auth/login [H2].
"""

import logging
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse

from auth.credentials import CredentialVerifier
from auth.dependencies import get_session_token, try_get_current_account
from auth.sessions import SessionManager
from auth.tokens import clear_session_cookie, set_session_cookie
from core.config import get_settings
from core.limiter import LOGIN_LIMIT_SCOPE, limiter, login_rate_limit

logger = logging.getLogger("sessionauth.web")

router = APIRouter()

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Whitelist of ?error= codes the redirects may carry [M3].
# Codes only ever come from this mapping, never from user input.
ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid username or password.",
    "duplicate_username": "That username is already taken.",
    "invalid_username": "Username must be 1-255 characters.",
    "invalid_password": "Password must be 1-72 bytes.",
    "registration_disabled": "Sign-up is disabled.",
}


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths. [C2]

    Prevents open redirect attacks where an attacker crafts a URL like:
      /log-in?next=https://attacker.com  or  /log-in?next=//attacker.com
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//") and "\\" not in next_url:
        return next_url
    if next_url:
        logger.warning("Ignoring unsafe next= redirect target")
    return "/"


def _error_redirect(path: str, code: str) -> RedirectResponse:
    """Send the browser back to a form with a whitelisted ?error= code [M3]."""
    if code not in ERROR_MESSAGES:
        raise ValueError(f"Unknown error code: {code!r}")
    return RedirectResponse(f"{path}?error={code}", status_code=303)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/")
def index(request: Request) -> JSONResponse:
    """Report who is logged in. Never redirects; anonymous is a valid answer."""
    account = try_get_current_account(request)
    if account is None:
        return JSONResponse({"user": None})
    return JSONResponse({"user": {"id": account.id, "username": account.username}})


@router.post("/sign-up")
def sign_up(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    """Handle the sign-up form. Redirects to /log-in on success."""
    if not get_settings().self_registration_enabled:
        return _error_redirect("/sign-up", "registration_disabled")

    verifier: CredentialVerifier = request.app.state.verifier
    result = verifier.register(username, password)
    if not result.ok:
        return _error_redirect("/sign-up", result.failure.value)
    return RedirectResponse("/log-in", status_code=303)


@router.post("/log-in")
@limiter.shared_limit(login_rate_limit, scope=LOGIN_LIMIT_SCOPE)  # [H2] same per-IP budget as the API login
def log_in(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    """Handle the log-in form. Unknown user and wrong password redirect identically."""
    settings = get_settings()
    verifier: CredentialVerifier = request.app.state.verifier
    sessions: SessionManager = request.app.state.sessions

    result = verifier.verify(username, password)  # [C1] timing equalization
    if not result.ok:
        return _error_redirect("/log-in", "bad_credentials")

    sessions.destroy_session(get_session_token(request))
    token = sessions.create_session(result.account.id)
    next_url = _safe_next(request.query_params.get("next"))  # [C2]
    resp = RedirectResponse(next_url, status_code=303)
    set_session_cookie(
        resp,
        settings.session_cookie_name,
        token,
        max_age=sessions.ttl_seconds,
        secure=settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/log-out")
def log_out(request: Request) -> RedirectResponse:
    """Destroy the session and clear the cookie. Idempotent."""
    sessions: SessionManager = request.app.state.sessions
    sessions.destroy_session(get_session_token(request))
    resp = RedirectResponse("/", status_code=303)
    clear_session_cookie(resp, get_settings().session_cookie_name)
    return resp
