"""
api/routes/v1/auth.py -- Registration, login, logout and identity endpoints.

Routes:
  POST /api/v1/auth/register  -- create an account (public, if enabled)
  POST /api/v1/auth/login     -- password login; sets the session cookie
  POST /api/v1/auth/logout    -- destroys the session; always 200
  GET  /api/v1/auth/me        -- current account (requires auth)

Security:
  [H2] POST /login is rate-limited per IP (LOGIN_RATE_LIMIT), sharing one
       budget with the POST /log-in form route.
  [C1] CredentialVerifier.verify() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on login responses.
  unknown_user and wrong_password both answer 401 bad_credentials.

Handlers are plain `def` -- bcrypt and the SQLAlchemy calls block, so
FastAPI runs them in its thread pool.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import AccountResponse, LoginRequest, LoginResponse, MessageResponse, RegisterRequest
from auth.credentials import CredentialVerifier
from auth.dependencies import get_current_account, get_session_token
from auth.models import Account, AuthFailure
from auth.sessions import SessionManager
from auth.tokens import clear_session_cookie, set_session_cookie
from core.config import get_settings
from core.limiter import LOGIN_LIMIT_SCOPE, limiter, login_rate_limit

# Auth policy:
# - POST /api/v1/auth/register: public -- gated by SELF_REGISTRATION_ENABLED
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:   public -- ending a session needs no valid session
# - GET  /api/v1/auth/me:       requires auth (get_current_account)
router = APIRouter()

_REGISTER_ERRORS: dict[AuthFailure, tuple[int, str]] = {
    AuthFailure.duplicate_username: (409, "A user with that username already exists."),
    AuthFailure.invalid_username: (422, "Username must be 1-255 characters."),
    AuthFailure.invalid_password: (422, "Password must be 1-72 bytes."),
}


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AccountResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> AccountResponse:
    """Create a new account. The password is bcrypt-hashed before storage."""
    if not get_settings().self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )

    verifier: CredentialVerifier = request.app.state.verifier
    result = verifier.register(body.username, body.password)
    if not result.ok:
        status_code, message = _REGISTER_ERRORS[result.failure]
        raise HTTPException(
            status_code=status_code,
            detail={"code": result.failure.value, "message": message},
        )
    return AccountResponse.from_account(result.account)


@router.post("/auth/login", response_model=LoginResponse)
@limiter.shared_limit(login_rate_limit, scope=LOGIN_LIMIT_SCOPE)  # [H2] brute-force mitigation -- directly above def, under @router
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; start a session.

    Returns the same generic error for unknown username and wrong password
    ("bad_credentials") to avoid leaking username existence information.
    """
    settings = get_settings()
    verifier: CredentialVerifier = request.app.state.verifier
    sessions: SessionManager = request.app.state.sessions

    result = verifier.verify(body.username, body.password)
    if not result.ok:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    # A session presented with the login request is replaced, not reused.
    sessions.destroy_session(get_session_token(request))
    token = sessions.create_session(result.account.id)
    resp = JSONResponse(
        content=LoginResponse(
            session_token=token,
            expires_in=sessions.ttl_seconds,
            account=AccountResponse.from_account(result.account),
        ).model_dump(),
    )
    set_session_cookie(
        resp,
        settings.session_cookie_name,
        token,
        max_age=sessions.ttl_seconds,
        secure=settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Destroy the presented session (if any) and clear the cookie.

    Idempotent: logging out without a session, or twice, still returns 200.
    """
    sessions: SessionManager = request.app.state.sessions
    sessions.destroy_session(get_session_token(request))
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    clear_session_cookie(resp, get_settings().session_cookie_name)
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=AccountResponse)
def me(current_account: Account = Depends(get_current_account)) -> AccountResponse:
    """Return identity information for the currently authenticated account."""
    return AccountResponse.from_account(current_account)
