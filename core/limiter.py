"""
core/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in the route modules
that apply per-route limits with @limiter.limit() / @limiter.shared_limit().
It lives in core/ so both api/ and web/ can use it without importing each
other.

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

Decorator order: @router.post(...) goes on the OUTSIDE and the limiter
decorator directly above the def. The router registers whatever function it
is handed, so a limiter placed above the router wraps a function nobody calls.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

# The JSON login and the form login draw from one per-IP budget, so hitting
# the limit on one does not leave the other open for password guessing.
LOGIN_LIMIT_SCOPE = "login"


def login_rate_limit() -> str:
    """Current LOGIN_RATE_LIMIT, read per request so settings overrides apply."""
    return get_settings().login_rate_limit
