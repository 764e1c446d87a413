"""Admin access: one shared secret, carried either as the login cookie or an X-Admin-Token header."""

import hashlib
import hmac
from typing import Optional

from fastapi import Depends, Header, Request

from errors import AdminAuthError, StoreError
from settings import Settings, get_settings

ADMIN_COOKIE = "admin_token"
COOKIE_MAX_AGE = 60 * 60 * 24 * 7


def session_token(secret: str) -> str:
    # The cookie never holds the secret itself
    return hmac.new(secret.encode(), b"admin-session", hashlib.sha256).hexdigest()


def _secret(settings: Settings) -> str:
    if not settings.ADMIN_SECRET_KEY:
        raise StoreError("Server misconfigured: ADMIN_SECRET_KEY not set.")
    return settings.ADMIN_SECRET_KEY


def login(password: Optional[str], settings: Settings) -> str:
    """Check the admin password and return the cookie value to set."""
    secret = _secret(settings)
    if not password or not hmac.compare_digest(password.encode(), secret.encode()):
        raise AdminAuthError("Invalid password.")
    return session_token(secret)


def require_admin(
    request: Request,
    x_admin_token: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    secret = _secret(settings)
    cookie = request.cookies.get(ADMIN_COOKIE)
    if cookie and hmac.compare_digest(cookie.encode(), session_token(secret).encode()):
        return
    if x_admin_token and hmac.compare_digest(x_admin_token.encode(), secret.encode()):
        return
    raise AdminAuthError("Unauthorized.")
