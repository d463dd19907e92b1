"""
Signed session tokens for the admin cookie.
The cookie holds an HS256 JWT instead of a plain flag, so it cannot be forged
without SESSION_SECRET_KEY.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import JWTError, jwt
from fastapi import Request

from photoflow.config import settings
from photoflow.errors import ConfigurationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TYPE = "admin_session"
SUBJECT = "photoflow_admin"


def session_max_age() -> timedelta:
    return timedelta(days=settings.SESSION_MAX_AGE_DAYS)


def _secret_key() -> str:
    if not settings.SESSION_SECRET_KEY:
        raise ConfigurationError("SESSION_SECRET_KEY is not configured")
    return settings.SESSION_SECRET_KEY


def create_session_token(expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed session token for the admin.

    Raises:
        ConfigurationError: If SESSION_SECRET_KEY is not set
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or session_max_age())
    claims = {
        "sub": SUBJECT,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, _secret_key(), algorithm=ALGORITHM)


def verify_session_token(token: Optional[str]) -> Optional[dict]:
    """
    Decode and check a session token.

    Returns:
        The token claims, or None when the token is missing, forged, expired
        or not a session token. A missing secret also yields None.
    """
    if not token or not settings.SESSION_SECRET_KEY:
        return None
    try:
        payload = jwt.decode(token, settings.SESSION_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected session token: {str(e)}")
        return None

    if payload.get("type") != TOKEN_TYPE or payload.get("sub") != SUBJECT:
        return None
    return payload


def is_authenticated(request: Request) -> bool:
    """True iff the request carries a valid admin session cookie."""
    return verify_session_token(request.cookies.get(settings.SESSION_COOKIE_NAME)) is not None
