"""
Admin credential checks and the session cookie.
Credentials come from ADMIN_USERNAME plus ADMIN_PASSWORD, or a bcrypt
ADMIN_PASSWORD_HASH when one is configured.
"""
import hmac
import logging

import bcrypt
from pydantic import ValidationError
from starlette.responses import Response

from photoflow.config import settings
from photoflow.errors import ConfigurationError
from photoflow.schemas import LoginForm, LoginState, field_errors
from photoflow.utils.jwt_auth import create_session_token, session_max_age

logger = logging.getLogger(__name__)

CONFIG_ERROR_MESSAGE = "Server configuration error. Please contact support."


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.
    Used for generating ADMIN_PASSWORD_HASH.
    """
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Verify a password against a bcrypt hash. A malformed hash never matches.
    """
    try:
        return bcrypt.checkpw(
            password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
        return False


def verify_admin_credentials(username: str, password: str) -> bool:
    """
    Compare submitted credentials with the configured admin account.

    Raises:
        ConfigurationError: If the admin account is not configured
    """
    if not settings.ADMIN_USERNAME or not (settings.ADMIN_PASSWORD or settings.ADMIN_PASSWORD_HASH):
        raise ConfigurationError("Admin credentials are not configured")

    username_ok = hmac.compare_digest(username.encode('utf-8'), settings.ADMIN_USERNAME.encode('utf-8'))
    if settings.ADMIN_PASSWORD_HASH:
        password_ok = verify_password(password, settings.ADMIN_PASSWORD_HASH)
    else:
        password_ok = hmac.compare_digest(password.encode('utf-8'), settings.ADMIN_PASSWORD.encode('utf-8'))
    return username_ok and password_ok


def login(username: str, password: str) -> LoginState:
    """
    Check a login form submission.

    Returns a LoginState carrying a session token on success; otherwise field
    errors, a credentials error, or a generic configuration message.
    """
    try:
        form = LoginForm(username=username or "", password=password or "")
    except ValidationError as e:
        return LoginState(errors=field_errors(e), message="Invalid input.")

    try:
        if not verify_admin_credentials(form.username, form.password):
            logger.info("Admin login failed: bad credentials")
            return LoginState(
                errors={"credentials": ["Invalid username or password."]},
                message="Login failed.",
            )
        token = create_session_token()
    except ConfigurationError as e:
        logger.error(f"Admin login unavailable: {str(e)}")
        return LoginState(message=CONFIG_ERROR_MESSAGE)

    logger.info("Admin logged in")
    return LoginState(token=token)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=int(session_max_age().total_seconds()),
        path="/",
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
    )
