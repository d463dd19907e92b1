"""
HTTP middleware: the admin route guard and request logging.
"""
import logging

from fastapi import Request, status
from fastapi.responses import RedirectResponse

from photoflow.utils.jwt_auth import is_authenticated

logger = logging.getLogger(__name__)

ADMIN_PREFIX = "/admin"
LOGIN_PATH = "/admin/login"
ADMIN_HOME_PATH = "/admin/photos"


def _is_under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def guard_redirect(path: str, authenticated: bool):
    """
    Decide where an admin request must go instead, or None to let it through.

    - protected admin path without a valid session -> login page
    - login page with a valid session -> admin landing page
    """
    if _is_under(path, LOGIN_PATH):
        return ADMIN_HOME_PATH if authenticated else None
    if _is_under(path, ADMIN_PREFIX) and not authenticated:
        return LOGIN_PATH
    return None


async def admin_route_guard(request: Request, call_next):
    """Runs on every request; the decision is never cached."""
    path = request.url.path
    if _is_under(path, ADMIN_PREFIX):
        target = guard_redirect(path, is_authenticated(request))
        if target is not None:
            logger.info(f"Route guard: redirecting {request.method} {path} to {target}")
            return RedirectResponse(url=target, status_code=status.HTTP_303_SEE_OTHER)
    return await call_next(request)


async def log_requests(request: Request, call_next):
    """Log every request with its response status."""
    method = request.method
    path = request.url.path
    logger.debug(f"Incoming {method} request to {path}")
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"Error processing {method} {path}: {str(e)}\n"
            f"  Error type: {type(e).__name__}",
            exc_info=True
        )
        raise
    logger.info(f"Response status: {response.status_code} for {method} {path}")
    return response
