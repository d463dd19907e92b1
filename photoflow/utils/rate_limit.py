"""
Rate limiting utilities for the admin endpoints.
Uses slowapi to slow down brute force attempts on the login form.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def get_client_identifier(request: Request) -> str:
    """
    Get client identifier for rate limiting.
    Uses the first forwarded IP if behind a proxy, otherwise the remote address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri="memory://"
)


RATE_LIMITS = {
    "login": "5/minute",  # per client IP
}
