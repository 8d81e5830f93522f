"""
Rate limiting for the admin upload endpoints.
Uses slowapi keyed on the client IP.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def get_client_identifier(request: Request) -> str:
    """
    Client IP for rate limiting; the first X-Forwarded-For hop when behind a proxy.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=["300/hour"],
    storage_uri="memory://"
)


RATE_LIMITS = {
    "upload": "20/hour",
}
