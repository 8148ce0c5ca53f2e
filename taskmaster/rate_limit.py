from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address

from .config import settings


def get_storage_uri() -> str:
    return settings.REDIS_URL or settings.RATE_LIMIT_STORAGE_URI


def client_key(request: Request) -> str:
    """Bucket per client address, not per device id (device ids are client-chosen).

    Behind a reverse proxy the first X-Forwarded-For hop is the client.
    """
    if settings.RATE_LIMIT_TRUST_PROXY:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return get_remote_address(request)


def auth_limit() -> str:
    """Limit for device registration, read per request so it can be tuned at runtime."""
    return settings.RATE_LIMIT_AUTH


limiter = Limiter(
    key_func=client_key,
    storage_uri=get_storage_uri(),
    headers_enabled=True,
)

__all__ = ["limiter", "auth_limit", "client_key", "_rate_limit_exceeded_handler"]
