"""
API rate limiting using slowapi.

Provides a shared Limiter instance keyed by client IP, honouring
X-Forwarded-For when the API sits behind a proxy. Enable via
RATE_LIMIT_ENABLED=true.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from contesthub.config.settings import get_settings


def _get_rate_limit_key(request: Request) -> str:
    """Extract rate limit key: first X-Forwarded-For hop or remote IP."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return get_remote_address(request)


def default_limit() -> str:
    return get_settings().rate_limit_default


def create_limiter() -> Limiter:
    """Create a configured Limiter instance."""
    settings = get_settings()
    storage_uri = str(settings.redis_url) if settings.cache_backend == "redis" else "memory://"
    return Limiter(
        key_func=_get_rate_limit_key,
        default_limits=[settings.rate_limit_default],
        storage_uri=storage_uri,
        enabled=settings.rate_limit_enabled,
    )


limiter = create_limiter()
