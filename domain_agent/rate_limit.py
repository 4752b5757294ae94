"""
Rate limiting for the Domain Agent API

Uses SlowAPI, backed by Redis when REDIS_URL is set (shared across workers)
and by process memory otherwise.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)


def get_client_ip(request: Request) -> str:
    """
    Rate limit key: the socket peer address.

    Client-supplied X-Forwarded-For is not trusted here; behind a proxy, run
    uvicorn with --proxy-headers and --forwarded-allow-ips so the peer address
    is already the real client.
    """
    return f"ip:{get_remote_address(request)}"


# ============================================================================
# RATE LIMIT DEFINITIONS
# ============================================================================

# Every /api route unless overridden
DEFAULT_LIMIT = settings.RATE_LIMIT_DEFAULT

# Login and registration (brute force protection)
AUTH_LIMIT = settings.AUTH_RATE_LIMIT


limiter = Limiter(
    key_func=get_client_ip,
    storage_uri=settings.REDIS_URL or "memory://",
    default_limits=[DEFAULT_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED,
    # Routes return plain dicts, so slowapi cannot inject X-RateLimit-* headers
    headers_enabled=False,
)

if not settings.RATE_LIMIT_ENABLED:
    logger.info("Rate limiting: DISABLED")
elif settings.REDIS_URL:
    logger.info("Rate limiting: Redis storage")
else:
    logger.info("Rate limiting: in-memory storage (single process only)")


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def log_rate_limit_hit(request: Request, limit: str):
    """Record who hit which limit; repeated hits from one key suggest abuse"""
    logger.warning(
        "Rate limit exceeded",
        extra={
            "extra_data": {
                "path": request.url.path,
                "limit": limit,
                "key": get_client_ip(request),
                "user_agent": request.headers.get("user-agent"),
            }
        }
    )


# ============================================================================
# RATE LIMIT DECORATORS
# ============================================================================

# Decorated endpoints must accept `request: Request`
auth_limit = limiter.limit(AUTH_LIMIT)
