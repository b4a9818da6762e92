"""
Rate limiting with slowapi, keyed on the client IP.

Storage comes from RATE_LIMIT_STORAGE_URI: ``memory://`` by default, or any
``limits`` backend (redis://...) when several workers must share counters.

Rate Limits:
- Cron trigger: 10 requests per minute
- Batch operations: 20 requests per minute
- Everything else: 100 requests per minute
"""

import ipaddress
import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

# Format: "count/period" where period can be: second, minute, hour, day
RATE_LIMITS = {
    "cron": "10/minute",
    "batch": "20/minute",
    "default": "100/minute",
}

# Checked in order; the first public address wins
_PROXY_HEADERS = ("x-forwarded-for", "x-real-ip")


def _public_ip(value: str) -> str | None:
    try:
        address = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    # A private hop can be forged to share the proxy's bucket
    if address.is_private or address.is_loopback or address.is_link_local:
        return None
    return str(address)


def client_ip(request: Request) -> str:
    """Rate limit key: the originating client behind any proxy."""
    for header in _PROXY_HEADERS:
        raw = request.headers.get(header)
        if raw:
            candidate = _public_ip(raw.split(",")[0])
            if candidate:
                return candidate
    return get_remote_address(request)


if settings.rate_limit_storage_uri.startswith("memory://") and settings.workers > 1:
    logger.warning(
        "Rate limiter counters are per worker (%d workers, in-memory storage)",
        settings.workers,
    )

limiter = Limiter(
    key_func=client_ip,
    storage_uri=settings.rate_limit_storage_uri,
    default_limits=[RATE_LIMITS["default"]],
)


def get_rate_limit(endpoint: str) -> str:
    """Limit string for ``endpoint``, the default limit when unknown."""
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])
