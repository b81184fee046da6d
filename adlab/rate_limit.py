# ─────────────────────────────────────────────────────────────────────────────
# Client identification + HTTP flood guard (shared slowapi instance)
# ─────────────────────────────────────────────────────────────────────────────
# Extracted to its own module to avoid circular imports between main.py
# (which imports route modules) and route modules (which need the limiter).
#
# The daily per-route quota is NOT enforced here; that is the store-backed
# SlidingWindowLimiter in services/quota.py. This guard only caps bursts.
# ─────────────────────────────────────────────────────────────────────────────


from slowapi import Limiter
from starlette.requests import Request

from adlab.config import get_settings

LOOPBACK_PLACEHOLDER = "127.0.0.1"


def client_address(request: Request) -> str:
    """First X-Forwarded-For hop, or a loopback placeholder.

    Trivially spoofable by the caller; good enough to meter a free tier,
    not to identify anyone.
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    return first or LOOPBACK_PLACEHOLDER


def http_rate_limit() -> str:
    """Resolved per request so HTTP_RATE_LIMIT can change between app builds."""
    return get_settings().http_rate_limit


limiter = Limiter(key_func=client_address)
