# middleware/rate_limit.py
"""
Rate limiting configuration using slowapi.

Usage in route files:
    from middleware.rate_limit import limiter

    @router.get("/stock-price")
    @limiter.limit("30/minute")
    async def stock_price(request: Request, ...):
        ...
"""
import logging

from fastapi import Request
from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from config.settings import RATE_LIMIT_DEFAULT

logger = logging.getLogger(__name__)

# Upstream quote/search APIs are the scarce resource behind these limits.
MARKET_DATA_LIMIT = "30/minute"
SEARCH_LIMIT = "60/minute"


def _get_rate_limit_key(request: Request) -> str:
    """
    Bucket by user id (JWT sub) when a bearer token is present, else by IP.
    The token is not verified here; auth is enforced by get_current_user.
    """
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        token = auth.split(" ", 1)[1].strip()
        try:
            sub = jwt.get_unverified_claims(token).get("sub")
        except JWTError:
            sub = None
        if sub:
            return f"user:{sub}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_rate_limit_key,
    default_limits=[RATE_LIMIT_DEFAULT],
    storage_uri="memory://",
    strategy="fixed-window",
)
