# config/settings.py
import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


# ─── Database ──────────────────────────────────────────────────────
DATABASE_URL = os.getenv("DATABASE_URL")

# ─── Auth ──────────────────────────────────────────────────────────
# Load from env in prod; fall back only for local dev
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-prod")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7)

# ─── Market data upstreams ─────────────────────────────────────────
FINNHUB_API_KEY = os.getenv("FINNHUB_API_KEY")
ALPHAVANTAGE_API_KEY = os.getenv("ALPHAVANTAGE_API_KEY")

PRICE_CACHE_TTL_SEC = _env_float("PRICE_CACHE_TTL_SEC", 300.0)   # 5 min keeps us under free-tier limits
SEARCH_CACHE_TTL_SEC = _env_float("SEARCH_CACHE_TTL_SEC", 3600.0)
SEARCH_CACHE_MAXSIZE = _env_int("SEARCH_CACHE_MAXSIZE", 2048)
FX_CACHE_TTL_SEC = _env_float("FX_CACHE_TTL_SEC", 3600.0)
HTTP_TIMEOUT_SEC = _env_float("HTTP_TIMEOUT_SEC", 5.0)
QUOTE_MAX_CONCURRENCY = _env_int("QUOTE_MAX_CONCURRENCY", 8)

LOGO_BASE_URL = os.getenv(
    "LOGO_BASE_URL", "https://financialmodelingprep.com/image-stock"
).rstrip("/")

# ─── HTTP ──────────────────────────────────────────────────────────
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
