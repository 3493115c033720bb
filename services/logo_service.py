# services/logo_service.py
from functools import lru_cache

from config.settings import LOGO_BASE_URL


@lru_cache(maxsize=4096)
def logo_url(symbol: str) -> str:
    """Company logo from the FMP image CDN; works for most US listings."""
    return f"{LOGO_BASE_URL}/{(symbol or '').strip().upper()}.png"
