# services/search_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from config.settings import SEARCH_CACHE_MAXSIZE, SEARCH_CACHE_TTL_SEC
from services.alphavantage_service import AlphaVantageService
from services.finnhub_service import FinnhubService
from services.logo_service import logo_url
from services.market_types import SymbolMatch
from services.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

MAX_RESULTS = 8


class SearchProvider(Protocol):
    name: str

    async def search(self, query: str, client: Optional[httpx.AsyncClient] = None) -> Optional[List[SymbolMatch]]:
        ...


class SearchService:
    def __init__(self, providers: Sequence[SearchProvider], cache: TTLCache[List[Dict[str, Any]]]):
        self.providers = list(providers)
        self.cache = cache

    async def search(self, query: str) -> List[Dict[str, Any]]:
        q = (query or "").strip()
        if not q:
            return []

        key = q.lower()
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        for provider in self.providers:
            try:
                matches = await provider.search(q)
            except Exception:
                # one broken upstream payload must not hide the next provider
                logger.exception("search provider crashed provider=%s", provider.name)
                continue
            if matches is None:
                continue
            results = [
                {"symbol": m.symbol, "name": m.name, "logo": logo_url(m.symbol)}
                for m in matches[:MAX_RESULTS]
            ]
            self.cache.set(key, results)
            return results

        logger.warning("all stock search providers failed or are not configured")
        return []


def build_search_service() -> SearchService:
    return SearchService(
        providers=[FinnhubService(), AlphaVantageService()],
        cache=TTLCache(SEARCH_CACHE_TTL_SEC, maxsize=SEARCH_CACHE_MAXSIZE),
    )
