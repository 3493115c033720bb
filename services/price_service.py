# services/price_service.py
"""
Live price lookup behind an ordered provider chain and a TTL cache.

Providers are tried in order (Finnhub first, Alpha Vantage second); the first
one that returns a usable quote wins and is cached per symbol. When every
provider fails the lookup raises PriceUnavailableError. Portfolio reads catch
that and value the holding at its average cost instead.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

import httpx

from config.settings import HTTP_TIMEOUT_SEC, PRICE_CACHE_TTL_SEC, QUOTE_MAX_CONCURRENCY
from services.alphavantage_service import AlphaVantageService
from services.finnhub_service import FinnhubService
from services.market_types import Quote
from services.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


class PriceUnavailableError(Exception):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Unable to fetch price for {symbol}. APIs not configured or unavailable.")


class QuoteProvider(Protocol):
    name: str

    async def fetch_quote(self, symbol: str, client: Optional[httpx.AsyncClient] = None) -> Optional[Quote]:
        ...


class PriceService:
    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        cache: TTLCache[Quote],
        *,
        timeout: float = HTTP_TIMEOUT_SEC,
        max_concurrency: int = QUOTE_MAX_CONCURRENCY,
    ):
        self.providers = list(providers)
        self.cache = cache
        self.timeout = timeout
        self.max_concurrency = max(1, int(max_concurrency))

    @asynccontextmanager
    async def _client(self, client: Optional[httpx.AsyncClient] = None):
        if client is not None:
            yield client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as c:
            yield c

    async def get_quote(self, symbol: str, client: Optional[httpx.AsyncClient] = None) -> Quote:
        sym = (symbol or "").strip().upper()
        cached = self.cache.get(sym)
        if cached is not None:
            return cached

        async with self._client(client) as c:
            for provider in self.providers:
                try:
                    quote = await provider.fetch_quote(sym, client=c)
                except Exception:
                    # a provider bug must not take the whole chain down
                    logger.exception("quote provider crashed provider=%s symbol=%s", provider.name, sym)
                    quote = None
                if quote is not None:
                    self.cache.set(sym, quote)
                    return quote
                logger.info("quote provider miss provider=%s symbol=%s", provider.name, sym)

        raise PriceUnavailableError(sym)

    async def get_price(self, symbol: str, client: Optional[httpx.AsyncClient] = None) -> float:
        return (await self.get_quote(symbol, client=client)).current_price

    async def get_quotes(self, symbols: Iterable[str]) -> Dict[str, Optional[Quote]]:
        """
        Concurrent lookup, one task per distinct symbol.
        Returns {SYMBOL: Quote | None}; a failed symbol never affects the others.
        """
        unique: List[str] = []
        for s in symbols:
            sym = (s or "").strip().upper()
            if sym and sym not in unique:
                unique.append(sym)
        if not unique:
            return {}

        sem = asyncio.Semaphore(self.max_concurrency)

        async with self._client() as c:
            async def one(sym: str) -> Optional[Quote]:
                async with sem:
                    try:
                        return await self.get_quote(sym, client=c)
                    except PriceUnavailableError:
                        logger.warning("price unavailable symbol=%s", sym)
                        return None

            results = await asyncio.gather(*(one(s) for s in unique))

        return dict(zip(unique, results))

    async def get_prices(self, symbols: Iterable[str]) -> Dict[str, Optional[float]]:
        quotes = await self.get_quotes(symbols)
        return {s: (q.current_price if q else None) for s, q in quotes.items()}


def build_price_service() -> PriceService:
    return PriceService(
        providers=[FinnhubService(), AlphaVantageService()],
        cache=TTLCache(PRICE_CACHE_TTL_SEC),
    )
