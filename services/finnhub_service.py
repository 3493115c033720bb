# services/finnhub_service.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import httpx

from config.settings import FINNHUB_API_KEY, HTTP_TIMEOUT_SEC
from services.market_types import Quote, SymbolMatch
from utils.common_helpers import safe_float, safe_json

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 8
NEWS_LOOKBACK_DAYS = 60
NEWS_LIMIT = 6


class FinnhubServiceError(Exception):
    """Domain-level error for the Finnhub service."""


class FinnhubService:
    """
    Async Finnhub client for quotes, symbol search and company news.

    Quote and search never raise: a missing key, HTTP error or empty payload
    returns None so the caller can move on to the next provider. Free tier
    allows 60 calls/minute.
    """

    name = "finnhub"
    BASE_URL = "https://finnhub.io/api/v1"

    def __init__(self, api_key: Optional[str] = None, timeout: float = HTTP_TIMEOUT_SEC):
        self.api_key = api_key if api_key is not None else FINNHUB_API_KEY
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @asynccontextmanager
    async def _client(self, client: Optional[httpx.AsyncClient] = None):
        if client is not None:
            yield client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as c:
            yield c

    def _auth_params(self, **params: Any) -> Dict[str, Any]:
        return {**params, "token": self.api_key}

    async def _get_json(self, c: httpx.AsyncClient, path: str, **params: Any) -> Any:
        r = await c.get(f"{self.BASE_URL}{path}", params=self._auth_params(**params))
        r.raise_for_status()
        return r.json()

    # -----------------------
    # Quote
    # -----------------------

    async def fetch_quote(self, symbol: str, client: Optional[httpx.AsyncClient] = None) -> Optional[Quote]:
        if not self.configured:
            return None

        async with self._client(client) as c:
            try:
                r = await c.get(f"{self.BASE_URL}/quote", params=self._auth_params(symbol=symbol))
                r.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning("finnhub quote failed symbol=%s err=%s", symbol, e)
                return None

        data = safe_json(r) or {}
        # 'c' is the current price; unknown symbols come back as 0
        price = safe_float(data.get("c"))
        if not price or price <= 0:
            return None

        return Quote(
            symbol=symbol,
            current_price=price,
            change=safe_float(data.get("d")),
            change_percent=safe_float(data.get("dp")),
            previous_close=safe_float(data.get("pc")),
            source=self.name,
        )

    # -----------------------
    # Search
    # -----------------------

    async def search(self, query: str, client: Optional[httpx.AsyncClient] = None) -> Optional[List[SymbolMatch]]:
        if not self.configured:
            return None

        async with self._client(client) as c:
            try:
                r = await c.get(f"{self.BASE_URL}/search", params=self._auth_params(q=query))
                r.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning("finnhub search failed err=%s", e)
                return None

        data = safe_json(r) or {}
        result = data.get("result")
        if not isinstance(result, list):
            return None

        out: List[SymbolMatch] = []
        for item in result[:SEARCH_LIMIT]:
            if not isinstance(item, dict):
                continue
            sym = (item.get("symbol") or "").strip()
            if not sym:
                continue
            out.append(SymbolMatch(symbol=sym, name=item.get("description") or sym))
        return out

    # -----------------------
    # News
    # -----------------------

    async def company_news(
        self,
        symbol: str,
        *,
        today: Optional[date] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> List[Dict[str, Any]]:
        """Most recent company news (last 60 days, first 6 items). Raises FinnhubServiceError."""
        if not self.configured:
            raise FinnhubServiceError("API key not configured")

        to_date = today or date.today()
        from_date = to_date - timedelta(days=NEWS_LOOKBACK_DAYS)

        async with self._client(client) as c:
            try:
                data = await self._get_json(
                    c,
                    "/company-news",
                    symbol=symbol.upper(),
                    **{"from": from_date.isoformat(), "to": to_date.isoformat()},
                )
            except (httpx.HTTPError, ValueError) as e:
                raise FinnhubServiceError("Failed to fetch news from Finnhub") from e

        if not isinstance(data, list):
            return []
        return data[:NEWS_LIMIT]
