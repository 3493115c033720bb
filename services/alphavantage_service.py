# services/alphavantage_service.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import httpx

from config.settings import ALPHAVANTAGE_API_KEY, HTTP_TIMEOUT_SEC
from services.market_types import Quote, SymbolMatch
from utils.common_helpers import parse_percent, safe_float, safe_json

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 8


class AlphaVantageService:
    """
    Secondary quote/search upstream. Free tier: 5 requests/minute, 500/day.

    Throttled or rejected calls come back as HTTP 200 with a "Note" or
    "Error Message" body; those count as failures.
    """

    name = "alphavantage"
    BASE_URL = "https://www.alphavantage.co/query"

    def __init__(self, api_key: Optional[str] = None, timeout: float = HTTP_TIMEOUT_SEC):
        self.api_key = api_key if api_key is not None else ALPHAVANTAGE_API_KEY
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        # the public "demo" key only serves a handful of fixed symbols
        return bool(self.api_key) and self.api_key != "demo"

    @asynccontextmanager
    async def _client(self, client: Optional[httpx.AsyncClient] = None):
        if client is not None:
            yield client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as c:
            yield c

    async def _query(self, c: httpx.AsyncClient, function: str, **params: Any) -> Optional[Dict[str, Any]]:
        try:
            r = await c.get(self.BASE_URL, params={"function": function, **params, "apikey": self.api_key})
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("alphavantage %s failed err=%s", function, e)
            return None

        data = safe_json(r)
        if data is None:
            logger.warning("alphavantage %s returned a non-JSON body", function)
            return None
        if data.get("Note") or data.get("Error Message") or data.get("Information"):
            logger.warning("alphavantage %s rejected: %s", function, data.get("Note") or data.get("Error Message") or data.get("Information"))
            return None
        return data

    async def fetch_quote(self, symbol: str, client: Optional[httpx.AsyncClient] = None) -> Optional[Quote]:
        if not self.configured:
            return None

        async with self._client(client) as c:
            data = await self._query(c, "GLOBAL_QUOTE", symbol=symbol)

        gq = (data or {}).get("Global Quote") or {}
        price = safe_float(gq.get("05. price"))
        if not price or price <= 0:
            return None

        return Quote(
            symbol=symbol,
            current_price=price,
            change=safe_float(gq.get("09. change")),
            change_percent=parse_percent(gq.get("10. change percent")),
            previous_close=safe_float(gq.get("08. previous close")),
            source=self.name,
        )

    async def search(self, query: str, client: Optional[httpx.AsyncClient] = None) -> Optional[List[SymbolMatch]]:
        if not self.configured:
            return None

        async with self._client(client) as c:
            data = await self._query(c, "SYMBOL_SEARCH", keywords=query)

        matches = (data or {}).get("bestMatches")
        if not isinstance(matches, list):
            return None

        out: List[SymbolMatch] = []
        for m in matches[:SEARCH_LIMIT]:
            if not isinstance(m, dict):
                continue
            sym = (m.get("1. symbol") or "").strip()
            if not sym:
                continue
            out.append(SymbolMatch(symbol=sym, name=m.get("2. name") or sym))
        return out
