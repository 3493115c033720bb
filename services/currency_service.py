# services/currency_service.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

import httpx

from config.settings import FX_CACHE_TTL_SEC, HTTP_TIMEOUT_SEC
from services.ttl_cache import TTLCache
from utils.common_helpers import safe_float, safe_json

logger = logging.getLogger(__name__)

BASE_CCY = "USD"
TARGET_CCY = "THB"
# Last resort when every upstream is down
FALLBACK_USD_THB = 31.45

FX_SOURCES = (
    "https://open.er-api.com/v6/latest/USD",       # primary, no key, ~1500 req/month
    "https://api.exchangerate-api.com/v4/latest/USD",
)


@dataclass(frozen=True)
class ExchangeRate:
    rate: float
    base: str
    target: str
    timestamp: datetime
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "rate": self.rate,
            "base": self.base,
            "target": self.target,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.fallback:
            out["fallback"] = True
        return out


def extract_rate(data: Dict[str, Any], target: str = TARGET_CCY) -> Optional[float]:
    """Upstreams disagree on shape: rates.X, conversion_rates.X or a top-level X."""
    for candidate in (
        (data.get("rates") or {}).get(target),
        (data.get("conversion_rates") or {}).get(target),
        data.get(target),
    ):
        rate = safe_float(candidate)
        if rate and rate > 0:
            return rate
    return None


class ExchangeRateService:
    def __init__(
        self,
        sources: Sequence[str] = FX_SOURCES,
        cache: Optional[TTLCache[ExchangeRate]] = None,
        timeout: float = HTTP_TIMEOUT_SEC,
    ):
        self.sources = list(sources)
        self.cache = cache if cache is not None else TTLCache(FX_CACHE_TTL_SEC)
        self.timeout = timeout

    @asynccontextmanager
    async def _client(self, client: Optional[httpx.AsyncClient] = None):
        if client is not None:
            yield client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as c:
            yield c

    async def usd_to_thb(self, client: Optional[httpx.AsyncClient] = None) -> ExchangeRate:
        cached = self.cache.get(TARGET_CCY)
        if cached is not None:
            return cached

        async with self._client(client) as c:
            for url in self.sources:
                try:
                    r = await c.get(url)
                    r.raise_for_status()
                except httpx.HTTPError as e:
                    logger.warning("FX source failed url=%s err=%s", url, e)
                    continue

                rate = extract_rate(safe_json(r) or {})
                if rate is None:
                    logger.warning("FX source returned no %s rate url=%s", TARGET_CCY, url)
                    continue

                fx = ExchangeRate(
                    rate=rate,
                    base=BASE_CCY,
                    target=TARGET_CCY,
                    timestamp=datetime.now(timezone.utc),
                )
                self.cache.set(TARGET_CCY, fx)
                return fx

        # Not cached, so the next request retries the upstreams.
        logger.warning("all FX sources failed, using hardcoded rate %s", FALLBACK_USD_THB)
        return ExchangeRate(
            rate=FALLBACK_USD_THB,
            base=BASE_CCY,
            target=TARGET_CCY,
            timestamp=datetime.now(timezone.utc),
            fallback=True,
        )
