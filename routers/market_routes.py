# routers/market_routes.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from middleware.rate_limit import MARKET_DATA_LIMIT, SEARCH_LIMIT, limiter
from schemas.general import ok
from services.currency_service import ExchangeRateService
from services.finnhub_service import FinnhubService, FinnhubServiceError
from services.market_status import market_status
from services.price_service import PriceService, PriceUnavailableError
from services.search_service import SearchService
from utils.common_helpers import normalize_symbol

router = APIRouter()


def get_price_service(request: Request) -> PriceService:
    return request.app.state.price_service


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_fx_service(request: Request) -> ExchangeRateService:
    return request.app.state.fx_service


def get_finnhub_service() -> FinnhubService:
    return FinnhubService()


def _symbol_or_400(raw: str) -> str:
    try:
        return normalize_symbol(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/search-stocks")
@limiter.limit(SEARCH_LIMIT)
async def search_stocks(
    request: Request,
    q: str | None = Query(None),
    search: SearchService = Depends(get_search_service),
):
    # bare {"results": [...]}, not the envelope; the search box reads it directly
    return {"results": await search.search(q or "")}


@router.get("/stock-price")
@limiter.limit(MARKET_DATA_LIMIT)
async def stock_price(
    request: Request,
    symbol: str = Query(...),
    prices: PriceService = Depends(get_price_service),
):
    sym = _symbol_or_400(symbol)
    try:
        quote = await prices.get_quote(sym)
    except PriceUnavailableError:
        raise HTTPException(status_code=404, detail=f"Price not available for {sym}")

    return ok({**quote.to_dict(), "marketStatus": market_status()})


@router.get("/stock-news/{symbol}")
@limiter.limit(MARKET_DATA_LIMIT)
async def stock_news(
    request: Request,
    symbol: str,
    finnhub: FinnhubService = Depends(get_finnhub_service),
):
    sym = _symbol_or_400(symbol)
    try:
        return ok(await finnhub.company_news(sym))
    except FinnhubServiceError as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/exchange-rate")
@limiter.limit(MARKET_DATA_LIMIT)
async def exchange_rate(
    request: Request,
    fx: ExchangeRateService = Depends(get_fx_service),
):
    rate = await fx.usd_to_thb()
    return ok(rate.to_dict())
